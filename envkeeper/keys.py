"""
Finding and creating the key material for an env file.

Every directory has one key store ('.env.keys') shared by the env files in it. Key material is
only ever added: an existing public key is never replaced and an existing private key is never
overwritten.
"""

import logging
import os
import pathlib
import threading
import typing

import attr

from . import naming, source
from .crypto import generate_key_pair
from .utils import KeyStoreIOError, MissingEnvFile, read_text, write_text

log = logging.getLogger(__name__)


@attr.s(frozen=True)
class KeyStore:
    """
    The key store for one directory.

    Handles for the same path share a lock, which is held for the whole read-modify-write of the
    key store so concurrent encryptions can't both add a private key.
    """

    path: pathlib.Path = attr.ib()
    lock: threading.Lock = attr.ib(eq=False, repr=False)

    _registry: typing.ClassVar[typing.Dict[pathlib.Path, 'KeyStore']] = {}
    _registry_lock: typing.ClassVar[threading.Lock] = threading.Lock()

    @classmethod
    def for_path(cls, path: pathlib.Path) -> 'KeyStore':
        path = path.resolve()
        with cls._registry_lock:
            if path not in cls._registry:
                cls._registry[path] = cls(path, threading.Lock())
            return cls._registry[path]

    @classmethod
    def for_env_file(cls, filepath: pathlib.Path) -> 'KeyStore':
        return cls.for_path(filepath.resolve().parent / source.KEYS_FILENAME)

    def read(self) -> str:
        try:
            return read_text(self.path)
        except FileNotFoundError:
            return ''
        except OSError as error:
            raise KeyStoreIOError(f"could not read {self.path}: {error}") from error

    def write(self, src: str) -> None:
        log.debug(f"Writing key store {self.path}")
        try:
            write_text(self.path, src)
        except OSError as error:
            raise KeyStoreIOError(f"could not write {self.path}: {error}") from error

    def parsed(self) -> typing.Dict[str, str]:
        return source.parse(self.read())


@attr.s(frozen=True, kw_only=True)
class FoundKeys:
    env_src: str = attr.ib(repr=False)
    keys_src: str = attr.ib(repr=False)
    public_key: str = attr.ib()
    private_key: typing.Optional[str] = attr.ib(repr=False)
    public_key_added: bool = attr.ib()
    private_key_added: bool = attr.ib()


def read_env_file(filepath: pathlib.Path) -> str:
    try:
        return read_text(filepath)
    except FileNotFoundError as error:
        raise MissingEnvFile(str(filepath)) from error


def find_or_create_public_key(filepath: pathlib.Path, key_store: KeyStore) -> FoundKeys:
    """
    Return the key pair for an env file, creating it if the file has no public key yet.

    The caller should hold the key store's lock and write back the returned key store text.
    """
    public_key_name = naming.public_key_name(filepath)
    private_key_name = naming.private_key_name(filepath)

    env_src = read_env_file(filepath)
    keys_src = key_store.read()

    existing_public_key = source.parse(env_src).get(public_key_name)
    existing_private_key = source.parse(keys_src).get(private_key_name)

    if existing_public_key:
        return FoundKeys(
            env_src=env_src,
            keys_src=keys_src,
            public_key=existing_public_key,
            private_key=existing_private_key,
            public_key_added=False,
            private_key_added=False)

    pair = generate_key_pair(existing_private_key)
    log.info(f"Adding {public_key_name} to {filepath}")

    env_src = source.prepend_public_key(env_src, str(filepath), public_key_name, pair.public_key)

    private_key_added = not existing_private_key
    if private_key_added:
        log.info(f"Adding {private_key_name} to {key_store.path}")
        keys_src = source.append_private_key(keys_src, str(filepath), private_key_name, pair.private_key)

    return FoundKeys(
        env_src=env_src,
        keys_src=keys_src,
        public_key=pair.public_key,
        private_key=pair.private_key,
        public_key_added=True,
        private_key_added=private_key_added)


def smart_private_key(filepath: pathlib.Path) -> typing.Optional[str]:
    """
    Find the private key for an env file.

    A key set in the process environment wins over the key store, which lets CI inject keys
    without a '.env.keys' file. Returns None when neither has one.
    """
    name = naming.private_key_name(filepath)

    if os.environ.get(name):
        log.debug(f"Using {name} from the environment")
        return os.environ[name]

    key_store = KeyStore.for_env_file(filepath)
    with key_store.lock:
        private_key = key_store.parsed().get(name)

    if private_key:
        log.debug(f"Using {name} from {key_store.path}")
        return private_key

    log.debug(f"No {name} found for {filepath}")
    return None

import concurrent.futures
import enum
import logging
import pathlib
import typing

import attr

from . import naming, source
from .crypto import decrypt_value, encrypt_value, is_encrypted, is_public_key
from .filters import KeyFilter
from .keys import KeyStore, find_or_create_public_key, read_env_file, smart_private_key
from .utils import EnvKeeperException, MissingEnvFile, as_tuple, write_text

log = logging.getLogger(__name__)


class Status(enum.Enum):
    CHANGED = 'changed'
    UNCHANGED = 'unchanged'
    FAILED = 'failed'


@attr.s(frozen=True, kw_only=True)
class ProcessedEnvFile:
    """The outcome of encrypting or decrypting one env file."""

    filepath: pathlib.Path = attr.ib()
    env_filepath: str = attr.ib()
    status: Status = attr.ib()
    keys: typing.Tuple[str, ...] = attr.ib(default=(), converter=tuple)
    env_src: typing.Optional[str] = attr.ib(default=None, repr=False)
    public_key: typing.Optional[str] = attr.ib(default=None)
    private_key: typing.Optional[str] = attr.ib(default=None, repr=False)
    private_key_name: typing.Optional[str] = attr.ib(default=None)
    private_key_added: bool = attr.ib(default=False)
    error: typing.Optional[Exception] = attr.ib(default=None)

    @property
    def changed(self) -> bool:
        return self.status is Status.CHANGED

    def write(self) -> None:
        if self.env_src is None:
            raise EnvKeeperException(f"Nothing to write to {self.env_filepath}")
        log.debug(f"Writing {self.filepath}")
        write_text(self.filepath, self.env_src)


@attr.s(frozen=True)
class RunResult:
    processed: typing.Tuple[ProcessedEnvFile, ...] = attr.ib(converter=tuple)

    def _filepaths(self, status: Status) -> typing.List[str]:
        return list(dict.fromkeys(p.env_filepath for p in self.processed if p.status is status))

    @property
    def changed_filepaths(self) -> typing.List[str]:
        return self._filepaths(Status.CHANGED)

    @property
    def unchanged_filepaths(self) -> typing.List[str]:
        return self._filepaths(Status.UNCHANGED)

    @property
    def failed(self) -> typing.List[ProcessedEnvFile]:
        return [p for p in self.processed if p.status is Status.FAILED]

    def write(self) -> typing.List[ProcessedEnvFile]:
        """
        Write every changed env file back to disk.

        A file that can't be written doesn't stop the others from being written. Returns the
        records of the files that couldn't be written, marked as failed.
        """
        failed = []
        for processed in self.processed:
            if not processed.changed:
                continue
            try:
                processed.write()
            except OSError as error:
                log.warning(f"Writing {processed.env_filepath} failed: {error}")
                failed.append(attr.evolve(processed, status=Status.FAILED, error=error))
        return failed


@attr.s(frozen=True)
class Service:
    """
    Transform the values of a list of env files.

    Each file is processed independently: a failure is recorded on that file's result and the
    remaining files are still processed.
    """

    env_files: typing.Tuple[str, ...] = attr.ib(default=('.env',), converter=as_tuple)
    keys: typing.Tuple[str, ...] = attr.ib(default=(), converter=as_tuple)
    exclude_keys: typing.Tuple[str, ...] = attr.ib(default=(), converter=as_tuple)
    workers: int = attr.ib(default=1)

    action = 'Processing'

    @property
    def key_filter(self) -> KeyFilter:
        return KeyFilter(self.keys, self.exclude_keys)

    def run(self) -> RunResult:
        log.info(f"{self.action} {len(self.env_files)} env files")
        if self.workers > 1:
            with concurrent.futures.ThreadPoolExecutor(max_workers=self.workers) as executor:
                return RunResult(executor.map(self.process, self.env_files))
        return RunResult(self.process(env_filepath) for env_filepath in self.env_files)

    def process(self, env_filepath: str) -> ProcessedEnvFile:
        filepath = pathlib.Path(env_filepath).resolve()
        log.debug(f"{self.action} {env_filepath} ({filepath})")

        try:
            return self.transform(env_filepath, filepath)
        except (FileNotFoundError, MissingEnvFile):
            error: Exception = MissingEnvFile(env_filepath, filepath)
        except (EnvKeeperException, OSError, ValueError) as exc:
            error = exc

        log.warning(f"{self.action} {env_filepath} failed: {error}")
        return ProcessedEnvFile(
            filepath=filepath,
            env_filepath=env_filepath,
            status=Status.FAILED,
            private_key_name=naming.private_key_name(filepath),
            error=error)

    def transform(self, env_filepath: str, filepath: pathlib.Path) -> ProcessedEnvFile:
        raise NotImplementedError


class Encrypt(Service):
    action = 'Encrypting'

    def transform(self, env_filepath: str, filepath: pathlib.Path) -> ProcessedEnvFile:
        key_store = KeyStore.for_env_file(filepath)
        with key_store.lock:
            found = find_or_create_public_key(filepath, key_store)
            key_store.write(found.keys_src)

        src = found.env_src
        keys: typing.List[str] = []
        for name, value in source.parse(src).items():
            if not self.key_filter(name):
                continue
            if is_encrypted(name, value) or is_public_key(name, value):
                continue
            log.debug(f"Encrypting {name} in {env_filepath}")
            src = source.replace(src, name, encrypt_value(value, found.public_key))
            keys.append(name)

        changed = found.public_key_added or bool(keys)
        log.info(f"Encrypted {len(keys)} values in {env_filepath}")
        return ProcessedEnvFile(
            filepath=filepath,
            env_filepath=env_filepath,
            status=Status.CHANGED if changed else Status.UNCHANGED,
            keys=keys,
            env_src=src,
            public_key=found.public_key,
            private_key=found.private_key,
            private_key_name=naming.private_key_name(filepath),
            private_key_added=found.private_key_added)


class Decrypt(Service):
    action = 'Decrypting'

    def transform(self, env_filepath: str, filepath: pathlib.Path) -> ProcessedEnvFile:
        src = read_env_file(filepath)
        private_key = smart_private_key(filepath)

        keys: typing.List[str] = []
        for name, value in source.parse(src).items():
            if not self.key_filter(name):
                continue
            if not is_encrypted(name, value):
                continue
            log.debug(f"Decrypting {name} in {env_filepath}")
            src = source.replace(src, name, decrypt_value(value, private_key, name))
            keys.append(name)

        log.info(f"Decrypted {len(keys)} values in {env_filepath}")
        return ProcessedEnvFile(
            filepath=filepath,
            env_filepath=env_filepath,
            status=Status.CHANGED if keys else Status.UNCHANGED,
            keys=keys,
            env_src=src,
            private_key=private_key,
            private_key_name=naming.private_key_name(filepath))

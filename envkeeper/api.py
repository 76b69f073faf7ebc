import typing

from .services import Decrypt, Encrypt, RunResult

Paths = typing.Union[str, typing.Sequence[str]]
Patterns = typing.Union[None, str, typing.Sequence[str]]


def encrypt(env_files: Paths = '.env', keys: Patterns = None, exclude_keys: Patterns = None,
            workers: int = 1) -> RunResult:
    return Encrypt(env_files, keys, exclude_keys, workers).run()


def decrypt(env_files: Paths = '.env', keys: Patterns = None, exclude_keys: Patterns = None,
            workers: int = 1) -> RunResult:
    return Decrypt(env_files, keys, exclude_keys, workers).run()

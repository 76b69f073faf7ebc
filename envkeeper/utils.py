import pathlib
import typing

import click
import git


def read_text(path: pathlib.Path) -> str:
    """Read a text file as is, without translating its line endings."""
    with open(path, encoding='utf-8', newline='') as f:
        return f.read()


def write_text(path: pathlib.Path, text: str) -> None:
    with open(path, 'w', encoding='utf-8', newline='') as f:
        f.write(text)


def is_ignored(path: pathlib.Path) -> bool:
    """Check if git ignores a path. Paths outside a repository are never ignored."""
    try:
        repo = git.Repo(path.parent, search_parent_directories=True)
    except (git.exc.InvalidGitRepositoryError, git.exc.NoSuchPathError):
        return False
    return bool(repo.ignored(str(path)))


def as_tuple(value: typing.Union[None, str, typing.Iterable[str]]) -> typing.Tuple[str, ...]:
    """Accept a single string or a sequence of strings."""
    if value is None:
        return ()
    if isinstance(value, (str, pathlib.PurePath)):
        return (str(value),)
    return tuple(str(v) for v in value)


class EnvKeeperException(click.ClickException):
    code = 'OTHER_ERROR'


class MissingEnvFile(EnvKeeperException):
    code = 'MISSING_ENV_FILE'

    def __init__(self, env_filepath: str, filepath: typing.Optional[pathlib.Path] = None):
        message = f"missing {env_filepath} file"
        if filepath is not None:
            message = f"{message} ({filepath})"
        super().__init__(message)
        self.env_filepath = env_filepath


class DecryptionFailed(EnvKeeperException):
    code = 'DECRYPTION_FAILED'


class MissingPrivateKey(DecryptionFailed):
    code = 'MISSING_PRIVATE_KEY'


class KeyStoreIOError(EnvKeeperException):
    code = 'KEY_STORE_IO_ERROR'

"""
Canonical names for the key variables of an env file.

The environment is taken from the file name: '.env.staging' and '.env.staging.local' both
belong to 'staging', while '.env' has no environment at all.
"""

import os.path
import typing

PUBLIC_KEY_PREFIX = 'DOTENV_PUBLIC_KEY'
PRIVATE_KEY_PREFIX = 'DOTENV_PRIVATE_KEY'

PathLike = typing.Union[str, os.PathLike]


def environment(path: PathLike) -> typing.Optional[str]:
    parts = os.path.basename(os.fspath(path)).split('.')
    if len(parts) < 3 or not parts[2]:
        return None
    return parts[2]


def suffix(path: PathLike) -> str:
    env = environment(path)
    return f'_{env.upper()}' if env else ''


def public_key_name(path: PathLike) -> str:
    return f'{PUBLIC_KEY_PREFIX}{suffix(path)}'


def private_key_name(path: PathLike) -> str:
    return f'{PRIVATE_KEY_PREFIX}{suffix(path)}'

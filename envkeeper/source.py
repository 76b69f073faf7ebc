"""
Reading and rewriting the raw text of env files.

Parsing is left to python-dotenv. Rewriting works on the exact source text so that comments,
quoting, ordering and blank lines survive: only the characters of a single value are replaced.
"""

import io
import os.path
import re
import typing

import dotenv
import dotenv.parser

KEYS_FILENAME = '.env.keys'

PUBLIC_KEY_BANNER = (
    '#/-------------------[DOTENV_PUBLIC_KEY]--------------------/',
    '#/            public-key encryption for .env files          /',
    '#/       [how it works](https://dotenvx.com/encryption)     /',
    '#/----------------------------------------------------------/',
)

PRIVATE_KEYS_BANNER = (
    '#/------------------!DOTENV_PRIVATE_KEYS!-------------------/',
    '#/ private decryption keys. DO NOT commit to source control /',
    '#/     [how it works](https://dotenvx.com/encryption)       /',
    '#/----------------------------------------------------------/',
)

# The head of an assignment as python-dotenv reads it: blank lines, 'export', the key, '='.
_ASSIGNMENT = re.compile(
    r"""
    \s*
    (?:export[^\S\r\n]+)?
    (?:'[^']*'|[^=\#\s]+)
    [^\S\r\n]*=[^\S\r\n]*
    (?:
        '(?P<single>(?:\\'|[^'])*)'
      | "(?P<double>(?:\\"|[^"])*)"
    )?
    """,
    re.VERBOSE,
)


def parse(src: str) -> typing.Dict[str, str]:
    """Parse env file text into an ordered mapping, skipping keys without a value."""
    parsed = dotenv.dotenv_values(stream=io.StringIO(src), interpolate=False)
    return {key: value for key, value in parsed.items() if value is not None}


def _escape(value: str, quote: str) -> str:
    if quote == '"':
        value = re.sub(r"""\\(?=[\\'"abfnrtv\n]|\Z)""", r'\\\\', value)
        return value.replace('"', '\\"').replace('\n', '\\n')
    if quote == "'":
        value = re.sub(r"\\(?=[\\']|\Z)", r'\\\\', value)
        return value.replace("'", "\\'")
    return value


def _find(src: str, key: str) -> typing.Optional[typing.Tuple[int, str, str]]:
    """Find the offset, source text and parsed value of the last assignment to a key."""
    found = None
    offset = 0
    for binding in dotenv.parser.parse_stream(io.StringIO(src)):
        if binding.key == key and binding.value is not None and not binding.error:
            found = (offset, binding.original.string, binding.value)
        offset += len(binding.original.string)
    return found


def replace(src: str, key: str, value: str) -> str:
    """
    Replace the value assigned to a key, keeping everything else byte for byte.

    The quoting style of the assignment is kept and the new value escaped to suit it. When a key
    is assigned more than once the last assignment, which is the one that takes effect, is
    replaced. Unknown keys leave the text unchanged.
    """
    found = _find(src, key)
    if found is None:
        return src

    offset, original, parsed = found
    match = _ASSIGNMENT.match(original)
    if match is None:
        return src

    if match.group('single') is not None:
        start, end, quote = match.start('single'), match.end('single'), "'"
    elif match.group('double') is not None:
        start, end, quote = match.start('double'), match.end('double'), '"'
    else:
        start, end, quote = match.end(), match.end() + len(parsed), ''

    return src[:offset + start] + _escape(value, quote) + src[offset + end:]


def newline(src: str) -> str:
    """The line ending to use for lines added to some text."""
    return '\r\n' if '\r\n' in src else '\n'


def split_shebang(src: str) -> typing.Tuple[str, str]:
    """Split a leading '#!' line (with its newline) from the rest of the text."""
    first, _, rest = src.partition('\n')
    if first.startswith('#!'):
        return first + '\n', rest
    return '', src


def prepend_public_key(src: str, filepath: str, name: str, public_key: str) -> str:
    shebang, rest = split_shebang(src)
    nl = newline(src)
    block = nl.join([
        *PUBLIC_KEY_BANNER,
        f'{name}="{public_key}"',
        '',
        f'# {os.path.basename(filepath)}',
    ])
    return f'{shebang}{block}{nl}{rest}'


def append_private_key(keys_src: str, filepath: str, name: str, private_key: str) -> str:
    nl = newline(keys_src)
    entry = nl.join([
        f'# {os.path.basename(filepath)}',
        f'{name}="{private_key}"',
        '',
    ])
    return f'{with_private_keys_banner(keys_src)}{nl}{entry}'


def with_private_keys_banner(keys_src: str) -> str:
    """Start an empty key store with its banner."""
    if keys_src.strip():
        return keys_src
    return '\n'.join(PRIVATE_KEYS_BANNER) + '\n'

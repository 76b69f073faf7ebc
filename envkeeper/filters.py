import fnmatch
import typing

import attr

from .utils import as_tuple


def matches(patterns: typing.Iterable[str], name: str) -> bool:
    return any(fnmatch.fnmatchcase(name, pattern) for pattern in patterns)


@attr.s(frozen=True)
class KeyFilter:
    """
    Select variables by name with glob patterns.

    An empty list of keys selects every variable. Exclusions always win over inclusions.
    """

    keys: typing.Tuple[str, ...] = attr.ib(default=(), converter=as_tuple)
    exclude_keys: typing.Tuple[str, ...] = attr.ib(default=(), converter=as_tuple)

    def __call__(self, name: str) -> bool:
        if matches(self.exclude_keys, name):
            return False
        if self.keys and not matches(self.keys, name):
            return False
        return True

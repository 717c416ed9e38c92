"""
Codes -- human-readable identifiers.

Responsibility:
    Formatting of allocated entity codes (``ISS-003``, ``DIS-0007``), the
    registry of known prefixes, and hierarchical outline codes for WBS
    nodes (``1``, ``1.2``, ``1.2.3``).

Architecture position:
    Kernel > Domain -- pure functional core, zero I/O.  The registry
    contents come from configuration (wbs_config.bridges) or the defaults
    below; the kernel never reads configuration itself.
"""

import re
from collections.abc import Iterable
from dataclasses import dataclass

from wbs_kernel.exceptions import InvalidPrefixError, OutOfRangeError

PREFIX_PATTERN = re.compile(r"^[A-Z]{2,10}$")


@dataclass(frozen=True)
class CodePrefix:
    """A registered entity kind: ``prefix`` numbered with ``width`` digits."""

    prefix: str
    width: int
    entity: str = ""

    def __post_init__(self) -> None:
        if not PREFIX_PATTERN.match(self.prefix):
            raise InvalidPrefixError(self.prefix)
        if self.width < 1:
            raise OutOfRangeError("width", self.width, 1)

    def format(self, number: int) -> str:
        return format_code(self.prefix, number, self.width)


DEFAULT_PREFIXES: tuple[CodePrefix, ...] = (
    CodePrefix("ISS", 3, "issue"),
    CodePrefix("REQ", 3, "requirement"),
    CodePrefix("DIS", 4, "discussion_item"),
)


def format_code(prefix: str, number: int, width: int) -> str:
    """``{prefix}-{number}``, zero-padded to *width*; wider numbers are not truncated."""
    return f"{prefix}-{str(number).zfill(width)}"


class PrefixRegistry:
    """Lookup of registered prefixes.  Unknown prefixes are rejected."""

    def __init__(self, prefixes: Iterable[CodePrefix] = DEFAULT_PREFIXES):
        self._prefixes: dict[str, CodePrefix] = {}
        for entry in prefixes:
            if entry.prefix in self._prefixes:
                raise ValueError(f"Duplicate code prefix: {entry.prefix}")
            self._prefixes[entry.prefix] = entry

    def get(self, prefix: str) -> CodePrefix:
        try:
            return self._prefixes[prefix]
        except KeyError:
            raise InvalidPrefixError(prefix, self.prefixes) from None

    def __contains__(self, prefix: object) -> bool:
        return prefix in self._prefixes

    @property
    def prefixes(self) -> tuple[str, ...]:
        return tuple(sorted(self._prefixes))


def outline_code(parent_code: str, position: int) -> str:
    """Outline code of the child at 1-based *position* under *parent_code*."""
    if not parent_code:
        return str(position)
    return f"{parent_code}.{position}"

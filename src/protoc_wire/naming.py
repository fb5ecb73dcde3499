"""Identifier spelling and per-message collision avoidance."""

from __future__ import annotations

import keyword
import re
from typing import Iterable, Iterator, Optional, Set

_ACRONYM_BOUNDARY = re.compile(r"([A-Z]+)([A-Z][a-z])")
_WORD_BOUNDARY = re.compile(r"([a-z0-9])([A-Z])")


def to_snake(name: str) -> str:
    """enumField / EnumField / enum_field -> enum_field"""
    s = _ACRONYM_BOUNDARY.sub(r"\1_\2", name)
    s = _WORD_BOUNDARY.sub(r"\1_\2", s)
    return s.replace("-", "_").lower()


def to_upper_snake(name: str) -> str:
    return to_snake(name).upper()


class NameRegistry:
    """Tracks the identifiers already handed out within one scope.

    One registry is created per message and passed to every field generator
    built for that message, so no two fields can claim the same spelling.
    The message assembler keeps another one for module-level class names.
    """

    def __init__(self, reserved: Optional[Iterable[str]] = None):
        self._used: Set[str] = set(reserved or ())

    def __contains__(self, name: str) -> bool:
        return name in self._used

    def __iter__(self) -> Iterator[str]:
        return iter(sorted(self._used))

    def request_unique(self, candidate: str) -> str:
        """Returns a free variant of ``candidate`` and marks it used."""
        if not candidate:
            raise ValueError("cannot register an empty identifier")

        base = candidate + "_" if keyword.iskeyword(candidate) else candidate
        name = base
        suffix = 2
        while name in self._used:
            name = f"{base}_{suffix}"
            suffix += 1

        self._used.add(name)
        return name


def struct_field_name(field_name: str, names: NameRegistry) -> str:
    return names.request_unique(to_snake(field_name))


def const_name(name: str, names: NameRegistry) -> str:
    return names.request_unique(to_upper_snake(name))


def struct_method_name(name: str, names: NameRegistry) -> str:
    return names.request_unique(to_snake(name))

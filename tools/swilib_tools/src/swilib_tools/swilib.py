from __future__ import annotations

import re
from dataclasses import dataclass, field
from enum import IntEnum

from ._core_base import SWILIB_MAX_ENTRIES, PatchParseError
from .vkp import VkpOffset, iter_vkp_directives, vkp_normalize


class SwiValueType(IntEnum):
    UNDEFINED = 0
    POINTER_TO_RAM = 1
    POINTER_TO_FLASH = 2
    VALUE = 3


class SwiType(IntEnum):
    EMPTY = 0
    FUNCTION = 1
    POINTER = 2
    VALUE = 3


@dataclass(frozen=True)
class SwiEntry:
    id: int
    value: int
    symbol: str
    type: SwiValueType
    comment: str | None = None


@dataclass(frozen=True)
class Swilib:
    offset: int
    entries: dict[int, SwiEntry] = field(default_factory=dict)

    @property
    def size(self) -> int:
        return max(self.entries) + 1 if self.entries else 0

    def get(self, slot: int) -> SwiEntry | None:
        return self.entries.get(slot)


# Tried in order; the first match wins.
FUNC_NAME_PATTERNS: tuple[tuple[re.Pattern[str], str], ...] = (
    (re.compile(r"^-?([a-f0-9]+)(?::?\s+|:)([\w *-]*\s*[*\s]+)?(\w+)\s*\(", flags=re.I), "name"),
    (re.compile(r"^-?([a-f0-9]+)(?::?\s+|:)([\w *-]*\s*[*\s]+)?(\w+)$", flags=re.I), "name"),
    (re.compile(r"^([a-f0-9]+):$", flags=re.I), "synthesized"),
)

CYRILLIC_CAPITAL_ES = "\u0421"


def parse_swilib_func_name(comment: str) -> str | None:
    text = re.sub(r"^\s*0x[a-f0-9]+", "", comment, flags=re.I)
    text = re.sub(r"//.*$", "", text)
    text = re.sub(r";|\*NEW\*|\?\?\?", "", text, flags=re.I)
    text = text.replace("Run ScreenShooter on function ", "")
    text = re.sub(r"\((API|MP|Disp)\)", "", text, count=1)
    text = re.sub(CYRILLIC_CAPITAL_ES, "C", text, flags=re.I)
    text = text.strip()

    for pattern, kind in FUNC_NAME_PATTERNS:
        match = pattern.match(text)
        if not match:
            continue
        if kind == "synthesized":
            return f"FUNC_{match.group(1)}"
        return match.group(3)
    return None


def get_swilib_value_type(value: int | None) -> SwiValueType:
    if value is None or value == 0xFFFFFFFF:
        return SwiValueType.UNDEFINED
    region = value & 0xFF000000
    if 0xA0000000 <= region < 0xA8000000:
        return SwiValueType.POINTER_TO_FLASH
    if 0xA8000000 <= region < 0xB0000000:
        return SwiValueType.POINTER_TO_RAM
    return SwiValueType.VALUE


def parse_swilib_patch(code: str | bytes, comments: bool = False) -> Swilib:
    """Parse a swilib VKP patch into a slot table.

    Every rule violation is fatal and raised as ``PatchParseError`` with the
    location of the offending directive. ``comments`` keeps the raw comment of
    each entry so it can be written back unchanged.
    """
    if isinstance(code, bytes):
        code = vkp_normalize(code)

    source_lines = code.split("\n")
    offset: int | None = None
    end = False
    entries: dict[int, SwiEntry] = {}

    def fail(message: str, line: int, column: int) -> PatchParseError:
        return PatchParseError(message, line, column, source_lines[line - 1])

    for directive in iter_vkp_directives(code):
        loc = directive.loc
        if isinstance(directive, VkpOffset):
            if directive.offset == 0:
                end = True
                continue
            if offset is not None:
                raise fail("Duplicated offset", loc.line, loc.column)
            offset = directive.offset
            continue

        if end:
            raise fail("Entry after end", loc.line, loc.column)
        if not offset:
            raise fail("Entry without offset", loc.line, loc.column)
        if len(directive.new) != 4:
            raise fail("Value length is not equal 4", loc.line, loc.column)
        if directive.address % 4 != 0:
            raise fail("Address is not aligned to 4", loc.line, loc.column)

        symbol = parse_swilib_func_name(directive.comment)
        if not symbol:
            raise fail(f"Invalid comment: {directive.comment}", loc.line, loc.column)

        slot = directive.address // 4
        if slot >= SWILIB_MAX_ENTRIES:
            raise fail(f"Slot {slot:03X} is out of range", loc.line, loc.column)
        if slot in entries:
            raise fail(f"Duplicated entry for {slot:03X}", loc.line, loc.column)

        value = int.from_bytes(directive.new, "little")
        entries[slot] = SwiEntry(
            id=slot,
            value=value,
            symbol=symbol,
            type=get_swilib_value_type(value),
            comment=directive.comment if comments else None,
        )

    return Swilib(offset=offset or 0, entries=entries)

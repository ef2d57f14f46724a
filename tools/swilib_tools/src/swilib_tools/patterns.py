from __future__ import annotations

import re
from dataclasses import dataclass

from ._core_base import PatternsParseError, normalize_ws
from .vkp import vkp_normalize

PATTERN_LINE_RE = re.compile(r"^([a-f0-9]+):(.*?)(?:=(.*?))?$", flags=re.I)

# Tried in order; the first match wins.
PATTERN_NAME_RES: tuple[re.Pattern[str], ...] = (
    re.compile(r"^([\w*]+)$", flags=re.I),
    re.compile(r"^[\w*\s]+\s[*]?(\w+)\s*\(", flags=re.I),
    re.compile(r"^[*]?(\w+)\s*\(", flags=re.I),
    re.compile(r"^[\w*\s]+\s[*]?(\w+)$", flags=re.I),
)


@dataclass(frozen=True)
class SwilibPattern:
    id: int
    name: str
    symbol: str | None = None
    pattern: str | None = None


def parse_pattern_func_name(name: str) -> str | None:
    if not name:
        return None
    for regex in PATTERN_NAME_RES:
        match = regex.match(name)
        if match:
            return match.group(1)
    raise PatternsParseError(f"Invalid function: {name}")


def parse_patterns(code: str | bytes) -> dict[int, SwilibPattern]:
    if isinstance(code, bytes):
        code = vkp_normalize(code)

    patterns: dict[int, SwilibPattern] = {}
    for raw_line in code.split("\n"):
        line = re.sub(r";.*$", "", raw_line).strip()
        if not line or line == "[Library]" or line.startswith("Version="):
            continue

        match = PATTERN_LINE_RE.match(line)
        if not match:
            raise PatternsParseError(f"Invalid line: {line}")

        slot = int(match.group(1), 16)
        if slot in patterns:
            raise PatternsParseError(f"Function {slot:x} already exists: {line}")

        name = match.group(2).strip()
        pattern = match.group(3).strip() if match.group(3) else None
        patterns[slot] = SwilibPattern(
            id=slot,
            name=name,
            symbol=parse_pattern_func_name(name),
            pattern=pattern,
        )
    return patterns


def serialize_patterns(patterns: dict[int, SwilibPattern]) -> str:
    lines = ["[Library]"]
    size = max(patterns) + 1 if patterns else 0
    for slot in range(size):
        if slot and slot % 16 == 0:
            lines.append("")

        slot_hex = f"{slot:02X}"
        entry = patterns.get(slot)
        if entry is None:
            lines.append(f"{slot_hex}:")
        elif entry.pattern:
            lines.append(f"{slot_hex}:{normalize_ws(entry.name)} = {entry.pattern}")
        else:
            lines.append(f"{slot_hex}:{normalize_ws(entry.name)}")
    lines.append("")
    return "\n".join(lines)

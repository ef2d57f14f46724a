from __future__ import annotations

import json
import re
from pathlib import Path
from typing import Any

TOOL_VERSION = "1.0.0"

SWILIB_MAX_ENTRIES = 0x1000

PLATFORM_ELKA = "ELKA"
PLATFORM_NSG = "NSG"
PLATFORM_X75 = "X75"
PLATFORM_SG = "SG"
PLATFORMS: tuple[str, ...] = (PLATFORM_ELKA, PLATFORM_NSG, PLATFORM_X75, PLATFORM_SG)


class SwilibError(Exception):
    pass


class PatchParseError(SwilibError):
    def __init__(self, message: str, line: int, column: int = 1, source_line: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.line = line
        self.column = column
        self.source_line = source_line

    def code_frame(self) -> str:
        if self.source_line is None:
            return ""
        gutter = str(self.line)
        pad = " " * len(gutter)
        caret = " " * max(self.column - 1, 0) + "^"
        return f"> {gutter} | {self.source_line}\n  {pad} | {caret}"

    def __str__(self) -> str:
        text = f"{self.message} at line {self.line}, column {self.column}"
        frame = self.code_frame()
        if frame:
            text += "\n" + frame
        return text


class SdkParseError(SwilibError):
    pass


class PatternsParseError(SwilibError):
    pass


class ConfigError(SwilibError):
    pass


class PreprocessorError(SwilibError):
    pass


def is_valid_platform(platform: str) -> bool:
    return platform in PLATFORMS


def require_platform(platform: str) -> str:
    if not is_valid_platform(platform):
        raise SwilibError(f"Invalid platform: {platform}. Known platforms: {', '.join(PLATFORMS)}")
    return platform


def normalize_ws(value: str) -> str:
    return re.sub(r"\s+", " ", value).strip()


def format_id(slot: int) -> str:
    return f"{slot:03X}"


def format_value(value: int) -> str:
    return f"{value:08X}"


def parse_slot_key(value: Any, label: str) -> int:
    if isinstance(value, bool):
        raise ConfigError(f"{label} must be a slot number, got {value!r}")
    if isinstance(value, int):
        slot = value
    elif isinstance(value, str):
        try:
            slot = int(value.strip(), 0)
        except ValueError as exc:
            raise ConfigError(f"{label} must be a decimal or 0x-prefixed slot number, got {value!r}") from exc
    else:
        raise ConfigError(f"{label} must be a slot number, got {value!r}")
    if slot < 0 or slot >= SWILIB_MAX_ENTRIES:
        raise ConfigError(f"{label} is out of range: {slot:#x}")
    return slot


def write_json(path: Path, value: dict[str, Any]) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(value, indent=2, sort_keys=True) + "\n", encoding="utf-8")


def read_input(path: Path) -> bytes:
    try:
        return path.read_bytes()
    except OSError as exc:
        raise SwilibError(f"Unable to read '{path}': {exc}") from exc

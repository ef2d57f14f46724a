from __future__ import annotations

import bisect
import os
import posixpath
import re
import shlex
import shutil
import subprocess
from dataclasses import dataclass, field
from enum import IntEnum
from pathlib import Path

from ._core_base import (
    PLATFORM_ELKA,
    PLATFORM_NSG,
    PLATFORM_SG,
    PLATFORM_X75,
    PreprocessorError,
    SdkParseError,
    is_valid_platform,
)
from .swilib import SwiType

SWI_FUNC_RE = re.compile(
    r"/\*\*(?P<doc>.*?)\*/|__swi_begin\s+(?P<name>.*?)\s+__swi_end\((?P<code>[xa-f0-9]+), (?P<symbol>\w+)\);",
    flags=re.S | re.I,
)
CODE_LINE_RE = re.compile(r'^# (\d+) "([^"]+)"', flags=re.M | re.I)
VALUE_DECL_RE = re.compile(r"^[\w\s]+\s(\w+)\s*\(\s*(void)?\s*\)", flags=re.I)

SWI_POINTER_FLAG = 0x8000
SWI_ALIAS_FLAG = 0x4000

PLATFORM_DEFINES: dict[str, list[str]] = {
    PLATFORM_NSG: ["-DNEWSGOLD"],
    PLATFORM_ELKA: ["-DNEWSGOLD", "-DELKA"],
    PLATFORM_X75: ["-DX75"],
    PLATFORM_SG: [],
}

DEFAULT_PREPROCESSOR_CANDIDATES = ["arm-none-eabi-gcc", "gcc", "cpp"]


class SdkPointerType(IntEnum):
    UNKNOWN = 0
    RAM = 1
    FLASH = 2


POINTER_TYPES = {
    "RAM": SdkPointerType.RAM,
    "FLASH": SdkPointerType.FLASH,
}


@dataclass(frozen=True)
class SdkDefinition:
    name: str
    symbol: str
    file: str


@dataclass
class SdkEntry:
    id: int
    name: str
    symbol: str
    type: SwiType = SwiType.FUNCTION
    definitions: list[SdkDefinition] = field(default_factory=list)
    functions: list[SdkDefinition] = field(default_factory=list)
    pointers: list[SdkDefinition] = field(default_factory=list)
    aliases: list[str] = field(default_factory=list)
    files: list[str] = field(default_factory=list)
    platforms: list[str] | None = None
    builtin: list[str] | None = None
    pointer_to: SdkPointerType = SdkPointerType.UNKNOWN

    def is_builtin_on(self, platform: str) -> bool:
        return bool(self.builtin) and platform in self.builtin

    def is_available_on(self, platform: str) -> bool:
        return self.platforms is None or platform in self.platforms


@dataclass(frozen=True)
class Sdklib:
    entries: dict[int, SdkEntry] = field(default_factory=dict)

    @property
    def size(self) -> int:
        return max(self.entries) + 1 if self.entries else 0

    def get(self, slot: int) -> SdkEntry | None:
        return self.entries.get(slot)


@dataclass(frozen=True)
class _DocBlock:
    value: str
    end: int
    file: str


class _SourceFileIndex:
    """Maps text offsets to the file named by the closest preceding line marker."""

    def __init__(self, header: str, include_root: str | None) -> None:
        self._offsets: list[int] = []
        self._files: list[str] = []
        for match in CODE_LINE_RE.finditer(header):
            self._offsets.append(match.start())
            self._files.append(_relative_source_file(match.group(2), include_root))

    def lookup(self, offset: int) -> str | None:
        idx = bisect.bisect_right(self._offsets, offset) - 1
        if idx < 0:
            return None
        return self._files[idx]


def _relative_source_file(file: str, include_root: str | None) -> str:
    normalized = posixpath.normpath(file.replace("\\", "/"))
    if include_root:
        root = posixpath.normpath(include_root.replace("\\", "/")).rstrip("/") + "/"
        if normalized.startswith(root):
            return normalized[len(root):]
    return normalized


def _parse_platform_list(raw: str, directive: str) -> list[str]:
    platforms: list[str] = []
    for item in re.split(r"\s*,\s*", raw.strip()):
        if not is_valid_platform(item):
            raise SdkParseError(f"Invalid platform in @{directive}: {item}")
        if item not in platforms:
            platforms.append(item)
    return platforms


def _apply_doc_directives(entry: SdkEntry, doc: str) -> None:
    match = re.search(r"@platforms\s+(.*?)$", doc, flags=re.I | re.M)
    if match:
        entry.platforms = entry.platforms or []
        for platform in _parse_platform_list(match.group(1), "platforms"):
            if platform not in entry.platforms:
                entry.platforms.append(platform)

    match = re.search(r"@builtin\s+(.*?)$", doc, flags=re.I | re.M)
    if match:
        entry.builtin = entry.builtin or []
        for platform in _parse_platform_list(match.group(1), "builtin"):
            if platform not in entry.builtin:
                entry.builtin.append(platform)

    match = re.search(r"@pointer-type\s+(.*?)$", doc, flags=re.I | re.M)
    if match:
        memory = match.group(1).strip().upper()
        if memory not in POINTER_TYPES:
            raise SdkParseError(f"Invalid pointer type: {match.group(1).strip()}")
        entry.pointer_to = POINTER_TYPES[memory]


def _is_attached(doc: _DocBlock, header: str, offset: int, source_file: str) -> bool:
    if doc.file != source_file:
        return False
    if re.search(r"\S", header[doc.end:offset]):
        return False
    # Group markers open a documentation section, not an item.
    if "@{" in doc.value or "@}" in doc.value:
        return False
    return True


def decode_swi_number(code: int) -> tuple[int, bool]:
    if code >= SWI_POINTER_FLAG:
        return code - SWI_POINTER_FLAG, True
    if code >= SWI_ALIAS_FLAG:
        return code - SWI_ALIAS_FLAG, False
    return code, False


def detect_sdk_entry_type(entry: SdkEntry) -> SwiType:
    if entry.functions:
        return SwiType.FUNCTION
    if VALUE_DECL_RE.match(entry.name):
        return SwiType.VALUE
    return SwiType.POINTER


def build_sdklib(header: str, platform: str, include_root: str | None = None) -> Sdklib:
    """Build the slot catalog from preprocessed ``swilib.h`` text.

    ``header`` must be preprocessed with comments kept (``-CC``) so the
    ``/** ... */`` blocks carrying ``@platforms``, ``@builtin`` and
    ``@pointer-type`` survive. ``include_root`` is stripped from the file
    names recorded for each declaration.
    """
    if not is_valid_platform(platform):
        raise SdkParseError(f"Invalid platform: {platform}")

    files = _SourceFileIndex(header, include_root)
    table: dict[int, SdkEntry] = {}
    prev_doc: _DocBlock | None = None

    for match in SWI_FUNC_RE.finditer(header):
        offset = match.start()
        source_file = files.lookup(offset)
        if not source_file:
            raise SdkParseError(f"Cannot find source file for offset {offset}.")

        if match.group("doc") is not None:
            prev_doc = _DocBlock(value=match.group("doc"), end=match.end(), file=source_file)
            continue

        if prev_doc is not None and not _is_attached(prev_doc, header, offset, source_file):
            prev_doc = None

        name = match.group("name")
        symbol = match.group("symbol")
        slot, is_pointer = decode_swi_number(int(match.group("code"), 16))

        entry = table.get(slot)
        if entry is None:
            entry = SdkEntry(id=slot, name=name, symbol=symbol)
            table[slot] = entry

        if prev_doc is not None:
            _apply_doc_directives(entry, prev_doc.value)

        if source_file not in entry.files:
            entry.files.append(source_file)
        if symbol not in entry.aliases:
            entry.aliases.append(symbol)

        definition = SdkDefinition(name=name, symbol=symbol, file=source_file)
        entry.definitions.append(definition)
        if is_pointer:
            entry.pointers.append(definition)
        else:
            entry.functions.append(definition)
            if len(entry.functions) == 1:
                entry.name = definition.name
                entry.symbol = definition.symbol

        prev_doc = None

    for entry in table.values():
        entry.type = detect_sdk_entry_type(entry)
        if entry.type == SwiType.POINTER and entry.pointer_to == SdkPointerType.UNKNOWN:
            entry.pointer_to = SdkPointerType.RAM

    return Sdklib(entries=dict(sorted(table.items())))


def _resolve_executable_candidate(candidate: str) -> str | None:
    expanded = os.path.expanduser(os.path.expandvars(candidate.strip()))
    if not expanded:
        return None
    if any(sep in expanded for sep in ["/", "\\"]):
        return expanded if Path(expanded).exists() else None
    return shutil.which(expanded)


def resolve_preprocessor(compiler: str | None = None) -> str:
    candidates: list[str] = []
    if compiler:
        candidates.append(compiler)
    env_value = os.environ.get("SWILIB_GCC")
    if env_value and env_value.strip():
        candidates.append(env_value.strip())
    candidates.extend(DEFAULT_PREPROCESSOR_CANDIDATES)

    for candidate in candidates:
        resolved = _resolve_executable_candidate(candidate)
        if resolved:
            return resolved
    raise PreprocessorError(
        "C preprocessor not found; tried: " + ", ".join(candidates) + ". Pass --compiler or set SWILIB_GCC."
    )


def build_preprocessor_command(compiler: str, sdk_path: Path, platform: str, data_types: bool = False) -> list[str]:
    if not is_valid_platform(platform):
        raise SdkParseError(f"Invalid platform: {platform}")

    command = [compiler, "-E"]
    if not data_types:
        command.append("-CC")
    command.extend(
        [
            "-nostdinc",
            f"-I{sdk_path}/dietlibc/include",
            f"-I{sdk_path}/swilib/include",
            f"-I{sdk_path}/include",
        ]
    )
    if data_types:
        command.extend(["-D__attribute__(...)=", "-DDOXYGEN", "-DSWILIB_MODERN"])
    else:
        command.append("-DDOXYGEN")
    command.extend(["-DSWILIB_PARSE_FUNCTIONS", "-DSWILIB_INCLUDE_ALL"])
    command.extend(PLATFORM_DEFINES[platform])
    command.append(f"{sdk_path}/swilib/include/swilib.h")
    return command


def preprocess_swilib_header(sdk_path: Path, platform: str, compiler: str | None = None, data_types: bool = False) -> str:
    command = build_preprocessor_command(resolve_preprocessor(compiler), sdk_path, platform, data_types=data_types)
    try:
        proc = subprocess.run(command, capture_output=True, text=True, check=True)
    except subprocess.CalledProcessError as exc:
        message = exc.stderr.strip() or exc.stdout.strip() or "unknown preprocessor error"
        raise PreprocessorError(
            f"GCC ERROR: command={' '.join(shlex.quote(item) for item in command)}; error={message}"
        ) from exc
    except OSError as exc:
        raise PreprocessorError(f"Unable to run preprocessor '{command[0]}': {exc}") from exc
    return proc.stdout


def get_sdklib(sdk_path: Path, platform: str, compiler: str | None = None) -> Sdklib:
    sdk_path = sdk_path.resolve()
    header = preprocess_swilib_header(sdk_path, platform, compiler=compiler)
    return build_sdklib(header, platform, include_root=f"{sdk_path}/swilib/include")

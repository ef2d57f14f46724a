from __future__ import annotations

import re
from pathlib import Path

from ._core_base import SdkParseError, normalize_ws
from .analyze import SwilibAnalysis, analyze_swilib
from .config import SwilibConfig
from .sdklib import Sdklib, preprocess_swilib_header
from .swilib import Swilib, SwiType

THUMB_BIT_MASK = ~1 & 0xFFFFFFFF


def parse_return_type(definition: str) -> str:
    text = normalize_ws(definition)
    match = re.match(r"^(.*?\s?[*]?)(\w+)\((\s*void\s*)?\)$", text, flags=re.I)
    if not match:
        raise SdkParseError(f"Can't parse C definition: {text}")
    return match.group(1).strip()


def dereference_c_type(c_type: str) -> str:
    return re.sub(r"\bconst\b", "", c_type.replace("*", "", 1), count=1).strip()


def _analysis_for(
    config: SwilibConfig,
    swilib: Swilib,
    sdklib: Sdklib,
    platform: str,
    analysis: SwilibAnalysis | None,
) -> SwilibAnalysis:
    if analysis is not None:
        return analysis
    return analyze_swilib(config, swilib, sdklib, platform)


def get_ghidra_symbols(
    config: SwilibConfig,
    swilib: Swilib,
    sdklib: Sdklib,
    platform: str,
    analysis: SwilibAnalysis | None = None,
) -> str:
    errors = _analysis_for(config, swilib, sdklib, platform, analysis).errors
    symbols: list[str] = []
    for slot, sdk_entry in sdklib.entries.items():
        swi_entry = swilib.get(slot)
        if swi_entry is None or slot in errors:
            continue

        if sdk_entry.type == SwiType.FUNCTION:
            signature = normalize_ws(sdk_entry.name)
            symbols.append(f"F\t{swi_entry.value & THUMB_BIT_MASK:08X}\t{sdk_entry.symbol}\t{signature}")
        elif sdk_entry.type == SwiType.POINTER:
            c_type = dereference_c_type(parse_return_type(sdk_entry.name))
            if c_type.lower() != "void":
                symbols.append(f"D\t{swi_entry.value:08X}\t{sdk_entry.symbol}\t{c_type}")
            else:
                symbols.append(f"L\t{swi_entry.value:08X}\t{sdk_entry.symbol}")
    return "\n".join(symbols) + "\n"


def get_ida_symbols(
    config: SwilibConfig,
    swilib: Swilib,
    sdklib: Sdklib,
    platform: str,
    analysis: SwilibAnalysis | None = None,
) -> str:
    errors = _analysis_for(config, swilib, sdklib, platform, analysis).errors
    lines = ["#include <idc.idc>", "static main() {"]
    for slot, sdk_entry in sdklib.entries.items():
        swi_entry = swilib.get(slot)
        if swi_entry is None or slot in errors:
            continue
        if sdk_entry.type == SwiType.FUNCTION:
            lines.append(f'\tMakeName(0x{swi_entry.value & THUMB_BIT_MASK:08X}, "{sdk_entry.symbol}");')
        elif sdk_entry.type == SwiType.POINTER:
            lines.append(f'\tMakeName(0x{swi_entry.value:08X}, "{sdk_entry.symbol}");')
    lines.append("}")
    return "\n".join(lines) + "\n"


def strip_swilib_declarations(header: str) -> str:
    """Reduce preprocessed swilib.h to its type declarations."""
    text = re.sub(r"__swi_begin\s+.*?\s+__swi_end\(.*?\);", "", header, flags=re.S | re.I)
    text = re.sub(r"^#.*?$", "", text, flags=re.M)
    text = re.sub(r"^\s+$", "", text, flags=re.M)
    return re.sub(r"\n{2,}", "\n", text)


def get_data_types_header(sdk_path: Path, platform: str, compiler: str | None = None) -> str:
    header = preprocess_swilib_header(sdk_path, platform, compiler=compiler, data_types=True)
    return strip_swilib_declarations(header)

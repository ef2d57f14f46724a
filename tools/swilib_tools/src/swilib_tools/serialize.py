from __future__ import annotations

import struct

from ._core_base import SWILIB_MAX_ENTRIES, format_id, normalize_ws
from .analyze import SwilibAnalysis, analyze_swilib, get_swi_type_name, get_swi_value_type_name
from .config import SwilibConfig
from .sdklib import Sdklib
from .swilib import Swilib

__all__ = [
    "format_id",
    "get_swi_type_name",
    "get_swi_value_type_name",
    "get_swilib_blob",
    "serialize_swilib_patch",
]

UNSET_VALUE = 0xFFFFFFFF


def serialize_swilib_patch(
    config: SwilibConfig,
    swilib: Swilib,
    sdklib: Sdklib,
    platform: str,
    target: str | None = None,
    analysis: SwilibAnalysis | None = None,
) -> str:
    if analysis is None:
        analysis = analyze_swilib(config, swilib, sdklib, platform)
    errors = analysis.errors

    lines: list[str] = []
    if target:
        lines.append(f"; {target}")
    lines.append(f"+{swilib.offset:08X}")
    lines.append("#pragma enable old_equal_ff")

    for slot in range(max(sdklib.size, swilib.size)):
        swi_entry = swilib.get(slot)
        sdk_entry = sdklib.get(slot)
        if slot % 16 == 0:
            lines.append("")

        name = normalize_ws(sdk_entry.name) if sdk_entry else ""

        if slot in errors:
            lines.append("")
            lines.append(f"; [ERROR] {errors[slot]}")
            if swi_entry is not None:
                lines.append(f";{slot * 4:03X}: 0x{swi_entry.value:08X}   ; {slot:3X}: {name}")
            else:
                lines.append(f";{slot * 4:03X}:              ; {slot:3X}: {name}")
            lines.append("")
        elif sdk_entry is not None:
            if swi_entry is not None and swi_entry.comment is not None:
                lines.append(f"{slot * 4:04X}: 0x{swi_entry.value:08X}   ;{swi_entry.comment}")
            elif swi_entry is not None:
                lines.append(f"{slot * 4:04X}: 0x{swi_entry.value:08X}   ; {slot:3X}: {name}")
            else:
                lines.append(f";{slot * 4:03X}:              ; {slot:3X}: {name}")
        else:
            lines.append(f";{slot * 4:03X}:              ; {slot:3X}:")

    lines.append("")
    lines.append("#pragma enable old_equal_ff")
    lines.append("+0")
    return "\r\n".join(lines) + "\r\n"


def get_swilib_blob(swilib: Swilib) -> bytes:
    """Render the table as a raw 16 KiB little-endian image, one word per slot."""
    values = [UNSET_VALUE] * SWILIB_MAX_ENTRIES
    for slot, entry in swilib.entries.items():
        if slot < SWILIB_MAX_ENTRIES:
            values[slot] = entry.value
    return struct.pack(f"<{SWILIB_MAX_ENTRIES}I", *values)

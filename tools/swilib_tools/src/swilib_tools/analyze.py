from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from ._core_base import format_id, format_value, require_platform
from .config import SwilibConfig
from .sdklib import SdkEntry, Sdklib
from .swilib import SwiEntry, Swilib, SwiType, SwiValueType

STATUS_OK = "ok"
STATUS_MISSING = "missing"
STATUS_ERROR = "error"

REASON_UNKNOWN_SLOT = "unknown-slot"
REASON_PAIR_MISMATCH = "pair-mismatch"
REASON_RESERVED = "reserved-on-platform"
REASON_WRONG_PLATFORM = "wrong-platform"
REASON_NAME_MISMATCH = "name-mismatch"
REASON_DUPLICATE_ADDRESS = "duplicate-address"
REASON_TYPE_MISMATCH = "type-mismatch"

TYPE_COMPATIBILITY: dict[SwiType, tuple[SwiValueType, ...]] = {
    SwiType.FUNCTION: (SwiValueType.POINTER_TO_FLASH,),
    SwiType.POINTER: (SwiValueType.POINTER_TO_FLASH, SwiValueType.POINTER_TO_RAM),
    SwiType.VALUE: (SwiValueType.VALUE,),
    SwiType.EMPTY: (),
}

SWI_TYPE_NAMES = {
    SwiType.EMPTY: "EMPTY",
    SwiType.FUNCTION: "FUNCTION",
    SwiType.POINTER: "POINTER",
    SwiType.VALUE: "NUMERIC_VALUE",
}

SWI_VALUE_TYPE_NAMES = {
    SwiValueType.POINTER_TO_FLASH: "POINTER_TO_FLASH",
    SwiValueType.POINTER_TO_RAM: "POINTER_TO_RAM",
    SwiValueType.VALUE: "NUMERIC_VALUE",
    SwiValueType.UNDEFINED: "UNDEFINED",
}


def get_swi_type_name(value: SwiType) -> str:
    return SWI_TYPE_NAMES[value]


def get_swi_value_type_name(value: SwiValueType) -> str:
    return SWI_VALUE_TYPE_NAMES[value]


@dataclass(frozen=True)
class SlotVerdict:
    id: int
    status: str
    reason: str | None = None
    message: str | None = None

    @property
    def is_error(self) -> bool:
        return self.status == STATUS_ERROR


@dataclass(frozen=True)
class AnalysisStats:
    bad: int
    good: int
    missing: int
    total: int
    unused: int

    def as_dict(self) -> dict[str, int]:
        return {
            "bad": self.bad,
            "good": self.good,
            "missing": self.missing,
            "total": self.total,
            "unused": self.unused,
        }


@dataclass(frozen=True)
class SwilibAnalysis:
    platform: str
    verdicts: dict[int, SlotVerdict]
    missing: list[int]
    stat: AnalysisStats

    @property
    def errors(self) -> dict[int, str]:
        return {slot: verdict.message or "" for slot, verdict in self.verdicts.items() if verdict.is_error}

    @property
    def status(self) -> str:
        return "pass" if self.stat.bad == 0 else "fail"

    def as_dict(self) -> dict[str, Any]:
        return {
            "status": self.status,
            "platform": self.platform,
            "stat": self.stat.as_dict(),
            "missing": [format_id(slot) for slot in self.missing],
            "errors": [
                {"id": format_id(slot), "reason": verdict.reason, "message": verdict.message}
                for slot, verdict in sorted(self.verdicts.items())
                if verdict.is_error
            ],
        }


def is_same_function(config: SwilibConfig, swi_entry: SwiEntry, sdk_entry: SdkEntry) -> bool:
    if sdk_entry.id != swi_entry.id:
        return False
    if sdk_entry.symbol == swi_entry.symbol:
        return True
    search = swi_entry.symbol.lower()
    if any(alias.lower() == search for alias in sdk_entry.aliases):
        return True
    if any(alias.lower() == search for alias in config.get_aliases(sdk_entry.id)):
        return True
    return False


def check_type_consistency(swi_entry: SwiEntry, sdk_entry: SdkEntry) -> str | None:
    if swi_entry.type in TYPE_COMPATIBILITY[sdk_entry.type]:
        return None
    return (
        f"Type mismatch: {get_swi_value_type_name(swi_entry.type)} (SWILIB) "
        f"is not allowed for {get_swi_type_name(sdk_entry.type)} (SDK)."
    )


def is_flash_address(value: int) -> bool:
    return (value & 0xF0000000) == 0xA0000000


def analyze_swilib(config: SwilibConfig, swilib: Swilib, sdklib: Sdklib, platform: str) -> SwilibAnalysis:
    """Cross-check a patch table against the SDK catalog for one platform.

    Every slot in ``[0, max(catalog size, patch size))`` that appears in either
    table gets exactly one verdict. Inputs are not modified.
    """
    require_platform(platform)

    max_id = max(sdklib.size, swilib.size)
    function_pairs = config.get_function_pairs()
    verdicts: dict[int, SlotVerdict] = {}
    claimed: dict[int, int] = {}
    missing: list[int] = []
    good = 0
    total = 0
    unused = 0

    def error(slot: int, reason: str, message: str) -> None:
        verdicts[slot] = SlotVerdict(id=slot, status=STATUS_ERROR, reason=reason, message=message)

    for slot in range(max_id):
        swi_entry = swilib.get(slot)
        sdk_entry = sdklib.get(slot)
        if sdk_entry is None and swi_entry is None:
            unused += 1
            continue

        total += 1

        if sdk_entry is None:
            error(slot, REASON_UNKNOWN_SLOT, f"Unknown function: {swi_entry.symbol}")
            continue

        group = function_pairs.get(slot)
        if group and group[0] != slot:
            master = swilib.get(group[0])
            if master is not None and (swi_entry is None or master.value != swi_entry.value):
                error(
                    slot,
                    REASON_PAIR_MISMATCH,
                    f"Address must be equal with #{format_id(master.id)} {master.symbol} (0x{format_value(master.value)}).",
                )
                continue

        reserved = sdk_entry.is_builtin_on(platform) or slot in config.reserved

        if swi_entry is None:
            if reserved:
                verdicts[slot] = SlotVerdict(id=slot, status=STATUS_OK)
                good += 1
            else:
                verdicts[slot] = SlotVerdict(id=slot, status=STATUS_MISSING)
                missing.append(slot)
            continue

        if reserved:
            error(slot, REASON_RESERVED, f"Invalid function: {swi_entry.symbol} (Reserved by ELFLoader)")
            continue

        if not sdk_entry.is_available_on(platform):
            error(slot, REASON_WRONG_PLATFORM, "Functions is not available on this platform.")
            continue

        if not is_same_function(config, swi_entry, sdk_entry):
            error(slot, REASON_NAME_MISMATCH, f"Invalid function: {swi_entry.symbol}")
            continue

        if is_flash_address(swi_entry.value):
            owner = claimed.get(swi_entry.value)
            if owner is None:
                claimed[swi_entry.value] = slot
            elif not (group and owner in group):
                owner_entry = sdklib.get(owner)
                owner_symbol = owner_entry.symbol if owner_entry else ""
                error(
                    slot,
                    REASON_DUPLICATE_ADDRESS,
                    f"Address already used for #{format_id(owner)} {owner_symbol}.",
                )

        if slot not in verdicts and swi_entry.type != SwiValueType.UNDEFINED:
            type_error = check_type_consistency(swi_entry, sdk_entry)
            if type_error:
                error(slot, REASON_TYPE_MISMATCH, type_error)

        if slot not in verdicts:
            verdicts[slot] = SlotVerdict(id=slot, status=STATUS_OK)
            good += 1

    bad = sum(1 for verdict in verdicts.values() if verdict.is_error)
    return SwilibAnalysis(
        platform=platform,
        verdicts=verdicts,
        missing=missing,
        stat=AnalysisStats(bad=bad, good=good, missing=len(missing), total=total, unused=unused),
    )

from __future__ import annotations

import json
import re
import tomllib
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Mapping

import jsonschema

from ._core_base import (
    PLATFORM_ELKA,
    PLATFORM_NSG,
    PLATFORM_SG,
    PLATFORM_X75,
    ConfigError,
    is_valid_platform,
    parse_slot_key,
)

CONFIG_SCHEMA_PATH = Path(__file__).resolve().parent / "schemas" / "config.schema.json"


@dataclass(frozen=True)
class SwilibConfig:
    phones: tuple[str, ...] = ()
    platforms: Mapping[str, str] = field(default_factory=dict)
    patches: Mapping[str, int] = field(default_factory=dict)
    pairs: tuple[tuple[int, ...], ...] = ()
    aliases: Mapping[int, tuple[str, ...]] = field(default_factory=dict)
    reserved: frozenset[int] = frozenset()

    def get_aliases(self, slot: int) -> tuple[str, ...]:
        return self.aliases.get(slot, ())

    def get_function_pairs(self) -> dict[int, tuple[int, ...]]:
        pairs: dict[int, tuple[int, ...]] = {}
        for group in self.pairs:
            for slot in group:
                pairs[slot] = group
        return pairs


def get_config_schema() -> dict[str, Any]:
    try:
        return json.loads(CONFIG_SCHEMA_PATH.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as exc:
        raise ConfigError(f"Unable to load config schema '{CONFIG_SCHEMA_PATH}': {exc}") from exc


def validate_config_payload(payload: dict[str, Any]) -> None:
    try:
        jsonschema.validate(payload, get_config_schema())
    except jsonschema.ValidationError as exc:
        location = "/".join(str(part) for part in exc.absolute_path) or "<root>"
        raise ConfigError(f"config failed JSON schema validation at {location}: {exc.message}") from exc


def _expand_reserved(items: list[Any]) -> frozenset[int]:
    reserved: set[int] = set()
    for idx, item in enumerate(items):
        if isinstance(item, list):
            start = parse_slot_key(item[0], f"functions.reserved[{idx}][0]")
            end = parse_slot_key(item[1], f"functions.reserved[{idx}][1]")
            if end < start:
                raise ConfigError(f"functions.reserved[{idx}] range is reversed: {start:#x} > {end:#x}")
            reserved.update(range(start, end + 1))
        else:
            reserved.add(parse_slot_key(item, f"functions.reserved[{idx}]"))
    return frozenset(reserved)


def build_config(payload: dict[str, Any]) -> SwilibConfig:
    validate_config_payload(payload)

    functions = payload.get("functions", {})

    aliases: dict[int, tuple[str, ...]] = {}
    for key, names in functions.get("aliases", {}).items():
        slot = parse_slot_key(key, f"functions.aliases[{key!r}]")
        aliases[slot] = aliases.get(slot, ()) + tuple(names)

    pairs = tuple(
        tuple(parse_slot_key(slot, f"functions.pairs[{idx}]") for slot in group)
        for idx, group in enumerate(functions.get("pairs", []))
    )

    return SwilibConfig(
        phones=tuple(payload.get("phones", [])),
        platforms=dict(payload.get("platforms", {})),
        patches=dict(payload.get("patches", {})),
        pairs=pairs,
        aliases=aliases,
        reserved=_expand_reserved(functions.get("reserved", [])),
    )


def load_config(path: Path) -> SwilibConfig:
    try:
        raw = path.read_bytes()
    except OSError as exc:
        raise ConfigError(f"Unable to read config '{path}': {exc}") from exc

    try:
        if path.suffix.lower() == ".json":
            payload = json.loads(raw.decode("utf-8"))
        else:
            payload = tomllib.loads(raw.decode("utf-8"))
    except (UnicodeDecodeError, json.JSONDecodeError, tomllib.TOMLDecodeError) as exc:
        raise ConfigError(f"Invalid config '{path}': {exc}") from exc

    if not isinstance(payload, dict):
        raise ConfigError(f"Config root in '{path}' must be an object")
    return build_config(payload)


def get_platform_by_phone(config: SwilibConfig, phone: str) -> str:
    if phone in config.platforms:
        return config.platforms[phone]
    if is_valid_platform(phone):
        return phone

    match = re.match(r"^(.*?)(?:v|sw)([\d+_]+)$", phone, flags=re.I)
    if not match:
        raise ConfigError(f"Invalid phone model: {phone}")
    model = match.group(1)
    if re.match(r"^(EL71|E71|ELF71|CL61|M72|C1F0)[a-z]?$", model, flags=re.I):
        return PLATFORM_ELKA
    if re.match(r"^(C81|S75|SL75|S68)[a-z]?$", model, flags=re.I):
        return PLATFORM_NSG
    if re.match(r"^([A-Z]+)(75|72)[a-z]?$", model, flags=re.I):
        return PLATFORM_X75
    return PLATFORM_SG


def compare_swilib_func(config: SwilibConfig, slot: int, old_name: str, new_name: str) -> bool:
    if new_name == old_name:
        return True
    aliases = config.get_aliases(slot)
    if aliases:
        return old_name in aliases
    return False

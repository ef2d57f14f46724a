from ._core_base import (
    PLATFORMS,
    SWILIB_MAX_ENTRIES,
    ConfigError,
    PatchParseError,
    PatternsParseError,
    PreprocessorError,
    SdkParseError,
    SwilibError,
    is_valid_platform,
)
from .analyze import AnalysisStats, SlotVerdict, SwilibAnalysis, analyze_swilib
from .config import SwilibConfig, compare_swilib_func, get_platform_by_phone, load_config
from .disassembler import get_data_types_header, get_ghidra_symbols, get_ida_symbols
from .patterns import SwilibPattern, parse_patterns, serialize_patterns
from .sdklib import SdkDefinition, SdkEntry, Sdklib, SdkPointerType, build_sdklib, get_sdklib, preprocess_swilib_header
from .serialize import format_id, get_swi_type_name, get_swi_value_type_name, get_swilib_blob, serialize_swilib_patch
from .swilib import SwiEntry, Swilib, SwiType, SwiValueType, get_swilib_value_type, parse_swilib_func_name, parse_swilib_patch

__all__ = [
    "PLATFORMS",
    "SWILIB_MAX_ENTRIES",
    "AnalysisStats",
    "ConfigError",
    "PatchParseError",
    "PatternsParseError",
    "PreprocessorError",
    "SdkDefinition",
    "SdkEntry",
    "SdkParseError",
    "SdkPointerType",
    "Sdklib",
    "SlotVerdict",
    "SwiEntry",
    "SwiType",
    "SwiValueType",
    "Swilib",
    "SwilibAnalysis",
    "SwilibConfig",
    "SwilibError",
    "SwilibPattern",
    "analyze_swilib",
    "build_sdklib",
    "compare_swilib_func",
    "format_id",
    "get_data_types_header",
    "get_ghidra_symbols",
    "get_ida_symbols",
    "get_platform_by_phone",
    "get_sdklib",
    "get_swi_type_name",
    "get_swi_value_type_name",
    "get_swilib_blob",
    "get_swilib_value_type",
    "is_valid_platform",
    "load_config",
    "parse_patterns",
    "parse_swilib_func_name",
    "parse_swilib_patch",
    "preprocess_swilib_header",
    "serialize_patterns",
    "serialize_swilib_patch",
]

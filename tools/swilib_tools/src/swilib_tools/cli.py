from __future__ import annotations

import argparse
import sys
from pathlib import Path

from ._core_base import TOOL_VERSION, SwilibError, format_id, read_input, write_json
from .analyze import SwilibAnalysis, analyze_swilib
from .config import SwilibConfig, get_platform_by_phone, load_config
from .disassembler import get_data_types_header, get_ghidra_symbols, get_ida_symbols, strip_swilib_declarations
from .patterns import parse_patterns, serialize_patterns
from .sdklib import Sdklib, build_sdklib, get_sdklib
from .serialize import get_swilib_blob, serialize_swilib_patch
from .swilib import Swilib, parse_swilib_patch


def resolve_config(args: argparse.Namespace) -> SwilibConfig:
    if args.config:
        return load_config(Path(args.config).resolve())
    if args.sdk:
        default_path = Path(args.sdk).resolve() / "swilib" / "config.toml"
        if default_path.exists():
            return load_config(default_path)
    return SwilibConfig()


def resolve_platform(args: argparse.Namespace, config: SwilibConfig) -> str:
    if args.platform:
        return get_platform_by_phone(config, args.platform)
    if args.phone:
        return get_platform_by_phone(config, args.phone)
    raise SwilibError("Either --platform or --phone is required.")


def resolve_sdklib(args: argparse.Namespace, platform: str) -> Sdklib:
    if args.preprocessed:
        header = read_input(Path(args.preprocessed).resolve()).decode("utf-8", errors="replace")
        include_root = str(Path(args.sdk).resolve() / "swilib" / "include") if args.sdk else None
        return build_sdklib(header, platform, include_root=include_root)
    if not args.sdk:
        raise SwilibError("Either --sdk or --preprocessed is required.")
    return get_sdklib(Path(args.sdk), platform, compiler=args.compiler)


def load_inputs(args: argparse.Namespace, comments: bool = False) -> tuple[SwilibConfig, str, Sdklib, Swilib]:
    config = resolve_config(args)
    platform = resolve_platform(args, config)
    sdklib = resolve_sdklib(args, platform)
    swilib = parse_swilib_patch(read_input(Path(args.patch).resolve()), comments=comments)
    return config, platform, sdklib, swilib


def print_report(analysis: SwilibAnalysis) -> None:
    stat = analysis.stat
    print(f"Swilib check status: {analysis.status}")
    print(f"Platform: {analysis.platform}")
    print(f"Good: {stat.good}")
    print(f"Bad: {stat.bad}")
    print(f"Missing: {stat.missing}")
    print(f"Unused: {stat.unused}")
    print(f"Total: {stat.total}")

    errors = analysis.errors
    if errors:
        print("Errors:")
        for slot in sorted(errors):
            print(f"  - {format_id(slot)}: {errors[slot]}")
    if analysis.missing:
        print("Missing:")
        print("  " + ", ".join(format_id(slot) for slot in analysis.missing))


def write_markdown_report(path: Path, analysis: SwilibAnalysis, sdklib: Sdklib) -> None:
    stat = analysis.stat
    lines: list[str] = []
    lines.append(f"# Swilib Report ({analysis.status})")
    lines.append("")
    lines.append(f"- Platform: `{analysis.platform}`")
    lines.append(f"- Good: `{stat.good}`")
    lines.append(f"- Bad: `{stat.bad}`")
    lines.append(f"- Missing: `{stat.missing}`")
    lines.append(f"- Unused: `{stat.unused}`")
    lines.append(f"- Total: `{stat.total}`")
    lines.append("")

    errors = analysis.errors
    if errors:
        lines.append("## Errors")
        for slot in sorted(errors):
            lines.append(f"- `{format_id(slot)}` {errors[slot]}")
        lines.append("")

    if analysis.missing:
        lines.append("## Missing")
        for slot in analysis.missing:
            entry = sdklib.get(slot)
            symbol = entry.symbol if entry else ""
            lines.append(f"- `{format_id(slot)}` {symbol}")
        lines.append("")

    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text("\n".join(lines) + "\n", encoding="utf-8")


def write_output(output: str | None, content: str | bytes) -> None:
    if not output:
        if isinstance(content, bytes):
            sys.stdout.buffer.write(content)
        else:
            sys.stdout.write(content)
        return
    path = Path(output).resolve()
    path.parent.mkdir(parents=True, exist_ok=True)
    if isinstance(content, bytes):
        path.write_bytes(content)
    else:
        path.write_text(content, encoding="utf-8", newline="")


def command_analyze(args: argparse.Namespace) -> int:
    config, platform, sdklib, swilib = load_inputs(args)
    analysis = analyze_swilib(config, swilib, sdklib, platform)

    if args.report:
        payload = analysis.as_dict()
        payload["tool"] = {"name": "swilib_tools", "version": TOOL_VERSION}
        write_json(Path(args.report).resolve(), payload)
    if args.markdown_report:
        write_markdown_report(Path(args.markdown_report).resolve(), analysis, sdklib)

    print_report(analysis)
    return 0 if analysis.status == "pass" else 1


def command_format(args: argparse.Namespace) -> int:
    config, platform, sdklib, swilib = load_inputs(args, comments=args.keep_comments)
    analysis = analyze_swilib(config, swilib, sdklib, platform)
    write_output(args.output, serialize_swilib_patch(config, swilib, sdklib, platform, target=args.target, analysis=analysis))
    print(
        f"Formatted {len(swilib.entries)} entries for platform {platform} ({analysis.stat.bad} with errors).",
        file=sys.stderr,
    )
    return 0


def command_symbols(args: argparse.Namespace) -> int:
    config, platform, sdklib, swilib = load_inputs(args)
    analysis = analyze_swilib(config, swilib, sdklib, platform)
    if args.format == "ida":
        content = get_ida_symbols(config, swilib, sdklib, platform, analysis=analysis)
    else:
        content = get_ghidra_symbols(config, swilib, sdklib, platform, analysis=analysis)
    write_output(args.output, content)
    return 0


def command_blob(args: argparse.Namespace) -> int:
    swilib = parse_swilib_patch(read_input(Path(args.patch).resolve()))
    write_output(args.output, get_swilib_blob(swilib))
    print(f"Wrote swilib blob with {len(swilib.entries)} entries.", file=sys.stderr)
    return 0


def command_data_types(args: argparse.Namespace) -> int:
    config = resolve_config(args)
    platform = resolve_platform(args, config)
    if args.preprocessed:
        header = read_input(Path(args.preprocessed).resolve()).decode("utf-8", errors="replace")
        write_output(args.output, strip_swilib_declarations(header))
    elif args.sdk:
        write_output(args.output, get_data_types_header(Path(args.sdk).resolve(), platform, compiler=args.compiler))
    else:
        raise SwilibError("Either --sdk or --preprocessed is required.")
    return 0


def command_patterns(args: argparse.Namespace) -> int:
    patterns = parse_patterns(read_input(Path(args.input).resolve()))
    write_output(args.output, serialize_patterns(patterns))
    print(f"Parsed {len(patterns)} patterns.", file=sys.stderr)
    return 0


def _add_target_arguments(parser: argparse.ArgumentParser, require_patch: bool = True) -> None:
    parser.add_argument("--sdk", help="Path to the SDK root (contains swilib/include/swilib.h).")
    parser.add_argument("--config", help="Path to swilib config (default: <sdk>/swilib/config.toml).")
    parser.add_argument("--platform", help="Target platform (ELKA, NSG, X75, SG) or phone model.")
    parser.add_argument("--phone", help="Phone model used to derive the platform, e.g. C81v51.")
    parser.add_argument("--compiler", help="C preprocessor executable (default: $SWILIB_GCC or arm-none-eabi-gcc).")
    parser.add_argument("--preprocessed", help="Use an already preprocessed swilib.h instead of running the preprocessor.")
    if require_patch:
        parser.add_argument("--patch", required=True, help="Path to the swilib VKP patch.")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="swilib_tools",
        description="Swilib patch parser and SDK consistency checker.",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {TOOL_VERSION}")

    sub = parser.add_subparsers(dest="command", required=True)

    analyze = sub.add_parser("analyze", help="Check a swilib patch against the SDK.")
    _add_target_arguments(analyze)
    analyze.add_argument("--report", help="Write analysis report JSON to path.")
    analyze.add_argument("--markdown-report", help="Write analysis report as Markdown.")
    analyze.set_defaults(func=command_analyze)

    fmt = sub.add_parser("format", help="Rewrite a swilib patch as an annotated listing.")
    _add_target_arguments(fmt)
    fmt.add_argument("--target", help="Phone/firmware name written into the header comment.")
    fmt.add_argument("--keep-comments", action="store_true", help="Keep original entry comments.")
    fmt.add_argument("--output", help="Write patch to path (default: stdout).")
    fmt.set_defaults(func=command_format)

    symbols = sub.add_parser("symbols", help="Export disassembler symbols.")
    _add_target_arguments(symbols)
    symbols.add_argument("--format", choices=["ghidra", "ida"], default="ghidra", help="Symbol file format.")
    symbols.add_argument("--output", help="Write symbols to path (default: stdout).")
    symbols.set_defaults(func=command_symbols)

    blob = sub.add_parser("blob", help="Convert a swilib patch to a raw 16 KiB table.")
    blob.add_argument("--patch", required=True, help="Path to the swilib VKP patch.")
    blob.add_argument("--output", help="Write blob to path (default: stdout).")
    blob.set_defaults(func=command_blob)

    data_types = sub.add_parser("data-types", help="Emit the swilib.h data types header.")
    _add_target_arguments(data_types, require_patch=False)
    data_types.add_argument("--output", help="Write header to path (default: stdout).")
    data_types.set_defaults(func=command_data_types)

    patterns = sub.add_parser("patterns", help="Normalize a swilib pattern library.")
    patterns.add_argument("--input", required=True, help="Path to the pattern library.")
    patterns.add_argument("--output", help="Write normalized library to path (default: stdout).")
    patterns.set_defaults(func=command_patterns)

    return parser


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    try:
        return int(args.func(args))
    except SwilibError as exc:
        print(f"swilib_tools error: {exc}", file=sys.stderr)
        return 2


if __name__ == "__main__":
    raise SystemExit(main())

from __future__ import annotations

import codecs
import re
from dataclasses import dataclass
from typing import Iterator

from ._core_base import PatchParseError

OFFSET_RE = re.compile(r"^(?P<sign>[+-])\s*(?:0x)?(?P<value>[0-9a-f]+)\s*(?:(?:;|//).*)?$", flags=re.I)
DATA_RE = re.compile(r"^(?P<address>(?:0x)?[0-9a-f]+)\s*:(?P<rest>.*)$", flags=re.I)
HEX_RE = re.compile(r"^[0-9a-f]+$", flags=re.I)


@dataclass(frozen=True)
class VkpLocation:
    line: int
    column: int


@dataclass(frozen=True)
class VkpOffset:
    offset: int
    loc: VkpLocation


@dataclass(frozen=True)
class VkpPatchData:
    address: int
    old: bytes | None
    new: bytes
    comment: str
    loc: VkpLocation


def vkp_normalize(data: bytes) -> str:
    """Decode a raw patch file into text with LF line endings.

    Patch files in the wild are mostly Windows-1251; BOM-marked UTF-8/UTF-16
    and plain UTF-8 are accepted as well.
    """
    if data.startswith(codecs.BOM_UTF8):
        text = data[len(codecs.BOM_UTF8):].decode("utf-8")
    elif data.startswith(codecs.BOM_UTF16_LE) or data.startswith(codecs.BOM_UTF16_BE):
        text = data.decode("utf-16")
    else:
        try:
            text = data.decode("utf-8")
        except UnicodeDecodeError:
            text = data.decode("cp1251")
    return text.replace("\r\n", "\n").replace("\r", "\n")


def _find_comment_start(text: str) -> tuple[int, int]:
    positions = [(text.find(marker), len(marker)) for marker in (";", "//")]
    positions = [item for item in positions if item[0] >= 0]
    if not positions:
        return -1, 0
    return min(positions)


def parse_vkp_data_token(token: str, line: int, column: int, source_line: str) -> bytes:
    if token[:2].lower() == "0x":
        digits = token[2:]
        if not digits or not HEX_RE.match(digits):
            raise PatchParseError(f"Invalid number: {token}", line, column, source_line)
        width = (len(digits) + 1) // 2
        return int(digits, 16).to_bytes(width, "little")
    if not HEX_RE.match(token) or len(token) % 2 != 0:
        raise PatchParseError(f"Invalid data: {token}", line, column, source_line)
    return bytes.fromhex(token)


def _parse_data_line(match: re.Match[str], line_no: int, raw_line: str) -> VkpPatchData:
    indent = len(raw_line) - len(raw_line.lstrip())
    address = int(match.group("address"), 16)
    rest = match.group("rest")
    rest_column = indent + match.start("rest") + 1

    comment_at, marker_len = _find_comment_start(rest)
    if comment_at >= 0:
        data_part = rest[:comment_at]
        comment = rest[comment_at + marker_len:].rstrip()
    else:
        data_part = rest
        comment = ""

    chunks: list[bytes] = []
    for token_match in re.finditer(r"\S+", data_part):
        column = rest_column + token_match.start()
        chunks.append(parse_vkp_data_token(token_match.group(0), line_no, column, raw_line))

    if not chunks:
        raise PatchParseError("Patch data is missing", line_no, rest_column, raw_line)
    if len(chunks) > 2:
        raise PatchParseError("Too many data fields", line_no, rest_column, raw_line)

    old = chunks[0] if len(chunks) == 2 else None
    new = chunks[-1]
    if old is not None and len(old) != len(new):
        raise PatchParseError("Old and new data have different length", line_no, rest_column, raw_line)

    return VkpPatchData(
        address=address,
        old=old,
        new=new,
        comment=comment,
        loc=VkpLocation(line=line_no, column=indent + 1),
    )


def iter_vkp_directives(text: str) -> Iterator[VkpOffset | VkpPatchData]:
    for line_no, raw_line in enumerate(text.split("\n"), start=1):
        line = raw_line.strip()
        if not line or line.startswith(";") or line.startswith("//") or line.startswith("#"):
            continue

        column = len(raw_line) - len(raw_line.lstrip()) + 1

        match = OFFSET_RE.match(line)
        if match:
            value = int(match.group("value"), 16)
            if match.group("sign") == "-":
                value = -value
            yield VkpOffset(offset=value, loc=VkpLocation(line=line_no, column=column))
            continue

        match = DATA_RE.match(line)
        if match:
            yield _parse_data_line(match, line_no, raw_line)
            continue

        raise PatchParseError(f"Unexpected input: {line}", line_no, column, raw_line)

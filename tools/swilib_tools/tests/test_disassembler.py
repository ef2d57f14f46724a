from __future__ import annotations

import sys
import unittest
from pathlib import Path
from unittest import mock

sys.path.insert(0, str(Path(__file__).resolve().parents[1] / "src"))
from swilib_tools import SdkParseError  # noqa: E402
from swilib_tools import disassembler  # noqa: E402
from swilib_tools.config import SwilibConfig  # noqa: E402
from swilib_tools.disassembler import (  # noqa: E402
    dereference_c_type,
    get_ghidra_symbols,
    get_ida_symbols,
    parse_return_type,
    strip_swilib_declarations,
)
from swilib_tools.sdklib import build_sdklib  # noqa: E402
from swilib_tools.swilib import parse_swilib_patch  # noqa: E402

from fixtures import SDK_INCLUDE, SWILIB_HEADER, SWILIB_PATCH  # noqa: E402


class CTypeTests(unittest.TestCase):
    def test_parse_return_type(self) -> None:
        self.assertEqual(parse_return_type("char *RamBuffer()"), "char *")
        self.assertEqual(parse_return_type("const  char *FlashTable(void)"), "const char *")
        with self.assertRaises(SdkParseError):
            parse_return_type("int table[4]")

    def test_dereference(self) -> None:
        self.assertEqual(dereference_c_type("char *"), "char")
        self.assertEqual(dereference_c_type("const char *"), "char")
        self.assertEqual(dereference_c_type("int **"), "int *")


class SymbolExportTests(unittest.TestCase):
    def setUp(self) -> None:
        self.config = SwilibConfig()
        self.swilib = parse_swilib_patch(SWILIB_PATCH)
        self.sdklib = build_sdklib(SWILIB_HEADER, "NSG", include_root=SDK_INCLUDE)

    def test_ghidra_symbols(self) -> None:
        lines = get_ghidra_symbols(self.config, self.swilib, self.sdklib, "NSG").splitlines()
        self.assertIn("F\tA0123456\tFoo\tvoid Foo(int a)", lines)
        self.assertIn("D\tA8001000\tRamBuffer\tchar", lines)
        self.assertIn("D\tA0300000\tFlashTable\tchar", lines)
        self.assertIn("F\tA0400000\tFooAlias\tvoid Foo2(void)", lines)
        self.assertFalse(any("GetValue" in line for line in lines))

    def test_void_pointer_becomes_label(self) -> None:
        sdklib = build_sdklib(
            '# 1 "/sdk/heap.h" 1\n__swi_begin void *Heap() __swi_end(0x8000, Heap);\n',
            "NSG",
        )
        swilib = parse_swilib_patch("+A0000000\n0000: 0xA8000000 ; 0: void *Heap()\n+0\n")
        self.assertEqual(get_ghidra_symbols(self.config, swilib, sdklib, "NSG"), "L\tA8000000\tHeap\n")

    def test_failed_slots_are_skipped(self) -> None:
        text = get_ghidra_symbols(self.config, self.swilib, self.sdklib, "X75")
        self.assertNotIn("\tBar\t", text)

    def test_ida_script(self) -> None:
        lines = get_ida_symbols(self.config, self.swilib, self.sdklib, "NSG").splitlines()
        self.assertEqual(lines[:2], ["#include <idc.idc>", "static main() {"])
        self.assertIn('\tMakeName(0xA0123456, "Foo");', lines)
        self.assertIn('\tMakeName(0xA8001000, "RamBuffer");', lines)
        self.assertEqual(lines[-1], "}")


class DataTypesTests(unittest.TestCase):
    HEADER = (
        '# 1 "/sdk/swilib/include/swilib.h"\n'
        "typedef int a_t;\n"
        "__swi_begin void A(void) __swi_end(0x0001, A);\n"
        "\n"
        "struct s { int x; };\n"
    )

    def test_strip_declarations(self) -> None:
        text = strip_swilib_declarations(self.HEADER)
        self.assertNotIn("__swi_begin", text)
        self.assertNotIn("# 1", text)
        self.assertNotIn("\n\n", text)
        self.assertIn("typedef int a_t;", text)
        self.assertIn("struct s { int x; };", text)

    def test_data_types_header_uses_preprocessor(self) -> None:
        with mock.patch.object(disassembler, "preprocess_swilib_header", return_value=self.HEADER) as run:
            text = disassembler.get_data_types_header(Path("/sdk"), "SG")
        run.assert_called_once_with(Path("/sdk"), "SG", compiler=None, data_types=True)
        self.assertIn("typedef int a_t;", text)


if __name__ == "__main__":
    unittest.main()

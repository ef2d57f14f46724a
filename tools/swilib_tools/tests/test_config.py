from __future__ import annotations

import json
import tempfile
import unittest
from pathlib import Path
import sys

sys.path.insert(0, str(Path(__file__).resolve().parents[1] / "src"))
from swilib_tools import PLATFORMS, ConfigError  # noqa: E402
from swilib_tools.config import (  # noqa: E402
    SwilibConfig,
    build_config,
    compare_swilib_func,
    get_config_schema,
    get_platform_by_phone,
    load_config,
)

CONFIG_TOML = """phones = ["C81v51", "E71v45"]

[platforms]
"E71v45" = "ELKA"

[patches]
"C81v51" = 1234

[functions]
pairs = [[0, 6]]
reserved = [4, [16, 18]]

[functions.aliases]
"0x1" = ["OldBar"]
"2" = ["Buf"]
"""


class ConfigLoaderTests(unittest.TestCase):
    def setUp(self) -> None:
        self.temp_dir = tempfile.TemporaryDirectory()
        self.root = Path(self.temp_dir.name)

    def tearDown(self) -> None:
        self.temp_dir.cleanup()

    def test_load_toml(self) -> None:
        path = self.root / "config.toml"
        path.write_text(CONFIG_TOML, encoding="utf-8")
        config = load_config(path)
        self.assertEqual(config.phones, ("C81v51", "E71v45"))
        self.assertEqual(config.platforms, {"E71v45": "ELKA"})
        self.assertEqual(config.patches, {"C81v51": 1234})
        self.assertEqual(config.pairs, ((0, 6),))
        self.assertEqual(config.get_function_pairs(), {0: (0, 6), 6: (0, 6)})
        self.assertEqual(config.reserved, frozenset({4, 16, 17, 18}))
        self.assertEqual(config.get_aliases(1), ("OldBar",))
        self.assertEqual(config.get_aliases(2), ("Buf",))
        self.assertEqual(config.get_aliases(3), ())

    def test_load_json(self) -> None:
        path = self.root / "config.json"
        path.write_text(json.dumps({"functions": {"reserved": [[1, 2]]}}), encoding="utf-8")
        self.assertEqual(load_config(path).reserved, frozenset({1, 2}))

    def test_invalid_toml(self) -> None:
        path = self.root / "config.toml"
        path.write_text("[functions\n", encoding="utf-8")
        with self.assertRaises(ConfigError):
            load_config(path)

    def test_missing_file(self) -> None:
        with self.assertRaises(ConfigError):
            load_config(self.root / "missing.toml")


class ConfigValidationTests(unittest.TestCase):
    def test_schema_rejects_short_pair(self) -> None:
        with self.assertRaisesRegex(ConfigError, "functions/pairs/0"):
            build_config({"functions": {"pairs": [[1]]}})

    def test_schema_rejects_unknown_function_key(self) -> None:
        with self.assertRaises(ConfigError):
            build_config({"functions": {"renamed": {}}})

    def test_schema_rejects_unknown_platform(self) -> None:
        with self.assertRaises(ConfigError):
            build_config({"platforms": {"S65v58": "S65"}})

    def test_schema_platforms_match_known_platforms(self) -> None:
        schema = get_config_schema()
        enum = schema["properties"]["platforms"]["additionalProperties"]["enum"]
        self.assertEqual(sorted(enum), sorted(PLATFORMS))

    def test_reversed_reserved_range(self) -> None:
        with self.assertRaisesRegex(ConfigError, "reversed"):
            build_config({"functions": {"reserved": [[5, 2]]}})

    def test_invalid_alias_slot(self) -> None:
        with self.assertRaises(ConfigError):
            build_config({"functions": {"aliases": {"zzz": ["Foo"]}}})
        with self.assertRaises(ConfigError):
            build_config({"functions": {"aliases": {"0x1000": ["Foo"]}}})


class PhonePlatformTests(unittest.TestCase):
    def test_explicit_mapping_wins(self) -> None:
        config = SwilibConfig(platforms={"C81v51": "SG"})
        self.assertEqual(get_platform_by_phone(config, "C81v51"), "SG")

    def test_platform_name_passes_through(self) -> None:
        self.assertEqual(get_platform_by_phone(SwilibConfig(), "NSG"), "NSG")

    def test_model_heuristics(self) -> None:
        config = SwilibConfig()
        cases = {
            "E71v45": "ELKA",
            "EL71v45": "ELKA",
            "C81v51": "NSG",
            "S75sw52": "NSG",
            "SL75v52": "NSG",
            "CX75v25": "X75",
            "C72v22": "X75",
            "S65v58": "SG",
        }
        for phone, platform in cases.items():
            with self.subTest(phone=phone):
                self.assertEqual(get_platform_by_phone(config, phone), platform)

    def test_unparsable_phone(self) -> None:
        with self.assertRaises(ConfigError):
            get_platform_by_phone(SwilibConfig(), "hello")


class CompareFuncTests(unittest.TestCase):
    def test_compare(self) -> None:
        config = SwilibConfig(aliases={5: ("Old",)})
        self.assertTrue(compare_swilib_func(config, 5, "New", "New"))
        self.assertTrue(compare_swilib_func(config, 5, "Old", "New"))
        self.assertFalse(compare_swilib_func(config, 5, "Other", "New"))
        self.assertFalse(compare_swilib_func(config, 6, "Old", "New"))


if __name__ == "__main__":
    unittest.main()

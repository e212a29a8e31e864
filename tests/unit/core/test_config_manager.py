"""Tests for the key=value config reader."""

import pytest

from rpi_cam.core.config_manager import ConfigManager, get_config_manager


@pytest.fixture
def manager():
    return ConfigManager()


class TestParsing:

    def test_parse_lines(self, manager):
        config = manager._parse_config_lines([
            "# comment",
            "",
            "camera = 1",
            "name = 'quoted value'",
            'other = "double"',
            "trailing = value # note",
            "missing_separator",
            "empty =",
        ])

        assert config == {
            "camera": "1",
            "name": "quoted value",
            "other": "double",
            "trailing": "value",
            "empty": "",
        }

    def test_read_config(self, manager, tmp_path):
        path = tmp_path / "config.txt"
        path.write_text("a = 1\nb = two\n")
        assert manager.read_config(path) == {"a": "1", "b": "two"}

    def test_read_missing(self, manager, tmp_path):
        assert manager.read_config(tmp_path / "nope.txt") == {}

    @pytest.mark.asyncio
    async def test_read_config_async(self, manager, tmp_path):
        path = tmp_path / "config.txt"
        path.write_text("a = 1\n# skipped\nb = two\n")
        assert await manager.read_config_async(path) == {"a": "1", "b": "two"}

    @pytest.mark.asyncio
    async def test_read_missing_async(self, manager, tmp_path):
        assert await manager.read_config_async(tmp_path / "nope.txt") == {}


class TestTypedGetters:

    @pytest.mark.parametrize("raw, expected", [("true", True), ("Yes", True), ("1", True), ("off", False), ("no", False)])
    def test_get_bool(self, manager, raw, expected):
        assert manager.get_bool({"flag": raw}, "flag") is expected

    def test_get_bool_default(self, manager):
        assert manager.get_bool({}, "flag", True) is True
        assert manager.get_bool({"flag": ""}, "flag", True) is True

    def test_get_int(self, manager):
        assert manager.get_int({"n": "42"}, "n") == 42
        assert manager.get_int({"n": "0x10"}, "n") == 16
        assert manager.get_int({"n": "-1"}, "n") == -1

    def test_get_int_invalid(self, manager):
        assert manager.get_int({"n": "abc"}, "n", 7) == 7
        assert manager.get_int({"n": ""}, "n", 7) == 7

    def test_get_float(self, manager):
        assert manager.get_float({"f": "2.5"}, "f") == 2.5
        assert manager.get_float({"f": "x"}, "f", 1.0) == 1.0

    def test_get_str(self, manager):
        assert manager.get_str({"s": "  text "}, "s") == "text"
        assert manager.get_str({"s": ""}, "s", "fallback") == "fallback"
        assert manager.get_str({}, "s") is None


def test_singleton():
    assert get_config_manager() is get_config_manager()

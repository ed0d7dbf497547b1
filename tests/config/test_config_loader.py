# tests/config/test_config_loader.py
"""
trs_xray.config.loaderモジュールの単体テスト。
"""
import pytest
import yaml

from trs_xray.common.errors import ConfigError
from trs_xray.config.loader import ConfigLoader
from trs_xray.config.models import MemoryRegion, MemoryWindow, SessionConfig


@pytest.fixture
def loader():
    return ConfigLoader()


class TestConfigLoader:
    def test_empty_mapping_gives_defaults(self, loader):
        config = loader.parse({})
        assert config == SessionConfig()
        assert config.partial_window == MemoryWindow(0x3C00, 0x3FFF)
        assert config.partial_window.length == 1023

    # @intent:test_case_hex 16進数文字列と整数のどちらでも数値を指定できることを検証します。
    def test_parse_sections(self, loader):
        config = loader.parse({
            "connection": {"host": "localhost:8080", "retry_delay_ms": "100", "offline": True},
            "memory": {
                "full_update": False,
                "partial_window": {"start": "0x4000", "end": 0x40FF},
                "regions": [{"start": "0x3C00", "end": "0x3FFF", "label": "Video RAM"}],
            },
            "disassembly": {"length": 64},
        })

        assert config.host == "localhost:8080"
        assert config.channel_path == "/channel"
        assert config.retry_delay_ms == 100
        assert config.healthy_delay_ms == 500
        assert config.offline is True
        assert config.full_memory_update is False
        assert config.partial_window == MemoryWindow(0x4000, 0x40FF)
        assert config.listing_length == 64
        assert config.memory_regions == [MemoryRegion(0x3C00, 0x3FFF, "Video RAM")]

    @pytest.mark.parametrize("data", [
        ["not", "a", "mapping"],
        {"memory": {"partial_window": {"start": "0x4000", "end": "0x3C00"}}},
        {"memory": {"partial_window": {"end": "0x10000"}}},
        {"connection": {"retry_delay_ms": "soon"}},
        {"connection": {"healthy_delay_ms": True}},
        {"disassembly": {"length": 1.5}},
    ])
    def test_invalid_values_raise(self, loader, data):
        with pytest.raises(ConfigError):
            loader.parse(data)

    # @intent:test_case_empty_section 値を持たないセクションは既定値として扱われることを検証します。
    def test_empty_sections_give_defaults(self, loader):
        config = loader.parse(yaml.safe_load("connection:\n  host: localhost:8080\nmemory:\ndisassembly:\n"))

        assert config.host == "localhost:8080"
        assert config.full_memory_update == SessionConfig().full_memory_update
        assert config.partial_window == MemoryWindow(0x3C00, 0x3FFF)
        assert config.memory_regions == []
        assert config.listing_length == SessionConfig().listing_length

    def test_empty_partial_window_and_regions(self, loader):
        config = loader.parse(yaml.safe_load("memory:\n  partial_window:\n  regions:\n"))
        assert config == SessionConfig()

    @pytest.mark.parametrize("text", [
        "connection: localhost\n",
        "memory: [1, 2]\n",
        "memory:\n  partial_window: 0x3C00\n",
        "memory:\n  regions: 0x3C00\n",
        "memory:\n  regions:\n    - 0x3C00\n",
        "disassembly: 64\n",
    ])
    def test_non_mapping_sections_raise(self, loader, text):
        with pytest.raises(ConfigError):
            loader.parse(yaml.safe_load(text))

    def test_load_from_file(self, loader, tmp_path):
        path = tmp_path / "session.yaml"
        path.write_text(yaml.safe_dump({"connection": {"host": "10.0.0.2:8080"}}))

        assert loader.load_from_file(str(path)).host == "10.0.0.2:8080"

    def test_load_empty_file(self, loader, tmp_path):
        path = tmp_path / "empty.yaml"
        path.write_text("")
        assert loader.load_from_file(str(path)) == SessionConfig()

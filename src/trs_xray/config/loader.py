import logging
from typing import Any, Dict

import yaml

from trs_xray.common.errors import ConfigError
from .models import MemoryRegion, MemoryWindow, SessionConfig

logger = logging.getLogger(__name__)


class ConfigLoader:
    def load_from_file(self, path: str) -> SessionConfig:
        with open(path, 'r') as f:
            data = yaml.safe_load(f)
        logger.info("Loaded session config from %s", path)
        return self.parse(data or {})

    def parse(self, data: Dict[str, Any]) -> SessionConfig:
        if not isinstance(data, dict):
            raise ConfigError(f"Config root must be a mapping, got {type(data).__name__}")
        defaults = SessionConfig()

        connection = self._section(data, "connection")
        memory = self._section(data, "memory")
        window_data = self._section(memory, "partial_window")
        disassembly = self._section(data, "disassembly")

        window = MemoryWindow(
            start=self._parse_int(window_data.get("start", defaults.partial_window.start)),
            end=self._parse_int(window_data.get("end", defaults.partial_window.end)),
        )
        if not 0 <= window.start <= window.end <= 0xFFFF:
            raise ConfigError(f"Invalid partial window: {window.start:#x}-{window.end:#x}")

        # Parse Memory Regions
        memory_regions = []
        regions = memory.get("regions") or []
        if not isinstance(regions, list):
            raise ConfigError("memory.regions must be a list")
        for region_data in regions:
            if not isinstance(region_data, dict):
                raise ConfigError(f"Invalid memory region entry: {region_data!r}")
            start = self._parse_int(region_data.get("start"))
            end = self._parse_int(region_data.get("end"))
            label = region_data.get("label", "")
            memory_regions.append(MemoryRegion(start=start, end=end, label=label))

        return SessionConfig(
            host=connection.get("host", defaults.host),
            channel_path=connection.get("path", defaults.channel_path),
            retry_delay_ms=self._parse_int(connection.get("retry_delay_ms", defaults.retry_delay_ms)),
            healthy_delay_ms=self._parse_int(connection.get("healthy_delay_ms", defaults.healthy_delay_ms)),
            offline=bool(connection.get("offline", defaults.offline)),
            full_memory_update=bool(memory.get("full_update", defaults.full_memory_update)),
            partial_window=window,
            listing_length=self._parse_int(disassembly.get("length", defaults.listing_length)),
            memory_regions=memory_regions,
        )

    # 空のセクション（`memory:` のみ）はNoneとして読み込まれるため既定値扱いにする
    def _section(self, data: Dict[str, Any], name: str) -> Dict[str, Any]:
        section = data.get(name)
        if section is None:
            return {}
        if not isinstance(section, dict):
            raise ConfigError(f"Config section '{name}' must be a mapping, got {type(section).__name__}")
        return section

    def _parse_int(self, value: Any) -> int:
        if isinstance(value, bool):
            raise ConfigError(f"Invalid integer format: {value}")
        if isinstance(value, int):
            return value
        if isinstance(value, str):
            try:
                if value.lower().startswith("0x"):
                    return int(value, 16)
                return int(value)
            except ValueError as e:
                raise ConfigError(f"Invalid integer format: {value}") from e
        raise ConfigError(f"Invalid integer format: {value}")

from dataclasses import dataclass, field
from typing import List, Optional


@dataclass
class MemoryRegion:
    start: int
    end: int
    label: str = ""


@dataclass
class MemoryWindow:
    start: int = 0x3C00
    end: int = 0x3FFF  # ビデオRAMの窓

    @property
    def length(self) -> int:
        return self.end - self.start


@dataclass
class SessionConfig:
    host: Optional[str] = None
    channel_path: str = "/channel"
    retry_delay_ms: int = 200
    healthy_delay_ms: int = 500
    offline: bool = False
    full_memory_update: bool = True
    partial_window: MemoryWindow = field(default_factory=MemoryWindow)
    listing_length: int = 256
    memory_regions: List[MemoryRegion] = field(default_factory=list)

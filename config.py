# ========================= config.py =========================
from dataclasses import dataclass, field
from typing import Optional

@dataclass
class PlaybackConfig:
    bpm: float = 120.0
    beats_per_bar: int = 4
    tick_ms: int = 10        # scheduler window
    channel: int = 0
    velocity: int = 100

    @property
    def tick(self) -> float:
        return self.tick_ms / 1000.0

@dataclass
class MidiConfig:
    output_id: Optional[int] = None  # None -> system default device
    input_id: Optional[int] = None
    poll_ms: int = 1

@dataclass
class LogConfig:
    level: str = "INFO"
    max_bytes: int = 2 * 1024 * 1024
    backup_count: int = 3

@dataclass
class AppConfig:
    playback: PlaybackConfig = field(default_factory=PlaybackConfig)
    midi: MidiConfig = field(default_factory=MidiConfig)
    log: LogConfig = field(default_factory=LogConfig)

from __future__ import annotations
from dataclasses import dataclass, field
from typing import Union


@dataclass(frozen=True)
class StreamInfo:
    channels: int
    sample_rate: int
    bit_depth: int
    total_samples: int = 0

    @property
    def duration(self) -> float:
        """Duration in seconds from the header sample count (0.0 if unknown)."""
        if self.sample_rate <= 0:
            return 0.0
        return self.total_samples / float(self.sample_rate)


@dataclass(frozen=True)
class BlockStats:
    rms: float
    peak: float


@dataclass(frozen=True)
class TrackMeasurement:
    channel_drs: tuple[float, ...]
    dr: int
    peak_db: float
    rms_db: float
    block_count: int
    frames_decoded: int


@dataclass(frozen=True)
class TrackResult:
    filename: str
    dr: int
    peak_db: float
    rms_db: float
    duration_secs: float
    channels: int
    sample_rate: int
    bit_depth: int
    channel_drs: tuple[float, ...] = ()
    warnings: tuple[str, ...] = field(default=(), compare=False)

    @property
    def info(self) -> str:
        """Short format string: ``<kHz>/<bits>/<channels>``."""
        return f"{self.sample_rate // 1000}/{self.bit_depth}/{self.channels}"


@dataclass(frozen=True)
class TrackFailure:
    filename: str
    error_message: str


TrackOutcome = Union[TrackResult, TrackFailure]

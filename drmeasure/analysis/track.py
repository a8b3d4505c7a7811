"""Single track DR analysis."""
from __future__ import annotations

import logging
from pathlib import Path
from typing import Iterable

import numpy as np

from drmeasure.errors import DecodeError, InvalidArgument
from drmeasure.io.audio import open_stream
from drmeasure.metrics.dr import (
    block_size_for_sample_rate,
    channel_block_stats,
    channel_dr,
    iter_blocks,
    normalize_samples,
    overall_levels,
    track_dr,
)
from drmeasure.types import (
    BlockStats,
    StreamInfo,
    TrackFailure,
    TrackMeasurement,
    TrackOutcome,
    TrackResult,
)

logger = logging.getLogger(__name__)


def _normalized(info: StreamInfo, raw_chunks: Iterable[np.ndarray]):
    for chunk in raw_chunks:
        x = normalize_samples(chunk, info.bit_depth)
        if x.ndim == 1:
            x = x.reshape(-1, info.channels)
        if x.shape[1] != info.channels:
            raise InvalidArgument(
                f"Expected {info.channels} channel(s), got frames with {x.shape[1]}."
            )
        yield x


def measure_frames(info: StreamInfo, raw_chunks: Iterable[np.ndarray]) -> TrackMeasurement:
    """
    Run the DR pipeline over a stream of raw integer frame chunks.

    Args:
        info: Stream metadata (channels, sample rate, bit depth)
        raw_chunks: Arrays of shape ``(n, channels)`` in stream order

    Returns:
        TrackMeasurement with per-channel DR, track DR and pooled levels
    """
    if info.channels < 1:
        raise InvalidArgument(f"channels must be >= 1, got {info.channels}.")
    block_len = block_size_for_sample_rate(info.sample_rate)
    per_channel: list[list[BlockStats]] = [[] for _ in range(info.channels)]
    frames_decoded = 0
    for block in iter_blocks(_normalized(info, raw_chunks), block_len):
        frames_decoded += block.shape[0]
        for ch, stats in enumerate(channel_block_stats(block)):
            per_channel[ch].append(stats)

    channel_drs = tuple(channel_dr(blocks) for blocks in per_channel)
    peak_db, rms_db = overall_levels(per_channel)
    block_count = len(per_channel[0])
    logger.debug(
        "block_len=%d blocks=%d frames=%d channel_drs=%s",
        block_len, block_count, frames_decoded, channel_drs,
    )
    return TrackMeasurement(
        channel_drs=channel_drs,
        dr=track_dr(channel_drs),
        peak_db=peak_db,
        rms_db=rms_db,
        block_count=block_count,
        frames_decoded=frames_decoded,
    )


def analyze_file(path, *, display_name: str | None = None) -> TrackResult:
    """Decode one file and measure its DR; raises DecodeError on bad input."""
    path = Path(path)
    name = display_name or path.name
    with open_stream(path) as stream:
        info = stream.info
        measurement = measure_frames(info, stream.frames())
        warnings = list(stream.warnings)
        expected = info.total_samples
        if expected and measurement.frames_decoded != expected:
            relation = "fewer" if measurement.frames_decoded < expected else "more"
            message = (
                f"{stream.backend}: decoded {relation} frames than file reports "
                f"({measurement.frames_decoded} vs {expected})."
            )
            warnings.append(message)
            logger.warning("%s: %s", name, message)
    return TrackResult(
        filename=name,
        dr=measurement.dr,
        peak_db=measurement.peak_db,
        rms_db=measurement.rms_db,
        duration_secs=info.duration,
        channels=info.channels,
        sample_rate=info.sample_rate,
        bit_depth=info.bit_depth,
        channel_drs=measurement.channel_drs,
        warnings=tuple(warnings),
    )


def analyze_file_safe(path, *, display_name: str | None = None) -> TrackOutcome:
    """Like ``analyze_file`` but returns a TrackFailure instead of raising."""
    name = display_name or Path(path).name
    try:
        return analyze_file(path, display_name=name)
    except (DecodeError, InvalidArgument) as exc:
        logger.info("Analysis failed for %s: %s", name, exc)
        return TrackFailure(filename=name, error_message=str(exc))

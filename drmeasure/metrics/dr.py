"""
DR Loudness Standard algorithm.

Each channel is cut into non-overlapping blocks of 3 seconds. Per block the
RMS (with the standard's factor of 2) and the sample peak are computed. The
channel DR compares the second highest block peak against the quadratic
mean of the loudest 20% block RMS values. The track DR is the rounded mean
of the channel DR values.
"""
from __future__ import annotations

from typing import Iterable, Iterator, Sequence

import numpy as np

from drmeasure.errors import InvalidArgument
from drmeasure.metrics.levels import pooled_peak, pooled_rms, to_db
from drmeasure.types import BlockStats
from drmeasure.utils.rounding import mean_rounded, round_half_away

BLOCK_SECONDS = 3.0
UPMOST_BLOCKS_RATIO = 0.2
# 1-based rank from the top of the sorted peaks.
NTH_HIGHEST_PEAK = 2


def normalize_samples(raw, bit_depth: int):
    """
    Scale raw signed integer samples to [-1, 1].

    Args:
        raw: Integer sample or array of integer samples
        bit_depth: Bits per sample of the source stream

    Returns:
        ``raw / 2**(bit_depth - 1)``; a float for scalar input, a float64
        array otherwise
    """
    bit_depth = int(bit_depth)
    if bit_depth < 1:
        raise InvalidArgument(f"bit_depth must be >= 1, got {bit_depth}.")
    scale = float(1 << (bit_depth - 1))
    x = np.asarray(raw, dtype=np.float64) / scale
    if x.ndim == 0:
        return float(x)
    return x


def block_size_for_sample_rate(sample_rate: float) -> int:
    """Block length in samples: round(3 s * sample_rate), never below 1."""
    return max(1, round_half_away(BLOCK_SECONDS * float(sample_rate)))


def iter_blocks(frames: Iterable[np.ndarray], block_len: int) -> Iterator[np.ndarray]:
    """
    Regroup a stream of frame chunks into fixed-length blocks.

    ``frames`` yields 2D arrays of shape ``(n, channels)``; all channels are
    cut at the same frame index. Every yielded block has ``block_len`` rows
    except the last one, which holds whatever is left at end of stream.
    Empty blocks are never yielded.
    """
    if block_len < 1:
        raise InvalidArgument(f"block_len must be >= 1, got {block_len}.")
    pending: list[np.ndarray] = []
    pending_len = 0
    for chunk in frames:
        chunk = np.asarray(chunk)
        if chunk.ndim == 1:
            chunk = chunk.reshape(-1, 1)
        if chunk.shape[0] == 0:
            continue
        pending.append(chunk)
        pending_len += chunk.shape[0]
        if pending_len < block_len:
            continue
        buf = np.concatenate(pending, axis=0)
        n_full = buf.shape[0] // block_len
        for i in range(n_full):
            yield buf[i * block_len:(i + 1) * block_len]
        rest = buf[n_full * block_len:]
        pending = [rest] if rest.shape[0] else []
        pending_len = rest.shape[0]
    if pending_len:
        yield np.concatenate(pending, axis=0)


def block_stats(block: np.ndarray) -> BlockStats:
    """Compute RMS (``sqrt(mean(2 * x**2))``) and peak of one mono block."""
    x = np.asarray(block, dtype=np.float64)
    if x.ndim != 1:
        raise InvalidArgument("Expected 1D mono block.")
    if x.size == 0:
        raise InvalidArgument("Expected non-empty block.")
    rms = float(np.sqrt(np.mean(2.0 * x * x)))
    peak = float(np.max(np.abs(x)))
    return BlockStats(rms=rms, peak=peak)


def channel_block_stats(block: np.ndarray) -> list[BlockStats]:
    """Block statistics for each column of a ``(n, channels)`` block."""
    x = np.asarray(block, dtype=np.float64)
    if x.ndim == 1:
        x = x.reshape(-1, 1)
    return [block_stats(x[:, ch]) for ch in range(x.shape[1])]


def channel_dr(blocks: Sequence[BlockStats]) -> float:
    """
    DR of one channel from its block statistics.

    RMS and peak values are sorted independently, so the chosen peak and
    the loud RMS values need not come from the same blocks.

    Returns:
        ``20 * log10(peak_loud / rms_loud)``, or 0.0 for no blocks, silent
        audio or a silent second-loudest peak
    """
    if not blocks:
        return 0.0
    total = len(blocks)
    rms_sorted = np.sort(np.array([b.rms for b in blocks], dtype=np.float64))
    peak_sorted = np.sort(np.array([b.peak for b in blocks], dtype=np.float64))

    peak_loud = float(peak_sorted[max(0, total - NTH_HIGHEST_PEAK)])

    top_n = max(1, round_half_away(total * UPMOST_BLOCKS_RATIO))
    upmost = rms_sorted[total - top_n:]
    rms_loud = float(np.sqrt(np.sum(upmost ** 2) / top_n))

    if rms_loud <= 0 or peak_loud <= 0:
        return 0.0
    return float(20.0 * np.log10(peak_loud / rms_loud))


def track_dr(channel_drs: Sequence[float]) -> int:
    """Mean channel DR rounded half away from zero."""
    return mean_rounded([float(v) for v in channel_drs])


def overall_levels(channel_blocks: Sequence[Sequence[BlockStats]]) -> tuple[float, float]:
    """
    Peak and RMS in dB over all blocks of all channels pooled together.

    Informational only; these do not feed into the DR value.
    """
    pooled = [b for blocks in channel_blocks for b in blocks]
    return to_db(pooled_peak(pooled)), to_db(pooled_rms(pooled))

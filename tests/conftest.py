from __future__ import annotations

import sys
from pathlib import Path

import numpy as np

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))


def square_blocks(amplitudes, lengths, *, bit_depth: int = 16) -> np.ndarray:
    """Mono raw int samples: an alternating +/- square run per amplitude."""
    scale = 1 << (bit_depth - 1)
    parts = []
    for amp, n in zip(amplitudes, lengths):
        signs = np.where(np.arange(n) % 2 == 0, 1, -1)
        parts.append(signs * int(round(amp * scale)))
    return np.concatenate(parts).astype(np.int64)


def write_pcm(
    path: Path,
    raw: np.ndarray,
    fs: int,
    *,
    subtype: str = "PCM_16",
    fmt: str | None = None,
) -> Path:
    """Write raw integer samples ``(n,)`` or ``(n, channels)`` losslessly."""
    import soundfile as sf

    raw = np.asarray(raw, dtype=np.int64)
    if subtype == "PCM_16":
        data = raw.astype(np.int16)
    elif subtype == "PCM_24":
        data = (raw << 8).astype(np.int32)
    else:
        data = raw.astype(np.int32)
    sf.write(str(path), data, fs, subtype=subtype, format=fmt)
    return path

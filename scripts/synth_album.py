#!/usr/bin/env python
"""
Synthesize a test album for DR Measure validation.

Writes FLAC tracks whose DR value is known in advance, plus one corrupt
file, so a full run exercises the table, summary and error sections.
"""
from __future__ import annotations
import argparse
from pathlib import Path

import numpy as np
import soundfile as sf


def db_to_linear(db: float) -> float:
    """Convert dB to linear amplitude."""
    return 10.0 ** (db / 20.0)


def gen_sine(freq_hz: float, duration_s: float, fs: int, amp: float = 1.0) -> np.ndarray:
    """Generate a sine wave."""
    t = np.arange(int(duration_s * fs)) / fs
    return amp * np.sin(2.0 * np.pi * freq_hz * t)


def gen_clicked_sine(
    freq_hz: float,
    duration_s: float,
    fs: int,
    *,
    amp: float,
    click_amp: float,
    click_every_s: float = 3.0,
) -> np.ndarray:
    """Sine with one single-sample click per interval; DR ~ 20*log10(click_amp / amp)."""
    x = gen_sine(freq_hz, duration_s, fs, amp)
    step = int(round(click_every_s * fs))
    x[step // 2::step] = click_amp
    return x


def write_flac(path: Path, samples: np.ndarray, fs: int, *, subtype: str = "PCM_16") -> Path:
    """Write float samples in [-1, 1] to FLAC (mono or (n, channels))."""
    path.parent.mkdir(parents=True, exist_ok=True)
    sf.write(str(path), np.clip(samples, -1.0, 1.0), fs, subtype=subtype, format="FLAC")
    return path


def build_album(out_dir: Path, *, fs: int = 44100, duration: float = 15.0) -> dict[str, int | None]:
    """
    Write the album and return the expected DR per file name.

    Corrupt files map to ``None``.
    """
    out_dir = Path(out_dir)
    expected: dict[str, int | None] = {}

    sine = gen_sine(1000.0, duration, fs, db_to_linear(-6.0))
    write_flac(out_dir / "01 sine.flac", np.stack([sine, sine], axis=1), fs)
    expected["01 sine.flac"] = 0

    clicked = gen_clicked_sine(440.0, duration, fs, amp=0.1, click_amp=0.9)
    write_flac(out_dir / "02 clicks.flac", np.stack([clicked, clicked], axis=1), fs, subtype="PCM_24")
    expected["02 clicks.flac"] = 19

    (out_dir / "03 corrupt.flac").write_bytes(b"fLaC" + bytes(range(256)) * 4)
    expected["03 corrupt.flac"] = None
    return expected


def main():
    parser = argparse.ArgumentParser(description="Write a synthetic DR test album")
    parser.add_argument("out_dir", nargs="?", default=str(Path(__file__).parent.parent / "validation" / "album"))
    parser.add_argument("--fs", type=int, default=44100)
    parser.add_argument("--duration", type=float, default=15.0)
    args = parser.parse_args()

    print("Generating test album...")
    expected = build_album(Path(args.out_dir), fs=args.fs, duration=args.duration)
    for name, dr in expected.items():
        print(f"  {name}: {'error' if dr is None else f'DR{dr}'}")
    print(f"\nGenerated {len(expected)} files in: {args.out_dir}")


if __name__ == "__main__":
    main()

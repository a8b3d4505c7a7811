from __future__ import annotations

import os
import shutil
import threading

import numpy as np
import pytest
import soundfile as sf

from drmeasure.errors import DecodeOpenError, DecodeReadError
from drmeasure.io.audio import FfmpegStream, deinterleave, open_stream
from drmeasure.io.discovery import display_name, find_audio_files, validate_folder
from drmeasure.errors import InvalidFolder

from conftest import write_pcm


def test_open_stream_wav_returns_raw_ints(tmp_path):
    raw = np.array([[0, 100], [32767, -32768], [-1, 1]])
    path = write_pcm(tmp_path / "tone.wav", raw, 44100)
    with open_stream(path) as stream:
        assert stream.backend == "soundfile"
        assert stream.info.channels == 2
        assert stream.info.sample_rate == 44100
        assert stream.info.bit_depth == 16
        assert stream.info.total_samples == 3
        frames = np.concatenate(list(stream.frames()))
    assert np.array_equal(frames, raw)


def test_open_stream_flac_24_bit(tmp_path):
    raw = np.array([8388607, -8388608, 12345, -1, 0])
    path = write_pcm(tmp_path / "hi.flac", raw, 96000, subtype="PCM_24")
    with open_stream(path) as stream:
        assert stream.info.bit_depth == 24
        assert stream.info.channels == 1
        frames = np.concatenate(list(stream.frames()))
    assert np.array_equal(frames[:, 0], raw)


def test_frames_restart_on_every_call(tmp_path):
    raw = np.arange(-50, 50)
    path = write_pcm(tmp_path / "ramp.wav", raw, 8000)
    with open_stream(path, chunk_frames=7) as stream:
        first = np.concatenate(list(stream.frames()))
        second = np.concatenate(list(stream.frames()))
    assert np.array_equal(first, second)
    assert first.shape == (100, 1)


def test_open_stream_rejects_garbage(tmp_path):
    path = tmp_path / "broken.flac"
    path.write_bytes(b"this is not a flac stream at all")
    with pytest.raises(DecodeOpenError):
        open_stream(path)


def test_open_stream_rejects_float_samples(tmp_path):
    path = tmp_path / "float.wav"
    sf.write(str(path), np.zeros(10, dtype=np.float32), 44100, subtype="FLOAT")
    with pytest.raises(DecodeOpenError):
        open_stream(path)


def test_deinterleave_trims_ragged_frame():
    warnings: list[str] = []
    chunks = [np.array([1, 2, 3]), np.array([4, 5, 6, 7])]
    frames = list(deinterleave(chunks, 2, warnings=warnings, backend="test"))
    assert np.array_equal(np.concatenate(frames), [[1, 2], [3, 4], [5, 6]])
    assert warnings == ["test: trimmed partial frame at end of stream."]


def test_deinterleave_whole_frames_no_warning():
    warnings: list[str] = []
    frames = list(deinterleave([np.arange(6)], 3, warnings=warnings))
    assert np.array_equal(np.concatenate(frames), [[0, 1, 2], [3, 4, 5]])
    assert warnings == []


@pytest.mark.skipif(
    shutil.which("ffmpeg") is None or shutil.which("ffprobe") is None,
    reason="ffmpeg not available"
)
def test_ffmpeg_stream_matches_soundfile(tmp_path):
    raw = np.array([[0, 100], [32767, -32768], [-1, 1], [5, -5]])
    path = write_pcm(tmp_path / "tone.wav", raw, 44100)
    with FfmpegStream(str(path)) as stream:
        assert stream.info.bit_depth == 16
        assert stream.info.channels == 2
        frames = np.concatenate(list(stream.frames()))
    assert np.array_equal(frames, raw)


def test_find_audio_files_sorted_and_filtered(tmp_path):
    for name in ["b.FLAC", "a.flac", "c.wav", "notes.txt", "d.mp3"]:
        (tmp_path / name).write_bytes(b"")
    sub = tmp_path / "disc2"
    sub.mkdir()
    (sub / "e.flac").write_bytes(b"")
    found = [p.name for p in find_audio_files(tmp_path)]
    assert found == ["a.flac", "b.FLAC", "c.wav"]
    nested = find_audio_files(tmp_path, recursive=True)
    assert [display_name(p, tmp_path) for p in nested] == [
        "a.flac", "b.FLAC", "c.wav", "disc2/e.flac"
    ]


def test_validate_folder_rejects_missing_and_files(tmp_path):
    with pytest.raises(InvalidFolder):
        validate_folder(tmp_path / "missing")
    f = tmp_path / "x.flac"
    f.write_bytes(b"")
    with pytest.raises(InvalidFolder):
        validate_folder(f)


FAKE_FFPROBE = """#!/bin/sh
echo '{"streams": [{"sample_rate": "8000", "channels": 1, "sample_fmt": "s16", "bits_per_sample": 16, "time_base": "1/8000", "duration_ts": "2"}]}'
"""

# ~300 KB of diagnostics on stderr before any PCM, then samples +1 and -1 as s32le
FAKE_FFMPEG = """#!/bin/sh
head -c 300000 /dev/zero | tr '\\000' 'x' >&2
printf '\\000\\000\\001\\000\\000\\000\\377\\377'
exit {code}
"""


def _install_fake_ffmpeg(tmp_path, monkeypatch, *, exit_code: int = 0):
    bin_dir = tmp_path / "bin"
    bin_dir.mkdir()
    for name, body in (
        ("ffprobe", FAKE_FFPROBE),
        ("ffmpeg", FAKE_FFMPEG.replace("{code}", str(exit_code))),
    ):
        script = bin_dir / name
        script.write_text(body, encoding="utf-8")
        script.chmod(0o755)
    monkeypatch.setenv("PATH", f"{bin_dir}{os.pathsep}{os.environ.get('PATH', '')}")
    target = tmp_path / "input.flac"
    target.write_bytes(b"")
    return target


def _frames_in_thread(stream):
    result: dict = {}

    def run():
        try:
            result["frames"] = np.concatenate(list(stream.frames()))
        except Exception as exc:
            result["error"] = exc

    worker = threading.Thread(target=run, daemon=True)
    worker.start()
    worker.join(timeout=10.0)
    assert not worker.is_alive(), "ffmpeg stream did not finish"
    return result


@pytest.mark.skipif(os.name != "posix", reason="shell script stand-ins need a POSIX shell")
def test_ffmpeg_stream_survives_verbose_stderr(tmp_path, monkeypatch):
    target = _install_fake_ffmpeg(tmp_path, monkeypatch)
    with FfmpegStream(str(target)) as stream:
        assert stream.info.bit_depth == 16
        result = _frames_in_thread(stream)
    assert "error" not in result
    assert np.array_equal(result["frames"], [[1], [-1]])


@pytest.mark.skipif(os.name != "posix", reason="shell script stand-ins need a POSIX shell")
def test_ffmpeg_stream_failure_raises_read_error(tmp_path, monkeypatch):
    target = _install_fake_ffmpeg(tmp_path, monkeypatch, exit_code=1)
    with FfmpegStream(str(target)) as stream:
        result = _frames_in_thread(stream)
    assert isinstance(result["error"], DecodeReadError)
    assert "ffmpeg decode failed: xxx" in str(result["error"])

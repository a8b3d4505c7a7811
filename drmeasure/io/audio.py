"""Audio decoding module."""
from __future__ import annotations
import json
import logging
import shutil
import subprocess
import tempfile
from typing import Iterable, Iterator

import numpy as np

from drmeasure.errors import DecodeOpenError, DecodeReadError
from drmeasure.types import StreamInfo

logger = logging.getLogger(__name__)

DEFAULT_CHUNK_FRAMES = 65536

# libsndfile integer subtypes and their bit depth
_SUBTYPE_BITS = {
    "PCM_S8": 8,
    "PCM_U8": 8,
    "PCM_16": 16,
    "PCM_24": 24,
    "PCM_32": 32,
}
_FFMPEG_FMT_BITS = {"u8": 8, "u8p": 8, "s16": 16, "s16p": 16, "s32": 32, "s32p": 32}


def _note(warnings: list[str], message: str, path: str) -> None:
    if message not in warnings:
        warnings.append(message)
        logger.warning("%s: %s", path, message)


def deinterleave(
    chunks: Iterable[np.ndarray],
    channels: int,
    *,
    warnings: list[str] | None = None,
    backend: str = "stream",
    path: str = "",
) -> Iterator[np.ndarray]:
    """
    Regroup flat interleaved sample chunks into ``(n, channels)`` frames.

    Chunk boundaries may fall inside a frame. Samples left over at end of
    stream that do not fill a whole frame are dropped from every channel
    and a warning is recorded.
    """
    if channels < 1:
        raise DecodeOpenError(f"Invalid channel count {channels}.")
    carry = np.zeros(0, dtype=np.int64)
    for chunk in chunks:
        flat = np.asarray(chunk).reshape(-1)
        if carry.size:
            flat = np.concatenate([carry, flat])
        n = (flat.size // channels) * channels
        carry = flat[n:]
        if n:
            yield flat[:n].reshape(-1, channels)
    if carry.size and warnings is not None:
        _note(warnings, f"{backend}: trimmed partial frame at end of stream.", path)


class AudioStream:
    """
    Open decoder handle.

    ``frames()`` yields raw integer arrays of shape ``(n, channels)`` and
    starts over from the first frame on every call. Use as a context manager
    so the handle is released whether or not the analysis succeeds.
    """

    backend = "none"

    def __init__(
        self,
        path: str,
        info: StreamInfo,
        *,
        chunk_frames: int = DEFAULT_CHUNK_FRAMES,
        warnings: list[str] | None = None,
    ):
        self.path = path
        self.info = info
        self.chunk_frames = max(1, int(chunk_frames))
        self.warnings: list[str] = list(warnings or [])

    def frames(self) -> Iterator[np.ndarray]:
        raise NotImplementedError

    def close(self) -> None:
        pass

    def __enter__(self) -> "AudioStream":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()


class SoundfileStream(AudioStream):
    """Decode using soundfile (libsndfile)."""

    backend = "soundfile"

    def __init__(self, path: str, *, chunk_frames: int = DEFAULT_CHUNK_FRAMES, warnings=None):
        try:
            import soundfile as sf
        except (ImportError, OSError) as exc:
            raise DecodeOpenError("soundfile backend not available.") from exc

        try:
            handle = sf.SoundFile(path)
        except (RuntimeError, OSError) as exc:
            raise DecodeOpenError(f"Cannot open: {exc}") from exc

        bits = _SUBTYPE_BITS.get(handle.subtype)
        if bits is None:
            handle.close()
            raise DecodeOpenError(f"Cannot open: unsupported sample format {handle.subtype}.")
        info = StreamInfo(
            channels=int(handle.channels),
            sample_rate=int(handle.samplerate),
            bit_depth=bits,
            total_samples=max(0, int(handle.frames)),
        )
        super().__init__(path, info, chunk_frames=chunk_frames, warnings=warnings)
        self._handle = handle

    def frames(self) -> Iterator[np.ndarray]:
        # libsndfile left-justifies integer reads into 32 bits
        shift = 32 - self.info.bit_depth
        try:
            self._handle.seek(0)
            blocks = self._handle.blocks(
                blocksize=self.chunk_frames, dtype="int32", always_2d=True
            )
            for block in blocks:
                yield block >> shift if shift else block
        except (RuntimeError, OSError) as exc:
            raise DecodeReadError(f"Read error: {exc}") from exc

    def close(self) -> None:
        self._handle.close()


def ffmpeg_available() -> bool:
    return shutil.which("ffmpeg") is not None and shutil.which("ffprobe") is not None


def _int_or_zero(value) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        return 0


def _ffprobe_info(path: str) -> StreamInfo:
    """Return stream info for the first audio stream from ffprobe."""
    ffprobe = shutil.which("ffprobe")
    if not ffprobe:
        raise DecodeOpenError("ffprobe not found for ffmpeg backend.")
    cmd = [
        ffprobe,
        "-v", "error",
        "-select_streams", "a:0",
        "-show_entries",
        "stream=sample_rate,channels,sample_fmt,bits_per_raw_sample,"
        "bits_per_sample,duration_ts,time_base,duration",
        "-of", "json",
        path,
    ]
    proc = subprocess.run(cmd, capture_output=True, text=True, check=False)
    if proc.returncode != 0:
        raise DecodeOpenError(f"ffprobe failed: {proc.stderr.strip()}")
    try:
        streams = json.loads(proc.stdout).get("streams", [])
    except json.JSONDecodeError as exc:
        raise DecodeOpenError(f"ffprobe returned invalid JSON: {exc}") from exc
    if not streams:
        raise DecodeOpenError("ffprobe reported no audio streams.")
    stream = streams[0]

    sample_fmt = str(stream.get("sample_fmt", ""))
    if sample_fmt.startswith(("flt", "dbl")):
        raise DecodeOpenError(f"Cannot open: unsupported sample format {sample_fmt}.")
    bits = (
        _int_or_zero(stream.get("bits_per_raw_sample"))
        or _int_or_zero(stream.get("bits_per_sample"))
        or _FFMPEG_FMT_BITS.get(sample_fmt, 0)
    )
    if not 1 <= bits <= 32:
        raise DecodeOpenError(f"Cannot open: unknown bit depth for sample format {sample_fmt!r}.")
    channels = _int_or_zero(stream.get("channels"))
    if channels < 1:
        raise DecodeOpenError("ffprobe reported no channels.")
    sample_rate = _int_or_zero(stream.get("sample_rate"))

    total = 0
    if sample_rate > 0 and stream.get("time_base") == f"1/{sample_rate}":
        total = _int_or_zero(stream.get("duration_ts"))
    elif sample_rate > 0:
        try:
            total = int(round(float(stream.get("duration")) * sample_rate))
        except (TypeError, ValueError):
            total = 0
    return StreamInfo(
        channels=channels,
        sample_rate=sample_rate,
        bit_depth=bits,
        total_samples=max(0, total),
    )


class FfmpegStream(AudioStream):
    """Decode using ffmpeg piping raw signed 32-bit PCM."""

    backend = "ffmpeg"

    def __init__(self, path: str, *, chunk_frames: int = DEFAULT_CHUNK_FRAMES, warnings=None):
        ffmpeg = shutil.which("ffmpeg")
        if not ffmpeg:
            raise DecodeOpenError("ffmpeg backend not available.")
        info = _ffprobe_info(path)
        super().__init__(path, info, chunk_frames=chunk_frames, warnings=warnings)
        self._ffmpeg = ffmpeg

    def _raw_chunks(self, proc: subprocess.Popen) -> Iterator[np.ndarray]:
        chunk_bytes = self.chunk_frames * self.info.channels * 4
        pending = b""
        while True:
            data = proc.stdout.read(chunk_bytes)
            if not data:
                break
            data = pending + data
            n = (len(data) // 4) * 4
            pending = data[n:]
            if n:
                yield np.frombuffer(data[:n], dtype="<i4")
        if pending:
            _note(self.warnings, f"{self.backend}: trimmed partial sample at end of stream.", self.path)

    def frames(self) -> Iterator[np.ndarray]:
        cmd = [
            self._ffmpeg,
            "-v", "error",
            "-i", self.path,
            "-map", "0:a:0",
            "-f", "s32le",
            "-acodec", "pcm_s32le",
            "-vn",
            "pipe:1",
        ]
        shift = 32 - self.info.bit_depth
        # only stdout is drained while decoding; stderr is read back afterwards
        err_file = tempfile.TemporaryFile()
        try:
            proc = subprocess.Popen(cmd, stdout=subprocess.PIPE, stderr=err_file)
        except OSError as exc:
            err_file.close()
            raise DecodeReadError(f"ffmpeg could not start: {exc}") from exc
        try:
            for frames in deinterleave(
                self._raw_chunks(proc),
                self.info.channels,
                warnings=self.warnings,
                backend=self.backend,
                path=self.path,
            ):
                yield frames >> shift if shift else frames
            proc.wait()
            if proc.returncode != 0:
                err_file.seek(0)
                message = err_file.read().decode("utf-8", errors="replace").strip()
                raise DecodeReadError(f"ffmpeg decode failed: {message}")
        finally:
            if proc.poll() is None:
                proc.kill()
                proc.wait()
            if proc.stdout is not None:
                proc.stdout.close()
            err_file.close()


def open_stream(path, *, chunk_frames: int = DEFAULT_CHUNK_FRAMES) -> AudioStream:
    """
    Open an audio file for sequential reading.

    Supports FLAC, WAV, AIFF with integer PCM via soundfile; falls back to
    ffmpeg when soundfile cannot open the file and ffmpeg is installed.
    """
    path = str(path)
    try:
        return SoundfileStream(path, chunk_frames=chunk_frames)
    except DecodeOpenError as exc:
        if not ffmpeg_available():
            raise
        logger.info("soundfile could not open %s (%s); trying ffmpeg", path, exc)
        return FfmpegStream(
            path,
            chunk_frames=chunk_frames,
            warnings=[f"soundfile decode failed: {exc}"],
        )

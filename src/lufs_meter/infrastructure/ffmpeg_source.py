"""PCM source adapter that decodes through an external ffmpeg process.

ffmpeg writes raw little-endian float64 PCM to stdout at the probed sample rate
and channel count; the adapter slices that byte stream into channel-first
buffers while the decoder is still running.
"""

from __future__ import annotations

import json
import shutil
import subprocess
import tempfile
from dataclasses import dataclass
from pathlib import Path
from typing import Iterator

import numpy as np

from lufs_meter.audio_contract import DEFAULT_CHUNK_FRAMES
from lufs_meter.errors import DecoderError, DecoderNotFoundError, UnsupportedAudioFormatError

_BYTES_PER_SAMPLE = 8


@dataclass(frozen=True, slots=True)
class AudioStreamInfo:
    """First audio stream of a container as reported by ffprobe."""

    sample_rate_hz: int
    channel_count: int
    duration_seconds: float | None


def _resolve_executable(name: str) -> str:
    resolved = shutil.which(name)
    if resolved is None:
        raise DecoderNotFoundError(f"'{name}' executable not found on PATH.")
    return resolved


def probe_audio_stream(path: Path, ffprobe_executable: str = "ffprobe") -> AudioStreamInfo:
    """Read sample rate, channel count and duration of the first audio stream."""

    cmd = [
        _resolve_executable(ffprobe_executable),
        "-v",
        "error",
        "-select_streams",
        "a:0",
        "-show_entries",
        "stream=sample_rate,channels,duration",
        "-of",
        "json",
        str(path),
    ]
    proc = subprocess.run(cmd, capture_output=True, text=True, check=False)
    if proc.returncode != 0:
        raise DecoderError(f"ffprobe failed for '{path}': {proc.stderr.strip()}")

    streams = json.loads(proc.stdout or "{}").get("streams") or []
    if not streams:
        raise UnsupportedAudioFormatError(f"No audio stream found in '{path}'.")

    stream = streams[0]
    try:
        sample_rate_hz = int(stream["sample_rate"])
        channel_count = int(stream["channels"])
    except (KeyError, TypeError, ValueError) as exc:
        raise DecoderError(f"ffprobe returned incomplete stream info for '{path}'.") from exc

    raw_duration = stream.get("duration")
    duration = None if raw_duration in (None, "N/A") else float(raw_duration)
    return AudioStreamInfo(sample_rate_hz=sample_rate_hz, channel_count=channel_count, duration_seconds=duration)


class FFmpegPcmSource:
    """Stream PCM decoded by an ffmpeg subprocess."""

    def __init__(
        self,
        path: Path,
        sample_rate_hz: int,
        channel_count: int,
        frames: int | None = None,
        executable: str = "ffmpeg",
        chunk_frames: int = DEFAULT_CHUNK_FRAMES,
    ):
        self.path = path
        self.sample_rate_hz = sample_rate_hz
        self.channel_count = channel_count
        self.frames = frames
        self.executable = executable
        self.chunk_frames = chunk_frames

    @classmethod
    def from_path(
        cls,
        path: Path,
        executable: str = "ffmpeg",
        ffprobe_executable: str = "ffprobe",
        chunk_frames: int = DEFAULT_CHUNK_FRAMES,
    ) -> "FFmpegPcmSource":
        info = probe_audio_stream(path, ffprobe_executable)
        frames = None
        if info.duration_seconds is not None:
            frames = int(round(info.duration_seconds * info.sample_rate_hz))
        return cls(
            path,
            sample_rate_hz=info.sample_rate_hz,
            channel_count=info.channel_count,
            frames=frames,
            executable=executable,
            chunk_frames=chunk_frames,
        )

    def command(self, executable: str) -> list[str]:
        return [
            executable,
            "-nostdin",
            "-hide_banner",
            "-v",
            "error",
            "-i",
            str(self.path),
            "-vn",
            "-f",
            "f64le",
            "-acodec",
            "pcm_f64le",
            "-ac",
            str(self.channel_count),
            "-ar",
            str(self.sample_rate_hz),
            "pipe:1",
        ]

    def buffers(self) -> Iterator[np.ndarray]:
        frame_bytes = _BYTES_PER_SAMPLE * self.channel_count
        command = self.command(_resolve_executable(self.executable))
        # stderr is spooled to a file: an undrained pipe would stall the
        # decoder once its diagnostics outgrow the pipe buffer.
        with tempfile.TemporaryFile() as stderr_file:
            process = subprocess.Popen(command, stdout=subprocess.PIPE, stderr=stderr_file)
            try:
                pending = b""
                while True:
                    data = process.stdout.read(frame_bytes * self.chunk_frames)
                    if not data:
                        break
                    pending += data
                    usable = len(pending) - len(pending) % frame_bytes
                    if usable:
                        samples = np.frombuffer(pending[:usable], dtype="<f8")
                        yield samples.reshape(-1, self.channel_count).T
                        pending = pending[usable:]

                returncode = process.wait()
                if returncode != 0:
                    stderr_file.seek(0)
                    stderr = stderr_file.read().decode("utf-8", errors="replace").strip()
                    raise DecoderError(f"ffmpeg exited with status {returncode} for '{self.path}': {stderr}")
            finally:
                if process.poll() is None:
                    process.kill()
                    process.wait()
                process.stdout.close()

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Optional


@dataclass
class LoudnessMetrics:
    """EBU R128 measurements recovered from ffmpeg diagnostics.

    Every field defaults to ``0.0`` when the tool output does not carry it, so
    a zero is ambiguous (true zero or not reported). ``momentary_max`` and
    ``short_term_max`` are only reported by the integrated-summary output; the
    loudnorm measurement pass leaves them at zero.
    """

    integrated_loudness: float = 0.0
    loudness_range: float = 0.0
    true_peak_max: float = 0.0
    momentary_max: float = 0.0
    short_term_max: float = 0.0

    @property
    def has_peak_maxima(self) -> bool:
        return self.momentary_max != 0.0 or self.short_term_max != 0.0

    def to_dict(self) -> Dict[str, float]:
        return {
            "integratedLoudness": self.integrated_loudness,
            "loudnessRange": self.loudness_range,
            "truePeakMax": self.true_peak_max,
            "momentaryMax": self.momentary_max,
            "shortTermMax": self.short_term_max,
        }


@dataclass
class AudioStreamDescriptor:
    index: int
    codec_name: str
    channels: int = 0
    sample_rate: str = "unknown"
    duration: str = "unknown"
    language: Optional[str] = None
    title: Optional[str] = None

    def describe(self) -> str:
        text = f"{self.codec_name}, {self.channels}ch, {self.sample_rate}Hz"
        if self.language:
            text += f" ({self.language})"
        if self.title:
            text += f" - {self.title}"
        return text

    def to_dict(self) -> Dict[str, Any]:
        return {
            "index": self.index,
            "codecName": self.codec_name,
            "channels": self.channels,
            "sampleRate": self.sample_rate,
            "duration": self.duration,
            "language": self.language,
            "title": self.title,
        }


@dataclass
class ContainerInfo:
    format: str
    duration: str
    size: str
    bitrate: str
    has_video: bool
    has_audio: bool
    audio_stream_count: int
    video_stream_count: int


@dataclass(frozen=True)
class ProbeBudget:
    """ffprobe analysis limits; values are passed through as strings."""

    analyzeduration: Optional[str] = None
    probesize: Optional[str] = None
    timeout: Optional[float] = None

    @classmethod
    def remote(cls) -> "ProbeBudget":
        # 5 seconds / 5 MiB: enough to find every audio stream over HTTP.
        return cls(analyzeduration="5000000", probesize="5242880")


class LoudnessQCError(RuntimeError):
    """Base class for every error raised while analysing a source."""


class InputNotFound(LoudnessQCError, FileNotFoundError):
    """Raised when a local input path does not exist."""


class InvalidLocator(LoudnessQCError, ValueError):
    """Raised when an S3 locator cannot be split into bucket and key."""


class ToolUnavailable(LoudnessQCError):
    """Raised when ffmpeg/ffprobe cannot be spawned."""

    def __init__(self, tool: str, reason: object) -> None:
        super().__init__(f"Failed to start {tool}: {reason}")
        self.tool = tool


class MeasurementFailed(LoudnessQCError):
    """Raised when a measurement process exits with a non-zero status."""

    def __init__(self, tool: str, returncode: Optional[int], output: str) -> None:
        if returncode is None:
            message = f"{tool} did not finish in time"
        else:
            message = f"{tool} failed with code {returncode}"
        if output.strip():
            message = f"{message}: {output.strip()}"
        super().__init__(message)
        self.tool = tool
        self.returncode = returncode
        self.output = output


class MalformedToolOutput(LoudnessQCError):
    """Raised when ffprobe JSON cannot be decoded into stream records."""

    def __init__(self, message: str, *, raw_output: Optional[str] = None) -> None:
        super().__init__(message)
        self.raw_output = raw_output


class NoAudioStreams(LoudnessQCError):
    """Raised when the container carries no audio stream to measure."""


class TransferFailed(LoudnessQCError):
    """Raised when a remote object cannot be fetched or stored."""

from __future__ import annotations

import enum
from dataclasses import dataclass
from types import MappingProxyType
from typing import Mapping, Optional


class Confidence(str, enum.Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


@dataclass(frozen=True)
class StreamingVerdict:
    can_stream: bool
    format: str
    confidence: Confidence
    reason: Optional[str] = None


@dataclass(frozen=True)
class _FormatProfile:
    can_stream: bool
    confidence: Confidence
    reason: Optional[str] = None


STREAMING_FORMATS: Mapping[str, _FormatProfile] = MappingProxyType(
    {
        # Seekable from the head of the file.
        "mp4": _FormatProfile(True, Confidence.HIGH),
        "mov": _FormatProfile(True, Confidence.HIGH),
        "m4v": _FormatProfile(True, Confidence.HIGH),
        "ts": _FormatProfile(True, Confidence.HIGH),
        "m2ts": _FormatProfile(True, Confidence.HIGH),
        "webm": _FormatProfile(True, Confidence.HIGH),
        "mxf": _FormatProfile(True, Confidence.MEDIUM),
        "mkv": _FormatProfile(True, Confidence.MEDIUM),
        "3gp": _FormatProfile(True, Confidence.MEDIUM),
        "avi": _FormatProfile(False, Confidence.LOW, "index usually at end"),
        "wmv": _FormatProfile(False, Confidence.LOW, "poor streaming support"),
        "flv": _FormatProfile(False, Confidence.LOW, "metadata at end"),
        "rm": _FormatProfile(False, Confidence.LOW, "proprietary format"),
        "rmvb": _FormatProfile(False, Confidence.LOW, "variable bitrate issues"),
    }
)

UNKNOWN_FORMAT_REASON = "unknown format"


def extract_extension(locator: str) -> str:
    """Return the extension of a path or URL, ignoring any query string."""
    path = locator.split("?", 1)[0]
    parts = path.rsplit("/", 1)[-1].split(".")
    return parts[-1] if len(parts) > 1 else ""


def classify(locator: str) -> StreamingVerdict:
    """Decide from the extension alone whether a remote source can be streamed."""
    extension = extract_extension(locator)
    profile = STREAMING_FORMATS.get(extension.lower())
    if profile is None:
        return StreamingVerdict(
            can_stream=False,
            format=extension,
            confidence=Confidence.LOW,
            reason=UNKNOWN_FORMAT_REASON,
        )
    return StreamingVerdict(
        can_stream=profile.can_stream,
        format=extension,
        confidence=profile.confidence,
        reason=profile.reason,
    )

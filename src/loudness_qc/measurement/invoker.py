from __future__ import annotations

import json
import logging
import subprocess
from pathlib import Path
from typing import Any, Dict, List, Optional

from ..ffmpeg_utils import run_tool
from ..sources import is_url
from .base import (
    AudioStreamDescriptor,
    InputNotFound,
    LoudnessMetrics,
    MalformedToolOutput,
    MeasurementFailed,
    ProbeBudget,
)
from .parser import parse_loudness_output

logger = logging.getLogger(__name__)

# Analysis-pass parameters only; compliance limits are applied afterwards.
LOUDNORM_FILTER = "loudnorm=I=-23:TP=-1:LRA=7:print_format=summary"


class MeasurementInvoker:
    """Run ffprobe/ffmpeg against a local path or a remote URL."""

    def __init__(
        self,
        ffmpeg: str = "ffmpeg",
        ffprobe: str = "ffprobe",
        loudness_filter: str = LOUDNORM_FILTER,
    ) -> None:
        self.ffmpeg = ffmpeg
        self.ffprobe = ffprobe
        self.loudness_filter = loudness_filter

    def list_audio_streams(
        self,
        source: str,
        budget: Optional[ProbeBudget] = None,
    ) -> List[AudioStreamDescriptor]:
        self._ensure_exists(source)
        budget = budget or ProbeBudget()
        cmd = [
            self.ffprobe,
            "-v",
            "quiet",
            "-print_format",
            "json",
            "-show_streams",
            "-select_streams",
            "a",
        ]
        if budget.analyzeduration:
            cmd += ["-analyzeduration", budget.analyzeduration]
        if budget.probesize:
            cmd += ["-probesize", budget.probesize]
        cmd.append(source)

        try:
            result = run_tool(cmd, timeout=budget.timeout)
        except subprocess.TimeoutExpired as exc:
            raise MeasurementFailed(self.ffprobe, None, "") from exc
        if result.returncode != 0:
            raise MeasurementFailed(self.ffprobe, result.returncode, result.stderr)
        return parse_stream_listing(result.stdout)

    def measure(
        self,
        source: str,
        audio_stream_index: Optional[int] = None,
    ) -> LoudnessMetrics:
        self._ensure_exists(source)
        cmd = [self.ffmpeg, "-hide_banner", "-i", source]
        if audio_stream_index is not None:
            cmd += ["-map", f"0:a:{audio_stream_index}"]
        cmd += ["-af", self.loudness_filter, "-f", "null", "-"]

        result = run_tool(cmd)
        if result.returncode != 0:
            raise MeasurementFailed(self.ffmpeg, result.returncode, result.stderr)
        metrics = parse_loudness_output(result.stderr)
        logger.debug("Parsed loudness metrics: %s", metrics)
        return metrics

    @staticmethod
    def _ensure_exists(source: str) -> None:
        if not is_url(source) and not Path(source).exists():
            raise InputNotFound(f"Input file does not exist: {source}")


def parse_stream_listing(output: str) -> List[AudioStreamDescriptor]:
    """Turn ``ffprobe -show_streams`` JSON into stream descriptors."""
    try:
        data = json.loads(output)
        streams = data.get("streams", [])
        return [_stream_from_record(record) for record in streams]
    except (ValueError, TypeError, AttributeError, KeyError) as exc:
        raise MalformedToolOutput(
            f"Failed to parse ffprobe output: {exc}", raw_output=output
        ) from exc


def _stream_from_record(record: Dict[str, Any]) -> AudioStreamDescriptor:
    tags = record.get("tags") or {}
    return AudioStreamDescriptor(
        index=int(record["index"]),
        codec_name=str(record.get("codec_name") or "unknown"),
        channels=int(record.get("channels") or 0),
        sample_rate=str(record.get("sample_rate") or "unknown"),
        duration=str(record.get("duration") or "unknown"),
        language=tags.get("language"),
        title=tags.get("title"),
    )

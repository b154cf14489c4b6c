from __future__ import annotations

import json
import logging
import subprocess
from typing import Any, Dict, List, Optional

from ..ffmpeg_utils import run_tool
from ..sources import basename
from .base import ContainerInfo, MalformedToolOutput, MeasurementFailed, ProbeBudget
from .classifier import extract_extension

logger = logging.getLogger(__name__)

VIDEO_CONTAINER_EXTENSIONS = frozenset(
    {
        "mp4",
        "mov",
        "avi",
        "mkv",
        "webm",
        "flv",
        "wmv",
        "m4v",
        "mxf",
        "ts",
        "m2ts",
        "vob",
        "3gp",
        "asf",
        "rm",
        "rmvb",
    }
)


def is_video_container(locator: str) -> bool:
    return extract_extension(locator).lower() in VIDEO_CONTAINER_EXTENSIONS


def get_container_info(
    source: str,
    ffprobe: str = "ffprobe",
    budget: Optional[ProbeBudget] = None,
) -> ContainerInfo:
    budget = budget or ProbeBudget()
    cmd = [
        ffprobe,
        "-v",
        "quiet",
        "-print_format",
        "json",
        "-show_format",
        "-show_streams",
    ]
    if budget.analyzeduration:
        cmd += ["-analyzeduration", budget.analyzeduration]
    if budget.probesize:
        cmd += ["-probesize", budget.probesize]
    cmd.append(source)

    try:
        result = run_tool(cmd, timeout=budget.timeout)
    except subprocess.TimeoutExpired as exc:
        raise MeasurementFailed(ffprobe, None, "") from exc
    if result.returncode != 0:
        raise MeasurementFailed(ffprobe, result.returncode, result.stderr)

    try:
        data = json.loads(result.stdout)
        fmt: Dict[str, Any] = data.get("format") or {}
        streams: List[Dict[str, Any]] = data.get("streams") or []
        codec_types = [stream.get("codec_type") for stream in streams]
        audio_count = codec_types.count("audio")
        video_count = codec_types.count("video")
        return ContainerInfo(
            format=str(fmt.get("format_name") or "unknown"),
            duration=str(fmt.get("duration") or "unknown"),
            size=str(fmt.get("size") or "unknown"),
            bitrate=str(fmt.get("bit_rate") or "unknown"),
            has_video=video_count > 0,
            has_audio=audio_count > 0,
            audio_stream_count=audio_count,
            video_stream_count=video_count,
        )
    except (ValueError, AttributeError, TypeError) as exc:
        raise MalformedToolOutput(
            f"Failed to parse ffprobe container output: {exc}",
            raw_output=result.stdout,
        ) from exc


def format_container_info(info: ContainerInfo, source: str) -> str:
    lines = [f"Container Information for: {basename(source)}", f"Format: {info.format}"]
    lines.append(f"Duration: {_format_number(info.duration, 1.0, '{:.2f}s')}")
    lines.append(f"Size: {_format_number(info.size, 1024 * 1024, '{:.2f} MB')}")
    lines.append(f"Bitrate: {_format_number(info.bitrate, 1000, '{:.0f} kbps')}")
    lines.append(f"Video Streams: {info.video_stream_count}")
    lines.append(f"Audio Streams: {info.audio_stream_count}")
    if not info.has_audio:
        lines.append("WARNING: No audio streams detected")
    return "\n".join(lines)


def _format_number(value: str, divisor: float, template: str) -> str:
    try:
        return template.format(float(value) / divisor)
    except ValueError:
        return "unknown"

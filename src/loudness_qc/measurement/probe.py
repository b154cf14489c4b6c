from __future__ import annotations

import logging
import subprocess

from ..ffmpeg_utils import run_tool
from .base import ToolUnavailable

logger = logging.getLogger(__name__)

PROBE_TIMEOUT_SECONDS = 10
PROBE_ANALYZE_DURATION = "1000000"  # 1 second, in microseconds
PROBE_SIZE = "1048576"  # 1 MiB


def probe_remote(url: str, ffprobe: str = "ffprobe") -> bool:
    """Check empirically that ffprobe can read a remote source.

    Passes when ffprobe exits cleanly and wrote something to stdout. Any
    failure, including a timeout or a missing binary, yields False.
    """
    cmd = [
        ffprobe,
        "-v",
        "quiet",
        "-print_format",
        "json",
        "-show_format",
        "-analyzeduration",
        PROBE_ANALYZE_DURATION,
        "-probesize",
        PROBE_SIZE,
        url,
    ]
    try:
        result = run_tool(cmd, timeout=PROBE_TIMEOUT_SECONDS)
    except subprocess.TimeoutExpired:
        logger.debug("Streaming probe timed out after %ss", PROBE_TIMEOUT_SECONDS)
        return False
    except (ToolUnavailable, ValueError) as exc:
        logger.debug("Streaming probe could not start: %s", exc)
        return False

    if result.returncode != 0:
        logger.debug("Streaming probe exited with %s", result.returncode)
        return False
    return bool(result.stdout)

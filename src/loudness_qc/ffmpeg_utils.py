from __future__ import annotations

import logging
import shlex
import subprocess
from typing import Optional, Sequence

from .measurement.base import ToolUnavailable

logger = logging.getLogger(__name__)


def format_command(cmd: Sequence[str]) -> str:
    return " ".join(shlex.quote(part) for part in cmd)


def run_tool(
    cmd: Sequence[str],
    timeout: Optional[float] = None,
) -> subprocess.CompletedProcess:
    """Run an ffmpeg/ffprobe command and return it once the process has exited.

    stdout and stderr are buffered in full. Spawn failures (missing binary,
    permissions) are raised as ToolUnavailable; ``subprocess.TimeoutExpired``
    propagates so the caller can decide what a timeout means.
    """
    logger.debug("Running %s: %s", cmd[0], format_command(cmd))
    try:
        return subprocess.run(
            list(cmd),
            stdout=subprocess.PIPE,
            stderr=subprocess.PIPE,
            text=True,
            errors="replace",
            check=False,
            timeout=timeout,
        )
    except OSError as exc:
        raise ToolUnavailable(cmd[0], exc) from exc

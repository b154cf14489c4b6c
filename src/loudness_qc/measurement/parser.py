from __future__ import annotations

import re
from typing import Dict, Pattern, Sequence, Tuple

from .base import LoudnessMetrics

_NUMBER = r"(-?\d+(?:\.\d*)?)"

LUFS_PATTERN = re.compile(_NUMBER + r"\s*LUFS")
LU_PATTERN = re.compile(_NUMBER + r"\s*LU")
DBTP_PATTERN = re.compile(_NUMBER + r"\s*dBTP")

# field -> (labels, value pattern). The first label set entry is the
# integrated-summary wording, the second the loudnorm filter wording.
FIELD_LABELS: Dict[str, Tuple[Sequence[str], Pattern[str]]] = {
    "integrated_loudness": (("Integrated loudness:", "Input Integrated:"), LUFS_PATTERN),
    "loudness_range": (("Loudness range:", "Input LRA:"), LU_PATTERN),
    "true_peak_max": (("True peak:", "Input True Peak:"), DBTP_PATTERN),
    "momentary_max": (("Momentary max:",), LUFS_PATTERN),
    "short_term_max": (("Short-term max:",), LUFS_PATTERN),
}


def parse_loudness_output(output: str) -> LoudnessMetrics:
    """Recover loudness metrics from ffmpeg diagnostic text.

    Either label vocabulary is accepted, lines may come in any order and the
    first value found for a field wins. Fields that never appear stay at 0.0.
    """
    values: Dict[str, float] = {}
    for line in output.splitlines():
        for field_name, (labels, pattern) in FIELD_LABELS.items():
            if field_name in values:
                continue
            if not any(label in line for label in labels):
                continue
            match = pattern.search(line)
            if match:
                values[field_name] = float(match.group(1))
    return LoudnessMetrics(**values)

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from .measurement.base import LoudnessMetrics


@dataclass(frozen=True)
class Standard:
    name: str
    integrated_min: float
    integrated_max: float
    integrated_target: float
    loudness_range_max: float
    true_peak_max: float


EBU_R128_BROADCAST = Standard(
    name="broadcast",
    integrated_min=-24.0,
    integrated_max=-22.0,
    integrated_target=-23.0,
    loudness_range_max=7.0,
    true_peak_max=-1.0,
)

EBU_R128_MUSIC = Standard(
    name="music",
    integrated_min=-18.0,
    integrated_max=-14.0,
    integrated_target=-16.0,
    loudness_range_max=20.0,
    true_peak_max=-1.0,
)

STANDARDS: Dict[str, Standard] = {
    EBU_R128_BROADCAST.name: EBU_R128_BROADCAST,
    EBU_R128_MUSIC.name: EBU_R128_MUSIC,
}


def get_standard(name: str) -> Standard:
    try:
        return STANDARDS[name.lower()]
    except KeyError:
        raise ValueError(
            f"Unknown standard '{name}'. Choose from: {', '.join(sorted(STANDARDS))}"
        ) from None


def _utc_timestamp() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def _fmt(value: float) -> str:
    return f"{value:g}"


@dataclass
class ComplianceResult:
    file: str
    is_compliant: bool
    metrics: LoudnessMetrics
    violations: List[str] = field(default_factory=list)
    timestamp: str = field(default_factory=_utc_timestamp)
    standard: str = EBU_R128_BROADCAST.name
    analysis_mode: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "file": self.file,
            "isCompliant": self.is_compliant,
            "metrics": self.metrics.to_dict(),
            "violations": list(self.violations),
            "timestamp": self.timestamp,
            "standard": self.standard,
            "analysisMode": self.analysis_mode,
        }

    def format_report(self) -> str:
        metrics = self.metrics
        status = "COMPLIANT" if self.is_compliant else "NON-COMPLIANT"
        lines = [
            f"EBU R128 Compliance Report for: {self.file}",
            f"Status: {status}",
            f"Standard: {self.standard}",
            f"Analysis Time: {self.timestamp}",
        ]
        if self.analysis_mode:
            lines.append(f"Analysis Mode: {self.analysis_mode}")
        lines += [
            "",
            "Measured Values:",
            f"  Integrated Loudness: {_fmt(metrics.integrated_loudness)} LUFS",
            f"  Loudness Range: {_fmt(metrics.loudness_range)} LU",
            f"  True Peak Max: {_fmt(metrics.true_peak_max)} dBTP",
            f"  Momentary Max: {_fmt(metrics.momentary_max)} LUFS",
            f"  Short-term Max: {_fmt(metrics.short_term_max)} LUFS",
        ]
        if not metrics.has_peak_maxima:
            lines.append("  (momentary and short-term maxima are not reported by this measurement mode)")
        if self.violations:
            lines.append("")
            lines.append("Violations:")
            for index, violation in enumerate(self.violations, start=1):
                lines.append(f"  {index}. {violation}")
        return "\n".join(lines) + "\n"


class ComplianceChecker:
    """Compare measured loudness against one of the EBU R128 threshold sets."""

    def __init__(self, standard: Standard = EBU_R128_BROADCAST) -> None:
        self.standard = standard

    def check(
        self,
        file: str,
        metrics: LoudnessMetrics,
        analysis_mode: Optional[str] = None,
    ) -> ComplianceResult:
        standard = self.standard
        violations: List[str] = []

        integrated = metrics.integrated_loudness
        if integrated < standard.integrated_min or integrated > standard.integrated_max:
            violations.append(
                f"Integrated loudness {_fmt(integrated)} LUFS is outside acceptable range "
                f"({_fmt(standard.integrated_min)} to {_fmt(standard.integrated_max)} LUFS)"
            )
        if metrics.loudness_range > standard.loudness_range_max:
            violations.append(
                f"Loudness range {_fmt(metrics.loudness_range)} LU exceeds maximum of "
                f"{_fmt(standard.loudness_range_max)} LU"
            )
        if metrics.true_peak_max > standard.true_peak_max:
            violations.append(
                f"True peak {_fmt(metrics.true_peak_max)} dBTP exceeds maximum of "
                f"{_fmt(standard.true_peak_max)} dBTP"
            )

        return ComplianceResult(
            file=file,
            is_compliant=not violations,
            metrics=metrics,
            violations=violations,
            standard=standard.name,
            analysis_mode=analysis_mode,
        )


def format_standard(standard: Standard) -> str:
    return "\n".join(
        [
            f"EBU R128 Standards for {standard.name.capitalize()} Content:",
            f"  Integrated Loudness: {_fmt(standard.integrated_min)} to "
            f"{_fmt(standard.integrated_max)} LUFS (target: {_fmt(standard.integrated_target)} LUFS)",
            f"  Loudness Range: max {_fmt(standard.loudness_range_max)} LU",
            f"  True Peak: max {_fmt(standard.true_peak_max)} dBTP",
        ]
    )

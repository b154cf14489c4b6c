from __future__ import annotations

import functools
import json
import logging
import time
from contextlib import contextmanager
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Iterator, List, Optional

from .compliance import EBU_R128_BROADCAST, ComplianceChecker, ComplianceResult, Standard
from .config import AppConfig, StreamingPolicy
from .measurement.base import (
    AudioStreamDescriptor,
    InputNotFound,
    LoudnessMetrics,
    LoudnessQCError,
    NoAudioStreams,
    ProbeBudget,
)
from .measurement.classifier import classify
from .measurement.container import format_container_info, get_container_info, is_video_container
from .measurement.invoker import MeasurementInvoker
from .measurement.probe import probe_remote
from .sources import SourceKind, basename, classify_locator
from .transfer import S3Transfer

logger = logging.getLogger(__name__)

MODE_LOCAL = "local"
MODE_STREAM = "stream"
MODE_DOWNLOAD = "download"


@dataclass
class MeasurementOutcome:
    metrics: LoudnessMetrics
    mode: str
    streams: List[AudioStreamDescriptor] = field(default_factory=list)


@dataclass
class ReportUpload:
    bucket: str
    key: Optional[str] = None


class LoudnessAnalyzer:
    """Resolve a source locator, measure it and evaluate compliance.

    Remote sources are streamed straight into ffmpeg when the streaming policy
    allows it. Any failure while streaming falls back to downloading a
    temporary copy into the staging directory, which is removed again before
    the call returns, whatever the outcome.
    """

    def __init__(
        self,
        config: AppConfig,
        *,
        invoker: Optional[MeasurementInvoker] = None,
        transfer: Optional[S3Transfer] = None,
        probe: Optional[Callable[[str], bool]] = None,
    ) -> None:
        self.config = config
        self.invoker = invoker or MeasurementInvoker(ffmpeg=config.ffmpeg, ffprobe=config.ffprobe)
        self._transfer = transfer
        self.probe = probe or functools.partial(probe_remote, ffprobe=config.ffprobe)

    @property
    def transfer(self) -> S3Transfer:
        if self._transfer is None:
            self._transfer = S3Transfer(self.config.s3)
        return self._transfer

    # ------------------------------------------------------------------ public API

    def analyze(
        self,
        locator: str,
        *,
        standard: Standard = EBU_R128_BROADCAST,
        audio_stream_index: Optional[int] = None,
        inspect_streams: bool = False,
        output_file: Optional[Path] = None,
        upload: Optional[ReportUpload] = None,
    ) -> ComplianceResult:
        outcome = self.measure(
            locator,
            audio_stream_index=audio_stream_index,
            inspect_streams=inspect_streams,
        )
        logger.info("Analysis complete (%s). Checking compliance...", outcome.mode)
        result = ComplianceChecker(standard).check(
            locator, outcome.metrics, analysis_mode=outcome.mode
        )

        if output_file is not None:
            logger.info("Writing report to: %s", output_file)
            output_file.write_text(json.dumps(result.to_dict(), indent=2))
        if upload is not None:
            logger.info("Uploading report to S3 bucket: %s", upload.bucket)
            url = self.transfer.upload_report(result, upload.bucket, upload.key)
            logger.info("Report uploaded to: %s", url)
        return result

    def measure(
        self,
        locator: str,
        *,
        audio_stream_index: Optional[int] = None,
        inspect_streams: bool = False,
    ) -> MeasurementOutcome:
        if classify_locator(locator) is SourceKind.LOCAL:
            self._require_local(locator)
            return self._measure_at(locator, MODE_LOCAL, audio_stream_index, inspect_streams)

        if self.should_stream(locator):
            try:
                url = self.transfer.presign(locator)
                return self._measure_at(
                    url,
                    MODE_STREAM,
                    audio_stream_index,
                    inspect_streams,
                    budget=ProbeBudget.remote(),
                    label=locator,
                )
            except LoudnessQCError as exc:
                logger.warning(
                    "Streaming analysis of %s failed (%s); falling back to download.",
                    basename(locator),
                    exc,
                )

        with self.staged_copy(locator) as local_path:
            return self._measure_at(
                str(local_path),
                MODE_DOWNLOAD,
                audio_stream_index,
                inspect_streams,
                label=locator,
            )

    def list_streams(self, locator: str) -> List[AudioStreamDescriptor]:
        if classify_locator(locator) is SourceKind.LOCAL:
            self._require_local(locator)
            return self.invoker.list_audio_streams(locator)

        if self.should_stream(locator):
            try:
                url = self.transfer.presign(locator)
                return self.invoker.list_audio_streams(url, ProbeBudget.remote())
            except LoudnessQCError as exc:
                logger.warning(
                    "Remote stream listing of %s failed (%s); falling back to download.",
                    basename(locator),
                    exc,
                )
        with self.staged_copy(locator) as local_path:
            return self.invoker.list_audio_streams(str(local_path))

    def should_stream(self, locator: str) -> bool:
        policy = self.config.streaming_policy
        if policy is StreamingPolicy.DOWNLOAD:
            return False

        verdict = classify(locator)
        logger.debug(
            "Streaming verdict for %s: can_stream=%s confidence=%s reason=%s",
            basename(locator),
            verdict.can_stream,
            verdict.confidence.value,
            verdict.reason,
        )
        if policy is StreamingPolicy.AUTO:
            return verdict.can_stream

        try:
            url = self.transfer.presign(locator)
        except LoudnessQCError as exc:
            logger.warning("Cannot build a streaming URL for %s: %s", basename(locator), exc)
            return False
        confirmed = self.probe(url)
        logger.info(
            "Streaming probe for %s %s",
            basename(locator),
            "succeeded" if confirmed else "failed",
        )
        return confirmed

    # ------------------------------------------------------------------ staging

    def staging_path(self, locator: str) -> Path:
        name = basename(locator) or "downloaded-file"
        return self.config.staging_dir / f"audio-qc-{int(time.time() * 1000)}-{name}"

    @contextmanager
    def staged_copy(self, locator: str) -> Iterator[Path]:
        """Download ``locator`` and delete the copy when the block exits."""
        destination = self.staging_path(locator)
        logger.info("Downloading %s for local analysis", basename(locator))
        self.transfer.download(locator, destination)
        try:
            yield destination
        finally:
            self._discard(destination)

    @staticmethod
    def _discard(path: Path) -> None:
        try:
            path.unlink()
            logger.debug("Cleaned up temporary file %s", path)
        except FileNotFoundError:
            pass
        except OSError as exc:
            logger.warning("Could not clean up temporary file %s: %s", path, exc)

    # ------------------------------------------------------------------ helpers

    @staticmethod
    def _require_local(locator: str) -> None:
        if not Path(locator).exists():
            raise InputNotFound(f"Input file does not exist: {locator}")

    def _measure_at(
        self,
        source: str,
        mode: str,
        audio_stream_index: Optional[int],
        inspect_streams: bool,
        budget: Optional[ProbeBudget] = None,
        label: Optional[str] = None,
    ) -> MeasurementOutcome:
        label = label or source
        streams: List[AudioStreamDescriptor] = []
        if inspect_streams:
            streams = self._inspect(source, label, budget)
            logger.info(
                "Using audio stream %d for analysis",
                audio_stream_index if audio_stream_index is not None else 0,
            )
        logger.info("Analyzing %s (%s)", basename(label), mode)
        metrics = self.invoker.measure(source, audio_stream_index)
        return MeasurementOutcome(metrics=metrics, mode=mode, streams=streams)

    def _inspect(
        self,
        source: str,
        label: str,
        budget: Optional[ProbeBudget],
    ) -> List[AudioStreamDescriptor]:
        if is_video_container(label):
            info = get_container_info(source, ffprobe=self.invoker.ffprobe, budget=budget)
            logger.info("%s", format_container_info(info, label))
            if not info.has_audio:
                raise NoAudioStreams(f"No audio streams found in video container: {label}")

        streams = self.invoker.list_audio_streams(source, budget)
        if not streams:
            raise NoAudioStreams(f"No audio streams found in file: {label}")
        logger.info("Found %d audio stream(s):", len(streams))
        for position, stream in enumerate(streams):
            logger.info("  Stream %d: %s", position, stream.describe())
        return streams

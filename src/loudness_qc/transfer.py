from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from pathlib import Path, PurePosixPath
from typing import TYPE_CHECKING, Any, Optional

import boto3
import requests
from boto3.exceptions import Boto3Error
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError

from .config import DEFAULT_REGION, S3Settings
from .measurement.base import TransferFailed
from .sources import SourceKind, basename, classify_locator, parse_s3_url

if TYPE_CHECKING:
    from .compliance import ComplianceResult

logger = logging.getLogger(__name__)

DOWNLOAD_CHUNK_SIZE = 1024 * 1024
HTTP_TIMEOUT = (10, 300)  # connect, read
PRESIGN_EXPIRY_SECONDS = 3600
REPORT_PREFIX = "audio-qc-reports"


class S3Transfer:
    """Fetch remote sources to disk and store reports in S3.

    ``s3://`` and plain amazonaws.com URLs go through boto3 with the resolved
    credentials; presigned and generic HTTP(S) URLs are fetched with requests.
    """

    def __init__(
        self,
        settings: Optional[S3Settings] = None,
        *,
        client: Any = None,
        http: Optional[requests.Session] = None,
    ) -> None:
        self.settings = settings or S3Settings.from_env()
        self._client = client
        self.http = http or requests.Session()

    @property
    def client(self) -> Any:
        if self._client is None:
            self._client = self._build_client()
        return self._client

    def _build_client(self) -> Any:
        settings = self.settings
        kwargs: dict[str, Any] = {"region_name": settings.region or DEFAULT_REGION}
        if settings.endpoint:
            kwargs["endpoint_url"] = settings.endpoint
        if settings.access_key_id and settings.secret_access_key:
            kwargs["aws_access_key_id"] = settings.access_key_id
            kwargs["aws_secret_access_key"] = settings.secret_access_key
            if settings.session_token:
                kwargs["aws_session_token"] = settings.session_token
        # Custom endpoints (MinIO and friends) only resolve path-style buckets.
        if settings.force_path_style or settings.endpoint:
            kwargs["config"] = Config(s3={"addressing_style": "path"})
        return boto3.client("s3", **kwargs)

    # ------------------------------------------------------------------ download

    def download(self, locator: str, destination: Path) -> Path:
        kind = classify_locator(locator)
        if kind is SourceKind.LOCAL:
            raise TransferFailed(f"Not a remote locator: {locator}")

        destination.parent.mkdir(parents=True, exist_ok=True)
        try:
            if kind is SourceKind.S3:
                location = parse_s3_url(locator)
                logger.debug(
                    "Downloading s3://%s/%s to %s", location.bucket, location.key, destination
                )
                self.client.download_file(location.bucket, location.key, str(destination))
            else:
                self._download_http(locator, destination)
        except (Boto3Error, BotoCoreError, ClientError, requests.RequestException, OSError) as exc:
            _remove_partial(destination)
            raise TransferFailed(f"Failed to download {locator}: {exc}") from exc
        logger.info("Downloaded %s to %s", basename(locator), destination)
        return destination

    def _download_http(self, url: str, destination: Path) -> None:
        logger.debug("Downloading %s to %s", url.split("?", 1)[0], destination)
        with self.http.get(url, stream=True, timeout=HTTP_TIMEOUT) as response:
            response.raise_for_status()
            with destination.open("wb") as handle:
                for chunk in response.iter_content(chunk_size=DOWNLOAD_CHUNK_SIZE):
                    if chunk:
                        handle.write(chunk)

    def presign(self, locator: str, expires_in: int = PRESIGN_EXPIRY_SECONDS) -> str:
        """Return a URL ffmpeg can open directly."""
        kind = classify_locator(locator)
        if kind in (SourceKind.PRESIGNED, SourceKind.HTTP):
            return locator
        if kind is not SourceKind.S3:
            raise TransferFailed(f"Not a remote locator: {locator}")
        location = parse_s3_url(locator)
        try:
            return self.client.generate_presigned_url(
                "get_object",
                Params={"Bucket": location.bucket, "Key": location.key},
                ExpiresIn=expires_in,
            )
        except (Boto3Error, BotoCoreError, ClientError) as exc:
            raise TransferFailed(f"Failed to presign {locator}: {exc}") from exc

    # ------------------------------------------------------------------ upload

    def upload_report(
        self,
        result: "ComplianceResult",
        bucket: str,
        key: Optional[str] = None,
    ) -> str:
        key = report_key(result.file, key)
        body = json.dumps(result.to_dict(), indent=2).encode("utf-8")
        try:
            self.client.put_object(
                Bucket=bucket,
                Key=key,
                Body=body,
                ContentType="application/json",
                Metadata={
                    "original-file": basename(result.file),
                    "compliance-status": "compliant" if result.is_compliant else "non-compliant",
                    "analysis-timestamp": result.timestamp,
                },
            )
        except (Boto3Error, BotoCoreError, ClientError) as exc:
            raise TransferFailed(f"Failed to upload report to S3: {exc}") from exc

        endpoint = self.settings.endpoint
        if endpoint and "amazonaws.com" not in endpoint:
            return f"{endpoint.rstrip('/')}/{bucket}/{key}"
        return f"s3://{bucket}/{key}"


def report_key(original_file: str, custom_key: Optional[str] = None) -> str:
    if custom_key:
        return custom_key if custom_key.endswith(".json") else f"{custom_key}.json"
    stem = PurePosixPath(basename(original_file)).stem or "report"
    timestamp = datetime.now(timezone.utc).strftime("%Y-%m-%dT%H-%M-%S-%f")[:-3] + "Z"
    return f"{REPORT_PREFIX}/{stem}-{timestamp}.json"


def _remove_partial(path: Path) -> None:
    try:
        path.unlink()
    except FileNotFoundError:
        pass
    except OSError as exc:
        logger.warning("Could not remove partial download %s: %s", path, exc)

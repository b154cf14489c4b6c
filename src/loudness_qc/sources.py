from __future__ import annotations

import enum
import re
from dataclasses import dataclass
from pathlib import PurePosixPath
from urllib.parse import parse_qs, unquote, urlparse

from .measurement.base import InvalidLocator

S3_URL_PATTERNS = (
    re.compile(r"^s3://", re.IGNORECASE),
    re.compile(r"^https?://.*\.s3[.-].*\.amazonaws\.com", re.IGNORECASE),
    re.compile(r"^https?://s3[.-].*\.amazonaws\.com", re.IGNORECASE),
)
PRESIGNED_QUERY_KEYS = ("X-Amz-Signature", "AWSAccessKeyId")


class SourceKind(str, enum.Enum):
    LOCAL = "local"
    S3 = "s3"
    PRESIGNED = "presigned"
    HTTP = "http"


@dataclass(frozen=True)
class S3Location:
    bucket: str
    key: str
    is_presigned: bool = False


def is_url(locator: str) -> bool:
    return bool(re.match(r"^(s3|https?)://", locator, re.IGNORECASE))


def is_s3_url(locator: str) -> bool:
    return any(pattern.match(locator) for pattern in S3_URL_PATTERNS)


def is_presigned(locator: str) -> bool:
    query = parse_qs(urlparse(locator).query)
    return any(key in query for key in PRESIGNED_QUERY_KEYS)


def classify_locator(locator: str) -> SourceKind:
    if not is_url(locator):
        return SourceKind.LOCAL
    if locator.lower().startswith("s3://"):
        return SourceKind.S3
    if is_presigned(locator):
        return SourceKind.PRESIGNED
    if is_s3_url(locator):
        return SourceKind.S3
    return SourceKind.HTTP


def parse_s3_url(locator: str) -> S3Location:
    """Split an ``s3://`` or amazonaws.com URL into bucket and key."""
    if locator.lower().startswith("s3://"):
        match = re.match(r"^s3://([^/]+)/(.+)$", locator, re.IGNORECASE)
        if not match:
            raise InvalidLocator(f"Invalid S3 URL format: {locator}")
        return S3Location(bucket=match.group(1), key=match.group(2))

    parsed = urlparse(locator)
    hostname = parsed.hostname or ""
    path = unquote(parsed.path.lstrip("/"))
    if ".s3." in hostname or ".s3-" in hostname:
        # virtual-hosted style: https://bucket.s3.region.amazonaws.com/key
        bucket = hostname.split(".", 1)[0]
        key = path
    elif hostname.startswith("s3.") or hostname.startswith("s3-"):
        # path style: https://s3.region.amazonaws.com/bucket/key
        bucket, _, key = path.partition("/")
    else:
        raise InvalidLocator(f"Unsupported S3 URL format: {locator}")

    if not bucket or not key:
        raise InvalidLocator(f"Failed to parse S3 URL: {locator}")
    return S3Location(bucket=bucket, key=key, is_presigned=is_presigned(locator))


def basename(locator: str) -> str:
    """Final path component of a path or URL, without any query string."""
    if is_url(locator):
        name = PurePosixPath(unquote(urlparse(locator).path)).name
    else:
        name = PurePosixPath(locator.replace("\\", "/")).name
    return name

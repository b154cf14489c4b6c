from __future__ import annotations

import enum
import os
import tempfile
from dataclasses import dataclass, field
from pathlib import Path
from typing import Mapping, Optional

DEFAULT_REGION = "us-east-1"


class StreamingPolicy(str, enum.Enum):
    DOWNLOAD = "download"  # always fetch a local copy first
    AUTO = "auto"  # trust the extension classifier
    VERIFY = "verify"  # stream only when the remote probe succeeds


def _first(*values: Optional[str]) -> Optional[str]:
    for value in values:
        if value:
            return value
    return None


@dataclass
class S3Settings:
    region: Optional[str] = None
    endpoint: Optional[str] = None
    access_key_id: Optional[str] = None
    secret_access_key: Optional[str] = None
    session_token: Optional[str] = None
    force_path_style: bool = False

    @classmethod
    def from_env(
        cls,
        env: Optional[Mapping[str, str]] = None,
        *,
        region: Optional[str] = None,
        endpoint: Optional[str] = None,
        access_key_id: Optional[str] = None,
        secret_access_key: Optional[str] = None,
        session_token: Optional[str] = None,
        force_path_style: Optional[bool] = None,
    ) -> "S3Settings":
        """Explicit values win, then S3_* variables, then the AWS_* ones."""
        env = os.environ if env is None else env
        if force_path_style is None:
            force_path_style = env.get("S3_FORCE_PATH_STYLE") == "true"
        return cls(
            region=_first(
                region,
                env.get("S3_REGION"),
                env.get("AWS_DEFAULT_REGION"),
                env.get("AWS_REGION"),
            ),
            endpoint=_first(endpoint, env.get("S3_ENDPOINT")),
            access_key_id=_first(
                access_key_id, env.get("S3_ACCESS_KEY_ID"), env.get("AWS_ACCESS_KEY_ID")
            ),
            secret_access_key=_first(
                secret_access_key,
                env.get("S3_SECRET_ACCESS_KEY"),
                env.get("AWS_SECRET_ACCESS_KEY"),
            ),
            session_token=_first(
                session_token, env.get("S3_SESSION_TOKEN"), env.get("AWS_SESSION_TOKEN")
            ),
            force_path_style=force_path_style,
        )


@dataclass
class AppConfig:
    staging_dir: Path
    s3: S3Settings = field(default_factory=S3Settings)
    streaming_policy: StreamingPolicy = StreamingPolicy.AUTO
    ffmpeg: str = "ffmpeg"
    ffprobe: str = "ffprobe"

    @classmethod
    def from_env(
        cls,
        env: Optional[Mapping[str, str]] = None,
        *,
        staging_dir: Optional[Path] = None,
        streaming_policy: StreamingPolicy = StreamingPolicy.AUTO,
        s3: Optional[S3Settings] = None,
    ) -> "AppConfig":
        env = os.environ if env is None else env
        if staging_dir is None:
            staging_dir = Path(env.get("STAGING_DIR") or tempfile.gettempdir())
        return cls(
            staging_dir=staging_dir,
            s3=s3 or S3Settings.from_env(env),
            streaming_policy=streaming_policy,
            ffmpeg=env.get("FFMPEG_BINARY") or "ffmpeg",
            ffprobe=env.get("FFPROBE_BINARY") or "ffprobe",
        )

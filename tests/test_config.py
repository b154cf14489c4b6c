from __future__ import annotations

from pathlib import Path

from loudness_qc.config import AppConfig, S3Settings, StreamingPolicy


def test_s3_prefixed_variables_win_over_aws_ones() -> None:
    env = {
        "S3_REGION": "eu-central-1",
        "AWS_DEFAULT_REGION": "us-west-2",
        "AWS_REGION": "ap-south-1",
        "S3_ACCESS_KEY_ID": "s3-key",
        "AWS_ACCESS_KEY_ID": "aws-key",
        "AWS_SECRET_ACCESS_KEY": "aws-secret",
        "AWS_SESSION_TOKEN": "aws-token",
        "S3_ENDPOINT": "https://minio.local:9000",
        "S3_FORCE_PATH_STYLE": "true",
    }
    settings = S3Settings.from_env(env)
    assert settings.region == "eu-central-1"
    assert settings.access_key_id == "s3-key"
    assert settings.secret_access_key == "aws-secret"
    assert settings.session_token == "aws-token"
    assert settings.endpoint == "https://minio.local:9000"
    assert settings.force_path_style is True


def test_explicit_values_win_over_environment() -> None:
    env = {"S3_REGION": "eu-central-1", "S3_FORCE_PATH_STYLE": "true"}
    settings = S3Settings.from_env(env, region="us-east-2", force_path_style=False)
    assert settings.region == "us-east-2"
    assert settings.force_path_style is False


def test_region_falls_back_through_aws_variables() -> None:
    assert S3Settings.from_env({"AWS_REGION": "ap-south-1"}).region == "ap-south-1"
    assert S3Settings.from_env({}).region is None


def test_app_config_staging_dir(tmp_path: Path) -> None:
    config = AppConfig.from_env({"STAGING_DIR": str(tmp_path)})
    assert config.staging_dir == tmp_path
    assert config.streaming_policy is StreamingPolicy.AUTO
    assert config.ffmpeg == "ffmpeg"

    override = AppConfig.from_env({}, staging_dir=tmp_path / "other", streaming_policy=StreamingPolicy.VERIFY)
    assert override.staging_dir == tmp_path / "other"
    assert override.streaming_policy is StreamingPolicy.VERIFY

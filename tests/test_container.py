from __future__ import annotations

import json

import pytest

from loudness_qc.measurement.base import MalformedToolOutput, MeasurementFailed, ProbeBudget
from loudness_qc.measurement.container import (
    format_container_info,
    get_container_info,
    is_video_container,
)


def test_is_video_container() -> None:
    assert is_video_container("show.MXF")
    assert is_video_container("https://x/y/show.vob?sig=1")
    assert not is_video_container("song.wav")
    assert not is_video_container("song.flac")


def test_get_container_info_counts_streams(fake_run) -> None:
    payload = {
        "format": {"format_name": "mov,mp4,m4a,3gp,3g2,mj2", "duration": "12.5", "size": "2097152", "bit_rate": "1342177"},
        "streams": [{"codec_type": "video"}, {"codec_type": "audio"}, {"codec_type": "audio"}],
    }
    fake_run.respond(0, stdout=json.dumps(payload))
    info = get_container_info("clip.mp4")

    assert info.has_video and info.has_audio
    assert info.audio_stream_count == 2
    assert info.video_stream_count == 1
    assert info.duration == "12.5"
    assert "-show_format" in fake_run.calls[0] and "-show_streams" in fake_run.calls[0]

    text = format_container_info(info, "s3://bucket/clip.mp4")
    assert "Container Information for: clip.mp4" in text
    assert "Duration: 12.50s" in text
    assert "Size: 2.00 MB" in text
    assert "Bitrate: 1342 kbps" in text
    assert "WARNING" not in text


def test_get_container_info_defaults_and_no_audio(fake_run) -> None:
    fake_run.respond(0, stdout=json.dumps({"format": {}, "streams": [{"codec_type": "video"}]}))
    info = get_container_info("silent.mp4")
    assert info.format == "unknown"
    assert info.has_audio is False
    assert "No audio streams detected" in format_container_info(info, "silent.mp4")
    assert "Duration: unknown" in format_container_info(info, "silent.mp4")


def test_get_container_info_errors(fake_run) -> None:
    fake_run.respond(1, stderr="moov atom not found")
    with pytest.raises(MeasurementFailed):
        get_container_info("broken.mp4")


def test_get_container_info_malformed(fake_run) -> None:
    fake_run.respond(0, stdout="{truncated")
    with pytest.raises(MalformedToolOutput):
        get_container_info("broken.mp4")


def test_get_container_info_applies_probe_budget(fake_run) -> None:
    fake_run.respond(0, stdout=json.dumps({"format": {}, "streams": [{"codec_type": "audio"}]}))
    get_container_info("https://cdn.example.com/clip.mp4", budget=ProbeBudget.remote())

    cmd = fake_run.calls[0]
    assert cmd[cmd.index("-analyzeduration") + 1] == "5000000"
    assert cmd[cmd.index("-probesize") + 1] == "5242880"
    assert cmd[-1] == "https://cdn.example.com/clip.mp4"


@pytest.mark.parametrize("payload", [{"format": "mp4"}, {"streams": ["audio"]}, ["format"]])
def test_get_container_info_unexpected_shapes(fake_run, payload) -> None:
    fake_run.respond(0, stdout=json.dumps(payload))
    with pytest.raises(MalformedToolOutput):
        get_container_info("odd.mp4")

from __future__ import annotations

import subprocess

from loudness_qc.measurement.probe import probe_remote

URL = "https://media.example.com/clip.mp4"


def test_probe_succeeds_with_clean_exit_and_output(fake_run) -> None:
    fake_run.respond(0, stdout='{"format": {}}')
    assert probe_remote(URL) is True

    cmd = fake_run.calls[0]
    assert cmd[0] == "ffprobe"
    assert cmd[-1] == URL
    assert cmd[cmd.index("-analyzeduration") + 1] == "1000000"
    assert cmd[cmd.index("-probesize") + 1] == "1048576"
    assert cmd[cmd.index("-print_format") + 1] == "json"
    assert "-show_format" in cmd
    assert fake_run.kwargs[0]["timeout"] == 10


def test_probe_requires_stdout(fake_run) -> None:
    fake_run.respond(0, stdout="")
    assert probe_remote(URL) is False


def test_probe_fails_on_non_zero_exit(fake_run) -> None:
    fake_run.respond(1, stdout='{"format": {}}', stderr="Server returned 403 Forbidden")
    assert probe_remote(URL) is False


def test_probe_fails_on_timeout(fake_run) -> None:
    fake_run.respond(raises=subprocess.TimeoutExpired(["ffprobe"], 10))
    assert probe_remote(URL) is False


def test_probe_fails_when_binary_missing(fake_run) -> None:
    fake_run.respond(raises=FileNotFoundError(2, "No such file or directory"))
    assert probe_remote(URL, ffprobe="/opt/missing/ffprobe") is False
    assert fake_run.calls[0][0] == "/opt/missing/ffprobe"

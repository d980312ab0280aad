"""Tests for the command-line entry point."""

import pytest

from fareradar.main import build_sender, cli
from fareradar.notifier import ConsoleSender, EmailSender


def test_build_sender_dry_run():
    assert isinstance(build_sender(dry_run=True), ConsoleSender)


def test_build_sender_requires_api_key(monkeypatch):
    monkeypatch.delenv("RESEND_API_KEY", raising=False)
    with pytest.raises(ValueError):
        build_sender(dry_run=False)


def test_build_sender_from_env(monkeypatch):
    monkeypatch.setenv("RESEND_API_KEY", "re_test")
    monkeypatch.setenv("ALERT_FROM_EMAIL", "deals@example.com")
    sender = build_sender(dry_run=False)
    assert isinstance(sender, EmailSender)
    assert sender.from_email == "deals@example.com"


def test_trips_command(capsys):
    assert cli(["trips", "friday", "sunday", "--months", "1", "--route", "ams-bcn"]) == 0
    out = capsys.readouterr().out
    assert "combinaciones" in out
    assert "https://www.kayak.com/flights/AMS-BCN/" in out


def test_trips_command_bad_weekday():
    assert cli(["trips", "friday", "someday"]) == 1


def test_missing_config_file(tmp_path):
    assert cli(["--config", str(tmp_path / "missing.json"), "run", "--dry-run"]) == 1

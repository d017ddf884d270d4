"""Tests for the ``soundbytes`` CLI."""
from unittest.mock import patch

from typer.testing import CliRunner

from soundbytes.auth.tokens import validate_access_code
from soundbytes.cli import ExitCode, cli

runner = CliRunner()


def test_track_key():
    result = runner.invoke(cli, ["track-key", "Daft  Punk", " One More Time "])
    assert result.exit_code == 0
    assert result.output.strip() == "daft punk::one more time::"


def test_track_key_with_clip():
    result = runner.invoke(cli, ["track-key", "A", "B", "--clip-url", "https://c.test/1.mp3"])
    assert result.output.strip() == "a::b::https://c.test/1.mp3"


def test_track_key_blank_artist():
    result = runner.invoke(cli, ["track-key", "  ", "B"])
    assert result.exit_code == ExitCode.USER_ERROR


def test_token_round_trips():
    result = runner.invoke(cli, ["token", "--user-id", "user-123", "--username", "alice", "--hours", "2"])
    assert result.exit_code == 0
    claims = validate_access_code(result.output.strip())
    assert claims["sub"] == "user-123"
    assert claims["username"] == "alice"


def test_token_without_secret():
    with patch("soundbytes.cli.settings") as mock_settings:
        mock_settings.access_token_secret = None
        result = runner.invoke(cli, ["token", "--user-id", "user-123"])
    assert result.exit_code == ExitCode.CONFIG_INVALID


def test_serve_runs_uvicorn():
    with patch("soundbytes.cli.uvicorn.run") as run:
        result = runner.invoke(cli, ["serve", "--port", "9999"])
    assert result.exit_code == 0
    args, kwargs = run.call_args
    assert args[0] == "soundbytes.main:app"
    assert kwargs["port"] == 9999

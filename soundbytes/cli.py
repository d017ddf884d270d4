"""SoundBytes CLI — Typer application root.

Entry point for the ``soundbytes`` console script:

- ``serve``      run the API under uvicorn
- ``token``      mint a bearer token for a user id (local testing)
- ``track-key``  print the identity key a track's attributes resolve to
"""
from __future__ import annotations

import enum
import logging

import typer
import uvicorn

from soundbytes.auth.tokens import AccessCodeError, generate_access_code
from soundbytes.config import settings
from soundbytes.services.track_keys import derive_key, normalize_key_part

logger = logging.getLogger(__name__)


class ExitCode(enum.IntEnum):
    """CLI exit codes.

    0 — success
    1 — user error (bad arguments, invalid input)
    2 — configuration missing or invalid
    """

    SUCCESS = 0
    USER_ERROR = 1
    CONFIG_INVALID = 2


cli = typer.Typer(
    name="soundbytes",
    help="SoundBytes — social feed for short audio posts.",
    no_args_is_help=True,
)


@cli.command("serve", help="Run the API server.")
def serve(
    host: str = typer.Option(settings.host, "--host", help="Interface to bind."),
    port: int = typer.Option(settings.port, "--port", help="Port to listen on."),
    reload: bool = typer.Option(False, "--reload", help="Restart on code changes."),
) -> None:
    uvicorn.run(
        "soundbytes.main:app",
        host=host,
        port=port,
        reload=reload,
        log_level="debug" if settings.debug else "info",
    )


@cli.command("token", help="Print a signed access token for a user id.")
def token(
    user_id: str = typer.Option(..., "--user-id", help="Value for the sub claim."),
    username: str = typer.Option("", "--username", help="Optional username claim."),
    hours: int = typer.Option(24, "--hours", help="Validity in hours."),
) -> None:
    if not settings.access_token_secret:
        typer.echo("❌ SOUNDBYTES_ACCESS_TOKEN_SECRET is not set.", err=True)
        raise typer.Exit(code=ExitCode.CONFIG_INVALID)
    try:
        code = generate_access_code(user_id=user_id, username=username or None, duration_hours=hours)
    except AccessCodeError as exc:
        typer.echo(f"❌ {exc}", err=True)
        raise typer.Exit(code=ExitCode.USER_ERROR)
    typer.echo(code)


@cli.command("track-key", help="Print the canonical identity key for a track.")
def track_key(
    artist: str = typer.Argument(..., help="Track artist."),
    title: str = typer.Argument(..., help="Track title."),
    clip_url: str = typer.Option("", "--clip-url", help="Sound clip URL, if any."),
) -> None:
    if not normalize_key_part(artist) or not normalize_key_part(title):
        typer.echo("❌ artist and title are required.", err=True)
        raise typer.Exit(code=ExitCode.USER_ERROR)
    typer.echo(derive_key(artist, title, clip_url or None))


if __name__ == "__main__":
    cli()

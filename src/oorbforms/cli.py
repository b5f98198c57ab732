from __future__ import annotations

import logging

import typer
from fastapi import HTTPException

from oorbforms.config import Settings
from oorbforms.storage import StorageError, init_storage

logger = logging.getLogger(__name__)

cli = typer.Typer(add_completion=False, help="OORB Forms API server")


def configure_logging(settings: Settings) -> None:
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def run_server(host: str | None, port: int | None) -> None:
    import uvicorn

    from oorbforms.app import create_app

    settings = Settings()
    configure_logging(settings)
    try:
        app = create_app(settings)
    except StorageError as exc:
        logger.error("Could not start server: %s", exc)
        raise typer.Exit(code=1)

    resolved_host = host or settings.host
    resolved_port = port if port is not None else settings.port
    logger.info("Server running on %s:%s", resolved_host, resolved_port)
    uvicorn.run(app, host=resolved_host, port=resolved_port, log_level=settings.log_level)


@cli.callback(invoke_without_command=True)
def main(
    ctx: typer.Context,
    host: str | None = typer.Option(None, help="Address to bind"),
    port: int | None = typer.Option(None, help="Port to bind"),
) -> None:
    ctx.obj = {"host": host, "port": port}
    if ctx.invoked_subcommand is None:
        run_server(host, port)


@cli.command()
def run(
    ctx: typer.Context,
    host: str | None = typer.Option(None, help="Address to bind"),
    port: int | None = typer.Option(None, help="Port to bind"),
) -> None:
    base = ctx.obj or {}
    resolved_host = host or base.get("host")
    resolved_port = port if port is not None else base.get("port")
    run_server(resolved_host, resolved_port)


@cli.command("create-user")
def create_user_command(
    email: str = typer.Argument(..., help="Login email"),
    password: str = typer.Option(..., prompt=True, hide_input=True, help="Password"),
    name: str = typer.Option("", help="Display name"),
) -> None:
    from oorbforms.routes.auth import create_user

    settings = Settings()
    configure_logging(settings)
    try:
        storage = init_storage(settings)
        user = create_user(storage, email, password, name)
    except StorageError as exc:
        logger.error("Could not open storage: %s", exc)
        raise typer.Exit(code=1)
    except HTTPException as exc:
        typer.echo(f"Error: {exc.detail}", err=True)
        raise typer.Exit(code=1)
    typer.echo(f"Created user {user['email']} ({user['id']})")


if __name__ == "__main__":
    cli()

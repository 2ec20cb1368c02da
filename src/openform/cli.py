from __future__ import annotations

import logging
from pathlib import Path

import typer

from openform import service
from openform.config import Settings, ensure_dirs
from openform.errors import FormError
from openform.export import export_filename
from openform.storage import init_storage

cli = typer.Typer(help="Dynamic forms with CSV export of their responses.")


def configure_logging(settings: Settings) -> None:
    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def run_server(host: str | None, port: int | None) -> None:
    import uvicorn

    from openform.app import create_app

    settings = Settings()
    configure_logging(settings)
    resolved_host = host or settings.host
    resolved_port = port if port is not None else settings.port
    uvicorn.run(create_app(settings), host=resolved_host, port=resolved_port)


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
    """Serve the forms API."""
    base = ctx.obj or {}
    resolved_host = host or base.get("host")
    resolved_port = port if port is not None else base.get("port")
    run_server(resolved_host, resolved_port)


@cli.command()
def export(
    form_id: str = typer.Argument(..., help="Form whose responses are exported"),
    output: Path | None = typer.Option(None, "--output", "-o", help="CSV file to write"),
) -> None:
    """Write the responses of a form to a CSV file."""
    settings = Settings()
    configure_logging(settings)
    ensure_dirs(settings)
    storage = init_storage(settings)
    try:
        form = service.get_form(storage, form_id)
        content = service.export_csv(storage, form_id, settings.export_tz())
    except FormError as exc:
        typer.echo(f"Error: {exc.message}", err=True)
        raise typer.Exit(code=1)
    destination = output or Path(export_filename(form))
    destination.write_bytes(content)
    typer.echo(f"Wrote {destination}")


if __name__ == "__main__":
    cli()

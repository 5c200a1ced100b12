import json
import logging
from typing import Any, Awaitable, Callable

import anyio
import click

from webdav_core.client import WebDAVClient, client_from_config
from webdav_core.config import DEFAULT_MAX_BODY_SIZE, ClientConfig, ServerType
from webdav_core.errors import WebDAVError
from webdav_core.observability import setup_logging, setup_tracing

logger = logging.getLogger(__name__)

CHUNK_SIZE = 64 * 1024


def _echo_json(data: Any) -> None:
    click.echo(json.dumps(data, indent=2, ensure_ascii=False))


def _run(ctx: click.Context, operation: Callable[[WebDAVClient], Awaitable[Any]]) -> Any:
    """Run one async operation with a fresh client, mapping errors to click."""
    config = ctx.obj["config"]
    transport = ctx.obj.get("transport")

    async def main():
        async with client_from_config(config, transport=transport) as client:
            return await operation(client)

    try:
        return anyio.run(main)
    except WebDAVError as e:
        logger.debug(f"Operation failed: {e!r}")
        raise click.ClickException(str(e)) from e


async def _read_chunks(local_path: str):
    async with await anyio.open_file(local_path, "rb") as f:
        while chunk := await f.read(CHUNK_SIZE):
            yield chunk


@click.group()
@click.option(
    "--url",
    envvar="WEBDAV_URL",
    required=True,
    help="WebDAV base URL (can also use WEBDAV_URL env var)",
)
@click.option(
    "--username",
    "-u",
    envvar="WEBDAV_USERNAME",
    help="Username for basic auth (can also use WEBDAV_USERNAME env var)",
)
@click.option(
    "--password",
    "-p",
    envvar="WEBDAV_PASSWORD",
    help="Password for basic auth (can also use WEBDAV_PASSWORD env var)",
)
@click.option(
    "--token",
    envvar="WEBDAV_TOKEN",
    help="Bearer token, exclusive with --username (can also use WEBDAV_TOKEN env var)",
)
@click.option(
    "--insecure/--secure",
    envvar="WEBDAV_ALLOW_UNAUTHORIZED_CERTS",
    default=False,
    show_default=True,
    help="Skip TLS certificate verification (self-signed servers)",
)
@click.option(
    "--server-type",
    envvar="WEBDAV_SERVER_TYPE",
    default=ServerType.STANDARD.value,
    show_default=True,
    type=click.Choice([s.value for s in ServerType], case_sensitive=False),
    help="Server preset",
)
@click.option(
    "--max-body-size",
    envvar="WEBDAV_MAX_BODY_SIZE",
    type=int,
    default=DEFAULT_MAX_BODY_SIZE,
    show_default=True,
    help="Maximum request/response body size in bytes",
)
@click.option(
    "--log-level",
    "-l",
    default="warning",
    show_default=True,
    type=click.Choice(["critical", "error", "warning", "info", "debug"]),
    help="Logging level",
)
@click.option(
    "--log-format",
    default="text",
    show_default=True,
    type=click.Choice(["text", "json"]),
    help="Log output format",
)
@click.option(
    "--otlp-endpoint",
    envvar="OTEL_EXPORTER_OTLP_ENDPOINT",
    help="OTLP gRPC endpoint for request traces (can also use OTEL_EXPORTER_OTLP_ENDPOINT env var)",
)
@click.pass_context
def cli(
    ctx: click.Context,
    url: str,
    username: str | None,
    password: str | None,
    token: str | None,
    insecure: bool,
    server_type: str,
    max_body_size: int,
    log_level: str,
    log_format: str,
    otlp_endpoint: str | None,
):
    """
    Work with files on a WebDAV server.

    \b
    Examples:
      $ export WEBDAV_URL=https://cloud.example.com/remote.php/dav/files/alice
      $ export WEBDAV_USERNAME=alice WEBDAV_PASSWORD=secret
      $ webdav ls /Documents --recursive
      $ webdav put report.pdf /Documents/2024/report.pdf --create-parents
    """
    if otlp_endpoint:
        setup_tracing(otlp_endpoint=otlp_endpoint)
    setup_logging(
        log_format=log_format,
        log_level=log_level,
        include_trace_context=bool(otlp_endpoint),
    )

    try:
        config = ClientConfig(
            base_url=url,
            username=username,
            password=password,
            token=token,
            verify_ssl=not insecure,
            max_body_size=max_body_size,
            max_content_size=max_body_size,
            server_type=ServerType(server_type.lower()),
        )
    except ValueError as e:
        raise click.UsageError(str(e)) from e

    ctx.ensure_object(dict)
    ctx.obj["config"] = config


@cli.command()
@click.argument("path")
@click.pass_context
def exists(ctx: click.Context, path: str):
    """Check whether PATH exists."""

    async def operation(client: WebDAVClient):
        return await client.exists(path)

    _echo_json({"path": path, "exists": _run(ctx, operation)})


@cli.command()
@click.argument("path")
@click.pass_context
def stat(ctx: click.Context, path: str):
    """Show information about PATH."""

    async def operation(client: WebDAVClient):
        return await client.stat(path)

    info = _run(ctx, operation)
    _echo_json(info.model_dump(mode="json", by_alias=True))


@cli.command(name="ls")
@click.argument("path", default="/")
@click.option("--recursive", "-r", is_flag=True, help="List the whole subtree")
@click.pass_context
def list_directory(ctx: click.Context, path: str, recursive: bool):
    """List the contents of the directory PATH."""

    async def operation(client: WebDAVClient):
        return await client.get_directory_contents(path, deep=recursive)

    items = _run(ctx, operation)
    _echo_json([item.model_dump(mode="json", by_alias=True) for item in items])


@cli.command()
@click.argument("path")
@click.option(
    "--output",
    "-o",
    type=click.Path(dir_okay=False, writable=True),
    help="Write to this file instead of stdout",
)
@click.pass_context
def get(ctx: click.Context, path: str, output: str | None):
    """Download the file PATH."""

    async def operation(client: WebDAVClient):
        if output is None:
            return await client.get_file_contents(path, format="binary")

        written = 0
        async with client.get_file_stream(path) as chunks:
            async with await anyio.open_file(output, "wb") as f:
                async for chunk in chunks:
                    await f.write(chunk)
                    written += len(chunk)
        return written

    result = _run(ctx, operation)
    if output is None:
        click.get_binary_stream("stdout").write(result)
    else:
        _echo_json({"path": path, "output": output, "size": result})


@cli.command()
@click.argument("local_path", type=click.Path(exists=True, dir_okay=False))
@click.argument("path")
@click.option("--overwrite", is_flag=True, help="Replace an existing file")
@click.option(
    "--create-parents/--no-create-parents",
    default=True,
    show_default=True,
    help="Create missing parent directories",
)
@click.pass_context
def put(
    ctx: click.Context, local_path: str, path: str, overwrite: bool, create_parents: bool
):
    """Upload LOCAL_PATH to PATH."""

    async def operation(client: WebDAVClient):
        await client.put_file_stream(
            path,
            _read_chunks(local_path),
            overwrite=overwrite,
            create_parents=create_parents,
        )
        return await client.stat(path)

    info = _run(ctx, operation)
    _echo_json(info.model_dump(mode="json", by_alias=True))


@cli.command()
@click.argument("path")
@click.option("--parents", "-p", is_flag=True, help="Create missing parent directories")
@click.pass_context
def mkdir(ctx: click.Context, path: str, parents: bool):
    """Create the directory PATH."""

    async def operation(client: WebDAVClient):
        if await client.exists(path):
            return True
        await client.create_directory(path, parents=parents)
        return False

    already_exists = _run(ctx, operation)
    _echo_json({"path": path, "alreadyExists": already_exists})


@cli.command()
@click.argument("path")
@click.pass_context
def rm(ctx: click.Context, path: str):
    """Delete the file or directory PATH."""

    async def operation(client: WebDAVClient):
        await client.delete_file(path)

    _run(ctx, operation)
    _echo_json({"path": path, "deleted": True})


def _transfer_command(name: str, help_text: str):
    @cli.command(name=name, help=help_text)
    @click.argument("source")
    @click.argument("destination")
    @click.option("--overwrite", is_flag=True, help="Replace an existing destination")
    @click.option(
        "--create-parents/--no-create-parents",
        default=True,
        show_default=True,
        help="Create missing parent directories of the destination",
    )
    @click.pass_context
    def command(
        ctx: click.Context,
        source: str,
        destination: str,
        overwrite: bool,
        create_parents: bool,
    ):
        async def operation(client: WebDAVClient):
            transfer = client.move_file if name == "mv" else client.copy_file
            await transfer(
                source, destination, overwrite=overwrite, create_parents=create_parents
            )

        _run(ctx, operation)
        _echo_json({"source": source, "destination": destination})

    return command


move = _transfer_command("mv", "Move or rename SOURCE to DESTINATION.")
copy = _transfer_command("cp", "Copy SOURCE to DESTINATION.")


if __name__ == "__main__":
    cli()

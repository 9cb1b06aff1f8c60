"""Main CLI application - ties all subcommands together."""

from typing import Annotated

import typer

from bucketwise.chat.frames import StreamingTurn, TokenFrame
from bucketwise.cli.client import BucketwiseClient, BucketwiseClientError
from bucketwise.cli.common import (
    CORAL,
    ELECTRIC_PURPLE,
    NEON_CYAN,
    console,
    create_table,
    error,
    format_role,
    info,
    print_json,
    run_async,
    success,
    truncate,
)
from bucketwise.models.chat import NodeKind

app = typer.Typer(
    name="bucketwise",
    help="Bucketwise - project workspace with AI chat on every page and bucket",
    add_completion=False,
    no_args_is_help=True,
)

directives_app = typer.Typer(help="Manage per-node-kind chat directives", no_args_is_help=True)
app.add_typer(directives_app, name="directives")

KIND_HELP = "Node kind: " + ", ".join(k.value for k in NodeKind)


def _handle_client_error(e: BucketwiseClientError) -> None:
    """Handle client errors with helpful messages."""
    if e.status_code == 401:
        error("Authentication required. Set BUCKETWISE_AUTH_TOKEN.")
    elif e.status_code == 403:
        error(f"Forbidden: {e}")
    elif e.status_code == 404:
        error(f"Not found: {e.detail}")
    else:
        error(str(e))


@app.command()
def serve(
    host: str | None = typer.Option(None, "--host", "-h", help="Host to bind to"),
    port: int | None = typer.Option(None, "--port", "-p", help="Port to listen on"),
    reload: bool = typer.Option(False, "--reload", help="Restart on source changes"),
) -> None:
    """Start the API server.

    Examples:
        bucketwise serve                # Default: localhost:3340
        bucketwise serve -p 9000        # Custom port
    """
    from bucketwise.main import run_server

    try:
        run_server(host=host, port=port, reload=reload)
    except KeyboardInterrupt:
        console.print(f"\n[{NEON_CYAN}]Shutting down...[/{NEON_CYAN}]")


@app.command()
def chat(
    parent_type: Annotated[str, typer.Argument(help=KIND_HELP)],
    parent_id: Annotated[str, typer.Argument(help="Page (project) or bucket id")],
    message: Annotated[str, typer.Argument(help="Message to send")],
) -> None:
    """Send a message to a node's chat and stream the reply."""

    @run_async
    async def _chat() -> StreamingTurn:
        turn = StreamingTurn()
        async with BucketwiseClient() as client:
            async for frame in client.stream_chat(parent_type, parent_id, message):
                turn.apply(frame)
                if isinstance(frame, TokenFrame):
                    console.print(frame.text, end="", markup=False, highlight=False)
        console.print()
        return turn

    try:
        turn = _chat()
    except BucketwiseClientError as e:
        _handle_client_error(e)
        raise typer.Exit(1) from None

    if turn.error is not None:
        error(turn.content)
        raise typer.Exit(1)
    if turn.is_streaming:
        error("Stream ended without a completion frame")
        raise typer.Exit(1)
    console.print(f"[dim]saved as {turn.ai_message_id or '(not saved)'}[/dim]")


@app.command()
def messages(
    parent_type: Annotated[str, typer.Argument(help=KIND_HELP)],
    parent_id: Annotated[str, typer.Argument(help="Page (project) or bucket id")],
    json_out: bool = typer.Option(False, "--json", "-j", help="Output raw JSON"),
) -> None:
    """Show a node's chat thread, oldest first."""

    @run_async
    async def _list() -> dict:
        async with BucketwiseClient() as client:
            return await client.list_messages(parent_type, parent_id)

    try:
        data = _list()
    except BucketwiseClientError as e:
        _handle_client_error(e)
        raise typer.Exit(1) from None

    if json_out:
        print_json(data)
        return

    table = create_table(f"{parent_type} {parent_id}", "#", "Role", "Time", "Message", "Id")
    for turn in data.get("messages", []):
        table.add_row(
            str(turn["sort_order"]),
            format_role(turn["role"]),
            turn["timestamp"],
            truncate(turn["content"].replace("\n", " "), 80),
            turn["id"],
        )
    console.print(table)
    info(f"{data.get('total', 0)} message(s)")


@app.command()
def extract(
    message_id: Annotated[str, typer.Argument(help="Assistant message id")],
) -> None:
    """Save an assistant reply into its page or bucket as a note."""

    @run_async
    async def _extract() -> dict:
        async with BucketwiseClient() as client:
            return await client.extract_message(message_id)

    try:
        data = _extract()
    except BucketwiseClientError as e:
        _handle_client_error(e)
        raise typer.Exit(1) from None
    success(f"Saved as item [{ELECTRIC_PURPLE}]{data['item_id']}[/{ELECTRIC_PURPLE}]")


@app.command()
def health() -> None:
    """Show server health and chat counters."""

    @run_async
    async def _health() -> dict:
        async with BucketwiseClient() as client:
            return await client.health()

    try:
        data = _health()
    except BucketwiseClientError as e:
        _handle_client_error(e)
        raise typer.Exit(1) from None

    color = NEON_CYAN if data["status"] == "healthy" else CORAL
    console.print(f"Status: [{color}]{data['status']}[/{color}]")
    console.print(f"Backend: {data['provider']} ({data['model']})")
    table = create_table("Chat", "Counter", "Value")
    for name, value in data.get("chat", {}).items():
        table.add_row(name, str(value))
    console.print(table)
    for problem in data.get("errors", []):
        error(problem)


@directives_app.command("list")
def list_directives(
    json_out: bool = typer.Option(False, "--json", "-j", help="Output raw JSON"),
) -> None:
    """List configured directives."""

    @run_async
    async def _list() -> list[dict]:
        async with BucketwiseClient() as client:
            return await client.list_core_queries()

    try:
        data = _list()
    except BucketwiseClientError as e:
        _handle_client_error(e)
        raise typer.Exit(1) from None

    if json_out:
        print_json(data)
        return
    table = create_table("Directives", "Node kind", "Directive")
    for row in data:
        table.add_row(row["location_key"], truncate(row["context_query"], 80))
    console.print(table)


@directives_app.command("set")
def set_directive(
    location_key: Annotated[str, typer.Argument(help=KIND_HELP)],
    text: Annotated[str, typer.Argument(help="Directive text (empty string disables it)")],
) -> None:
    """Create or replace the directive for one node kind (admin only)."""

    @run_async
    async def _set() -> dict:
        async with BucketwiseClient() as client:
            return await client.set_core_query(location_key, text)

    try:
        _set()
    except BucketwiseClientError as e:
        _handle_client_error(e)
        raise typer.Exit(1) from None
    success(f"Directive for {location_key} updated")


def main() -> None:
    app()


if __name__ == "__main__":
    main()

"""Command-line interface for the Mastra chat client."""

import asyncio

import typer
from rich.console import Console
from rich.table import Table

from mastra_chat.application.factories import create_chat_service
from mastra_chat.application.services import ChatService
from mastra_chat.config import settings
from mastra_chat.domain.exceptions import ChatClientError, ConfigurationValidationError
from mastra_chat.domain.models import AgentConfig, ChatTranscript, Message, MessageRole
from mastra_chat.observability import setup_logging

# Initialize Typer app
app = typer.Typer(
    name="mastra-chat",
    help="Chat with an agent running on a Mastra server",
    add_completion=False,
)

# Rich console for pretty output
console = Console()

GREETING = "Hello! I'm your Mastra AI assistant. How can I help you today?"
NOT_CONFIGURED = (
    "The client is not configured. Run `mastra-chat configure --url <server> --agent-id <agent>` "
    "to set your Mastra server URL and agent ID."
)
QUIT_COMMANDS = {"/quit", "/exit"}


def _hidden(value: str | None, show_sensitive: bool) -> str:
    if not value:
        return "-"
    return value if show_sensitive else "***HIDDEN***"


def _status_label(configured: bool) -> str:
    return "[green]online[/green]" if configured else "[red]offline[/red]"


async def _with_service(action) -> None:
    service = create_chat_service()
    await service.initialize()
    try:
        await action(service)
    finally:
        await service.cleanup()


@app.callback()
def main(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Log debug output to stderr"),
):
    """Configure logging before any command runs."""
    setup_logging(
        level="DEBUG" if verbose else settings.app.log_level,
        log_file=settings.app.log_file,
    )


@app.command()
def info():
    """Display client information."""
    table = Table(title="Mastra Chat Client Info")

    table.add_column("Setting", style="cyan")
    table.add_column("Value", style="green")

    table.add_row("Environment", settings.app.environment.value)
    table.add_row("Config Directory", str(settings.app.config_dir))
    table.add_row("Log Level", settings.app.log_level)
    table.add_row("Request Timeout", f"{settings.transport.request_timeout}s")
    table.add_row("Connect Timeout", f"{settings.transport.connect_timeout}s")
    table.add_row("Probe Attempts", str(settings.resilience.probe_max_attempts))

    console.print(table)


@app.command()
def config(
    show_sensitive: bool = typer.Option(False, help="Show sensitive configuration values"),
):
    """Display the saved agent configuration."""

    async def run_show(service: ChatService):
        agent_config = await service.load_config()

        table = Table(title="Agent Configuration")
        table.add_column("Key", style="yellow")
        table.add_column("Value", style="green")
        table.add_row("Server URL", agent_config.endpoint_url or "-")
        table.add_row("Agent ID", agent_config.agent_id or "-")
        table.add_row("API Key", _hidden(agent_config.credential, show_sensitive))
        table.add_row("Status", _status_label(service.is_configured()))

        console.print(table)

    asyncio.run(_with_service(run_show))


@app.command()
def configure(
    url: str = typer.Option(..., "--url", "-u", prompt="Mastra server URL", help="Base URL of the Mastra server"),
    agent_id: str = typer.Option(..., "--agent-id", "-a", prompt="Agent ID", help="Agent to talk to"),
    api_key: str | None = typer.Option(None, "--api-key", help="Optional bearer credential"),
):
    """Save the agent connection settings."""

    async def run_configure(service: ChatService):
        try:
            agent_config = AgentConfig(endpoint_url=url, agent_id=agent_id, credential=api_key)
            connected = await service.save_config(agent_config)
        except ConfigurationValidationError as e:
            console.print(f"[red]Error:[/red] {e.message}")
            raise typer.Exit(1) from e
        except ChatClientError as e:
            console.print(f"[red]Failed to save settings:[/red] {e.message}")
            raise typer.Exit(1) from e

        console.print("[green]Settings saved successfully[/green]")
        if not connected:
            console.print("[yellow]The saved settings could not be used to build a connection[/yellow]")

    asyncio.run(_with_service(run_configure))


@app.command()
def status(
    probe: bool = typer.Option(False, "--probe", "-p", help="Send a test message to the agent"),
):
    """Show whether the client is configured, optionally probing the agent."""

    async def run_status(service: ChatService):
        configured = service.is_configured()
        console.print(f"Connection: {_status_label(configured)}")

        if probe:
            if await service.test_connection():
                console.print("[green]Agent answered the test message[/green]")
            else:
                console.print("[red]Agent did not answer the test message[/red]")
                raise typer.Exit(1)
        elif not configured:
            raise typer.Exit(1)

    asyncio.run(_with_service(run_status))


@app.command()
def send(
    message: str = typer.Argument(..., help="Message to send to the agent"),
):
    """Send a message and print the complete reply."""

    async def run_send(service: ChatService):
        reply = await service.send_message(message)
        console.print(reply.content, markup=False, highlight=False)

    asyncio.run(_with_service(run_send))


async def _stream_reply(service: ChatService, transcript: ChatTranscript, content: str) -> Message:
    transcript.add_message(service.create_user_message(content))
    placeholder_id = transcript.add_placeholder()

    def on_chunk(chunk: str) -> None:
        transcript.apply_chunk(placeholder_id, chunk)
        console.print(chunk, end="", markup=False, highlight=False, soft_wrap=True)

    console.print("[green]Assistant:[/green] ", end="")
    reply = await service.stream_message(content, on_chunk)
    console.print()
    return reply


@app.command()
def chat(
    message: str | None = typer.Argument(None, help="Message to send; omit for an interactive session"),
):
    """Chat with the agent, printing the reply as it streams in."""

    async def run_chat(service: ChatService):
        transcript = ChatTranscript()

        if message is not None:
            await _stream_reply(service, transcript, message)
            return

        configured = service.is_configured()
        transcript.add_message(
            Message(id="0", role=MessageRole.ASSISTANT, content=GREETING if configured else NOT_CONFIGURED)
        )
        console.print(f"[dim]Connection: {_status_label(configured)} | type /quit to leave[/dim]")
        console.print(f"[green]Assistant:[/green] {transcript.messages[-1].content}", markup=True)

        while True:
            try:
                content = await asyncio.to_thread(console.input, "[bold blue]You:[/bold blue] ")
            except (EOFError, KeyboardInterrupt):
                console.print()
                break

            content = content.strip()
            if not content:
                continue
            if content in QUIT_COMMANDS:
                break

            await _stream_reply(service, transcript, content)

            if service.is_configured() != configured:
                configured = service.is_configured()
                console.print(f"[dim]Connection: {_status_label(configured)}[/dim]")

        console.print(f"[dim]{len(transcript.messages)} messages in this session[/dim]")

    asyncio.run(_with_service(run_chat))


if __name__ == "__main__":
    app()

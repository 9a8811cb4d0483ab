"""CLI commands for yt-agent."""

import asyncio
import json
import logging
import os

import typer
from rich.console import Console
from rich.markup import escape
from rich.progress import Progress, SpinnerColumn, TextColumn
from rich.table import Table

from . import __version__
from .config import (
    CHAT_HISTORY_FILE,
    DEFAULT_CACHE_SWEEP_INTERVAL,
    DEFAULT_CHAT_MODEL,
    DEFAULT_OLLAMA_MODEL,
    ENV_PATH,
    ensure_data_dir,
    get_api_key,
    get_cache_size,
    get_cache_ttl_hours,
    get_proxy_url,
    get_rate_limit_max_wait,
    get_transcript_languages,
    get_transcript_rate_limit,
    get_video_info_rate_limit,
    get_youtube_api_key,
)
from .discovery import detect_urls, extract_video_id
from .extractor import create_extractor
from .models import AgentEvent
from .openai_client import check_ollama_running
from .service import TextGenerator, TranscriptAgent, create_agent, ollama_generator, openai_generator

# Configure logging based on LOG_LEVEL environment variable
_log_level = os.environ.get("LOG_LEVEL", "WARNING").upper()
logging.basicConfig(
    level=getattr(logging, _log_level, logging.WARNING),
    format="%(levelname)s %(name)s: %(message)s",
)
# Suppress per-request logging from the HTTP client
logging.getLogger("httpx").setLevel(logging.WARNING)
logging.getLogger("httpcore").setLevel(logging.WARNING)

app = typer.Typer(
    name="yt-agent",
    help="Answer questions about YouTube videos from their transcripts.",
    no_args_is_help=True,
)
console = Console()


def format_timestamp(seconds: float) -> str:
    """Format seconds as HH:MM:SS or MM:SS."""
    hours = int(seconds // 3600)
    minutes = int((seconds % 3600) // 60)
    secs = int(seconds % 60)
    if hours > 0:
        return f"{hours:02d}:{minutes:02d}:{secs:02d}"
    return f"{minutes:02d}:{secs:02d}"


def get_generator(openai: bool, model: str | None) -> tuple[TextGenerator, str]:
    """Pick the text generator backend, exiting if Ollama is not reachable."""
    if openai:
        chat_model = model or DEFAULT_CHAT_MODEL
        return openai_generator(model=chat_model), chat_model

    if not check_ollama_running():
        console.print("[red]Error: Ollama is not running[/red]")
        console.print("Start it with: sudo systemctl start ollama")
        console.print("Or use --openai to use OpenAI API")
        raise typer.Exit(1)
    chat_model = model or DEFAULT_OLLAMA_MODEL
    return ollama_generator(model=chat_model), chat_model


def print_sources(sources: list[dict]) -> None:
    """Show the videos an answer is based on."""
    for i, source in enumerate(sources, 1):
        meta = source["metadata"]
        segments = meta.get("transcript_length", 0)
        console.print(
            f"[cyan]{i}.[/cyan] [magenta]{meta['author']}[/magenta] | [bold]{escape(meta['title'])}[/bold]"
            f" [dim]({segments} segments)[/dim]"
        )
        console.print(f"   [link={meta['url']}]{meta['url']}[/link]")
    console.print()


async def run_turn(
    agent: TranscriptAgent,
    message: str,
    history: list[dict[str, str]],
    generator: TextGenerator,
    system_instructions: str = "",
) -> tuple[str, bool]:
    """Run one agent turn, printing events as they arrive.

    Returns:
        (answer text, True if the turn ended without error)
    """
    chunks: list[str] = []
    event: AgentEvent
    async for event in agent.handle(message, history, generator, system_instructions):
        if event.type == "sources":
            print_sources(event.data)
        elif event.type == "response":
            console.print(event.data, end="", markup=False, highlight=False)
            chunks.append(event.data)
        elif event.type == "error":
            if chunks:
                console.print()
            console.print(f"[red]Error: {event.data}[/red]")
            return "".join(chunks), False
        elif event.type == "end":
            if chunks:
                console.print()  # Newline after streaming
    return "".join(chunks), True


@app.command()
def urls(text: str = typer.Argument(..., help="Text to scan for YouTube links")):
    """List the YouTube URLs found in a piece of text."""
    found = detect_urls(text)
    if not found:
        console.print("[yellow]No YouTube URLs found[/yellow]")
        return

    table = Table(title=f"YouTube URLs ({len(found)})")
    table.add_column("URL")
    table.add_column("Video ID", style="cyan")
    for url in found:
        table.add_row(url, extract_video_id(url) or "")
    console.print(table)


@app.command()
def transcript(
    url: str = typer.Argument(..., help="YouTube URL or video ID"),
    timestamps: bool = typer.Option(False, "-t", "--timestamps", help="Print one line per segment"),
    as_json: bool = typer.Option(False, "--json", help="Print the full result as JSON"),
):
    """Fetch a video's transcript and metadata."""
    extractor = create_extractor()

    with Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        console=console,
        transient=True,
    ) as progress:
        progress.add_task("Fetching transcript...", total=None)
        result = asyncio.run(extractor.extract(url))

    if result.error:
        console.print(f"[red]{result.error}[/red]")
        if result.video_info.title:
            console.print(f"[dim]{result.video_info.title} - {result.video_info.author}[/dim]")
        raise typer.Exit(1)

    if as_json:
        console.print_json(json.dumps(result.model_dump()))
        return

    info = result.video_info
    console.print(f"[bold]{escape(info.title)}[/bold]")
    console.print(f"[magenta]{info.author}[/magenta] | {format_timestamp(info.duration)}")
    console.print(f"[link={info.url}]{info.url}[/link]")
    console.print("-" * 60)
    if timestamps:
        for segment in result.segments:
            console.print(f"[dim][{format_timestamp(segment.start)}][/dim] {escape(segment.text)}", highlight=False)
    else:
        console.print(result.full_text, markup=False, highlight=False)
    console.print(f"\n[dim]{len(result.segments)} segments[/dim]")


@app.command()
def ask(
    message: str = typer.Argument(..., help="Message containing one or more YouTube links"),
    model: str = typer.Option(None, "-m", "--model", help="Override default model"),
    openai: bool = typer.Option(False, "--openai", help="Use OpenAI API instead of local Ollama"),
    instructions: str = typer.Option("", "-i", "--instructions", help="Extra answer instructions"),
):
    """Ask a question about the YouTube videos linked in MESSAGE.

    By default uses local Ollama. Use --openai to use OpenAI API.
    Use --model to override the default model for either backend.
    """
    generator, chat_model = get_generator(openai, model)
    agent = create_agent()
    console.print(f"[dim]Model: {chat_model}[/dim]\n")

    _, ok = asyncio.run(run_turn(agent, message, [], generator, instructions))
    if not ok:
        raise typer.Exit(1)


@app.command()
def chat(
    model: str = typer.Option(None, "-m", "--model", help="Override default model"),
    openai: bool = typer.Option(False, "--openai", help="Use OpenAI API instead of local Ollama"),
    history: int = typer.Option(10, "--history", help="Messages to include for context"),
    instructions: str = typer.Option("", "-i", "--instructions", help="Extra answer instructions"),
):
    """Interactive chat about YouTube videos.

    Paste a link with your question; follow-up questions need the link again
    but are answered from the transcript cache.
    """
    import readline

    ensure_data_dir()
    try:
        readline.read_history_file(CHAT_HISTORY_FILE)
    except FileNotFoundError:
        pass  # First run, no history yet
    readline.set_history_length(1000)

    generator, chat_model = get_generator(openai, model)
    agent = create_agent()

    backend_name = "OpenAI" if openai else "Ollama"
    console.print(f"[bold]yt-agent Chat[/bold] [dim]({backend_name})[/dim]")
    console.print(f"[dim]Model: {chat_model}[/dim]")
    console.print("Paste a YouTube link with your question. Use 'exit' or Ctrl+C to quit.")
    console.print("[dim]Commands: /clear, /cache[/dim]\n")

    conversation: list[dict[str, str]] = []

    async def run_chat():
        agent.cache.start_sweeper(DEFAULT_CACHE_SWEEP_INTERVAL)
        try:
            while True:
                try:
                    message = await asyncio.to_thread(input, "> ")
                except (EOFError, KeyboardInterrupt):
                    console.print("\nGoodbye!")
                    break

                message = message.strip()
                if not message:
                    continue
                if message.lower() in ("exit", "quit", "q"):
                    console.print("Goodbye!")
                    break

                if message == "/clear":
                    conversation.clear()
                    console.print("[green]Conversation cleared[/green]\n")
                    continue
                if message == "/cache":
                    stats = agent.cache.stats()
                    console.print(f"[dim]Cached transcripts: {stats.size}/{stats.max_size}[/dim]\n")
                    continue

                console.print()
                answer, ok = await run_turn(
                    agent, message, conversation[-history:] if history else [], generator, instructions
                )
                if ok and answer:
                    conversation.append({"role": "user", "content": message})
                    conversation.append({"role": "assistant", "content": answer})
                console.print()
        finally:
            await agent.cache.stop_sweeper()

    try:
        asyncio.run(run_chat())
    finally:
        readline.write_history_file(CHAT_HISTORY_FILE)


@app.command()
def status():
    """Show configuration: rate limits, cache and API keys."""
    transcript_requests, transcript_window = get_transcript_rate_limit()
    info_requests, info_window = get_video_info_rate_limit()
    max_wait = get_rate_limit_max_wait()

    table = Table(title="yt-agent Status")
    table.add_column("Setting")
    table.add_column("Value", justify="right")

    table.add_row("Config file", str(ENV_PATH) if ENV_PATH.exists() else "[dim]none[/dim]")
    table.add_row(
        "YouTube Data API key",
        "[green]set[/green]" if get_youtube_api_key() else "[yellow]not set (oEmbed only)[/yellow]",
    )
    table.add_row("Proxy", "[green]set[/green]" if get_proxy_url() else "[dim]none[/dim]")
    table.add_row("Caption languages", ", ".join(get_transcript_languages()))

    table.add_section()
    table.add_row("[bold]Rate limits[/bold]", "")
    table.add_row("  Transcripts", f"{transcript_requests} / {transcript_window:g}s")
    table.add_row("  Video info", f"{info_requests} / {info_window:g}s")
    table.add_row("  Max wait", f"{max_wait:g}s" if max_wait is not None else "unbounded")

    table.add_section()
    table.add_row("[bold]Cache[/bold]", "")
    table.add_row("  Size", str(get_cache_size()))
    table.add_row("  TTL", f"{get_cache_ttl_hours():g}h")

    table.add_section()
    table.add_row("[bold]Generators[/bold]", "")
    ollama = "[green]running[/green]" if check_ollama_running() else "[red]not running[/red]"
    table.add_row(f"  Ollama ({DEFAULT_OLLAMA_MODEL})", ollama)
    openai_key = "[green]set[/green]" if get_api_key("OPENAI_API_KEY") else "[yellow]not set[/yellow]"
    table.add_row(f"  OpenAI ({DEFAULT_CHAT_MODEL})", openai_key)

    console.print(table)


@app.command()
def version():
    """Show version."""
    console.print(f"yt-agent {__version__}")


if __name__ == "__main__":
    app()

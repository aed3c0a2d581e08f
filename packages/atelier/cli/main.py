"""Command-line interface for Atelier Muse."""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
from pathlib import Path
import sys

from rich.console import Console
from rich.table import Table

from atelier.core.artifacts import load_image_file, safe_export_name, write_image
from atelier.core.config.loader import load_app_config
from atelier.core.config.models import AppConfig
from atelier.core.history import HistoryStore, JSONFileHistoryStorage
from atelier.core.models import (
    ArtStyle,
    AspectRatio,
    GenerationRequest,
    GenerationResult,
    GenerationStatus,
)
from atelier.core.session import StudioSession
from atelier.core.styles import surprise_subject
from atelier.core.utils.logging import configure_logging

console = Console()
logger = logging.getLogger(__name__)

_STATUS_LABELS: dict[GenerationStatus, str] = {
    GenerationStatus.GENERATING_IDEA: "Preparing the prompt...",
    GenerationStatus.LOADING_IMAGE: "Painting the portrait...",
    GenerationStatus.LOADING_INSPIRATION: "Writing inspiration notes...",
}


def _load_config(args: argparse.Namespace) -> AppConfig:
    app_config = load_app_config(args.config, required=args.config is not None)
    level = "DEBUG" if getattr(args, "verbose", False) else app_config.logging.level
    configure_logging(
        level=level,
        format_string=app_config.logging.format,
        filename=app_config.logging.filename,
        structured=app_config.logging.structured,
    )
    return app_config


def _print_result(result: GenerationResult, *, cache_hit: bool) -> None:
    header = f"[bold]{result.subject}[/bold] ({result.style.value}, {result.aspect_ratio.value})"
    if cache_hit:
        header += " [dim](from session cache)[/dim]"
    console.print(header)
    notes = result.inspiration
    console.print(f"  [cyan]Technique:[/cyan] {notes.technique}")
    console.print(f"  [cyan]Palette:[/cyan]   {', '.join(notes.palette)}")
    console.print(f"  [cyan]Mood:[/cyan]      {notes.mood}")
    console.print(f"  [cyan]Challenge:[/cyan] {notes.challenge}")


def build_request(args: argparse.Namespace) -> GenerationRequest:
    """Build a GenerationRequest from `generate` arguments.

    Raises:
        ValueError: On an unknown style or unreadable reference image
        FileNotFoundError: If the reference image does not exist
    """
    subject = args.subject or ""
    if args.surprise:
        subject = surprise_subject()
    reference = load_image_file(args.reference) if args.reference else None
    return GenerationRequest(
        subject=subject,
        style=ArtStyle.parse(args.style),
        aspect_ratio=AspectRatio(args.aspect),
        reference=reference,
    )


async def generate_async(session: StudioSession, request: GenerationRequest, out: Path | None) -> int:
    """Run one submission, streaming status lines.

    Returns:
        Exit code (0 for success, 1 for failure)
    """
    await session.load_history()

    async for update in session.submit(request):
        if update.status is GenerationStatus.ERROR:
            console.print(f"[red]ERROR ({update.error_kind}): {update.error_message}[/red]")
            return 1
        if update.status is GenerationStatus.SUCCESS and update.result is not None:
            _print_result(update.result, cache_hit=update.cache_hit)
            if out is not None:
                path = out
                if out.is_dir():
                    path = out / safe_export_name(update.result.subject, update.result.artifact.mime_type)
                write_image(update.result.artifact, path)
                console.print(f"[green]Saved:[/green] {path}")
            return 0
        if update.status.is_loading:
            console.print(f"[dim]{_STATUS_LABELS.get(update.status, update.status.value)}[/dim]")

    # Only reachable when superseded, which a single CLI submission never is
    return 1


def run_generate(args: argparse.Namespace) -> int:
    app_config = _load_config(args)
    try:
        request = build_request(args)
        session = StudioSession.from_config(app_config)
    except (ValueError, FileNotFoundError) as e:
        console.print(f"[red]ERROR: {e}[/red]")
        return 1

    out = Path(args.out) if args.out else None
    return asyncio.run(generate_async(session, request, out))


def _history_store(app_config: AppConfig) -> HistoryStore:
    storage = JSONFileHistoryStorage(app_config.history.storage_dir, key=app_config.history.storage_key)
    return HistoryStore(storage, capacity=app_config.history.capacity)


def run_history(args: argparse.Namespace) -> int:
    app_config = _load_config(args)
    entries = asyncio.run(_history_store(app_config).load())

    if args.json:
        payload = [
            {
                "index": index,
                "artifact_id": entry.artifact_id,
                "subject": entry.result.subject,
                "style": entry.result.style.value,
                "aspect_ratio": entry.result.aspect_ratio.value,
                "created_at": entry.result.created_at.isoformat(),
                "inspiration": entry.result.inspiration.model_dump(mode="json"),
            }
            for index, entry in enumerate(entries)
        ]
        print(json.dumps(payload, indent=2))
        return 0

    if not entries:
        console.print("[dim]The gallery is empty.[/dim]")
        return 0

    table = Table(title=f"Studio gallery ({len(entries)}/{app_config.history.capacity})")
    table.add_column("#", justify="right")
    table.add_column("Subject")
    table.add_column("Style")
    table.add_column("Aspect")
    table.add_column("Created")
    for index, entry in enumerate(entries):
        result = entry.result
        table.add_row(
            str(index),
            result.subject,
            result.style.value,
            result.aspect_ratio.value,
            result.created_at.strftime("%Y-%m-%d %H:%M"),
        )
    console.print(table)
    return 0


def run_export(args: argparse.Namespace) -> int:
    app_config = _load_config(args)
    entries = asyncio.run(_history_store(app_config).load())
    if not 0 <= args.index < len(entries):
        console.print(f"[red]ERROR: No history entry at index {args.index} ({len(entries)} stored)[/red]")
        return 1

    entry = entries[args.index]
    path = Path(args.dir) / safe_export_name(entry.result.subject, entry.result.artifact.mime_type)
    write_image(entry.result.artifact, path)
    console.print(f"[green]Exported:[/green] {path}")
    return 0


def run_clear_history(args: argparse.Namespace) -> int:
    app_config = _load_config(args)
    asyncio.run(_history_store(app_config).clear())
    console.print("[green]Gallery cleared[/green]")
    return 0


def run_styles(args: argparse.Namespace) -> int:
    console.print("[bold]Styles[/bold]")
    for style in ArtStyle:
        console.print(f"  {style.value}")
    console.print("[bold]Aspect ratios[/bold]")
    for ratio in AspectRatio:
        console.print(f"  {ratio.value} ({ratio.orientation})")
    return 0


def build_arg_parser() -> argparse.ArgumentParser:
    """Build argument parser for CLI."""
    p = argparse.ArgumentParser(
        prog="atelier",
        description="Atelier Muse - AI portrait studio with painter's inspiration notes",
    )
    # Shared options accepted after any subcommand
    common = argparse.ArgumentParser(add_help=False)
    common.add_argument("--config", default=None, help="Path to app config (JSON or YAML)")
    common.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")

    sub = p.add_subparsers(dest="cmd", required=True)

    gen = sub.add_parser("generate", parents=[common], help="Generate a portrait")
    gen.add_argument("subject", nargs="?", default="", help="Portrait subject (may be empty)")
    gen.add_argument("--style", default=ArtStyle.WATERCOLOR.value, help="Art style (see `atelier styles`)")
    gen.add_argument(
        "--aspect",
        default=AspectRatio.SQUARE.value,
        choices=[ratio.value for ratio in AspectRatio],
        help="Aspect ratio (default: 1:1)",
    )
    gen.add_argument("--reference", default=None, help="Reference image to re-imagine")
    gen.add_argument("--surprise", action="store_true", help="Pick a random sample subject")
    gen.add_argument("--out", default=None, help="Write the image to this file or directory")
    gen.set_defaults(handler=run_generate)

    history = sub.add_parser("history", parents=[common], help="List the studio gallery")
    history.add_argument("--json", action="store_true", help="Print entries as JSON")
    history.set_defaults(handler=run_history)

    export = sub.add_parser("export", parents=[common], help="Export a gallery entry as an image file")
    export.add_argument("index", type=int, help="Entry index (0 = newest)")
    export.add_argument("--dir", default=".", help="Output directory (default: current dir)")
    export.set_defaults(handler=run_export)

    clear = sub.add_parser("clear-history", parents=[common], help="Remove every gallery entry")
    clear.set_defaults(handler=run_clear_history)

    styles = sub.add_parser("styles", parents=[common], help="List styles and aspect ratios")
    styles.set_defaults(handler=run_styles)

    return p


def main(argv: list[str] | None = None) -> None:
    """Main entry point for CLI."""
    p = build_arg_parser()
    args = p.parse_args(argv)

    try:
        exit_code = args.handler(args)
    except (FileNotFoundError, ValueError) as e:
        console.print(f"[red]ERROR: {e}[/red]")
        exit_code = 1
    sys.exit(exit_code)


if __name__ == "__main__":
    main()

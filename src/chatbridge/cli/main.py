"""Click CLI group: status, ask and transcribe commands."""

from __future__ import annotations

import asyncio
import json
import sys

import click

from chatbridge.config import get_settings
from chatbridge.logging import configure_logging
from chatbridge.providers.factory import build_gateway
from chatbridge.providers.gateway import AIProviderGateway
from chatbridge.transcription.factory import build_transcription_cascade


def _green(text: str) -> str:
    return f"\033[32m{text}\033[0m"


def _red(text: str) -> str:
    return f"\033[31m{text}\033[0m"


async def _ready_gateway() -> AIProviderGateway:
    gateway = build_gateway(get_settings())
    await gateway.initialize()
    return gateway


@click.group()
@click.option("--log-level", default=None, help="Override LOG_LEVEL for this run.")
def cli(log_level: str | None) -> None:
    """Chatbridge AI service CLI."""
    configure_logging(log_level or get_settings().log_level, json_output=False)


@cli.command()
@click.option("--json", "json_output", is_flag=True, help="Print the raw status snapshot.")
def status(json_output: bool) -> None:
    """Probe the configured providers and report which one is active."""
    gateway = asyncio.run(_ready_gateway())
    snapshot = gateway.get_status()
    if json_output:
        click.echo(json.dumps(snapshot, indent=2, default=str))
        return
    available = bool(snapshot["available"])
    label = _green("available") if available else _red("unavailable")
    click.echo(f"AI service: {label} (mode={snapshot['active_mode']})")
    for item in gateway.state.descriptors.values():
        icon = _green("✓") if item.available else _red("✗")
        reason = f" - {item.reason}" if item.reason else ""
        click.echo(f"  {icon} {item.kind.value}: {item.model}{reason}")
    if not available:
        sys.exit(1)


@cli.command()
@click.argument("message")
@click.option("--template", "template_text", default=None, help="Prompt template text.")
@click.option("--image", "image_path", type=click.Path(dir_okay=False), default=None)
@click.option("--stream", is_flag=True, help="Print fragments as they arrive.")
def ask(message: str, template_text: str | None, image_path: str | None, stream: bool) -> None:
    """Send one message to the active provider and print the reply."""

    async def _run() -> bool:
        gateway = await _ready_gateway()
        if stream:
            prompt = gateway.composer.apply_template(message, template_text)
            result = await gateway.stream_text(
                prompt, image_path, lambda chunk: click.echo(chunk, nl=False)
            )
            click.echo()
            if not result.success:
                click.echo(result.content)
        else:
            result = await gateway.generate_templated(message, template_text, image_path)
            click.echo(result.content)
        click.echo(f"[model={result.model} type={result.kind.value}]", err=True)
        if not result.success:
            click.echo(f"error: {result.error}", err=True)
        return result.success

    if not asyncio.run(_run()):
        sys.exit(1)


@cli.command()
@click.argument("audio_path", type=click.Path(dir_okay=False))
def transcribe(audio_path: str) -> None:
    """Transcribe an audio file through the transcription cascade."""
    cascade = build_transcription_cascade(get_settings())
    result = asyncio.run(cascade.transcribe(audio_path))
    if result.success:
        click.echo(result.transcription)
        click.echo(f"[backend={result.backend}]", err=True)
        return
    click.echo(f"transcription failed: {result.error}", err=True)
    sys.exit(1)


if __name__ == "__main__":
    cli()

"""CLI command for viewing the stored restoration blueprint."""

from __future__ import annotations

from datetime import datetime

import click
from rich.console import Console, Group
from rich.panel import Panel
from rich.text import Text

from elysian.cli.profile_cmd import open_store
from elysian.models import RestorationBlueprint
from elysian.storage import load_blueprint

console = Console()


def render_blueprint(blueprint: RestorationBlueprint) -> Panel:
    updated = datetime.fromtimestamp(blueprint.last_updated / 1000).strftime("%Y-%m-%d %H:%M")

    parts = [
        Text("Root Analysis", style="bold"),
        Text(blueprint.root_analysis),
        Text(""),
        Text("Core Shift", style="bold"),
        Text(blueprint.core_shift, style="italic"),
        Text(""),
        Text("Action Steps", style="bold"),
    ]
    for i, step in enumerate(blueprint.action_steps, 1):
        parts.append(Text.assemble((f"{i}. {step.title}", "cyan")))
        parts.append(Text(f"   {step.description}"))
        parts.append(Text(f"   Why it works: {step.why_it_works}", style="dim"))
    parts += [
        Text(""),
        Text("Daily Ritual", style="bold"),
        Text(blueprint.suggested_ritual),
    ]
    return Panel(
        Group(*parts),
        title="[bold green]Restoration Blueprint[/bold green]",
        subtitle=f"[dim]updated {updated}[/dim]",
        border_style="green",
    )


@click.command("blueprint")
def show_blueprint():
    """Show the latest restoration blueprint."""
    blueprint = load_blueprint(open_store())
    if blueprint is None:
        console.print("[yellow]No blueprint yet.[/yellow] It appears after a few exchanges in `elysian chat`.")
        return
    console.print(render_blueprint(blueprint))

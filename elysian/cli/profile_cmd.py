"""CLI commands for the user profile and stored credentials."""

from __future__ import annotations

from typing import Optional

import click
from rich.console import Console
from rich.table import Table

from elysian.advice import CATEGORIES
from elysian.config import load_config, store_api_key
from elysian.models import FocusArea, UserProfile
from elysian.storage import BLUEPRINT_KEY, PROFILE_KEY, LocalStore, load_profile, save_profile

console = Console()

FOCUS_CHOICES = [f.value for f in FocusArea]


def open_store() -> LocalStore:
    return LocalStore(load_config().store_path)


def prompt_profile(store: LocalStore) -> UserProfile:
    """Collect name, focus and optional context, then persist the profile."""
    console.print("[bold]Welcome to Elysian[/bold]")
    console.print("[dim]To provide deep, intelligent guidance, tell me a bit about your current situation.[/dim]")
    console.print()

    name = click.prompt("How should I address you?").strip()
    while not name:
        name = click.prompt("How should I address you?").strip()

    for i, focus in enumerate(FOCUS_CHOICES, 1):
        console.print(f"  [cyan]{i:>2}[/cyan]  {focus}")
    choice = click.prompt(
        "What brings you here today?",
        type=click.IntRange(1, len(FOCUS_CHOICES)),
    )
    context = click.prompt("Any other context? (optional)", default="", show_default=False)

    profile = UserProfile(name=name, main_focus=FOCUS_CHOICES[choice - 1], context=context)
    save_profile(store, profile)
    console.print(f"[green]✓[/green] Profile saved for [bold]{profile.name}[/bold]")
    return profile


@click.command("setup")
def setup():
    """Create or replace your Elysian profile."""
    prompt_profile(open_store())


@click.command("profile")
def show_profile():
    """Show the stored profile."""
    profile = load_profile(open_store())
    if profile is None:
        console.print("[yellow]No profile yet.[/yellow] Run: elysian setup")
        return
    table = Table(show_header=False, box=None)
    table.add_row("[dim]Name[/dim]", profile.name or "—")
    table.add_row("[dim]Focus[/dim]", profile.focus_label or "—")
    table.add_row("[dim]Context[/dim]", profile.context or "—")
    console.print(table)


@click.command("reset")
@click.option("--yes", is_flag=True, help="Do not ask for confirmation")
def reset(yes: bool):
    """Forget the stored profile and blueprint."""
    if not yes and not click.confirm("Remove your profile and restoration blueprint?"):
        return
    store = open_store()
    store.delete(PROFILE_KEY)
    store.delete(BLUEPRINT_KEY)
    console.print("[green]✓[/green] Profile and blueprint removed")


@click.command("set-key")
@click.option("--key", prompt=True, hide_input=True, help="Gemini API key")
def set_key(key: str):
    """Store the Gemini API key in macOS Keychain.

    The key is read again on every request, so a running session picks it up.
    """
    if store_api_key(key.strip()):
        console.print("[green]✓[/green] Gemini API key stored in Keychain")
    else:
        console.print("[red]Failed to store key.[/red] Set API_KEY in your environment instead.")


@click.command("paths")
def paths():
    """List the restorative paths you can start a session from."""
    table = Table(title="Common Paths to Clarity")
    table.add_column("#", style="cyan", justify="right")
    table.add_column("Path", style="bold")
    table.add_column("Description")
    for i, cat in enumerate(CATEGORIES, 1):
        table.add_row(str(i), cat.title, cat.description)
    console.print(table)
    console.print("[dim]Start one with: elysian chat --path N[/dim]")


def ensure_profile(store: LocalStore) -> Optional[UserProfile]:
    profile = load_profile(store)
    if profile is None:
        profile = prompt_profile(store)
    return profile

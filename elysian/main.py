"""Elysian CLI — an emotional-support companion in your terminal."""

import logging

import click
from rich.console import Console
from rich.logging import RichHandler

from elysian.cli.blueprint_cmd import show_blueprint
from elysian.cli.chat_cmd import chat
from elysian.cli.profile_cmd import paths, reset, set_key, setup, show_profile

console = Console(stderr=True)

LOG_LEVELS = {0: logging.WARNING, 1: logging.INFO}


def configure_logging(verbosity: int):
    logging.basicConfig(
        level=LOG_LEVELS.get(verbosity, logging.DEBUG),
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, rich_tracebacks=True, show_path=False)],
        force=True,
    )
    # The provider SDK and its HTTP stack are chatty below WARNING.
    for noisy in ("httpx", "httpcore", "google_genai"):
        logging.getLogger(noisy).setLevel(logging.WARNING)


@click.group()
@click.option("-v", "--verbose", count=True, help="-v for info logs, -vv for debug")
def cli(verbose: int):
    """Elysian — quiet restoration for the complex mind."""
    configure_logging(verbose)


cli.add_command(chat)
cli.add_command(setup)
cli.add_command(show_profile)
cli.add_command(show_blueprint)
cli.add_command(paths)
cli.add_command(reset)
cli.add_command(set_key)


if __name__ == "__main__":
    cli()

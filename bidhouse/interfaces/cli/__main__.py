"""Entry point for running the Bidhouse CLI.

Executing ``python -m bidhouse.interfaces.cli`` invokes the top-level
group and presents the available commands.
"""

import click

from .auction import auction
from .bid import bid, decide
from .notifications import notifications
from .serve import serve


@click.group(context_settings={"help_option_names": ["-h", "--help"]})
def cli() -> None:
    """Bidhouse command-line interface."""


cli.add_command(auction)
cli.add_command(bid)
cli.add_command(decide)
cli.add_command(notifications)
cli.add_command(serve)


if __name__ == "__main__":
    cli()

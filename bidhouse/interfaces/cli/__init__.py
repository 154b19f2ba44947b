"""CLI interface facades for Bidhouse.

This package is the home for all Click commands; the ``bidhouse`` console
script points at :func:`cli`.
"""

from .__main__ import cli
from .auction import auction
from .bid import bid, decide
from .notifications import notifications
from .serve import serve

__all__ = ["auction", "bid", "cli", "decide", "notifications", "serve"]

"""
Bidhouse package initializer.

This package provides the bidding core of an online auction house: bid
admission, auction lifecycle settlement, seller decisions, notifications and
real-time fanout of auction updates.

The package exposes a ``__version__`` attribute indicating the installed
version of Bidhouse. The version is read from pyproject.toml via
importlib.metadata – this is the single source of truth.
"""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("bidhouse")
except PackageNotFoundError:
    # Package is not installed (running from source without pip install -e .)
    __version__ = "0.0.0.dev"

__all__: list[str] = ["__version__"]

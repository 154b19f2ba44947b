"""Domain layer facade for Bidhouse.

This package groups the pure business logic and shared models that do not
concern infrastructure or interface details: the auction, bid and
notification models, the lifecycle engine, bidding rules and the error
taxonomy.
"""

from . import errors, lifecycle, models, rules

__all__ = ["errors", "lifecycle", "models", "rules"]

"""User-facing interfaces for Bidhouse."""

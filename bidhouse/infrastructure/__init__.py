"""Infrastructure layer: SQLite persistence and observability."""

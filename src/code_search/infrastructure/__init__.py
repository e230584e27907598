"""Infrastructure layer: provider adapters, SQLite cache and metrics."""

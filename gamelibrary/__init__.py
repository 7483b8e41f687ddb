"""Game library service core: configuration, models, SQLite storage, migrations and JSON responses."""

__version__ = "0.1.0"
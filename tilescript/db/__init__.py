"""SQLite scene store."""

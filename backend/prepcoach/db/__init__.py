"""Database engine, sessions and unit of work."""

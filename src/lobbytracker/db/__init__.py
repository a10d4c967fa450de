"""Database engine, column types and snapshot storage."""

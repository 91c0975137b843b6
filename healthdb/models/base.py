"""Shared metadata for all tables."""

from sqlalchemy import MetaData

# One MetaData so foreign keys resolve across table modules
metadata = MetaData()

"""Pydantic schemas for stored records and analytics rows."""

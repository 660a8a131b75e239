"""Pydantic schemas for the REST transport."""

"""Pydantic schemas shared across domains and adapters."""

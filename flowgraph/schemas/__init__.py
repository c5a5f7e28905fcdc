"""Pydantic schemas for persisted flows."""

from .flow import PathMapEntrySchema, SerializableFlow, SerializableNode

__all__ = [
    "PathMapEntrySchema",
    "SerializableFlow",
    "SerializableNode",
]

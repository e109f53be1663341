"""Module system, typed flags, process-group commands and process supervision for a stateless PDF service."""

__version__ = "8.0.0"
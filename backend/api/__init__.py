"""API route handlers."""
from . import accounts, valuations

__all__ = ["accounts", "valuations"]

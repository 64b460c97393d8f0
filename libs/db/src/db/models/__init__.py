"""Shared SQLAlchemy models registry for the workspace database.

Currently holds the key/value table used by ``invoice_builder`` storage.
"""

from .invoicing import Base, IbKvEntry

__all__ = [
    "Base",
    "IbKvEntry",
]

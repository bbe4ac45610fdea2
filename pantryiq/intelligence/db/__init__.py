"""SQLite-backed collaborators: equivalency rules, inventory and audit log."""

from .equivalencies import EquivalencyDB
from .inventory import InventoryDB
from .schema import ensure_schema

__all__ = [
    "EquivalencyDB",
    "InventoryDB",
    "ensure_schema",
]

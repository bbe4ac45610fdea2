"""Snapshot provider interfaces implemented by the surrounding system."""

from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import datetime

from .models import ConsumptionEvent, InventoryItem


class InventorySnapshotProvider(ABC):
    @abstractmethod
    def get_inventory(self, household_id: str) -> list[InventoryItem]:
        """Return the household's current, unconsumed items with products joined."""
        ...


class ConsumptionEventProvider(ABC):
    @abstractmethod
    def get_consumption_events(
        self, household_id: str, since: datetime
    ) -> list[ConsumptionEvent]:
        """Return removal events recorded at or after ``since``."""
        ...

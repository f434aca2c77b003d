"""
Ports (interfaces) for study data storage.

These define the contract that infrastructure adapters must implement.
Application services depend on these abstractions, not concrete implementations.
"""

from abc import ABC, abstractmethod
from collections.abc import Mapping
from typing import Any

from .models import Card

RawRecord = Mapping[str, Any]


class StudyRepository(ABC):
    """
    Port for loading and persisting study data.

    Records other than cards are returned raw: parsing and defaulting
    belong to the application layer.

    Implementations:
        - YamlStudyRepository: Reads and writes a single YAML document.
    """

    @abstractmethod
    async def list_cards(self) -> list[Card]:
        """Fetch every card owned by the current user."""
        pass

    @abstractmethod
    async def list_deck_option_records(self) -> list[RawRecord]:
        """Fetch all deck study option records, including the global one."""
        pass

    @abstractmethod
    async def get_review_settings_record(self) -> RawRecord | None:
        """Fetch the legacy review settings record, if any."""
        pass

    @abstractmethod
    async def list_daily_state_records(self) -> list[RawRecord]:
        """Fetch all persisted daily deck state records."""
        pass

    @abstractmethod
    async def save_card(self, card: Card) -> None:
        """Persist a card, replacing any record with the same id."""
        pass

    @abstractmethod
    async def save_daily_state_record(self, record: RawRecord) -> None:
        """Persist a daily deck state record, replacing any with the same id."""
        pass

"""
YAML Study Repository: infrastructure adapter for a local YAML document.

Implements StudyRepository over a single file with the top-level keys
``cards``, ``deck_options``, ``daily_states`` and ``review_settings``.
"""

import logging
import math
import os
from collections.abc import Mapping
from dataclasses import asdict
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Any

import yaml

from studylane.application.coerce import (
    to_bool,
    to_choice,
    to_finite_float,
    to_instant,
    to_int,
    to_non_negative_int,
    to_optional_trimmed_string,
)
from studylane.domain.exceptions import StoreError
from studylane.domain.models import Card, ReviewState
from studylane.domain.ports import RawRecord, StudyRepository

logger = logging.getLogger(__name__)

_EPOCH = datetime.fromtimestamp(0, tz=timezone.utc)


def _optional_float(value: Any) -> float | None:
    parsed = to_finite_float(value, math.nan)
    return None if math.isnan(parsed) else parsed


def _record_id(record: Mapping[str, Any]) -> str | None:
    value = record.get("id")
    if isinstance(value, int) and not isinstance(value, bool):
        return str(value)
    return to_optional_trimmed_string(value)


def card_from_record(record: Mapping[str, Any]) -> Card | None:
    """Build a Card from a stored record. Records without an id are skipped."""
    card_id = _record_id(record)
    if card_id is None:
        return None

    created_at = to_instant(record.get("created_at"), _EPOCH)
    updated_at = to_instant(record.get("updated_at"), created_at)
    buried = record.get("buried_until_day")

    return Card(
        id=card_id,
        note_id=to_optional_trimmed_string(record.get("note_id")) or f"note-{card_id}",
        deck_name=to_optional_trimmed_string(record.get("deck_name")),
        is_suspended=to_bool(record.get("is_suspended"), False),
        buried_until_day=to_int(buried, 0) if buried is not None else None,
        review_state=to_choice(record.get("review_state"), ReviewState, ReviewState.NEW),
        due_at=to_instant(record.get("due_at"), created_at),
        stability=_optional_float(record.get("stability")),
        difficulty=_optional_float(record.get("difficulty")),
        elapsed_days=_optional_float(record.get("elapsed_days")),
        scheduled_days=_optional_float(record.get("scheduled_days")),
        learning_steps=to_non_negative_int(record.get("learning_steps"), 0),
        reps=to_non_negative_int(record.get("reps"), 0),
        lapses=to_non_negative_int(record.get("lapses"), 0),
        last_review_at=to_instant(record.get("last_review_at")),
        created_at=created_at,
        updated_at=updated_at,
        front=record.get("front"),
        back=record.get("back"),
    )


def _to_plain(value: Any) -> Any:
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, Enum):
        return value.value
    return value


def card_to_record(card: Card) -> dict[str, Any]:
    return {key: _to_plain(value) for key, value in asdict(card).items() if value is not None}


class YamlStudyRepository(StudyRepository):
    """
    Stores study data in one YAML document.

    The file is read on every call and rewritten atomically on every save,
    so concurrent edits made by other tools are picked up.
    """

    def __init__(self, path: Path):
        self.path = Path(path)

    def _load(self) -> dict[str, Any]:
        if not self.path.exists():
            return {}
        try:
            data = yaml.safe_load(self.path.read_text(encoding="utf-8"))
        except (OSError, yaml.YAMLError) as e:
            raise StoreError(f"Could not read {self.path}: {e}") from e
        if data is None:
            return {}
        if not isinstance(data, dict):
            raise StoreError(f"{self.path} must contain a mapping at the top level")
        return data

    def _dump(self, data: dict[str, Any]) -> None:
        tmp_path = self.path.with_suffix(self.path.suffix + ".tmp")
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            tmp_path.write_text(
                yaml.safe_dump(data, sort_keys=False, allow_unicode=True), encoding="utf-8"
            )
            os.replace(tmp_path, self.path)
        except OSError as e:
            raise StoreError(f"Could not write {self.path}: {e}") from e

    def _records(self, key: str) -> list[dict[str, Any]]:
        value = self._load().get(key) or []
        if not isinstance(value, list):
            logger.warning(f"Ignoring '{key}' in {self.path}: expected a list")
            return []
        return [item for item in value if isinstance(item, dict)]

    def _upsert(self, key: str, record: RawRecord) -> None:
        data = self._load()
        items = data.get(key)
        if not isinstance(items, list):
            items = []
        record_id = _record_id(record)
        items = [
            item for item in items if not (isinstance(item, dict) and _record_id(item) == record_id)
        ]
        items.append(dict(record))
        data[key] = items
        self._dump(data)

    async def list_cards(self) -> list[Card]:
        cards: list[Card] = []
        for record in self._records("cards"):
            card = card_from_record(record)
            if card is None:
                logger.warning(f"Skipping card without id in {self.path}")
                continue
            cards.append(card)
        return cards

    async def list_deck_option_records(self) -> list[RawRecord]:
        return self._records("deck_options")

    async def get_review_settings_record(self) -> RawRecord | None:
        value = self._load().get("review_settings")
        return value if isinstance(value, dict) else None

    async def list_daily_state_records(self) -> list[RawRecord]:
        return self._records("daily_states")

    async def save_card(self, card: Card) -> None:
        self._upsert("cards", card_to_record(card))
        logger.debug(f"Saved card {card.id}")

    async def save_daily_state_record(self, record: RawRecord) -> None:
        self._upsert("daily_states", record)
        logger.debug(f"Saved daily state {record.get('id')}")

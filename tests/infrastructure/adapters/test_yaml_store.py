from dataclasses import replace
from datetime import datetime, timezone

import pytest
import yaml

from studylane.domain.exceptions import StoreError
from studylane.domain.models import ReviewState
from studylane.infrastructure.adapters.yaml_store import (
    YamlStudyRepository,
    card_from_record,
    card_to_record,
)


@pytest.fixture
def store_file(tmp_path):
    path = tmp_path / "data.yaml"
    path.write_text(
        yaml.safe_dump(
            {
                "cards": [
                    {
                        "id": "c1",
                        "note_id": "n1",
                        "deck_name": "Spanish",
                        "review_state": "review",
                        "stability": 4.5,
                        "difficulty": 5.1,
                        "reps": 3,
                        "lapses": 1,
                        "created_at": "2024-03-01T09:00:00+00:00",
                        "due_at": "2024-03-15T09:00:00+00:00",
                        "last_review_at": "2024-03-10T09:00:00+00:00",
                        "front": "hola",
                        "back": "hello",
                    },
                    {"id": 7, "created_at": "2024-03-02T09:00:00+00:00"},
                    {"note_id": "orphan"},
                    "not a record",
                ],
                "deck_options": [{"deck_name": "__all__", "new_per_day": 5}],
                "review_settings": {"daily_review_goal": 50},
            }
        ),
        encoding="utf-8",
    )
    return path


class TestCardRecords:
    def test_full_record(self):
        card = card_from_record(
            {
                "id": "c1",
                "note_id": "n1",
                "review_state": "relearning",
                "learning_steps": 1,
                "created_at": "2024-03-01T09:00:00+00:00",
                "due_at": "2024-03-15T09:00:00Z",
                "is_suspended": True,
                "buried_until_day": 19797,
            }
        )
        assert card.review_state == ReviewState.RELEARNING
        assert card.learning_steps == 1
        assert card.due_at == datetime(2024, 3, 15, 9, tzinfo=timezone.utc)
        assert card.updated_at == card.created_at
        assert card.is_suspended
        assert card.buried_until_day == 19797

    def test_minimal_record_gets_defaults(self):
        card = card_from_record({"id": " c2 "})
        assert card.id == "c2"
        assert card.note_id == "note-c2"
        assert card.review_state == ReviewState.NEW
        assert card.created_at == datetime(1970, 1, 1, tzinfo=timezone.utc)
        assert card.due_at == card.created_at
        assert card.stability is None

    def test_bad_fields_fall_back(self):
        card = card_from_record(
            {"id": "c3", "review_state": "mastered", "reps": -2, "stability": "high"}
        )
        assert card.review_state == ReviewState.NEW
        assert card.reps == 0
        assert card.stability is None

    def test_missing_id_is_skipped(self):
        assert card_from_record({"note_id": "n1"}) is None

    def test_to_record_is_plain_data(self):
        card = card_from_record(
            {"id": "c1", "review_state": "review", "created_at": "2024-03-01T09:00:00+00:00"}
        )
        record = card_to_record(card)

        assert record["review_state"] == "review"
        assert record["created_at"] == "2024-03-01T09:00:00+00:00"
        assert "stability" not in record
        assert card_from_record(record) == card


class TestRepository:
    @pytest.mark.asyncio
    async def test_list_cards_skips_invalid_records(self, store_file):
        repo = YamlStudyRepository(store_file)
        cards = await repo.list_cards()

        assert [card.id for card in cards] == ["c1", "7"]
        assert cards[0].front == "hola"
        assert cards[0].lapses == 1

    @pytest.mark.asyncio
    async def test_option_and_settings_records(self, store_file):
        repo = YamlStudyRepository(store_file)

        assert await repo.list_deck_option_records() == [{"deck_name": "__all__", "new_per_day": 5}]
        assert await repo.get_review_settings_record() == {"daily_review_goal": 50}
        assert await repo.list_daily_state_records() == []

    @pytest.mark.asyncio
    async def test_missing_file_is_empty(self, tmp_path):
        repo = YamlStudyRepository(tmp_path / "absent.yaml")
        assert await repo.list_cards() == []
        assert await repo.get_review_settings_record() is None

    @pytest.mark.asyncio
    async def test_save_card_replaces_existing(self, store_file):
        repo = YamlStudyRepository(store_file)
        card = (await repo.list_cards())[0]

        await repo.save_card(replace(card, reps=9))
        cards = await repo.list_cards()

        assert len(cards) == 2
        saved = next(c for c in cards if c.id == "c1")
        assert saved.reps == 9
        assert saved.back == "hello"

    @pytest.mark.asyncio
    async def test_save_daily_state_record_upserts(self, tmp_path):
        path = tmp_path / "nested" / "data.yaml"
        repo = YamlStudyRepository(path)

        await repo.save_daily_state_record({"id": "d1", "deck_name": "__all__", "new_shown": 1})
        await repo.save_daily_state_record({"id": "d1", "deck_name": "__all__", "new_shown": 2})
        await repo.save_daily_state_record({"id": "d2", "deck_name": "Spanish", "new_shown": 0})

        records = await repo.list_daily_state_records()
        assert [(r["id"], r["new_shown"]) for r in records] == [("d1", 2), ("d2", 0)]
        assert not path.with_suffix(".yaml.tmp").exists()

    @pytest.mark.asyncio
    async def test_unreadable_yaml_raises_store_error(self, tmp_path):
        path = tmp_path / "broken.yaml"
        path.write_text("cards: [unclosed", encoding="utf-8")
        with pytest.raises(StoreError):
            await YamlStudyRepository(path).list_cards()

    @pytest.mark.asyncio
    async def test_non_mapping_document_raises_store_error(self, tmp_path):
        path = tmp_path / "list.yaml"
        path.write_text("- a\n- b\n", encoding="utf-8")
        with pytest.raises(StoreError, match="mapping"):
            await YamlStudyRepository(path).list_cards()

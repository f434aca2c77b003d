"""Custom study parameters as they arrive from query-style strings."""

from collections.abc import Mapping
from typing import Any
from urllib.parse import urlencode

from studylane.domain.models import CustomStudyOptions

from .coerce import parse_deck_param, parse_flag, parse_positive_int


def parse_custom_study_params(
    params: Mapping[str, Any],
) -> tuple[str | None, CustomStudyOptions]:
    """
    Read ``deckName``, ``customNewDelta``, ``customReviewDelta``,
    ``forgotten`` and ``ahead``. Malformed values become 0 or False.
    """
    custom_study = CustomStudyOptions(
        add_new_cards=parse_positive_int(params.get("customNewDelta")),
        add_review_cards=parse_positive_int(params.get("customReviewDelta")),
        include_forgotten=parse_flag(params.get("forgotten")),
        include_review_ahead=parse_flag(params.get("ahead")),
    )
    return parse_deck_param(params.get("deckName")), custom_study


def build_custom_study_query(deck_name: str | None, custom_study: CustomStudyOptions) -> str:
    query: dict[str, str] = {}
    if deck_name:
        query["deckName"] = deck_name
    if custom_study.add_new_cards > 0:
        query["customNewDelta"] = str(custom_study.add_new_cards)
    if custom_study.add_review_cards > 0:
        query["customReviewDelta"] = str(custom_study.add_review_cards)
    if custom_study.include_forgotten:
        query["forgotten"] = "1"
    if custom_study.include_review_ahead:
        query["ahead"] = "1"
    return urlencode(query)

"""studylane CLI: inspect queues and grade cards against a local YAML store."""

import asyncio
import json
import logging
import sys
from dataclasses import asdict
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Annotated, Any
from urllib.parse import parse_qs

import typer

from studylane.application.config import AppConfig, resolve_config
from studylane.application.custom_study import parse_custom_study_params
from studylane.application.session import get_refresh_delay, get_study_session_phase
from studylane.application.study_service import StudyService
from studylane.domain.exceptions import StudyLaneError
from studylane.domain.models import CustomStudyOptions, ReviewRating
from studylane.infrastructure.adapters.yaml_store import YamlStudyRepository

# ---------------------------------------------------------------------------
# Root app
# ---------------------------------------------------------------------------

app = typer.Typer(
    help="studylane: spaced-repetition study queues.",
    no_args_is_help=True,
    rich_markup_mode="rich",
)

config_app = typer.Typer(help="Manage studylane configuration.")
app.add_typer(config_app, name="config")

logging.basicConfig(
    level=logging.WARNING,
    format="%(levelname)s:%(name)s:%(message)s",
    stream=sys.stderr,
)
logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Global callback
# ---------------------------------------------------------------------------


@app.callback()
def main_callback(
    ctx: typer.Context,
    verbose: Annotated[
        int,
        typer.Option(
            "--verbose", "-v", count=True, help="Increase verbosity. Repeat for more detail."
        ),
    ] = 0,
    data_file: Annotated[
        Path | None, typer.Option("--data", help="YAML store. Defaults to config.")
    ] = None,
):
    """Global settings for studylane."""
    ctx.ensure_object(dict)
    ctx.obj["overrides"] = {"data_file": data_file, "verbose": verbose or None}


def _config(ctx: typer.Context) -> AppConfig:
    overrides = (ctx.obj or {}).get("overrides", {})
    config = resolve_config(overrides)
    verbose = config.verbose
    level = logging.DEBUG if verbose > 1 else logging.INFO if verbose else logging.WARNING
    logging.getLogger().setLevel(level)
    return config


def _service(config: AppConfig) -> StudyService:
    return StudyService(
        YamlStudyRepository(config.data_file),
        owner_id=config.owner_id,
        enable_fuzzing=config.enable_fuzzing,
    )


def _session_params(
    config: AppConfig, deck: str | None, custom: str | None
) -> tuple[str | None, CustomStudyOptions]:
    """Deck and custom study from a query string; ``--deck`` wins over its deckName."""
    params: dict[str, Any] = parse_qs(custom or "")
    if deck:
        params["deckName"] = deck
    elif "deckName" not in params:
        params["deckName"] = config.default_deck
    return parse_custom_study_params(params)


def _run(coro):
    try:
        return asyncio.run(coro)
    except StudyLaneError as e:
        logger.debug("Command failed", exc_info=True)
        typer.secho(f"Error: {e}", fg="red", err=True)
        raise typer.Exit(1)


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------


@app.command()
def queue(
    ctx: typer.Context,
    deck: Annotated[str | None, typer.Option(help="Deck to study. Defaults to all decks.")] = None,
    custom: Annotated[
        str | None,
        typer.Option(
            help="Custom study query, e.g. 'customNewDelta=10&forgotten=1&ahead=1'.",
        ),
    ] = None,
    as_json: Annotated[bool, typer.Option("--json", help="Print machine-readable output.")] = False,
):
    """Show the study queue for a deck and today's remaining budgets."""
    config = _config(ctx)
    deck_name, custom_study = _session_params(config, deck, custom)

    state = _run(_service(config).start_session(deck_name, custom_study))
    build = state.queue_build

    if as_json:
        typer.echo(
            json.dumps(
                {
                    "deck": state.deck_name,
                    "phase": get_study_session_phase(state).value,
                    "entries": [
                        {"card_id": entry.card_id, "lane": entry.lane.value}
                        for entry in state.queue
                    ],
                    "remaining": {"new": build.remaining_new, "review": build.remaining_review},
                    "limit_exhausted": {
                        "new": build.new_limit_exhausted,
                        "review": build.review_limit_exhausted,
                    },
                    "next_pending_learning_due_at": (
                        state.next_pending_learning_due_at.isoformat()
                        if state.next_pending_learning_due_at
                        else None
                    ),
                },
                indent=2,
            )
        )
        return

    typer.echo(f"Deck: {state.deck_name or 'all decks'}")
    typer.echo(f"Phase: {get_study_session_phase(state).value}")
    for position, entry in enumerate(state.queue, start=1):
        typer.echo(f"{position:>4}. [{entry.lane.value}] {entry.card_id}")

    def _fmt(remaining: int) -> str:
        return "unlimited" if remaining < 0 else str(remaining)

    typer.echo(
        f"Remaining today: new={_fmt(build.remaining_new)} review={_fmt(build.remaining_review)}"
    )
    if build.new_limit_exhausted:
        typer.secho("New card limit reached for today.", fg="yellow")
    if build.review_limit_exhausted:
        typer.secho("Review limit reached for today.", fg="yellow")

    delay = get_refresh_delay(state, datetime.now(timezone.utc))
    if delay is not None:
        typer.echo(f"Next learning card due in {int(delay.total_seconds())}s")


@app.command()
def overview(
    ctx: typer.Context,
    deck: Annotated[str | None, typer.Option(help="Deck to count. Defaults to all decks.")] = None,
):
    """Count new, learning and due review cards."""
    config = _config(ctx)
    counts = _run(_service(config).overview(deck or config.default_deck))
    typer.echo(f"New: {counts.new_count}")
    typer.echo(f"Learning: {counts.learning_count}")
    typer.echo(f"Review: {counts.review_due_count}")


@app.command()
def grade(
    ctx: typer.Context,
    card_id: Annotated[str, typer.Argument(help="Card to grade.")],
    rating: Annotated[ReviewRating, typer.Argument(help="again, hard, good or easy.")],
    deck: Annotated[str | None, typer.Option(help="Deck session the card belongs to.")] = None,
    custom: Annotated[
        str | None,
        typer.Option(help="Custom study query the card was queued with, as for queue."),
    ] = None,
):
    """
    Grade a card and credit it against today's limits.

    Pass the same --custom as 'queue' so cards from the forgotten and ahead
    lanes are credited; deltas already added today are not added again.
    """
    config = _config(ctx)
    service = _service(config)
    deck_name, custom_study = _session_params(config, deck, custom)

    async def run():
        state = await service.start_session(deck_name, custom_study)
        return await service.grade_card(state, card_id, rating)

    state, card = _run(run())
    typer.secho(
        f"{card.id}: {card.review_state.value}, due {card.due_at.isoformat()}", fg="green"
    )
    typer.echo(f"Queued next: {len(state.queue)}")


@app.command()
def options(
    ctx: typer.Context,
    deck: Annotated[
        str | None, typer.Option(help="Deck to resolve. Defaults to all decks.")
    ] = None,
):
    """Display the study options in effect for a deck."""
    config = _config(ctx)
    resolved = _run(_service(config).resolve_options(deck or config.default_deck))
    data = {
        key: value.value if isinstance(value, Enum) else value
        for key, value in asdict(resolved).items()
    }
    typer.echo(json.dumps(data, indent=2))


@app.command()
def logs(ctx: typer.Context):
    """Print the log directory, creating it if needed."""
    config = _config(ctx)
    if not config.log_dir.exists():
        config.log_dir.mkdir(parents=True, exist_ok=True)
    typer.echo(str(config.log_dir))


# ---------------------------------------------------------------------------
# Config subgroup
# ---------------------------------------------------------------------------


@config_app.command("show")
def config_show(ctx: typer.Context):
    """Display final resolved configuration."""
    config = _config(ctx)
    d = {k: str(v) if isinstance(v, Path) else v for k, v in config.model_dump().items()}
    typer.echo(json.dumps(d, indent=2))

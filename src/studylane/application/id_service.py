"""Stable ids for records created by studylane."""

from ulid import ULID


def generate_record_id() -> str:
    """Generate a sortable unique record id using ULID."""
    return str(ULID())

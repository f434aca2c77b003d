"""Errors surfaced by studylane.

Malformed configuration is never an error: it is corrected at parse time.
Only failures the engine cannot repair reach the caller.
"""


class StudyLaneError(Exception):
    """Base class for all studylane errors."""


class SchedulerConfigError(StudyLaneError):
    """The memory model rejected the scheduling configuration."""


class StoreError(StudyLaneError):
    """The backing store could not be read or written."""

"""
Exceptions raised inside the scheduler core.

The outward operations of TimetableService convert these into failure
results; they only escape from the lower-level services.
"""


class SchedulerError(Exception):
    """Base exception for timetable scheduling errors."""


class VersionNotFoundError(SchedulerError):
    """A timetable version id did not resolve."""


class VersionActivationError(SchedulerError):
    """Activation left a class/week without exactly one active version."""

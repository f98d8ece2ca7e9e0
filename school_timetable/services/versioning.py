"""
Timetable versioning.

Each generation run mints a new version per class for the current week and
makes it the only active one for that class/week. Creation and activation
for one (class, week_start, week_end) key happen under a single-writer lock:
an in-process lock per key, plus a row lock on the class taken in the
database, which also serializes separate worker processes. A unique
(class, week, label) constraint backs both.
"""

import logging
import threading
from contextlib import ExitStack
from datetime import date, timedelta
from typing import Dict, Iterable, List, Optional, Tuple

from school_timetable.errors import VersionActivationError, VersionNotFoundError
from school_timetable.models.models import TimetableVersion

logger = logging.getLogger(__name__)

VersionKey = Tuple[int, date, date]


def current_week_range(today: Optional[date] = None) -> Tuple[date, date]:
    """Monday of the week containing `today` and the Saturday after it."""
    today = today or date.today()
    week_start = today - timedelta(days=today.weekday())
    return week_start, week_start + timedelta(days=5)


def version_label(existing_count: int) -> str:
    return f"v0.{existing_count + 1}"


class _KeyedLocks:
    """One lock per version key, created on first use."""

    def __init__(self):
        self._guard = threading.Lock()
        self._locks: Dict[VersionKey, threading.Lock] = {}

    def for_key(self, key: VersionKey) -> threading.Lock:
        with self._guard:
            lock = self._locks.get(key)
            if lock is None:
                lock = self._locks[key] = threading.Lock()
            return lock


_version_locks = _KeyedLocks()


class VersionCoordinator:
    """Creates and activates timetable versions through the repository."""

    def __init__(self, repository, locks: Optional[_KeyedLocks] = None):
        self.repository = repository
        self.locks = locks or _version_locks

    def list_versions(self, class_id: int, week_start: date, week_end: date) -> List[TimetableVersion]:
        return self.repository.get_timetable_versions_for_class(class_id, week_start, week_end)

    def create_version(self, class_id: int, week_start: date, week_end: date) -> TimetableVersion:
        """
        Mint the next version for a class/week, make it the only active
        one, and commit.
        """
        return self.create_versions([class_id], week_start, week_end)[class_id]

    def create_versions(
        self,
        class_ids: Iterable[int],
        week_start: date,
        week_end: date,
        commit: bool = True,
    ) -> Dict[int, TimetableVersion]:
        """
        Mint and activate the next version of every class in one transaction.

        Each class row is locked in the database before its versions are
        counted, so writers in other processes queue behind this one until
        the transaction ends. With `commit=False` the caller owns the
        transaction; anything that fails here is still rolled back.
        """
        created: Dict[int, TimetableVersion] = {}
        keys = [(class_id, week_start, week_end) for class_id in sorted(set(class_ids))]
        with ExitStack() as stack:
            for key in keys:
                stack.enter_context(self.locks.for_key(key))
            try:
                for key in keys:
                    created[key[0]] = self._mint(*key)
                if commit:
                    self.repository.commit()
            except Exception:
                self.repository.rollback()
                raise
        return created

    def _mint(self, class_id: int, week_start: date, week_end: date) -> TimetableVersion:
        self.repository.lock_class(class_id)
        existing = self.repository.get_timetable_versions_for_class(class_id, week_start, week_end)
        label = version_label(len(existing))
        version = self.repository.create_timetable_version(
            class_id=class_id,
            version=label,
            week_start=week_start,
            week_end=week_end,
            is_active=True,
        )
        self._activate(version.id, class_id, week_start, week_end)
        logger.info(f"Created timetable version {label} (id={version.id}) for class {class_id}, week {week_start}")
        return version

    def activate_version(self, version_id: int, class_id: Optional[int] = None) -> TimetableVersion:
        """Make an existing version the active one for its class/week."""
        version = self.repository.get_version(version_id)
        if version is None:
            raise VersionNotFoundError(f"Timetable version {version_id} not found")
        if class_id is not None and version.class_id != class_id:
            raise VersionNotFoundError(f"Timetable version {version_id} does not belong to class {class_id}")

        key = (version.class_id, version.week_start, version.week_end)
        with self.locks.for_key(key):
            try:
                self.repository.lock_class(version.class_id)
                activated = self._activate(version.id, *key)
                self.repository.commit()
            except Exception:
                self.repository.rollback()
                raise
        return activated

    def _activate(self, version_id: int, class_id: int, week_start: date, week_end: date) -> TimetableVersion:
        activated = self.repository.set_active_version(version_id, class_id)
        if activated is None:
            raise VersionNotFoundError(f"Timetable version {version_id} not found")

        active_count = self.repository.count_active_versions(class_id, week_start, week_end)
        if active_count != 1:
            logger.error(
                f"Class {class_id} week {week_start}-{week_end} has {active_count} active versions "
                f"after activating {version_id}"
            )
            raise VersionActivationError(
                f"Expected exactly one active version for class {class_id}, found {active_count}"
            )
        return activated

"""Append-only audit log — one record per successful registry mutation.

Each record carries the hash of the record before it, so the log forms a
chain: altering, dropping or reordering any record breaks every link after
it. verify_chain() recomputes the chain from scratch.

The log is in-memory only. How (or whether) it is shipped elsewhere is the
hosting environment's concern.
"""

from __future__ import annotations

import enum
import hashlib
import json
import threading
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Optional

GENESIS_HASH = "sha256:" + "0" * 64


class EventKind(str, enum.Enum):
    """Classification of registry events."""
    ACCOUNT_CREATED = "account_created"
    PRINCIPAL_UPDATED = "principal_updated"
    COMPANY_SET = "company_set"
    MANAGER_APPROVED = "manager_approved"
    EXPERIENCE_ADDED = "experience_added"
    EXPERIENCE_APPROVED = "experience_approved"
    ACTIVE_EXPERIENCE_SET = "active_experience_set"
    SKILL_ADDED = "skill_added"
    CERTIFICATION_ADDED = "certification_added"
    SKILL_ENDORSED = "skill_endorsed"
    SKILL_VERIFIED = "skill_verified"


def _canonical_hash(
    event_id: str,
    event_kind: str,
    timestamp_utc: str,
    principal: str,
    payload: dict[str, Any],
    previous_hash: str,
) -> str:
    canonical = json.dumps(
        {
            "event_id": event_id,
            "event_kind": event_kind,
            "timestamp_utc": timestamp_utc,
            "principal": principal,
            "payload": payload,
            "previous_hash": previous_hash,
        },
        sort_keys=True,
    ).encode("ascii")
    return "sha256:" + hashlib.sha256(canonical).hexdigest()


@dataclass(frozen=True)
class EventRecord:
    """A single immutable audit record.

    event_hash covers every other field, previous_hash included.
    """
    event_id: str
    event_kind: EventKind
    timestamp_utc: str
    principal: str
    payload: dict[str, Any]
    previous_hash: str
    event_hash: str

    @staticmethod
    def create(
        event_id: str,
        event_kind: EventKind,
        principal: str,
        payload: dict[str, Any],
        previous_hash: str,
        timestamp_utc: Optional[datetime] = None,
    ) -> EventRecord:
        """Create a record chained onto previous_hash."""
        ts = timestamp_utc or datetime.now(timezone.utc)
        ts_str = ts.strftime("%Y-%m-%dT%H:%M:%SZ")
        return EventRecord(
            event_id=event_id,
            event_kind=event_kind,
            timestamp_utc=ts_str,
            principal=principal,
            payload=payload,
            previous_hash=previous_hash,
            event_hash=_canonical_hash(
                event_id, event_kind.value, ts_str, principal, payload, previous_hash,
            ),
        )

    def computed_hash(self) -> str:
        """Recompute the hash from the record's fields."""
        return _canonical_hash(
            self.event_id,
            self.event_kind.value,
            self.timestamp_utc,
            self.principal,
            self.payload,
            self.previous_hash,
        )


class EventLog:
    """Append-only, hash-chained event log.

    Events can only be appended, never modified or deleted. A record is
    accepted only if it chains onto the current head.
    """

    def __init__(self) -> None:
        self._events: list[EventRecord] = []
        self._event_ids: set[str] = set()
        self._lock = threading.RLock()

    @property
    def lock(self) -> threading.RLock:
        """Held by writers between reading head_hash and appending."""
        return self._lock

    def append(self, event: EventRecord) -> None:
        """Append an event to the log.

        Raises:
            ValueError: Duplicate event_id, or event does not chain onto
                the current head.
        """
        with self._lock:
            if event.event_id in self._event_ids:
                raise ValueError(f"Duplicate event ID: {event.event_id}")
            if event.previous_hash != self.head_hash:
                raise ValueError(
                    f"Event {event.event_id} does not chain onto head "
                    f"{self.head_hash}"
                )

            self._events.append(event)
            self._event_ids.add(event.event_id)

    def has_event(self, event_id: str) -> bool:
        return event_id in self._event_ids

    def events(self, kind: Optional[EventKind] = None) -> list[EventRecord]:
        """Return events, optionally filtered by kind."""
        if kind is None:
            return list(self._events)
        return [e for e in self._events if e.event_kind == kind]

    def events_for_principal(self, principal: str) -> list[EventRecord]:
        return [e for e in self._events if e.principal == principal]

    def verify_chain(self) -> list[str]:
        """Recompute every hash and link. Empty list means intact."""
        errors: list[str] = []
        expected_previous = GENESIS_HASH
        for position, event in enumerate(self._events, 1):
            if event.previous_hash != expected_previous:
                errors.append(
                    f"Broken link at position {position}: event "
                    f"{event.event_id} points to {event.previous_hash}"
                )
            computed = event.computed_hash()
            if computed != event.event_hash:
                errors.append(
                    f"Hash mismatch at position {position}: event "
                    f"{event.event_id} stored {event.event_hash} != "
                    f"computed {computed}"
                )
            expected_previous = event.event_hash
        return errors

    @property
    def head_hash(self) -> str:
        return self._events[-1].event_hash if self._events else GENESIS_HASH

    @property
    def count(self) -> int:
        return len(self._events)

    @property
    def last_event(self) -> Optional[EventRecord]:
        return self._events[-1] if self._events else None

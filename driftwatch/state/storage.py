from abc import ABC, abstractmethod
from typing import List, NamedTuple, Optional

from driftwatch.state.models import StateRecord


class StateError(Exception):
    """Base class for state medium failures."""
    pass


class StateCorruptError(StateError):
    """The record exists but cannot be decoded."""
    pass


class StateReadError(StateError):
    """The medium could not be read (distinct from 'no record yet')."""
    pass


class StateWriteError(StateError):
    """The new record could not be persisted; the previous one is left intact."""
    pass


class StoredRecord(NamedTuple):
    target_id: str
    kind: str
    record: Optional[StateRecord]
    error: Optional[str]


def state_key(target_id: str, kind: str) -> str:
    """
    Deterministic key for a (target, kind) pair: "<target_id>.<kind>.json".
    Rejects ids that could address anything outside the state medium.
    """
    for label, value in (("target id", target_id), ("kind", kind)):
        if not value or value in (".", "..") or any(c in value for c in ("/", "\\", "\x00")):
            raise ValueError(f"Invalid {label} for state key: {value!r}")
    if "." in kind:
        raise ValueError(f"Invalid kind for state key: {kind!r}")
    return f"{target_id}.{kind}.json"


class StateStore(ABC):
    """
    Abstract interface for the durable current-record store.
    Invariant: at most one live record per (target, kind); put() fully supersedes the previous value.
    """

    @abstractmethod
    def get(self, target_id: str, kind: str) -> Optional[StateRecord]:
        """
        Return the current record, or None if the pair was never recorded.
        Raises StateCorruptError for an undecodable record and StateReadError for medium failures.
        """
        pass

    @abstractmethod
    def put(self, target_id: str, kind: str, record: StateRecord) -> None:
        """Atomically replace the whole record. Raises StateWriteError."""
        pass

    @abstractmethod
    def list_records(self, kind: Optional[str] = None) -> List[StoredRecord]:
        """All stored records, optionally for one kind. Undecodable ones carry an error instead."""
        pass

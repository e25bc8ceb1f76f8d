from enum import Enum
from dataclasses import dataclass
from typing import Optional, Tuple

from driftwatch.state.models import StateRecord


class DriftStatus(Enum):
    BASELINE = "BASELINE"
    UNCHANGED = "UNCHANGED"
    CHANGED = "CHANGED"


@dataclass(frozen=True)
class DriftOutcome:
    """
    Immutable result of comparing a new fingerprint with the prior record.
    `record` is what the caller persists on success, for every status.
    """
    status: DriftStatus
    prior: Optional[StateRecord]
    record: StateRecord
    changed_fields: Tuple[str, ...] = ()

    @property
    def is_drift(self) -> bool:
        return self.status == DriftStatus.CHANGED

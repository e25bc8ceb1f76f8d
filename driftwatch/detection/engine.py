from datetime import datetime
from typing import Optional, Tuple

from driftwatch.models import Target
from driftwatch.detection.models import DriftOutcome, DriftStatus
from driftwatch.fingerprint.models import Fingerprint
from driftwatch.state.models import StateRecord


class DriftDetector:
    """
    Pure decision engine: (prior record, new fingerprint) -> outcome + record to persist.
    Holds no state and reads no clock; the observation time is supplied by the caller.
    """

    def classify(
        self,
        prior: Optional[StateRecord],
        fingerprint: Fingerprint,
        *,
        target: Target,
        observed_at: datetime,
    ) -> DriftOutcome:
        record = StateRecord(
            target_id=target.target_id,
            locator=target.locator,
            observed_at=observed_at,
            fingerprint=fingerprint,
        )

        if prior is None:
            return DriftOutcome(DriftStatus.BASELINE, None, record)

        # INVARIANT: Only fingerprints of the same kind are comparable.
        if prior.fingerprint.kind != fingerprint.kind:
            raise ValueError(
                f"Kind mismatch for {target.target_id}: {prior.fingerprint.kind} vs {fingerprint.kind}"
            )

        # Locator edits alone are not drift; only fingerprint content is compared.
        changed = diff_fields(prior.fingerprint, fingerprint)
        if changed:
            return DriftOutcome(DriftStatus.CHANGED, prior, record, changed)
        return DriftOutcome(DriftStatus.UNCHANGED, prior, record)


def diff_fields(old: Fingerprint, new: Fingerprint) -> Tuple[str, ...]:
    """
    Names of fields whose values differ, in field order.
    Exact equality; None equals only None, so absent -> present counts as a change.
    """
    names = list(old.field_names)
    names.extend(name for name in new.field_names if name not in names)
    old_values = old.as_dict()
    new_values = new.as_dict()
    return tuple(
        name for name in names
        if name not in old_values or name not in new_values or old_values[name] != new_values[name]
    )

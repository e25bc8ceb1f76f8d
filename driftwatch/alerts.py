"""
Alert routing for drift runs.
Formats per-target messages and hands them to a sink tagged with target id and severity.
Delivery beyond the process (chat, email) plugs in as another AlertSink.
"""

import logging
from abc import ABC, abstractmethod
from enum import Enum

from driftwatch.detection.models import DriftOutcome
from driftwatch.fingerprint.models import Fingerprint

ALERT_LEVEL = logging.ERROR + 5
logging.addLevelName(ALERT_LEVEL, "ALERT")

TAG = "driftwatch"


class Severity(Enum):
    INFO = "info"
    WARNING = "warning"
    ALERT = "alert"


LOG_LEVELS = {
    Severity.INFO: logging.INFO,
    Severity.WARNING: logging.WARNING,
    Severity.ALERT: ALERT_LEVEL,
}


class AlertSink(ABC):
    """Receives plain-text messages. Must not raise for a single bad message."""

    @abstractmethod
    def emit(self, target_id: str, severity: Severity, message: str) -> None:
        pass


class LoggingAlertSink(AlertSink):
    """
    Routes messages through the project logger.
    INFO lands on stdout; WARNING and ALERT land on stderr (see driftwatch.core.setup_logger).
    """

    def __init__(self, logger: logging.Logger = None):
        self._logger = logger or logging.getLogger("driftwatch.alerts")

    def emit(self, target_id, severity, message):
        self._logger.log(LOG_LEVELS[severity], message, extra={"context": target_id})


def _prefix(target_id):
    return f"[{TAG}][{target_id}]"


def format_fetch_error(target_id, locator, error):
    return f"{_prefix(target_id)} ERROR fetch: {error} url={locator}"


def format_unexpected(target_id, locator, error):
    return f"{_prefix(target_id)} ERROR unexpected failure: {type(error).__name__}: {error} url={locator}"


def format_state_error(target_id, error):
    return f"{_prefix(target_id)} ERROR state store: {error}"


def format_state_corrupt(target_id, error):
    return f"{_prefix(target_id)} WARNING stored state unreadable, re-baselining: {error}"


def format_degraded(target_id, locator, fingerprint: Fingerprint):
    fields = "/".join(fingerprint.field_names)
    return f"{_prefix(target_id)} WARNING no {fields} found (format changed?) url={locator}"


def format_outcome(outcome: DriftOutcome) -> str:
    record = outcome.record
    prefix = _prefix(record.target_id)
    current = record.fingerprint.describe()

    if outcome.prior is None:
        return f"{prefix} baseline saved {current}"

    if not outcome.is_drift:
        return f"{prefix} no change {current}"

    return (
        f"{prefix} CHANGE DETECTED\n"
        f"url={record.locator}\n"
        f"prev: {outcome.prior.fingerprint.describe()}\n"
        f"next: {current}\n"
        f"changed={','.join(outcome.changed_fields)}\n"
        f"checkedAt={record.observed_at.isoformat()}"
    )


def outcome_severity(outcome: DriftOutcome) -> Severity:
    return Severity.ALERT if outcome.is_drift else Severity.INFO

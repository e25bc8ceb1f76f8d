"""
FILE DESCRIPTION: Run coordinator. Probes every configured target in its own task,
classifies the fingerprint against stored state, persists, and routes outcomes.
KEY FUNCTIONS/CLASSES: DriftRunManager, TargetResult, RunReport
"""

import logging
import re
import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Callable, Dict, Iterable, List, Optional

from tabulate import tabulate

from driftwatch import alerts
from driftwatch.alerts import AlertSink, Severity
from driftwatch.config import RunConfig
from driftwatch.models import Target
from driftwatch.detection.engine import DriftDetector
from driftwatch.detection.models import DriftOutcome, DriftStatus
from driftwatch.fingerprint.extractor import FingerprintExtractor, get_extractor
from driftwatch.probe.fetcher import RemoteProbe
from driftwatch.probe.models import ProbeError
from driftwatch.state.storage import StateCorruptError, StateError, StateStore

logger = logging.getLogger(__name__)

SUMMARY_MARKER = "DRIFT RUN SUMMARY"

_COUNT_LINE = re.compile(r"^\s+-\s+([a-z_]+)\s+(\d+)\s*$")


class TargetStatus(Enum):
    BASELINE = "BASELINE"
    UNCHANGED = "UNCHANGED"
    CHANGED = "CHANGED"
    FETCH_FAILED = "FETCH_FAILED"
    STATE_FAILED = "STATE_FAILED"
    ERROR = "ERROR"


OUTCOME_STATUS = {
    DriftStatus.BASELINE: TargetStatus.BASELINE,
    DriftStatus.UNCHANGED: TargetStatus.UNCHANGED,
    DriftStatus.CHANGED: TargetStatus.CHANGED,
}


@dataclass(frozen=True)
class TargetResult:
    target: Target
    status: TargetStatus
    outcome: Optional[DriftOutcome] = None
    error: Optional[str] = None
    degraded: bool = False
    rebaselined: bool = False
    fetch_ms: Optional[int] = None

    @property
    def detail(self) -> str:
        if self.error:
            return self.error
        parts = [self.outcome.record.fingerprint.describe()]
        if self.outcome.changed_fields:
            parts.append(f"changed: {', '.join(self.outcome.changed_fields)}")
        if self.degraded:
            parts.append("no fields found")
        if self.rebaselined:
            parts.append("prior state unreadable")
        return "; ".join(parts)


@dataclass
class RunReport:
    started_at: datetime
    kind: str
    results: List[TargetResult] = field(default_factory=list)
    duration: float = 0.0

    def count(self, status: TargetStatus) -> int:
        return sum(1 for r in self.results if r.status == status)

    @property
    def failures(self) -> int:
        return sum(
            1 for r in self.results
            if r.status in (TargetStatus.FETCH_FAILED, TargetStatus.STATE_FAILED, TargetStatus.ERROR)
        )


class DriftRunManager:
    """
    Orchestrates one run over all targets.
    Invariants:
    - Per-target isolation: a failure in one task never aborts or corrupts another.
    - A failed probe never touches the stored record.
    - Read -> classify -> persist for one target happens strictly in sequence inside its task.
    """

    def __init__(
        self,
        config: RunConfig,
        store: StateStore,
        probe: RemoteProbe,
        sink: AlertSink,
        extractor: FingerprintExtractor = None,
        detector: DriftDetector = None,
        clock: Callable[[], datetime] = None,
    ):
        self.config = config
        self.store = store
        self.probe = probe
        self.sink = sink
        self.extractor = extractor or get_extractor(config.kind)
        self.detector = detector or DriftDetector()
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    def run(self, targets: List[Target]) -> RunReport:
        # One observation time per run, shared by every record written in it
        run_at = self._clock()
        report = RunReport(started_at=run_at, kind=self.extractor.KIND)
        start = time.monotonic()

        if targets:
            workers = max(1, min(self.config.max_workers, len(targets)))
            logger.info(f"[RUN] {len(targets)} target(s), kind={self.extractor.KIND}, workers={workers}")
            with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="drift") as executor:
                futures = [executor.submit(self._safe_process, target, run_at) for target in targets]
                # Joined in submission order so the summary follows the config order
                report.results = [f.result() for f in futures]
        else:
            logger.warning("[RUN] No targets configured")

        report.duration = time.monotonic() - start
        return report

    def _safe_process(self, target: Target, run_at: datetime) -> TargetResult:
        try:
            return self.process_target(target, run_at)
        except Exception as e:
            # Task boundary: anything unexpected is reported for this target only
            logger.exception(f"[RUN] Unexpected failure for {target.target_id}", extra={"context": target.target_id})
            self.sink.emit(target.target_id, Severity.ALERT, alerts.format_unexpected(target.target_id, target.locator, e))
            return TargetResult(target, TargetStatus.ERROR, error=f"{type(e).__name__}: {e}")

    def process_target(self, target: Target, run_at: datetime) -> TargetResult:
        kind = self.extractor.KIND
        tid = target.target_id

        # 1. Prior state
        rebaselined = False
        try:
            prior = self.store.get(tid, kind)
        except StateCorruptError as e:
            self.sink.emit(tid, Severity.WARNING, alerts.format_state_corrupt(tid, e))
            prior = None
            rebaselined = True
        except StateError as e:
            # Not the same as "never seen": skip rather than fabricate a baseline
            self.sink.emit(tid, Severity.ALERT, alerts.format_state_error(tid, e))
            return TargetResult(target, TargetStatus.STATE_FAILED, error=str(e))

        # 2. Probe
        try:
            response = self.probe.probe(target.locator, self.extractor.PROBE_MODE)
        except ProbeError as e:
            self.sink.emit(tid, Severity.ALERT, alerts.format_fetch_error(tid, target.locator, e))
            return TargetResult(target, TargetStatus.FETCH_FAILED, error=f"fetch: {e}")
        logger.debug(f"[PROBE] {tid} answered {response.http_status} in {response.fetch_duration_ms}ms")

        # 3. Extract
        payload = response.headers if self.extractor.PROBE_MODE == "head" else response.body
        fingerprint = self.extractor.extract(payload)
        if fingerprint.is_degraded:
            self.sink.emit(tid, Severity.WARNING, alerts.format_degraded(tid, target.locator, fingerprint))

        # 4. Classify and persist
        outcome = self.detector.classify(prior, fingerprint, target=target, observed_at=run_at)
        try:
            self.store.put(tid, kind, outcome.record)
        except StateError as e:
            self.sink.emit(tid, Severity.ALERT, alerts.format_state_error(tid, e))
            return TargetResult(
                target, TargetStatus.STATE_FAILED, outcome=outcome, error=str(e), fetch_ms=response.fetch_duration_ms
            )

        # 5. Route
        self.sink.emit(tid, alerts.outcome_severity(outcome), alerts.format_outcome(outcome))
        return TargetResult(
            target,
            OUTCOME_STATUS[outcome.status],
            outcome=outcome,
            degraded=fingerprint.is_degraded,
            rebaselined=rebaselined,
            fetch_ms=response.fetch_duration_ms,
        )

    def print_summary(self, report: RunReport) -> None:
        """Terminal summary: one row per target, then the totals block."""
        rows = [[r.target.target_id, r.status.value, r.fetch_ms, r.detail] for r in report.results]
        if rows:
            print(tabulate(rows, headers=["Target", "Status", "Fetch ms", "Detail"], tablefmt="simple", missingval="-"))

        print("\n==============================")
        print(SUMMARY_MARKER)
        print("==============================")
        print(f"Kind:           {report.kind}")
        print(f"Checked at:     {report.started_at.isoformat()}")
        print(f"Duration:       {report.duration:.2f} seconds")
        print(f"Targets:        {len(report.results)}")
        for status in TargetStatus:
            print(f"  - {status.value.lower():<13} {report.count(status)}")
        print("==============================\n")


def parse_summary_counts(lines: Iterable[str]) -> Optional[Dict[TargetStatus, int]]:
    """
    Reads the per-status counts back out of a printed summary block.
    Returns None when the block never appeared (the run died before finishing).
    """
    counts = None
    for line in lines:
        if SUMMARY_MARKER in line:
            counts = {status: 0 for status in TargetStatus}
            continue
        if counts is None:
            continue
        match = _COUNT_LINE.match(line.rstrip("\n"))
        if match:
            try:
                counts[TargetStatus(match.group(1).upper())] = int(match.group(2))
            except ValueError:
                logger.debug(f"[SUMMARY] Ignoring unknown status line: {line.strip()}")
    return counts

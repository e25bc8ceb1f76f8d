from driftwatch.detection.models import DriftOutcome, DriftStatus
from driftwatch.detection.engine import DriftDetector, diff_fields

from driftwatch.fingerprint.models import Fingerprint
from driftwatch.fingerprint.extractor import (
    FingerprintExtractor,
    available_kinds,
    get_extractor,
    register,
)

import re
from typing import Union

from driftwatch.fingerprint.extractor import FingerprintExtractor, register
from driftwatch.fingerprint.models import Fingerprint

# Banner comments at the top of the asset, e.g.:
# // v 255
# // 2026-Jan-14 09:53:31
VERSION_PATTERN = re.compile(r'//\s*v\s*(\d+)', re.IGNORECASE)
DATE_PATTERN = re.compile(r'//\s*(\d{4}-[A-Za-z]{3}-\d{2}\s+\d{2}:\d{2}:\d{2})')


@register
class TextPatternExtractor(FingerprintExtractor):
    """
    Pulls a version/date pair out of the leading comment block of a text asset.
    First match wins for each field.
    """

    KIND = "header"
    FIELDS = ("version", "date")
    PROBE_MODE = "range"

    def extract(self, payload: Union[bytes, str, None]) -> Fingerprint:
        if isinstance(payload, bytes):
            # NOTE: Best-effort UTF-8 keeps the result deterministic for any byte stream
            text = payload.decode('utf-8', errors='replace')
        else:
            text = payload or ""

        version_match = VERSION_PATTERN.search(text)
        date_match = DATE_PATTERN.search(text)

        return self.build({
            "version": version_match.group(1) if version_match else None,
            "date": date_match.group(1) if date_match else None,
        })

from typing import Dict, Iterable, Mapping, Optional, Tuple, Union

from driftwatch.fingerprint.extractor import FingerprintExtractor, register
from driftwatch.fingerprint.models import Fingerprint

HASH_HEADER = "x-goog-hash"

Headers = Union[Mapping[str, str], Iterable[Tuple[str, str]], None]


def _header_values(headers: Headers, name: str) -> Iterable[str]:
    if headers is None:
        return []
    items = headers.items() if hasattr(headers, "items") else headers
    return [value for key, value in items if key.lower() == name and value]


def parse_hash_header(value: str) -> Dict[str, str]:
    """
    Parse "crc32c=n03x6A==,md5=Ojk9c3dhfxgoKVVHYwFbHQ==" into {"crc32c": ..., "md5": ...}.
    Base64 padding means only the first '=' separates name from value.
    """
    hashes = {}
    for part in value.split(","):
        name, sep, digest = part.strip().partition("=")
        if sep and name and digest:
            hashes.setdefault(name.strip().lower(), digest.strip())
    return hashes


@register
class HeaderHashExtractor(FingerprintExtractor):
    """
    Reads the object content hashes reported by the storage backend in response headers.
    Only needs a HEAD request; the body is never downloaded.
    """

    KIND = "hash"
    FIELDS = ("md5", "crc32c")
    PROBE_MODE = "head"

    def extract(self, payload: Headers) -> Fingerprint:
        found: Dict[str, Optional[str]] = {}
        # Repeated headers may arrive separately or already joined with ", "
        for value in _header_values(payload, HASH_HEADER):
            for name, digest in parse_hash_header(value).items():
                found.setdefault(name, digest)
        return self.build({name: found.get(name) for name in self.FIELDS})

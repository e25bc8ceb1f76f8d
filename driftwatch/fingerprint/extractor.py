from abc import ABC, abstractmethod
from typing import Any, Dict, List, Tuple, Type

from driftwatch.fingerprint.models import Fingerprint


class FingerprintExtractor(ABC):
    """
    Abstraction for turning a raw probe payload into a Fingerprint.
    Contractual Requirements for Implementers:
    - MUST return every name in FIELDS, using None for a field that was not found.
    - MUST NOT raise because a field is missing.
    - MUST be deterministic: no clocks, no state shared between targets.
    """

    KIND: str = ""
    FIELDS: Tuple[str, ...] = ()

    # Which probe request the kind needs: "range" (leading bytes) or "head" (headers only)
    PROBE_MODE: str = "range"

    @abstractmethod
    def extract(self, payload: Any) -> Fingerprint:
        pass

    def build(self, values: Dict[str, Any]) -> Fingerprint:
        return Fingerprint.from_mapping(self.KIND, values, self.FIELDS)


_REGISTRY: Dict[str, Type[FingerprintExtractor]] = {}


def register(extractor_cls: Type[FingerprintExtractor]) -> Type[FingerprintExtractor]:
    """Class decorator making an extractor selectable by its KIND."""
    if not extractor_cls.KIND:
        raise ValueError(f"{extractor_cls.__name__} has no KIND")
    _REGISTRY[extractor_cls.KIND] = extractor_cls
    return extractor_cls


def _load_builtin():
    # Importing the modules runs their @register decorators
    from driftwatch.fingerprint.extraction import header_hash, text_pattern  # noqa: F401


def available_kinds() -> List[str]:
    _load_builtin()
    return sorted(_REGISTRY)


def get_extractor(kind: str) -> FingerprintExtractor:
    _load_builtin()
    try:
        return _REGISTRY[kind]()
    except KeyError:
        raise ValueError(f"Unknown extraction kind: {kind}") from None

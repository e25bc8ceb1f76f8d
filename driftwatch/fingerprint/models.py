from dataclasses import dataclass
from typing import Dict, Iterable, Mapping, Optional, Tuple


@dataclass(frozen=True)
class Fingerprint:
    """
    Comparable snapshot of what was observed for one target.
    Invariants:
    - Field order and field set are fixed per extraction kind.
    - None means "field not found" and is kept distinct from any string, including "".
    """
    kind: str
    fields: Tuple[Tuple[str, Optional[str]], ...]

    @classmethod
    def from_mapping(cls, kind: str, values: Mapping[str, Optional[str]], field_names: Optional[Iterable[str]] = None) -> "Fingerprint":
        names = list(field_names) if field_names is not None else list(values.keys())
        return cls(kind=kind, fields=tuple((name, values.get(name)) for name in names))

    @property
    def field_names(self) -> Tuple[str, ...]:
        return tuple(name for name, _ in self.fields)

    def get(self, name: str) -> Optional[str]:
        for key, value in self.fields:
            if key == name:
                return value
        return None

    def as_dict(self) -> Dict[str, Optional[str]]:
        return dict(self.fields)

    @property
    def is_degraded(self) -> bool:
        """True when the extractor located none of the fields."""
        return all(value is None for _, value in self.fields)

    def describe(self) -> str:
        # Missing fields print as null, matching the stored JSON
        return " ".join(f"{name}={'null' if value is None else value}" for name, value in self.fields)

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, Optional

from driftwatch.fingerprint.models import Fingerprint

META_KEYS = ("site", "url", "checkedAt")


@dataclass(frozen=True)
class StateRecord:
    """
    The current record for one (target, kind) pair. History is not retained.
    Persisted as {site, url, checkedAt, <fingerprint fields>}.
    """
    target_id: str
    locator: str
    observed_at: datetime
    fingerprint: Fingerprint

    @property
    def kind(self) -> str:
        return self.fingerprint.kind

    def to_json_dict(self) -> Dict[str, Any]:
        data = {
            "site": self.target_id,
            "url": self.locator,
            "checkedAt": self.observed_at.isoformat(),
        }
        # Absent fields are written as null, never as ""
        data.update(self.fingerprint.as_dict())
        return data

    @classmethod
    def from_json_dict(cls, data: Dict[str, Any], kind: str, field_names: Optional[Iterable[str]] = None) -> "StateRecord":
        """
        Strict decode. Raises ValueError/KeyError/TypeError on any shape problem;
        the store turns those into StateCorruptError.
        """
        if not isinstance(data, dict):
            raise TypeError(f"record must be an object, got {type(data).__name__}")

        for key in META_KEYS:
            if not isinstance(data.get(key), str):
                raise KeyError(f"missing or non-string '{key}'")

        names = list(field_names) if field_names is not None else [k for k in data if k not in META_KEYS]
        values = {}
        for name in names:
            if name not in data:
                raise KeyError(f"missing fingerprint field '{name}'")
            value = data[name]
            if value is not None and not isinstance(value, str):
                raise TypeError(f"fingerprint field '{name}' must be a string or null")
            values[name] = value

        return cls(
            target_id=data["site"],
            locator=data["url"],
            observed_at=parse_timestamp(data["checkedAt"]),
            fingerprint=Fingerprint.from_mapping(kind, values, names),
        )


def parse_timestamp(value: str) -> datetime:
    # Accept the "Z" suffix produced by JavaScript's toISOString()
    if value.endswith("Z"):
        value = value[:-1] + "+00:00"
    parsed = datetime.fromisoformat(value)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed

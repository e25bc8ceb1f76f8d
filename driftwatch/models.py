from dataclasses import dataclass


@dataclass(frozen=True)
class Target:
    """
    One remote resource under watch.
    Invariants: target_id is the stable state key; locator is informational for drift.
    """
    target_id: str
    locator: str

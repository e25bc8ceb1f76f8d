"""
Run configuration for driftwatch.
Defines the targets under watch and the explicit settings struct passed to every run.
No probing, extraction or state handling here.
"""

import json
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional

from driftwatch import core
from driftwatch.fingerprint.extractor import available_kinds
from driftwatch.models import Target


class ConfigError(Exception):
    """Raised when the run cannot start: unreadable targets or invalid settings."""
    pass


@dataclass(frozen=True)
class RunConfig:
    """
    Explicit settings for a single run.
    Built once by the CLI and handed to the coordinator and probe.
    """
    config_path: Path
    state_dir: Path
    kind: str = "header"
    max_bytes: int = 2048
    timeout_ms: int = 12000
    max_workers: int = 4
    user_agent: str = core.USER_AGENT
    log_file: Optional[str] = None

    @property
    def timeout_seconds(self) -> float:
        return self.timeout_ms / 1000.0

    @classmethod
    def from_env(cls, **overrides) -> "RunConfig":
        """
        Merge environment defaults (see driftwatch.core) with explicit overrides.
        Overrides set to None fall back to the environment value.
        """
        values = {
            "config_path": core.CONFIG_PATH,
            "state_dir": core.STATE_DIR,
            "kind": core.DEFAULT_KIND,
            "max_bytes": core.MAX_BYTES,
            "timeout_ms": core.TIMEOUT_MS,
            "max_workers": core.MAX_WORKERS,
            "user_agent": core.USER_AGENT,
            "log_file": core.LOG_FILE,
        }
        values.update({k: v for k, v in overrides.items() if v is not None})

        for key in ("max_bytes", "timeout_ms", "max_workers"):
            values[key] = _positive_int(key, values[key])

        if values["kind"] not in available_kinds():
            raise ConfigError(
                f"Unknown extraction kind '{values['kind']}' "
                f"(available: {', '.join(available_kinds())})"
            )

        values["config_path"] = Path(values["config_path"])
        values["state_dir"] = Path(values["state_dir"])
        return cls(**values)


def _positive_int(name, raw) -> int:
    try:
        value = int(raw)
    except (TypeError, ValueError) as e:
        raise ConfigError(f"{name} must be an integer, got {raw!r}") from e
    if value <= 0:
        raise ConfigError(f"{name} must be positive, got {value}")
    return value


def load_targets(path) -> List[Target]:
    """
    Read the target list: a JSON object mapping target id to locator URL.
    Any read or shape problem is fatal for the run (ConfigError).
    """
    path = Path(path)
    try:
        raw = json.loads(path.read_text(encoding="utf-8"))
    except FileNotFoundError as e:
        raise ConfigError(f"Target configuration not found: {path}") from e
    except (OSError, UnicodeDecodeError) as e:
        raise ConfigError(f"Target configuration unreadable: {path}: {e}") from e
    except json.JSONDecodeError as e:
        raise ConfigError(f"Target configuration is not valid JSON: {path}: {e}") from e

    if not isinstance(raw, dict):
        raise ConfigError(f"Target configuration must be a JSON object, got {type(raw).__name__}")

    targets = []
    for target_id, locator in raw.items():
        if not target_id or not isinstance(locator, str) or not locator:
            raise ConfigError(f"Invalid target entry: {target_id!r} -> {locator!r}")
        targets.append(Target(target_id=target_id, locator=locator))
    return targets

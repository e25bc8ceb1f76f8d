import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Dict, Iterable, List, Optional

from driftwatch.state.models import StateRecord
from driftwatch.state.storage import (
    StateCorruptError,
    StateReadError,
    StateStore,
    StateWriteError,
    StoredRecord,
    state_key,
)

logger = logging.getLogger(__name__)


class JsonFileStateStore(StateStore):
    """
    One pretty-printed JSON file per (target, kind) inside a state directory.
    Writes go to a temp file in the same directory and are swapped in with os.replace,
    so readers see either the old record or the new one, never a mix.
    """

    def __init__(self, state_dir, field_sets: Optional[Dict[str, Iterable[str]]] = None):
        self._dir = Path(state_dir)
        self._field_sets = {kind: tuple(names) for kind, names in (field_sets or {}).items()}

    @property
    def state_dir(self) -> Path:
        return self._dir

    def ensure_dir(self) -> None:
        self._dir.mkdir(parents=True, exist_ok=True)

    def path_for(self, target_id: str, kind: str) -> Path:
        return self._dir / state_key(target_id, kind)

    def get(self, target_id: str, kind: str) -> Optional[StateRecord]:
        path = self.path_for(target_id, kind)
        try:
            raw = path.read_text(encoding="utf-8")
        except FileNotFoundError:
            # First run for this target (or for the whole state directory)
            return None
        except UnicodeDecodeError as e:
            raise StateCorruptError(f"{path}: not UTF-8 text: {e}") from e
        except OSError as e:
            raise StateReadError(f"{path}: {e}") from e

        record = self._decode(path, raw, kind)
        if record.target_id != target_id:
            raise StateCorruptError(f"{path}: record belongs to '{record.target_id}', expected '{target_id}'")
        return record

    def _decode(self, path: Path, raw: str, kind: str) -> StateRecord:
        try:
            data = json.loads(raw)
            return StateRecord.from_json_dict(data, kind, self._field_sets.get(kind))
        except (ValueError, KeyError, TypeError) as e:
            raise StateCorruptError(f"{path}: {e}") from e

    def put(self, target_id: str, kind: str, record: StateRecord) -> None:
        path = self.path_for(target_id, kind)
        payload = json.dumps(record.to_json_dict(), indent=2, ensure_ascii=False) + "\n"

        tmp_name = None
        try:
            self.ensure_dir()
            fd, tmp_name = tempfile.mkstemp(dir=self._dir, prefix=f".{path.name}.", suffix=".tmp")
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(payload)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_name, path)
            tmp_name = None
        except OSError as e:
            raise StateWriteError(f"{path}: {e}") from e
        finally:
            if tmp_name is not None:
                try:
                    os.unlink(tmp_name)
                except OSError:
                    logger.warning(f"[STATE] Could not remove temp file {tmp_name}")

    def list_records(self, kind: Optional[str] = None) -> List[StoredRecord]:
        if not self._dir.is_dir():
            return []

        entries = []
        for path in sorted(self._dir.glob("*.json")):
            target_id, _, file_kind = path.name[:-len(".json")].rpartition(".")
            if not target_id or (kind and file_kind != kind):
                continue
            try:
                record = self._decode(path, path.read_text(encoding="utf-8"), file_kind)
                entries.append(StoredRecord(target_id, file_kind, record, None))
            except (StateCorruptError, OSError, UnicodeDecodeError) as e:
                entries.append(StoredRecord(target_id, file_kind, None, str(e)))
        return entries

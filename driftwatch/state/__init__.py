from driftwatch.state.models import StateRecord
from driftwatch.state.storage import (
    StateStore,
    StateError,
    StateCorruptError,
    StateReadError,
    StateWriteError,
    StoredRecord,
    state_key,
)
from driftwatch.state.json_storage import JsonFileStateStore

"""
Persistence for the GPS Speedometer Telemetry Engine

This module provides the namespaced key-value stores that hold the persisted
accumulator states, plus the best-effort adapter the accumulators use to load
and save them. Storage failures are logged and never propagated.
"""

import json
import logging
from pathlib import Path
from typing import Dict, Mapping, Optional
from . import constants
from . import utils
from .errors import PersistenceFailure

logger = logging.getLogger(__name__)


class MemoryStore:
    """
    In-memory key-value store.

    Used by tests and by sessions that do not need state to survive a
    process restart.
    """

    def __init__(self, prefix: str = constants.STORAGE_PREFIX):
        self.prefix = prefix
        self._data: Dict[str, bytes] = {}

    def get(self, key: str) -> Optional[bytes]:
        return self._data.get(self.prefix + key)

    def set(self, key: str, value: bytes) -> None:
        self._data[self.prefix + key] = bytes(value)


class JsonFileStore:
    """
    Key-value store backed by a single JSON document on disk.

    The document maps prefixed keys to UTF-8 strings. It is read once on
    first access and rewritten in full on every set.
    """

    def __init__(self, path: Path = constants.DEFAULT_STATE_FILE,
                 prefix: str = constants.STORAGE_PREFIX):
        self.path = Path(path)
        self.prefix = prefix
        self._cache: Optional[Dict[str, str]] = None

    def _load(self) -> Dict[str, str]:
        if self._cache is not None:
            return self._cache

        if not self.path.exists():
            self._cache = {}
            return self._cache

        try:
            with self.path.open("r", encoding="utf-8") as file:
                document = json.load(file)
        except (OSError, ValueError) as exc:
            raise PersistenceFailure(f"Unable to read state file {self.path}: {exc}") from exc

        if not isinstance(document, dict):
            raise PersistenceFailure(f"State file {self.path} does not hold a JSON object")

        self._cache = {str(k): v for k, v in document.items() if isinstance(v, str)}
        return self._cache

    def get(self, key: str) -> Optional[bytes]:
        value = self._load().get(self.prefix + key)
        if value is None:
            return None
        return value.encode("utf-8")

    def set(self, key: str, value: bytes) -> None:
        try:
            document = dict(self._load())
        except PersistenceFailure:
            # An unreadable document is replaced rather than blocking writes
            document = {}
        document[self.prefix + key] = bytes(value).decode("utf-8")

        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with self.path.open("w", encoding="utf-8") as file:
                json.dump(document, file, indent=2, sort_keys=True)
        except OSError as exc:
            raise PersistenceFailure(f"Unable to write state file {self.path}: {exc}") from exc

        self._cache = document


def _coerce_field(value, default):
    """
    Validate one persisted field against its default.

    Numeric defaults (and None defaults, which stand for optional numbers)
    only accept finite numbers; ints stay ints when the default is an int.
    """
    if value is None:
        return None if default is None else default
    if not utils.is_finite(value):
        return default
    if isinstance(default, int) and not isinstance(default, bool):
        return int(value) if float(value).is_integer() else default
    return float(value)


def load_state(store, key: str, defaults: Mapping) -> Dict:
    """
    Load a persisted state object, falling back to defaults.

    Mirrors a ``{**defaults, **parsed}`` merge restricted to the keys present
    in ``defaults``. Missing keys, unreadable storage, malformed JSON and
    values of the wrong type all fall back to the default value.

    Args:
        store: Key-value store with ``get(key) -> bytes | None``, or None.
        key: Storage key (without namespace prefix).
        defaults: Default state; also defines the accepted keys.

    Returns:
        A new dictionary holding the loaded state.
    """
    state = dict(defaults)
    if store is None:
        return state

    try:
        raw = store.get(key)
        if not raw:
            return state
        parsed = json.loads(raw.decode("utf-8") if isinstance(raw, bytes) else raw)
    except Exception as exc:
        logger.warning("Unable to read state %r: %s", key, exc, exc_info=True)
        return state

    if not isinstance(parsed, dict):
        logger.warning("Ignoring persisted state %r: expected an object", key)
        return state

    for name, default in defaults.items():
        if name in parsed:
            state[name] = _coerce_field(parsed[name], default)

    return state


def persist_state(store, key: str, state: Mapping) -> bool:
    """
    Persist a state object as JSON, best effort.

    Args:
        store: Key-value store with ``set(key, bytes)``, or None.
        key: Storage key (without namespace prefix).
        state: JSON-serializable state mapping.

    Returns:
        True if the state was written, False if there is no store or the
        write failed (the failure is logged).
    """
    if store is None:
        return False

    try:
        store.set(key, json.dumps(dict(state)).encode("utf-8"))
    except Exception as exc:
        logger.warning("Unable to persist state %r: %s", key, exc, exc_info=True)
        return False

    return True

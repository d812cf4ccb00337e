import json
import logging
import os
import tempfile
from typing import Any, Dict, Optional

logger = logging.getLogger(__name__)


class KeyValueStore:
    """
    Flat key-value snapshot persisted as one JSON document.

    With path=None the store lives in memory only. Writes go through a
    temporary file and os.replace, so a failed save leaves the previous
    snapshot untouched.
    """

    def __init__(self, path: Optional[str] = None):
        self.path = path
        self._data: Dict[str, Any] = self._read()

    def _read(self) -> Dict[str, Any]:
        if not self.path or not os.path.exists(self.path):
            return {}
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, ValueError) as e:
            logger.warning(f"Ignoring unreadable store at {self.path}: {e}")
            return {}
        if not isinstance(data, dict):
            logger.warning(f"Ignoring store at {self.path}: expected an object, got {type(data).__name__}")
            return {}
        return data

    def _flush(self, data: Dict[str, Any]):
        if not self.path:
            return
        directory = os.path.dirname(os.path.abspath(self.path))
        os.makedirs(directory, exist_ok=True)
        fd, tmp_path = tempfile.mkstemp(prefix=".store_", suffix=".json", dir=directory)
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(data, f, indent=2, ensure_ascii=False)
            os.replace(tmp_path, self.path)
        except BaseException:
            if os.path.exists(tmp_path):
                os.remove(tmp_path)
            raise

    def get(self, key: str, default: Any = None) -> Any:
        return self._data.get(key, default)

    def set(self, key: str, value: Any):
        data = dict(self._data)
        data[key] = value
        self._flush(data)
        self._data = data

    def remove(self, key: str):
        if key not in self._data:
            return
        data = dict(self._data)
        del data[key]
        self._flush(data)
        self._data = data

    def __contains__(self, key: str) -> bool:
        return key in self._data

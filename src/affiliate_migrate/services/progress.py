"""File-backed progress store."""

import json
import os
import tempfile
from pathlib import Path
from typing import Any, Dict

from loguru import logger

from .base import ProgressStore


class JsonFileProgressStore(ProgressStore):
    """Progress store persisted as a single JSON document.

    Every write replaces the file atomically, so separate processes can run
    consecutive steps of one job (one CLI invocation per step) and a crash
    mid-write leaves the previous state intact.
    """

    def __init__(self, path: str):
        """Initialize the store.

        Args:
            path: Location of the JSON file; created on first write
        """
        self.path = Path(path)
        self.logger = logger.bind(component='JsonFileProgressStore')

    def _load(self) -> Dict[str, Any]:
        if not self.path.exists():
            return {}

        with open(self.path, 'r', encoding='utf-8') as f:
            content = f.read()

        if not content.strip():
            return {}

        data = json.loads(content)
        if not isinstance(data, dict):
            raise ValueError(f'Progress file {self.path} does not hold an object')
        return data

    def _save(self, data: Dict[str, Any]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)

        fd, temp_path = tempfile.mkstemp(
            dir=str(self.path.parent), prefix='.progress-', suffix='.tmp'
        )
        try:
            with os.fdopen(fd, 'w', encoding='utf-8') as f:
                json.dump(data, f, indent=2, sort_keys=True)
            os.replace(temp_path, self.path)
        except Exception:
            if os.path.exists(temp_path):
                os.unlink(temp_path)
            raise

    def get(self, key: str, default: Any = None) -> Any:
        return self._load().get(key, default)

    def write(self, key: str, value: Any) -> None:
        data = self._load()
        data[key] = value
        self._save(data)
        self.logger.debug(f'Wrote progress key {key}')

    def delete(self, key: str) -> None:
        data = self._load()
        if key not in data:
            return
        del data[key]
        self._save(data)
        self.logger.debug(f'Deleted progress key {key}')

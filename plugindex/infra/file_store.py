"""
File store infrastructure for plugindex.

Provides the JSON manifests behind the disk cache tier:
- Atomic writes (temp file in the same directory, then os.replace)
- One lock per manifest for read-modify-write updates
- Unreadable or non-object files read as an empty manifest
"""

import json
import os
import tempfile
import threading
from pathlib import Path
from typing import Any, Dict, Optional, Union
import logging

logger = logging.getLogger(__name__)


def write_text_atomic(path: Path, text: str) -> None:
    """Write text to ``path`` atomically using a temp file and rename."""
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, temp_path = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")

    try:
        with os.fdopen(fd, 'w', encoding='utf-8', newline='') as f:
            f.write(text)
        os.replace(temp_path, path)
    except BaseException:
        try:
            os.unlink(temp_path)
        except OSError:
            pass
        raise


class FileStore:
    """
    Key-value manifest persisted as one JSON object.

    Example:
        manifest = FileStore(Path("~/.cache/plugindex/readmes.json"))
        manifest.set("folke/lazy.nvim", {"filename": "...", "written_at": 1700000000})
        record = manifest.get("folke/lazy.nvim", fresh=True)
    """

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path).expanduser()
        self._lock = threading.RLock()
        self._loaded: Optional[Dict[str, Any]] = None

    def _load(self) -> Dict[str, Any]:
        if not self.path.exists():
            return {}
        try:
            with open(self.path, 'r', encoding='utf-8') as f:
                loaded = json.load(f)
        except (json.JSONDecodeError, UnicodeDecodeError, OSError) as e:
            logger.warning(f"Unreadable manifest {self.path}: {e}")
            return {}
        if not isinstance(loaded, dict):
            logger.warning(f"Ignoring {self.path}: expected a JSON object")
            return {}
        return loaded

    def _save(self, entries: Dict[str, Any]) -> None:
        write_text_atomic(self.path, json.dumps(entries, indent=2, ensure_ascii=False) + '\n')
        self._loaded = entries

    def read(self, fresh: bool = False) -> Dict[str, Any]:
        """
        Every entry in the manifest.

        Args:
            fresh: Re-read the file instead of using the copy from the last
                read or write; other processes may have changed it

        Returns:
            A copy of the entries, empty if the file is missing or corrupt
        """
        with self._lock:
            if fresh or self._loaded is None:
                self._loaded = self._load()
            return dict(self._loaded)

    def get(self, key: str, default: Any = None, fresh: bool = False) -> Any:
        return self.read(fresh=fresh).get(key, default)

    def set(self, key: str, value: Any) -> None:
        with self._lock:
            entries = self.read(fresh=True)
            entries[key] = value
            self._save(entries)

    def delete(self, key: str) -> bool:
        """Remove one entry. Returns False if it was not there."""
        with self._lock:
            entries = self.read(fresh=True)
            if key not in entries:
                return False
            del entries[key]
            self._save(entries)
            return True

    def remove(self) -> None:
        """Delete the manifest file."""
        with self._lock:
            try:
                self.path.unlink()
            except FileNotFoundError:
                pass
            self._loaded = None

    def __contains__(self, key: str) -> bool:
        return key in self.read()

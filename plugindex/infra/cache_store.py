"""
Two-tier cache for plugindex.

Each resource class (plugin list, READMEs, install catalogues) gets one
CacheStore with two tiers:
- memory: key -> MemoryEntry, replaced by a single assignment
- disk: one JSON manifest per class, with small payloads stored inline and
  large payloads in one file per key

Reads go memory -> disk -> miss. Writes update memory synchronously and
disk best-effort; a failed disk write is logged and never fails ``put``.
A payload file is always fully written before the manifest entry that
points at it, so a reader never sees a truncated payload.
"""

import hashlib
import json
import re
import threading
import time
from concurrent.futures import Executor, Future
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Dict, NamedTuple, Optional
import logging

from .file_store import FileStore, write_text_atomic

logger = logging.getLogger(__name__)

Clock = Callable[[], float]

MEMORY = "memory"
DISK = "disk"

_UNSAFE_CHARS = re.compile(r'[^A-Za-z0-9._-]+')


class PayloadCodec:
    """Converts payloads to and from the text stored in payload files."""
    extension = ".json"

    def dumps(self, payload: Any) -> str:
        return json.dumps(payload, ensure_ascii=False)

    def loads(self, text: str) -> Any:
        return json.loads(text)


class LinesCodec(PayloadCodec):
    """
    Stores a list of lines as plain text, one newline after every line.

    The mandatory final newline lets ``loads`` tell a complete file from a
    truncated one.
    """
    extension = ".md"

    def dumps(self, payload: Any) -> str:
        return "".join(f"{line}\n" for line in payload)

    def loads(self, text: str) -> Any:
        if text and not text.endswith("\n"):
            raise ValueError("payload file is truncated")
        return text.split("\n")[:-1] if text else []


JSON_CODEC = PayloadCodec()
LINES_CODEC = LinesCodec()


class CacheHit(NamedTuple):
    """Outcome of a cache lookup."""
    payload: Any
    valid: bool
    tier: Optional[str] = None
    meta: Optional[Dict[str, Any]] = None


@dataclass(frozen=True)
class MemoryEntry:
    payload: Any
    timestamp: float
    meta: Dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class DiskEntry:
    payload: Any
    written_at: float
    meta: Dict[str, Any] = field(default_factory=dict)


MISS = CacheHit(None, False)


def key_to_filename(prefix: str, key: str, extension: str) -> str:
    """
    Map a logical key to a payload filename.

    ``folke/lazy.nvim`` -> ``readme-folke-lazy.nvim-<hash>.md``; the hash
    keeps keys that only differ in unsafe characters apart.
    """
    safe = _UNSAFE_CHARS.sub('-', key).strip('-') or 'entry'
    digest = hashlib.sha1(key.encode('utf-8')).hexdigest()[:8]
    return f"{prefix}-{safe}-{digest}{extension}"


class CacheStore:
    """
    Memory + disk cache for one resource class.

    Example:
        store = CacheStore("readmes", cache_dir, memory_max_age=3600,
                           disk_max_age=86400, inline=False, codec=LINES_CODEC)
        store.put("folke/lazy.nvim", ["# lazy.nvim", ""])
        hit = store.get("folke/lazy.nvim")
        if hit.valid:
            lines = hit.payload
    """

    def __init__(
        self,
        name: str,
        cache_dir: Path,
        memory_max_age: float,
        disk_max_age: float,
        inline: bool = True,
        codec: PayloadCodec = JSON_CODEC,
        clock: Clock = time.time,
        executor: Optional[Executor] = None,
        keep_stale: bool = False,
    ):
        """
        Initialize CacheStore.

        Args:
            name: Resource class name, also the manifest file stem
            cache_dir: Directory holding the manifest and payload files
            memory_max_age: Seconds a memory entry stays valid
            disk_max_age: Seconds a disk entry stays valid
            inline: Store payloads inside the manifest instead of per-key files
            codec: Payload file codec (ignored when inline)
            clock: Returns the current time in seconds
            executor: Runs disk writes in the background when given
            keep_stale: Keep expired disk entries so ``peek`` can revalidate them
        """
        self.name = name
        self.cache_dir = Path(cache_dir).expanduser()
        self.memory_max_age = memory_max_age
        self.disk_max_age = disk_max_age
        self.inline = inline
        self.codec = codec
        self.clock = clock
        self.executor = executor
        self.keep_stale = keep_stale
        self.manifest = FileStore(self.cache_dir / f"{name}.json")
        self._memory: Dict[str, MemoryEntry] = {}
        self._pending: Dict[str, Future] = {}
        self._pending_lock = threading.Lock()

    # -- read path ---------------------------------------------------------

    def get(self, key: str) -> CacheHit:
        """
        Look a key up, memory tier first.

        Returns:
            CacheHit with ``valid`` False on a miss, a stale entry or a
            corrupt entry
        """
        now = self.clock()

        entry = self._memory.get(key)
        if entry is not None and now - entry.timestamp <= self.memory_max_age:
            logger.debug(f"Cache hit (memory) {self.name}:{key}")
            return CacheHit(entry.payload, True, MEMORY, entry.meta)

        disk = self._read_disk(key)
        if disk is None:
            logger.debug(f"Cache miss {self.name}:{key}")
            return MISS

        age = now - disk.written_at
        if age > self.disk_max_age:
            logger.debug(f"Stale cache {self.name}:{key} ({age:.0f}s old)")
            if not self.keep_stale:
                self._remove_disk(key)
            return MISS

        self._memory[key] = MemoryEntry(disk.payload, disk.written_at, disk.meta)
        logger.debug(f"Cache hit (disk) {self.name}:{key}")
        return CacheHit(disk.payload, True, DISK, disk.meta)

    def peek(self, key: str) -> Optional[DiskEntry]:
        """Return the disk entry for ``key`` regardless of its age."""
        return self._read_disk(key)

    def _read_disk(self, key: str) -> Optional[DiskEntry]:
        self._wait_pending(key)
        record = self.manifest.get(key, fresh=True)
        if not isinstance(record, dict):
            return None

        try:
            written_at = float(record['written_at'])
            meta = record.get('meta') or {}
            if self.inline:
                if 'payload' not in record:
                    return None
                payload = record['payload']
            else:
                payload_path = self.cache_dir / record['filename']
                # newline='' keeps a lone \r inside a line intact
                with open(payload_path, 'r', encoding='utf-8', newline='') as f:
                    payload = self.codec.loads(f.read())
        except FileNotFoundError:
            return None
        except (KeyError, TypeError, ValueError, OSError) as e:
            logger.warning(f"Ignoring corrupt cache entry {self.name}:{key}: {e}")
            return None

        return DiskEntry(payload, written_at, meta if isinstance(meta, dict) else {})

    # -- write path --------------------------------------------------------

    def put(self, key: str, payload: Any, meta: Optional[Dict[str, Any]] = None) -> bool:
        """
        Store a payload in both tiers.

        The memory tier is authoritative for the rest of the process even if
        the disk write fails, so this always reports success.
        """
        timestamp = self.clock()
        meta = dict(meta or {})
        self._memory[key] = MemoryEntry(payload, timestamp, meta)

        if self.executor is None:
            self._write_disk_logged(key, payload, timestamp, meta)
            return True

        future = self.executor.submit(self._write_disk_logged, key, payload, timestamp, meta)
        with self._pending_lock:
            self._pending[key] = future
        future.add_done_callback(lambda f, k=key: self._forget_pending(k, f))
        return True

    def touch(self, key: str) -> bool:
        """Re-stamp an existing entry as freshly validated."""
        entry = self._memory.get(key)
        if entry is None:
            disk = self._read_disk(key)
            if disk is None:
                return False
            entry = MemoryEntry(disk.payload, disk.written_at, disk.meta)
        return self.put(key, entry.payload, entry.meta)

    def _write_disk_logged(self, key: str, payload: Any, timestamp: float,
                           meta: Dict[str, Any]) -> None:
        try:
            self._write_disk(key, payload, timestamp, meta)
        except (OSError, TypeError, ValueError) as e:
            logger.error(f"Failed to save {self.name} cache for {key}: {e}")

    def _write_disk(self, key: str, payload: Any, timestamp: float,
                    meta: Dict[str, Any]) -> None:
        record: Dict[str, Any] = {'written_at': timestamp}
        if meta:
            record['meta'] = meta

        if self.inline:
            # Fail on unserializable payloads before touching the manifest
            json.dumps(payload)
            record['payload'] = payload
        else:
            filename = key_to_filename(self.name.rstrip('s'), key, self.codec.extension)
            write_text_atomic(self.cache_dir / filename, self.codec.dumps(payload))
            record['filename'] = filename

        self.manifest.set(key, record)
        logger.debug(f"Saved {self.name} cache for {key}")

    def _forget_pending(self, key: str, future: Future) -> None:
        with self._pending_lock:
            if self._pending.get(key) is future:
                del self._pending[key]

    def _wait_pending(self, key: str) -> None:
        with self._pending_lock:
            future = self._pending.get(key)
        if future is not None:
            future.result()

    def flush(self) -> None:
        """Block until all background disk writes have finished."""
        with self._pending_lock:
            futures = list(self._pending.values())
        for future in futures:
            future.result()

    # -- invalidation ------------------------------------------------------

    def clear(self, key: Optional[str] = None) -> bool:
        """
        Drop one key, or everything when ``key`` is None, from both tiers.

        Returns:
            False if some disk file could not be removed
        """
        if key is not None:
            self._memory.pop(key, None)
            self._wait_pending(key)
            return self._remove_disk(key)

        self._memory.clear()
        self.flush()
        success = True
        if not self.inline:
            for record in self.manifest.read(fresh=True).values():
                if isinstance(record, dict) and record.get('filename'):
                    success = self._unlink(self.cache_dir / record['filename']) and success
        try:
            self.manifest.remove()
        except OSError as e:
            logger.warning(f"Failed to delete {self.name} manifest: {e}")
            success = False
        return success

    def clear_memory(self) -> None:
        self._memory.clear()

    def _remove_disk(self, key: str) -> bool:
        try:
            record = self.manifest.get(key, fresh=True)
            self.manifest.delete(key)
        except OSError as e:
            logger.warning(f"Failed to update {self.name} manifest: {e}")
            return False
        if isinstance(record, dict) and record.get('filename'):
            return self._unlink(self.cache_dir / record['filename'])
        return True

    def _unlink(self, path: Path) -> bool:
        try:
            path.unlink()
        except FileNotFoundError:
            pass
        except OSError as e:
            logger.warning(f"Failed to delete cache file {path}: {e}")
            return False
        return True

import asyncio
import logging
import threading
import time
import uuid
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Dict, Iterator, Optional

logger = logging.getLogger(__name__)


@dataclass
class StoredFile:
    id: str
    path: Path
    expires_at: float


class EphemeralFileStore:
    """
    Short-lived storage for uploaded files
    - every save gets a fresh id and an expiry of now + ttl
    - lookups slide the expiry forward
    - a background sweep deletes whatever has expired
    """

    def __init__(
        self,
        base_path: Path,
        ttl_seconds: float = 30 * 60,
        sweep_interval: float = 5 * 60,
        clock: Callable[[], float] = time.time,
    ):
        self.base_path = Path(base_path)
        self.base_path.mkdir(parents=True, exist_ok=True)
        self.ttl_seconds = ttl_seconds
        self.sweep_interval = sweep_interval
        self.clock = clock

        self._files: Dict[str, StoredFile] = {}
        self._lock = threading.Lock()
        self._task: Optional[asyncio.Task] = None
        self.running = False

    def __len__(self) -> int:
        with self._lock:
            return len(self._files)

    def __contains__(self, file_id: str) -> bool:
        with self._lock:
            return file_id in self._files

    def save(self, content: bytes, original_filename: str) -> StoredFile:
        """
        Write content to a new file and register it

        The stored name is a uuid plus the original extension, so concurrent
        saves never collide. OSError from the write propagates, and a partly
        written file is removed first.
        """
        file_id = uuid.uuid4().hex
        file_ext = Path(original_filename).suffix.lower() if original_filename else ""
        filepath = self.base_path / f"{file_id}{file_ext}"

        try:
            with open(filepath, "wb") as f:
                f.write(content)
        except OSError:
            filepath.unlink(missing_ok=True)
            raise

        stored = StoredFile(id=file_id, path=filepath, expires_at=self.clock() + self.ttl_seconds)
        with self._lock:
            self._files[file_id] = stored

        logger.debug("Saved %s (%d bytes) as %s", original_filename, len(content), filepath.name)
        return stored

    def lookup(self, file_id: str) -> Optional[Path]:
        """Get the path for an id and refresh its expiry. None if unknown."""
        with self._lock:
            stored = self._files.get(file_id)
            if stored is None:
                return None
            stored.expires_at = self.clock() + self.ttl_seconds
            return stored.path

    def _unlink(self, stored: StoredFile) -> bool:
        """Remove the file on disk. False if it is still there."""
        try:
            stored.path.unlink()
        except FileNotFoundError:
            logger.warning("File for %s was already missing: %s", stored.id, stored.path)
        except OSError as e:
            logger.error("Failed to delete file %s: %s", stored.id, e)
            return False
        return True

    def _forget(self, stored: StoredFile) -> bool:
        with self._lock:
            if self._files.get(stored.id) is stored:
                del self._files[stored.id]
                return True
            return False

    def delete(self, file_id: str) -> bool:
        """
        Delete a file and its record

        Returns False if the id is unknown (already deleted or swept) or the
        file could not be removed; the record is then kept so the sweep
        retries it. A file that is already gone from disk still counts as
        deleted. Never raises.
        """
        with self._lock:
            stored = self._files.get(file_id)
        if stored is None:
            return False

        if not self._unlink(stored):
            return False
        deleted = self._forget(stored)
        if deleted:
            logger.debug("Deleted %s", file_id)
        return deleted

    def sweep(self) -> int:
        """
        Remove every expired entry. Returns how many were removed.

        Entries whose file cannot be unlinked stay registered for the next tick.
        """
        now = self.clock()
        with self._lock:
            expired = [f for f in self._files.values() if f.expires_at < now]

        removed = sum(1 for stored in expired if self._unlink(stored) and self._forget(stored))

        if removed:
            logger.info("Swept %d expired file(s)", removed)
        return removed

    def purge(self) -> int:
        """Delete every stored file"""
        with self._lock:
            file_ids = list(self._files)
        return sum(1 for file_id in file_ids if self.delete(file_id))

    @contextmanager
    def hold(self, content: bytes, original_filename: str) -> Iterator[StoredFile]:
        """
        Save content for the duration of a with block

        Usage:
            with store.hold(data, "resume.docx") as stored:
                text = extract_text(stored.path, ".docx")
        """
        stored = self.save(content, original_filename)
        try:
            yield stored
        finally:
            self.delete(stored.id)

    async def run_loop(self):
        """
        Sweep loop - runs in the background until stop() is called
        """
        logger.info("File sweeper starting...(every %ss, ttl %ss)", self.sweep_interval, self.ttl_seconds)
        self.running = True

        while self.running:
            await asyncio.sleep(self.sweep_interval)
            try:
                await asyncio.to_thread(self.sweep)
            except Exception:
                logger.exception("Error in file sweep")

    def start(self) -> asyncio.Task:
        """Start the sweep loop on the running event loop"""
        if self._task is None or self._task.done():
            self.running = True
            self._task = asyncio.create_task(self.run_loop())
        return self._task

    async def stop(self):
        """
        Stop the sweep loop
        """
        self.running = False
        if self._task is not None:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None
        logger.info("File sweeper stopped")

"""
Vault file system watcher, polling-based.

Docker volume mounts from Windows do not forward filesystem events (inotify)
into the container, so we use periodic stat polling instead of an
event-based observer.

The watcher runs an asyncio task that:
1. Scans the store every poll_interval seconds
2. Compares (mtime, size) against the previous scan
3. Pairs a vanished path with a new path of identical (mtime, size) as a rename
4. Forwards changed / deleted / renamed events to the task index
"""

import asyncio
import logging
from typing import Dict, List, Optional, Tuple

from store.vault_store import DocumentStat

log = logging.getLogger(__name__)

_DEFAULT_POLL_INTERVAL = 5.0


class VaultWatcher:
    """
    Polling-based vault watcher.

    Usage:
        watcher = VaultWatcher(index, store)
        await watcher.start()
        ...
        await watcher.stop()
    """

    def __init__(self, index, store, poll_interval: Optional[float] = None) -> None:
        self._index = index
        self._store = store
        self._poll_interval = poll_interval or _DEFAULT_POLL_INTERVAL
        self._task: Optional[asyncio.Task] = None
        self._known: Dict[str, DocumentStat] = {}

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def start(self) -> None:
        log.info("Starting vault watcher (polling every %.1fs)", self._poll_interval)
        self._known = await self._store.scan()
        self._task = asyncio.create_task(self._poll_loop(), name="vault-watcher")

    async def stop(self) -> None:
        log.info("Stopping vault watcher")
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    async def _poll_loop(self) -> None:
        while True:
            await asyncio.sleep(self._poll_interval)
            try:
                await self.check_for_changes()
            except Exception:
                log.exception("Error during poll cycle")

    async def check_for_changes(self) -> None:
        """Single poll cycle: compare current state vs known state."""
        current = await self._store.scan()
        previous = self._known
        self._known = current

        created = [p for p in current if p not in previous]
        deleted = [p for p in previous if p not in current]
        modified = [
            p for p, st in current.items()
            if p in previous and (st.mtime != previous[p].mtime or st.size != previous[p].size)
        ]

        renames, created, deleted = _pair_renames(created, deleted, current, previous)

        for path, old_path in renames:
            log.debug("Renamed document: %s -> %s", old_path, path)
            await self._dispatch(self._index.on_document_renamed, path, old_path)
        for path in sorted(deleted):
            log.debug("Deleted document: %s", path)
            await self._dispatch(self._index.on_document_deleted, path)
        for path in sorted(created + modified):
            log.debug("Changed document: %s", path)
            await self._dispatch(self._index.on_document_changed, path)

    async def _dispatch(self, handler, *args) -> None:
        try:
            await handler(*args)
        except Exception:
            log.exception("Index handler failed for %s", args[0])


def _pair_renames(
    created: List[str],
    deleted: List[str],
    current: Dict[str, DocumentStat],
    previous: Dict[str, DocumentStat],
) -> Tuple[List[Tuple[str, str]], List[str], List[str]]:
    """Match each deleted path to at most one created path with the same (mtime, size)."""
    renames = []
    remaining = list(created)
    gone = []
    for old_path in sorted(deleted):
        old = previous[old_path]
        match = next(
            (p for p in sorted(remaining)
             if current[p].mtime == old.mtime and current[p].size == old.size),
            None,
        )
        if match is None:
            gone.append(old_path)
            continue
        remaining.remove(match)
        renames.append((match, old_path))
    return renames, remaining, gone

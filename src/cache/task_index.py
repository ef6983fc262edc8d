"""
Incrementally maintained index of every checklist line in a vault.

Design:
    Primary store: Dict[str, TaskRecord] keyed by "path:line"
    Snapshot: JSON file inside the vault, written by a debounced saver
    Codec: RoleCodec bound to the plugin settings (role table)

Everything runs on one asyncio event loop. Each awaited I/O call is a
suspension point, but the delete-then-insert that replaces a document's
records never awaits, so the last derivation of a document always wins.

Lifecycle:
    UNINITIALIZED → LOADED (snapshot) | BUILDING (full scan) → READY
    READY → REFRESHING → READY            (refresh())

Status updates rewrite one checkbox character on disk and patch the record in
memory instead of re-deriving the document. If the document is edited
elsewhere between the two, the record stays stale until the next change
event for that document re-derives it.
"""

import json
import logging
from datetime import date, datetime
from enum import Enum
from typing import Dict, Iterable, List, Optional, Union

from models.settings import PluginSettings
from models.task import DateKind, TaskRecord, TaskStatus
from parsers.role_codec import RoleCodec
from parsers.task_line import build_record, set_checkbox
from utils.debounce import Debouncer

log = logging.getLogger(__name__)

SNAPSHOT_VERSION = 1
DEFAULT_SNAPSHOT_PATH = ".obsidian/task-roles-cache.json"
DEFAULT_SAVE_DELAY = 1.0


class IndexState(str, Enum):
    UNINITIALIZED = "uninitialized"
    LOADED = "loaded"
    BUILDING = "building"
    READY = "ready"
    REFRESHING = "refreshing"


class SnapshotError(Exception):
    """The persisted snapshot is missing a field or has the wrong version."""


def _split_statuses(status: Union[str, Iterable[str], None]) -> Optional[set]:
    if status is None:
        return None
    if isinstance(status, str):
        values = [s.strip() for s in status.split(",") if s.strip()]
    else:
        values = [str(getattr(s, "value", s)) for s in status]
    return set(values) or None


class TaskIndex:
    """
    In-memory task index over a document store.

    Construct with a store and settings, then await initialize(). Feed
    document change events through on_document_changed / _deleted /
    _renamed. Await destroy() on shutdown to flush a pending snapshot write.
    """

    def __init__(
        self,
        store,
        settings: PluginSettings,
        *,
        snapshot_path: str = DEFAULT_SNAPSHOT_PATH,
        save_delay: float = DEFAULT_SAVE_DELAY,
    ) -> None:
        self._store = store
        self._settings = settings
        self._codec = RoleCodec(settings)
        self._snapshot_path = snapshot_path
        self._tasks: Dict[str, TaskRecord] = {}
        self._state = IndexState.UNINITIALIZED
        self._refreshing = False
        self._saver = Debouncer(save_delay, self._save_snapshot)
        self._last_full_scan: Optional[datetime] = None
        self._last_saved: Optional[datetime] = None
        self._snapshot_writes = 0

    @property
    def state(self) -> IndexState:
        return self._state

    @property
    def codec(self) -> RoleCodec:
        return self._codec

    @property
    def store(self):
        return self._store

    @property
    def settings(self) -> PluginSettings:
        return self._settings

    @property
    def snapshot_path(self) -> str:
        return self._snapshot_path

    # ------------------------------------------------------------------
    # Initialisation
    # ------------------------------------------------------------------

    async def initialize(self) -> None:
        """
        Load the persisted snapshot, or rebuild from scratch if that fails.

        A missing, unreadable, corrupt or out-of-date snapshot is never an
        error for the caller; it just costs a full scan.
        """
        try:
            loaded = await self._load_snapshot()
        except Exception as e:
            log.info("No usable index snapshot (%s), rebuilding", e)
            await self.refresh()
            return

        self._tasks = loaded
        self._state = IndexState.LOADED
        log.info("Loaded %d tasks from snapshot %s", len(loaded), self._snapshot_path)
        self._state = IndexState.READY

    async def refresh(self) -> bool:
        """
        Rebuild the whole index from the store.

        Returns False without doing anything when a refresh is already
        running; that call is already being satisfied.
        """
        if self._refreshing:
            log.debug("Refresh already in progress, skipping")
            return False

        self._refreshing = True
        self._state = (
            IndexState.REFRESHING if self._state == IndexState.READY else IndexState.BUILDING
        )
        log.info("Starting index scan")
        try:
            self._tasks.clear()
            try:
                paths = await self._store.enumerate()
            except Exception:
                log.exception("Failed to enumerate documents")
                paths = []

            for path in paths:
                await self._index_document(path)

            self._saver.cancel()
            await self._save_snapshot()
            self._last_full_scan = datetime.now()
            log.info("Index scan complete: %d documents, %d tasks", len(paths), len(self._tasks))
        finally:
            self._refreshing = False
            self._state = IndexState.READY
        return True

    async def destroy(self) -> None:
        """Flush any pending snapshot write. Call once on shutdown."""
        await self._saver.flush()

    # ------------------------------------------------------------------
    # Document scanning
    # ------------------------------------------------------------------

    def _derive(self, path: str, content: str, created_at: datetime, modified_at: datetime) -> List[TaskRecord]:
        records = []
        for line_number, line in enumerate(content.split("\n")):
            try:
                record = build_record(path, line_number, line, self._codec, created_at, modified_at)
            except Exception:
                log.exception("Failed to parse line %d of %s", line_number, path)
                continue
            if record is not None:
                records.append(record)
        return records

    async def _index_document(self, path: str) -> bool:
        """Read and re-derive one document. Returns False if it could not be read."""
        try:
            content = await self._store.read(path)
            st = await self._store.stat(path)
        except Exception:
            log.exception("Failed to read %s", path)
            return False

        records = self._derive(
            path,
            content,
            datetime.fromtimestamp(st.ctime),
            datetime.fromtimestamp(st.mtime),
        )
        self._replace_document(path, records)
        return True

    def _remove_document(self, path: str) -> int:
        stale = [task_id for task_id, record in self._tasks.items() if record.file_path == path]
        for task_id in stale:
            del self._tasks[task_id]
        return len(stale)

    def _replace_document(self, path: str, records: List[TaskRecord]) -> None:
        self._remove_document(path)
        for record in records:
            self._tasks[record.id] = record

    # ------------------------------------------------------------------
    # Change events
    # ------------------------------------------------------------------

    async def on_document_changed(self, path: str) -> None:
        """Re-derive every record of one created or modified document."""
        if await self._index_document(path):
            log.debug("Re-indexed %s", path)
            self._saver.schedule()

    async def on_document_deleted(self, path: str) -> None:
        removed = self._remove_document(path)
        if removed:
            log.debug("Removed %d tasks of deleted %s", removed, path)
            self._saver.schedule()

    async def on_document_renamed(self, path: str, old_path: str) -> None:
        """Move records to the new path without re-reading the document."""
        moved = [record for record in self._tasks.values() if record.file_path == old_path]
        for record in moved:
            del self._tasks[record.id]
        # Records already at the target path belong to the overwritten document
        replaced = self._remove_document(path)

        now = datetime.now()
        for record in moved:
            record.file_path = path
            record.modified_at = now
            record.refresh_search_text()
            self._tasks[record.id] = record

        if moved or replaced:
            log.debug("Moved %d tasks from %s to %s", len(moved), old_path, path)
            self._saver.schedule()

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    async def update_status(self, task_id: str, status: Union[TaskStatus, str]) -> Optional[TaskRecord]:
        """
        Set a task's status by rewriting its checkbox character.

        Returns the patched record, or None if the task is unknown, its line
        differs from the indexed raw line, or the document could not be
        read/written.
        """
        status = TaskStatus(status)
        record = self._tasks.get(task_id)
        if record is None:
            log.warning("Status update for unknown task %s", task_id)
            return None

        path = record.file_path
        try:
            content = await self._store.read(path)
        except Exception:
            log.exception("Failed to read %s for status update", path)
            return None

        lines = content.split("\n")
        if record.line_number >= len(lines):
            log.warning("Task %s points past the end of %s", task_id, path)
            return None

        current = lines[record.line_number]
        if current != record.raw_line:
            log.warning("Line %d of %s changed since it was indexed", record.line_number, path)
            return None

        new_line = set_checkbox(current, status)
        if new_line is None:
            log.warning("Line %d of %s is no longer a task", record.line_number, path)
            return None
        lines[record.line_number] = new_line

        try:
            await self._store.write(path, "\n".join(lines))
        except Exception:
            log.exception("Failed to write status update to %s", path)
            return None

        # The record may have been replaced or dropped while we were writing
        record = self._tasks.get(task_id)
        if record is None:
            return None

        previous = record.status
        record.status = status
        record.raw_line = new_line
        record.modified_at = datetime.now()
        if status == TaskStatus.DONE and previous != TaskStatus.DONE:
            record.dates[DateKind.COMPLETED] = date.today()
        self._saver.schedule()
        return record

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_task(self, task_id: str) -> Optional[TaskRecord]:
        return self._tasks.get(task_id)

    def all_tasks(self) -> List[TaskRecord]:
        """Every record, ordered by (path, line)."""
        return sorted(self._tasks.values(), key=lambda r: (r.file_path, r.line_number))

    def tasks_for_document(self, path: str) -> List[TaskRecord]:
        return [r for r in self.all_tasks() if r.file_path == path]

    def query(
        self,
        *,
        status: Union[str, Iterable[str], None] = None,
        role: Optional[str] = None,
        assignee: Optional[str] = None,
        tag: Optional[str] = None,
        priority: Optional[str] = None,
        text: Optional[str] = None,
        file_path: Optional[str] = None,
        limit: int = 500,
    ) -> List[TaskRecord]:
        """
        Filter records.

        Args:
            status: Comma-separated statuses e.g. "todo,in-progress"
            role: Role id; only tasks with at least one assignee in that role
            assignee: Assignee token e.g. "@John"; combined with role, the
                assignee must hold that role
            tag: Tag without '#'
            priority: Priority value e.g. "high"
            text: Case-insensitive substring of the search text
            file_path: Restrict to one document
            limit: Max results

        Returns:
            Matching records ordered by (path, line)
        """
        statuses = _split_statuses(status)
        needle = text.lower() if text else None

        results = []
        for record in self.all_tasks():
            if statuses and record.status.value not in statuses:
                continue
            if file_path and record.file_path != file_path:
                continue
            if tag and tag.lstrip("#") not in record.tags:
                continue
            if priority and record.priority.value != priority:
                continue
            if needle and needle not in record.search_text:
                continue
            if role or assignee:
                matched = False
                for assignment in record.role_assignments:
                    if role and assignment.role.id != role:
                        continue
                    if assignee and assignee not in assignment.assignees:
                        continue
                    matched = True
                    break
                if not matched:
                    continue
            results.append(record)
            if len(results) >= limit:
                break
        return results

    # ------------------------------------------------------------------
    # Snapshot persistence
    # ------------------------------------------------------------------

    async def _load_snapshot(self) -> Dict[str, TaskRecord]:
        raw = await self._store.read(self._snapshot_path)
        data = json.loads(raw)
        if not isinstance(data, dict):
            raise SnapshotError("snapshot is not a JSON object")
        if data.get("version") != SNAPSHOT_VERSION:
            raise SnapshotError(f"unsupported snapshot version {data.get('version')!r}")
        tasks = data.get("tasks")
        if not isinstance(tasks, list):
            raise SnapshotError("snapshot has no task list")

        loaded: Dict[str, TaskRecord] = {}
        for entry in tasks:
            record = TaskRecord.from_dict(entry, self._settings.find_role)
            loaded[record.id] = record
        return loaded

    async def _save_snapshot(self) -> None:
        now = datetime.now()
        data = {
            "version": SNAPSHOT_VERSION,
            "lastUpdated": now.isoformat(),
            "tasks": [record.to_dict() for record in self.all_tasks()],
        }
        try:
            await self._store.write(self._snapshot_path, json.dumps(data, indent=2, ensure_ascii=False))
        except Exception:
            log.exception("Failed to write index snapshot %s", self._snapshot_path)
            return
        self._snapshot_writes += 1
        self._last_saved = now
        log.debug("Wrote index snapshot with %d tasks", len(data["tasks"]))

    # ------------------------------------------------------------------
    # Status / diagnostics
    # ------------------------------------------------------------------

    def status(self) -> dict:
        documents = {record.file_path for record in self._tasks.values()}
        return {
            "state": self._state.value,
            "tasks_indexed": len(self._tasks),
            "documents_with_tasks": len(documents),
            "refreshing": self._refreshing,
            "save_pending": self._saver.pending,
            "snapshot_path": self._snapshot_path,
            "snapshot_writes": self._snapshot_writes,
            "last_full_scan": self._last_full_scan.isoformat() if self._last_full_scan else None,
            "last_saved": self._last_saved.isoformat() if self._last_saved else None,
        }

"""
Hierarchical execution logging for ActionGate.

Every task gets a root entry; steps are appended beneath it as the task
runs. Entries are written once and never reordered. The root's status
changes exactly once, when the task is finalized.

Each task's records form a SHA-256 hash chain, so any edit of a persisted
record is detectable with :meth:`HierarchicalLogger.verify`. When a path is
configured, records are appended to a JSON Lines file and can be loaded
back with :meth:`HierarchicalLogger.load`.
"""

import asyncio
import hashlib
import itertools
import json
import logging
import uuid
from collections.abc import Iterator
from datetime import datetime
from pathlib import Path
from typing import Any, Optional

from actiongate.audit.models import ChainVerification, LogEntry, LogStatus, TaskLog
from actiongate.exceptions import LogStateError
from actiongate.storage.paths import get_audit_log_path

logger = logging.getLogger(__name__)

GENESIS_HASH = "0" * 64

_TERMINAL = {LogStatus.SUCCESS, LogStatus.FAILED}


def _hash_record(prev_hash: str, record: dict[str, Any]) -> str:
    """Hash a record together with the previous link of its chain."""
    body = json.dumps(record, sort_keys=True, default=str, separators=(",", ":"))
    return hashlib.sha256((prev_hash + body).encode()).hexdigest()


def _read_records(path: Path) -> Iterator[tuple[int, dict[str, Any]]]:
    """Yield ``(line_no, record)`` for every readable line of a log file."""
    if not path.exists():
        return
    with path.open(encoding="utf-8") as f:
        for line_no, line in enumerate(f, start=1):
            line = line.strip()
            if not line:
                continue
            try:
                record = json.loads(line)
            except json.JSONDecodeError:
                logger.warning(f"Skipping unreadable audit record at line {line_no}")
                continue
            if isinstance(record, dict):
                yield line_no, record


def _entry_id(record: dict[str, Any]) -> int:
    entry = record.get("entry")
    if record.get("kind") != "entry" or not isinstance(entry, dict):
        return 0
    entry_id = entry.get("id")
    return entry_id if isinstance(entry_id, int) else 0


class HierarchicalLogger:
    """
    Append-only, per-task tree of execution steps.

    Concurrent tasks write to disjoint roots. Writes for one task are
    serialized by a per-task lock, so sub-steps issued from concurrent
    coroutines of the same task are appended one at a time.
    """

    def __init__(
        self,
        log_path: str | Path | None = None,
        enable: bool = True,
        buffer_size: int = 1,
    ) -> None:
        """
        Initialize the logger.

        Args:
            log_path: JSON Lines file for persistence (None keeps records in memory)
            enable: Whether persistence is enabled
            buffer_size: Number of records to buffer before flush
        """
        self.log_path = Path(log_path).expanduser() if log_path else None
        self.enable = enable and self.log_path is not None
        self.buffer_size = max(1, buffer_size)

        # Internal state
        self._ids = itertools.count(1)
        self._entries: dict[int, LogEntry] = {}
        self._roots: dict[str, int] = {}  # task_id -> root entry id
        self._task_entries: dict[str, list[int]] = {}
        self._chains: dict[str, list[dict[str, Any]]] = {}
        self._locks: dict[str, asyncio.Lock] = {}
        self._buffer: list[dict[str, Any]] = []

        if self.enable and self.log_path is not None:
            self.log_path.parent.mkdir(parents=True, exist_ok=True)
            # Continue numbering after earlier runs sharing the file
            last_id = max(
                (_entry_id(record) for _, record in _read_records(self.log_path)),
                default=0,
            )
            self._ids = itertools.count(last_id + 1)

    @classmethod
    def from_config(cls, config: Any) -> "HierarchicalLogger":
        """
        Create a logger from configuration.

        Args:
            config: AuditConfig instance
        """
        return cls(
            log_path=get_audit_log_path(config.path),
            enable=config.enable,
            buffer_size=config.buffer_size,
        )

    # ------------------------------------------------------------------
    # Write API
    # ------------------------------------------------------------------

    async def start_task(self, command: str, task_id: Optional[str] = None) -> int:
        """
        Create the root entry of a new task.

        Args:
            command: The operator command the task executes
            task_id: Optional explicit task id (generated if omitted)

        Returns:
            Id of the root entry
        """
        task_id = task_id or uuid.uuid4().hex
        if task_id in self._roots:
            raise LogStateError(f"Task {task_id} already has a root entry")

        async with self._lock_for(task_id):
            entry = LogEntry(
                id=next(self._ids),
                task_id=task_id,
                action=command,
                status=LogStatus.PENDING,
                timestamp=datetime.now().isoformat(),
            )
            self._roots[task_id] = entry.id
            self._task_entries[task_id] = []
            self._chains[task_id] = []
            self._store(entry)
            self._append_record(task_id, {"kind": "entry", "entry": entry.model_dump(mode="json")})

        logger.debug(f"Started task log {task_id} (root {entry.id})")
        return entry.id

    async def append_step(
        self,
        root_id: int,
        action: str,
        status: LogStatus | str = LogStatus.SUCCESS,
        data: Any = None,
        error: Any = None,
        parent_id: Optional[int] = None,
    ) -> int:
        """
        Append a step beneath the root or beneath an earlier step.

        Args:
            root_id: Root entry of the task
            action: What happened
            status: Step status
            data: Payload for successful steps
            error: Error payload for failed steps
            parent_id: Earlier step of the same task to nest under

        Returns:
            Id of the new entry

        Raises:
            LogStateError: Unknown root, finalized task, or foreign parent
        """
        root = self._root(root_id)

        async with self._lock_for(root.task_id):
            root = self._root(root_id)
            if root.status in _TERMINAL:
                raise LogStateError(f"Task {root.task_id} is already finalized")

            parent = root_id if parent_id is None else parent_id
            parent_entry = self._entries.get(parent)
            if parent_entry is None or parent_entry.task_id != root.task_id:
                raise LogStateError(f"Parent {parent} does not belong to task {root.task_id}")

            entry = LogEntry(
                id=next(self._ids),
                task_id=root.task_id,
                parent_id=parent,
                action=action,
                status=LogStatus(status),
                timestamp=datetime.now().isoformat(),
                data=data,
                error=error,
            )
            self._store(entry)
            self._append_record(
                root.task_id, {"kind": "entry", "entry": entry.model_dump(mode="json")}
            )

        return entry.id

    async def finalize(
        self,
        root_id: int,
        status: LogStatus | str,
        data: Any = None,
        error: Any = None,
    ) -> LogEntry:
        """
        Move the root to its terminal status. Allowed exactly once.

        Raises:
            LogStateError: Unknown root, non-terminal status, or second finalize
        """
        status = LogStatus(status)
        if status not in _TERMINAL:
            raise LogStateError(f"Cannot finalize with status {status.value}")

        root = self._root(root_id)

        async with self._lock_for(root.task_id):
            root = self._root(root_id)
            if root.status in _TERMINAL:
                raise LogStateError(f"Task {root.task_id} is already finalized")

            finalized_at = datetime.now().isoformat()
            updated = root.model_copy(
                update={
                    "status": status,
                    "data": data if data is not None else root.data,
                    "error": error,
                    "finalized_at": finalized_at,
                }
            )
            self._entries[root_id] = updated
            self._append_record(
                root.task_id,
                {
                    "kind": "finalize",
                    "root_id": root_id,
                    "status": status.value,
                    "data": data,
                    "error": error,
                    "timestamp": finalized_at,
                },
            )
            self.flush()

        logger.debug(f"Finalized task log {root.task_id}: {status.value}")
        return updated

    # ------------------------------------------------------------------
    # Read API
    # ------------------------------------------------------------------

    def list_tasks(self, limit: int = 50) -> list[LogEntry]:
        """Root entries only, newest first."""
        roots = [self._entries[root_id] for root_id in self._roots.values()]
        roots.sort(key=lambda e: (e.timestamp, e.id), reverse=True)
        return roots[:limit]

    def get_task(self, task: str | int) -> Optional[TaskLog]:
        """
        Get a task's root with its children in chronological order.

        Args:
            task: Task id or root entry id
        """
        task_id = self._task_id_for(task)
        if task_id is None:
            return None

        root = self._entries[self._roots[task_id]]
        children = [self._entries[i] for i in self._task_entries[task_id]]
        return TaskLog(root=root, children=children)

    def entries(self, task: str | int) -> list[LogEntry]:
        """Flat list of a task's entries, root first."""
        task_log = self.get_task(task)
        return task_log.entries if task_log else []

    def verify(self, task: str | int) -> ChainVerification:
        """Re-hash a task's record chain and report the first broken link."""
        task_id = self._task_id_for(task)
        if task_id is None:
            return ChainVerification(
                task_id=str(task), valid=False, records=0, reason="unknown task"
            )

        chain = self._chains[task_id]
        prev_hash = GENESIS_HASH
        for index, record in enumerate(chain):
            body = {k: v for k, v in record.items() if k not in ("hash", "prev_hash", "task_id")}
            if record.get("prev_hash") != prev_hash:
                return ChainVerification(
                    task_id=task_id,
                    valid=False,
                    records=len(chain),
                    broken_at=index,
                    reason="previous hash mismatch",
                )
            if record.get("hash") != _hash_record(prev_hash, body):
                return ChainVerification(
                    task_id=task_id,
                    valid=False,
                    records=len(chain),
                    broken_at=index,
                    reason="record hash mismatch",
                )
            prev_hash = record["hash"]

        return ChainVerification(task_id=task_id, valid=True, records=len(chain))

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    def flush(self) -> None:
        """Flush buffered records to disk."""
        if not self.enable or not self._buffer or self.log_path is None:
            return

        with self.log_path.open("a", encoding="utf-8") as f:
            for record in self._buffer:
                f.write(json.dumps(record, default=str) + "\n")

        self._buffer.clear()

    def close(self) -> None:
        """Flush remaining records."""
        self.flush()

    @classmethod
    def load(cls, log_path: str | Path, enable: bool = True) -> "HierarchicalLogger":
        """
        Rebuild a logger from a JSON Lines file.

        Records are replayed as stored, so a tampered file still loads and
        :meth:`verify` reports where the chain breaks. Entry ids already
        taken by another task (files written by separate processes) are
        renumbered in memory; the stored records are left untouched.

        Args:
            log_path: File previously written by a HierarchicalLogger
            enable: Keep appending new records to the same file
        """
        instance = cls(log_path=log_path, enable=enable)
        path = instance.log_path
        if path is None or not path.exists():
            return instance

        records = [record for _, record in _read_records(path) if record.get("task_id")]
        fresh_ids = itertools.count(max((_entry_id(r) for r in records), default=0) + 1)
        renumbered: dict[tuple[str, int], int] = {}

        for record in records:
            task_id = record["task_id"]
            instance._chains.setdefault(task_id, []).append(record)
            instance._task_entries.setdefault(task_id, [])

            if record.get("kind") == "entry":
                entry = LogEntry.model_validate(record["entry"])
                entry_id = entry.id
                if entry_id in instance._entries:
                    entry_id = next(fresh_ids)
                renumbered[(task_id, entry.id)] = entry_id

                parent_id = entry.parent_id
                if parent_id is not None:
                    parent_id = renumbered.get((task_id, parent_id), parent_id)
                entry = entry.model_copy(update={"id": entry_id, "parent_id": parent_id})

                if entry.is_root:
                    instance._roots[task_id] = entry.id
                instance._store(entry)
            elif record.get("kind") == "finalize":
                root_id = instance._roots.get(task_id)
                root = instance._entries.get(root_id) if root_id is not None else None
                if root is not None:
                    instance._entries[root.id] = root.model_copy(
                        update={
                            "status": LogStatus(record["status"]),
                            "data": record.get("data") if record.get("data") is not None else root.data,
                            "error": record.get("error"),
                            "finalized_at": record.get("timestamp"),
                        }
                    )

        instance._ids = fresh_ids
        logger.info(f"Loaded {len(instance._roots)} task logs from {path}")
        return instance

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _lock_for(self, task_id: str) -> asyncio.Lock:
        lock = self._locks.get(task_id)
        if lock is None:
            lock = self._locks[task_id] = asyncio.Lock()
        return lock

    def _root(self, root_id: int) -> LogEntry:
        entry = self._entries.get(root_id)
        if entry is None or not entry.is_root:
            raise LogStateError(f"Unknown root entry: {root_id}")
        return entry

    def _task_id_for(self, task: str | int) -> Optional[str]:
        if isinstance(task, int):
            entry = self._entries.get(task)
            return entry.task_id if entry is not None and entry.is_root else None
        return task if task in self._roots else None

    def _store(self, entry: LogEntry) -> None:
        self._entries[entry.id] = entry
        if not entry.is_root:
            self._task_entries[entry.task_id].append(entry.id)

    def _append_record(self, task_id: str, body: dict[str, Any]) -> None:
        chain = self._chains[task_id]
        prev_hash = chain[-1]["hash"] if chain else GENESIS_HASH
        record = {
            "task_id": task_id,
            **body,
            "prev_hash": prev_hash,
            "hash": _hash_record(prev_hash, body),
        }
        chain.append(record)

        if self.enable:
            self._buffer.append(record)
            if len(self._buffer) >= self.buffer_size:
                self.flush()

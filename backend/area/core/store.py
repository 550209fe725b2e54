"""
Store ABC and its implementations.

Store: the persistence operations the dispatch core needs (workflow CRUD,
cursor updates, connection lookup, append-only audit log).
MemoryStore: no disk I/O, use in tests.
FileStore: JSON files under the data directory.
"""

from __future__ import annotations

import json
import logging
import threading
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Iterable

from .models import LogEntry, LogLevel, UserService, Workflow

log = logging.getLogger("area.store")


def _now() -> datetime:
    return datetime.now(timezone.utc)


class Store(ABC):
    """Persistence abstraction shared by the lifecycle manager, workers and routes."""

    # ── Workflows ──────────────────────────────────────────────────────────────

    @abstractmethod
    def create_workflow(
        self,
        user_id: int,
        name: str,
        action_id: int,
        action_data: list[str],
        reaction_id: int,
        reaction_data: list[str],
        description: str | None = None,
    ) -> Workflow: ...

    @abstractmethod
    def get_workflow(self, workflow_id: int) -> Workflow | None: ...

    @abstractmethod
    def list_workflows(
        self,
        user_id: int | None = None,
        action_ids: Iterable[int] | None = None,
    ) -> list[Workflow]: ...

    @abstractmethod
    def save_workflow(self, workflow: Workflow) -> None: ...

    @abstractmethod
    def delete_workflow(self, workflow_id: int) -> None: ...

    def update_cursor(self, workflow_id: int, cursor: str | None) -> None:
        """Overwrite the workflow's cursor. Last write wins."""
        workflow = self.get_workflow(workflow_id)
        if workflow is None:
            raise KeyError(f"Workflow not found: {workflow_id}")
        workflow.cursor = cursor
        workflow.updated_at = _now()
        self.save_workflow(workflow)

    def update_action_data(self, workflow_id: int, action_data: list[str]) -> None:
        workflow = self.get_workflow(workflow_id)
        if workflow is None:
            raise KeyError(f"Workflow not found: {workflow_id}")
        workflow.action_data = list(action_data)
        workflow.updated_at = _now()
        self.save_workflow(workflow)

    # ── Connections ────────────────────────────────────────────────────────────

    @abstractmethod
    def get_user_service(self, user_id: int, service_id: int) -> UserService | None: ...

    @abstractmethod
    def list_user_services(self, user_id: int) -> list[UserService]: ...

    @abstractmethod
    def _put_user_service(self, connection: UserService) -> None: ...

    @abstractmethod
    def delete_user_service(self, user_id: int, service_id: int) -> None: ...

    def save_user_service(
        self,
        user_id: int,
        service_id: int,
        token: str,
        refresh_token: str | None = None,
    ) -> UserService:
        """Insert or replace the grant for (user_id, service_id)."""
        now = _now()
        existing = self.get_user_service(user_id, service_id)
        connection = UserService(
            user_id=user_id,
            service_id=service_id,
            token=token,
            refresh_token=refresh_token,
            created_at=existing.created_at if existing else now,
            updated_at=now,
        )
        self._put_user_service(connection)
        return connection

    # ── Audit log ──────────────────────────────────────────────────────────────

    @abstractmethod
    def add_log(
        self,
        level: LogLevel,
        message: str,
        context: str,
        metadata: dict[str, Any] | None = None,
        user_id: int | None = None,
    ) -> LogEntry: ...

    @abstractmethod
    def list_logs(
        self,
        context: str | None = None,
        limit: int = 200,
        user_id: int | None = None,
    ) -> list[LogEntry]: ...


def _matches(workflow: Workflow, user_id: int | None, action_ids: set[int] | None) -> bool:
    if user_id is not None and workflow.user_id != user_id:
        return False
    if action_ids is not None and workflow.action_id not in action_ids:
        return False
    return True


def _log_matches(entry: LogEntry, context: str | None, user_id: int | None) -> bool:
    if context is not None and entry.context != context:
        return False
    if user_id is not None and entry.user_id != user_id:
        return False
    return True

class MemoryStore(Store):
    """In-memory store, no disk I/O. Use in tests."""

    def __init__(self) -> None:
        self._workflows: dict[int, Workflow] = {}
        self._connections: dict[tuple[int, int], UserService] = {}
        self._logs: list[LogEntry] = []
        self._next_workflow_id = 1

    def create_workflow(
        self,
        user_id: int,
        name: str,
        action_id: int,
        action_data: list[str],
        reaction_id: int,
        reaction_data: list[str],
        description: str | None = None,
    ) -> Workflow:
        now = _now()
        workflow = Workflow(
            id=self._next_workflow_id,
            user_id=user_id,
            name=name,
            description=description,
            action_id=action_id,
            action_data=list(action_data),
            reaction_id=reaction_id,
            reaction_data=list(reaction_data),
            created_at=now,
            updated_at=now,
        )
        self._next_workflow_id += 1
        self._workflows[workflow.id] = workflow
        return workflow.model_copy(deep=True)

    def get_workflow(self, workflow_id: int) -> Workflow | None:
        workflow = self._workflows.get(workflow_id)
        return workflow.model_copy(deep=True) if workflow else None

    def list_workflows(
        self,
        user_id: int | None = None,
        action_ids: Iterable[int] | None = None,
    ) -> list[Workflow]:
        wanted = set(action_ids) if action_ids is not None else None
        return [
            wf.model_copy(deep=True)
            for wf in sorted(self._workflows.values(), key=lambda w: w.id)
            if _matches(wf, user_id, wanted)
        ]

    def save_workflow(self, workflow: Workflow) -> None:
        self._workflows[workflow.id] = workflow.model_copy(deep=True)

    def delete_workflow(self, workflow_id: int) -> None:
        self._workflows.pop(workflow_id, None)

    def get_user_service(self, user_id: int, service_id: int) -> UserService | None:
        return self._connections.get((user_id, service_id))

    def list_user_services(self, user_id: int) -> list[UserService]:
        return sorted(
            (c for c in self._connections.values() if c.user_id == user_id),
            key=lambda c: c.service_id,
        )

    def _put_user_service(self, connection: UserService) -> None:
        self._connections[(connection.user_id, connection.service_id)] = connection

    def delete_user_service(self, user_id: int, service_id: int) -> None:
        if (user_id, service_id) not in self._connections:
            raise KeyError(f"Connection not found: user={user_id} service={service_id}")
        del self._connections[(user_id, service_id)]

    def add_log(
        self,
        level: LogLevel,
        message: str,
        context: str,
        metadata: dict[str, Any] | None = None,
        user_id: int | None = None,
    ) -> LogEntry:
        entry = LogEntry(
            id=len(self._logs) + 1,
            level=level,
            message=message,
            context=context,
            metadata=metadata,
            user_id=user_id,
            created_at=_now(),
        )
        self._logs.append(entry)
        return entry

    def list_logs(
        self,
        context: str | None = None,
        limit: int = 200,
        user_id: int | None = None,
    ) -> list[LogEntry]:
        entries = [e for e in reversed(self._logs) if _log_matches(e, context, user_id)]
        return entries[:limit]


class FileStore(Store):
    """File-based store.

    Layout under data_dir:
      workflows/{id}.json
      connections/{user_id}-{service_id}.json
      logs.jsonl            (append-only)
    """

    def __init__(self, data_dir: Path) -> None:
        self._data_dir = data_dir
        self._workflows_dir = data_dir / "workflows"
        self._connections_dir = data_dir / "connections"
        self._logs_file = data_dir / "logs.jsonl"
        for d in (self._data_dir, self._workflows_dir, self._connections_dir):
            d.mkdir(parents=True, exist_ok=True)
        self._lock = threading.Lock()
        existing = self._read_logs()
        self._last_log_id = existing[-1].id if existing else 0

    # ── Helpers ────────────────────────────────────────────────────────────────

    @staticmethod
    def _write(path: Path, payload: str) -> None:
        # Atomic write via temp file
        tmp = path.with_suffix(".tmp")
        tmp.write_text(payload, encoding="utf-8")
        tmp.replace(path)

    def _workflow_path(self, workflow_id: int) -> Path:
        return self._workflows_dir / f"{workflow_id}.json"

    def _connection_path(self, user_id: int, service_id: int) -> Path:
        return self._connections_dir / f"{user_id}-{service_id}.json"

    def _next_id(self) -> int:
        ids = [int(p.stem) for p in self._workflows_dir.glob("*.json") if p.stem.isdigit()]
        counter = self._data_dir / "workflow_seq"
        last = int(counter.read_text()) if counter.exists() else 0
        next_id = max([last, *ids]) + 1
        self._write(counter, str(next_id))
        return next_id

    # ── Workflows ──────────────────────────────────────────────────────────────

    def create_workflow(
        self,
        user_id: int,
        name: str,
        action_id: int,
        action_data: list[str],
        reaction_id: int,
        reaction_data: list[str],
        description: str | None = None,
    ) -> Workflow:
        now = _now()
        with self._lock:
            workflow = Workflow(
                id=self._next_id(),
                user_id=user_id,
                name=name,
                description=description,
                action_id=action_id,
                action_data=list(action_data),
                reaction_id=reaction_id,
                reaction_data=list(reaction_data),
                created_at=now,
                updated_at=now,
            )
            self.save_workflow(workflow)
        return workflow

    def get_workflow(self, workflow_id: int) -> Workflow | None:
        path = self._workflow_path(workflow_id)
        if not path.exists():
            return None
        return Workflow.model_validate_json(path.read_text(encoding="utf-8"))

    def list_workflows(
        self,
        user_id: int | None = None,
        action_ids: Iterable[int] | None = None,
    ) -> list[Workflow]:
        wanted = set(action_ids) if action_ids is not None else None
        workflows = []
        for path in self._workflows_dir.glob("*.json"):
            try:
                wf = Workflow.model_validate_json(path.read_text(encoding="utf-8"))
            except Exception as e:
                log.warning("Failed to load workflow %s: %s", path.name, e)
                continue
            if _matches(wf, user_id, wanted):
                workflows.append(wf)
        return sorted(workflows, key=lambda w: w.id)

    def save_workflow(self, workflow: Workflow) -> None:
        self._write(self._workflow_path(workflow.id), workflow.model_dump_json(indent=2))

    def delete_workflow(self, workflow_id: int) -> None:
        path = self._workflow_path(workflow_id)
        if path.exists():
            path.unlink()

    # ── Connections ────────────────────────────────────────────────────────────

    def get_user_service(self, user_id: int, service_id: int) -> UserService | None:
        path = self._connection_path(user_id, service_id)
        if not path.exists():
            return None
        return UserService.model_validate_json(path.read_text(encoding="utf-8"))

    def list_user_services(self, user_id: int) -> list[UserService]:
        connections = []
        for path in self._connections_dir.glob(f"{user_id}-*.json"):
            try:
                connections.append(UserService.model_validate_json(path.read_text(encoding="utf-8")))
            except Exception as e:
                log.warning("Failed to load connection %s: %s", path.name, e)
        return sorted(connections, key=lambda c: c.service_id)

    def _put_user_service(self, connection: UserService) -> None:
        path = self._connection_path(connection.user_id, connection.service_id)
        self._write(path, connection.model_dump_json(indent=2))

    def delete_user_service(self, user_id: int, service_id: int) -> None:
        path = self._connection_path(user_id, service_id)
        if not path.exists():
            raise KeyError(f"Connection not found: user={user_id} service={service_id}")
        path.unlink()

    # ── Audit log ──────────────────────────────────────────────────────────────

    def _read_logs(self) -> list[LogEntry]:
        if not self._logs_file.exists():
            return []
        entries = []
        for line in self._logs_file.read_text(encoding="utf-8").splitlines():
            if not line.strip():
                continue
            try:
                entries.append(LogEntry.model_validate_json(line))
            except Exception:
                log.warning("Skipping malformed audit line")
        return entries

    def add_log(
        self,
        level: LogLevel,
        message: str,
        context: str,
        metadata: dict[str, Any] | None = None,
        user_id: int | None = None,
    ) -> LogEntry:
        with self._lock:
            self._last_log_id += 1
            entry = LogEntry(
                id=self._last_log_id,
                level=level,
                message=message,
                context=context,
                metadata=json.loads(json.dumps(metadata, default=str)) if metadata else metadata,
                user_id=user_id,
                created_at=_now(),
            )
            with self._logs_file.open("a", encoding="utf-8") as fh:
                fh.write(entry.model_dump_json() + "\n")
        return entry

    def list_logs(
        self,
        context: str | None = None,
        limit: int = 200,
        user_id: int | None = None,
    ) -> list[LogEntry]:
        entries = [e for e in reversed(self._read_logs()) if _log_matches(e, context, user_id)]
        return entries[:limit]

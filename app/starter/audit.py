from __future__ import annotations

import json
import logging
from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any

from flask import g, has_request_context, request
from sqlalchemy import inspect
from sqlalchemy.orm import Session

from app.starter.models import Account, AuditLog, BaseModel

logger = logging.getLogger(__name__)


class EntityState(str, Enum):
    ADDED = "create"
    MODIFIED = "edit"
    DELETED = "delete"


def _plain(value: Any) -> Any:
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, Decimal):
        return str(value)
    if isinstance(value, Enum):
        return value.value
    return value


def _ids(items) -> list[int]:
    return [item.id for item in items if getattr(item, "id", None) is not None]


def _column_keys(entity: BaseModel) -> list[str]:
    return [attr.key for attr in inspect(entity).mapper.column_attrs]


@dataclass
class LoggableEntity:
    """
    Snapshot of one pending change, taken before the primary save.
    The entity itself is kept so values assigned by the save (id, column
    defaults) can be read afterwards.
    """

    state: EntityState
    entity: BaseModel
    name: str
    changes: dict[str, Any] = field(default_factory=dict)
    entity_id: str | None = None

    @classmethod
    def from_entry(cls, state: EntityState, entity: BaseModel) -> "LoggableEntity":
        insp = inspect(entity)
        changes: dict[str, Any] = {}
        for key in _column_keys(entity):
            if state == EntityState.ADDED:
                changes[key] = {"new": _plain(getattr(entity, key))}
            elif state == EntityState.DELETED:
                changes[key] = {"old": _plain(getattr(entity, key))}
            else:
                history = insp.attrs[key].history
                if not history.has_changes():
                    continue
                old = history.deleted[0] if history.deleted else None
                new = history.added[0] if history.added else None
                if old == new:
                    continue
                changes[key] = {"old": _plain(old), "new": _plain(new)}

        if state == EntityState.MODIFIED:
            for rel in insp.mapper.relationships:
                if rel.secondary is None:
                    continue
                history = insp.attrs[rel.key].history
                if not (history.added or history.deleted):
                    continue
                kept = _ids(history.unchanged)
                changes[rel.key] = {
                    "old": sorted(kept + _ids(history.deleted)),
                    "new": sorted(kept + _ids(history.added)),
                }

        entity_id = None if state == EntityState.ADDED else str(entity.id)
        return cls(state=state, entity=entity, name=type(entity).__name__, changes=changes, entity_id=entity_id)

    def read_saved_values(self) -> None:
        """Take the values of an added entity again once the primary save assigned its id and defaults."""
        if self.state != EntityState.ADDED:
            return
        self.changes = {key: {"new": _plain(getattr(self.entity, key))} for key in _column_keys(self.entity)}
        self.entity_id = str(self.entity.id)


class AuditLogger:
    """
    Writes entity change logs through its own session so a failed primary
    save never drags log rows with it (and vice versa).
    """

    def __init__(self, session: Session, account_id: int | None = None) -> None:
        self.session = session
        self.account_id = account_id
        self.entities: list[LoggableEntity] = []
        self._closed = False

    def log(self, entries: Iterable[tuple[EntityState, BaseModel]]) -> None:
        for state, entity in entries:
            if isinstance(entity, AuditLog):
                continue
            loggable = LoggableEntity.from_entry(state, entity)
            if state == EntityState.MODIFIED and not loggable.changes:
                continue
            self.entities.append(loggable)

    def save(self) -> None:
        if not self.entities:
            return
        request_id = getattr(g, "request_id", None) if has_request_context() else None
        client_ip = request.remote_addr if has_request_context() else None
        for loggable in self.entities:
            loggable.read_saved_values()
            self.session.add(
                AuditLog(
                    account_id=self.account_id,
                    request_id=request_id,
                    client_ip=client_ip,
                    action=loggable.state.value,
                    entity_name=loggable.name,
                    entity_id=loggable.entity_id,
                    changes=json.dumps(loggable.changes, sort_keys=True, default=str),
                )
            )
        self.session.commit()
        logger.debug("Saved %d audit log entries", len(self.entities))
        self.entities = []

    def discard(self) -> None:
        self.entities = []

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        self.session.close()


def record_event(
    s: Session,
    *,
    actor: Account | None,
    action: str,
    entity_name: str | None = None,
    entity_id: str | None = None,
    metadata: dict[str, Any] | None = None,
    request_id: str | None = None,
) -> AuditLog:
    """
    Append-only audit event helper (login, logout, recovery requests).
    """
    rid = request_id or (getattr(g, "request_id", None) if has_request_context() else None)
    ev = AuditLog(
        request_id=rid,
        account_id=actor.id if actor else None,
        action=action,
        entity_name=entity_name,
        entity_id=entity_id,
        changes=json.dumps(metadata, sort_keys=True, default=str) if metadata else None,
        client_ip=request.remote_addr if has_request_context() else None,
    )
    s.add(ev)
    return ev

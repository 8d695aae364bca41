from __future__ import annotations

import logging
from collections.abc import Iterable
from typing import Any, TypeVar

from sqlalchemy import inspect
from sqlalchemy.orm import Query, Session

from app.starter.audit import AuditLogger, EntityState
from app.starter.mapping import map_to
from app.starter.models import BaseModel

logger = logging.getLogger(__name__)

M = TypeVar("M", bound=BaseModel)
V = TypeVar("V")

# Never overwritten by update().
_IMMUTABLE_COLUMNS = frozenset({"id", "created_at"})


class UnitOfWork:
    """
    Batches reads and writes against one session with a single commit point.
    Each commit also writes the audit log of the changes it persisted.
    """

    def __init__(self, session: Session, logger: AuditLogger | None = None) -> None:
        self.session = session
        self.logger = logger
        self._closed = False

    def __enter__(self) -> "UnitOfWork":
        return self

    def __exit__(self, *exc: Any) -> None:
        self.close()

    def get(self, model: type[M], id: int) -> M | None:
        return self.session.get(model, id)

    def get_as(self, model: type[M], view: type[V], id: int) -> V | None:
        entity = self.get(model, id)
        if entity is None:
            return None
        return self.to(view, entity)

    def to(self, view: type[V], source: Any) -> V:
        return map_to(view, source)

    def select(self, model: type[M]) -> Query[M]:
        return self.session.query(model)

    def insert(self, model: BaseModel) -> None:
        self.session.add(model)

    def insert_range(self, models: Iterable[BaseModel]) -> None:
        self.session.add_all(list(models))

    def update(self, model: M) -> M:
        """
        Mark `model` as modified. Tracked entities already carry their
        changes; detached or transient copies are applied to the stored row.
        """
        if model in self.session:
            return model
        stored = self.session.get(type(model), model.id)
        if stored is None:
            raise LookupError(f"{type(model).__name__} {model.id} does not exist")
        state = inspect(model)
        for attr in state.mapper.column_attrs:
            if attr.key in _IMMUTABLE_COLUMNS or attr.key not in state.dict:
                continue
            setattr(stored, attr.key, state.dict[attr.key])
        return stored

    def delete(self, model: BaseModel) -> None:
        if model not in self.session:
            model = self.session.merge(model)
        self.session.delete(model)

    def delete_range(self, models: Iterable[BaseModel]) -> None:
        for model in models:
            self.delete(model)

    def delete_by_id(self, model: type[M], id: int) -> None:
        entity = self.session.get(model, id)
        if entity is not None:
            self.session.delete(entity)

    def pending_entries(self) -> list[tuple[EntityState, BaseModel]]:
        entries: list[tuple[EntityState, BaseModel]] = []
        for entity in self.session.new:
            if isinstance(entity, BaseModel):
                entries.append((EntityState.ADDED, entity))
        for entity in self.session.dirty:
            if isinstance(entity, BaseModel) and self.session.is_modified(entity):
                entries.append((EntityState.MODIFIED, entity))
        for entity in self.session.deleted:
            if isinstance(entity, BaseModel):
                entries.append((EntityState.DELETED, entity))
        return entries

    def commit(self) -> None:
        if self.logger is not None:
            self.logger.log(self.pending_entries())
        try:
            self.session.commit()
        except Exception:
            self.session.rollback()
            if self.logger is not None:
                self.logger.discard()
            logger.warning("Commit failed; audit log discarded")
            raise
        if self.logger is not None:
            self.logger.save()

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        if self.logger is not None:
            self.logger.close()
        self.session.close()


def request_unit_of_work() -> UnitOfWork:
    """
    Request-scoped unit of work whose audit entries are attributed to the
    current account. Closed by `teardown_db_session`.
    """
    from flask import g

    from app.starter.db import session_factory

    uow = getattr(g, "unit_of_work", None)
    if uow is None:
        sm = session_factory()
        account = getattr(g, "current_account", None)
        uow = UnitOfWork(sm(), AuditLogger(sm(), account.id if account else None))
        g.unit_of_work = uow
    return uow

# camfleet/services/gateway.py
"""
Remote data gateway: the only path to the relational store.

Gateway is the abstract CRUD + change-feed contract the dashboard core consumes.
SqlGateway implements it on SQLAlchemy: rows travel as plain dicts, failures
surface as GatewayError with Postgres-style codes, and every committed write is
published on the change feed.

Cleanup the store owns (not the core):
  - deleting a channel (or a device, and with it its channels) removes any
    placed camera referencing it from every layout
  - channel logs and a division's layout go with their parent (ON DELETE CASCADE)
  - a division referenced by a device cannot be deleted (ON DELETE RESTRICT)
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Callable, Iterable, Optional, Union
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from camfleet.errors import (
    GatewayError, UNIQUE_VIOLATION, FOREIGN_KEY_VIOLATION, NOT_NULL_VIOLATION,
)
from camfleet.models import Division, Device, Channel, ChannelLog, Layout
from camfleet.services.change_feed import ChangeFeed, Subscription
from camfleet.utils.logger import get_logger

logger = get_logger(__name__)

TABLES = {
    "divisions": Division,
    "devices": Device,
    "channels": Channel,
    "channel_logs": ChannelLog,
    "layouts": Layout,
}


class Gateway(ABC):
    @abstractmethod
    async def list(self, table: str, order_by: Optional[str] = None,
                   descending: bool = False, **filters) -> list[dict]: ...

    @abstractmethod
    async def get(self, table: str, row_id: int) -> Optional[dict]: ...

    @abstractmethod
    async def insert(self, table: str, rows: Union[dict, list[dict]]) -> list[dict]: ...

    @abstractmethod
    async def update(self, table: str, row_id: int, patch: dict) -> dict: ...

    @abstractmethod
    async def delete(self, table: str, row_id: int) -> None: ...

    @abstractmethod
    async def upsert_layout(self, division_id: int, patch: dict) -> dict: ...

    @abstractmethod
    def subscribe_to_changes(self, tables: Iterable[str], callback: Callable) -> Subscription: ...


def _model(table: str):
    try:
        return TABLES[table]
    except KeyError:
        raise GatewayError(f'relation "{table}" does not exist', code="42P01")


def _row(obj) -> dict:
    return {column.name: getattr(obj, column.name) for column in obj.__table__.columns}


def _check_columns(model, table: str, values: dict):
    known = {column.name for column in model.__table__.columns}
    for key in values:
        if key not in known:
            raise GatewayError(f'column "{key}" of relation "{table}" does not exist', code="42703")


def _translate(exc: SQLAlchemyError) -> GatewayError:
    orig = getattr(exc, "orig", None)
    code = getattr(orig, "pgcode", None) or getattr(orig, "sqlstate", None)
    message = str(orig) if orig is not None else str(exc)
    if code is None and isinstance(exc, IntegrityError):
        lowered = message.lower()
        if "unique" in lowered:
            code = UNIQUE_VIOLATION
        elif "foreign key" in lowered:
            code = FOREIGN_KEY_VIOLATION
        elif "not null" in lowered:
            code = NOT_NULL_VIOLATION
    return GatewayError(message, code)


class SqlGateway(Gateway):
    def __init__(self, session_factory, feed: Optional[ChangeFeed] = None):
        self._session_factory = session_factory
        self.feed = feed or ChangeFeed()

    async def list(self, table, order_by=None, descending=False, **filters):
        model = _model(table)
        _check_columns(model, table, filters)
        with self._session_factory() as db:
            try:
                q = db.query(model)
                for column, value in filters.items():
                    q = q.filter(getattr(model, column) == value)
                if order_by:
                    _check_columns(model, table, {order_by: None})
                    column = getattr(model, order_by)
                    q = q.order_by(column.desc() if descending else column.asc())
                q = q.order_by(model.id.desc() if descending else model.id.asc())
                return [_row(obj) for obj in q.all()]
            except SQLAlchemyError as e:
                raise _translate(e)

    async def get(self, table, row_id):
        model = _model(table)
        with self._session_factory() as db:
            try:
                obj = db.get(model, row_id)
                return _row(obj) if obj is not None else None
            except SQLAlchemyError as e:
                raise _translate(e)

    async def insert(self, table, rows):
        model = _model(table)
        batch = rows if isinstance(rows, list) else [rows]
        for values in batch:
            _check_columns(model, table, values)
        with self._session_factory() as db:
            try:
                objs = [model(**values) for values in batch]
                db.add_all(objs)
                db.commit()
                for obj in objs:
                    db.refresh(obj)
                created = [_row(obj) for obj in objs]
            except SQLAlchemyError as e:
                db.rollback()
                raise _translate(e)
        logger.debug(f"[GATEWAY] INSERT {table} x{len(created)}")
        self.feed.publish(table, "INSERT")
        return created

    async def update(self, table, row_id, patch):
        model = _model(table)
        _check_columns(model, table, patch)
        with self._session_factory() as db:
            try:
                obj = db.get(model, row_id)
                if obj is None:
                    raise GatewayError(f"{table} row {row_id} not found")
                for key, value in patch.items():
                    setattr(obj, key, value)
                db.commit()
                db.refresh(obj)
                updated = _row(obj)
            except SQLAlchemyError as e:
                db.rollback()
                raise _translate(e)
        logger.debug(f"[GATEWAY] UPDATE {table} id={row_id} fields={sorted(patch)}")
        self.feed.publish(table, "UPDATE")
        return updated

    async def delete(self, table, row_id):
        model = _model(table)
        layouts_touched = False
        with self._session_factory() as db:
            try:
                obj = db.get(model, row_id)
                if obj is None:
                    return
                if table == "channels":
                    layouts_touched = self._forget_placements(db, {row_id})
                elif table == "devices":
                    channel_ids = {cid for (cid,) in db.query(Channel.id).filter(Channel.device_id == row_id)}
                    layouts_touched = self._forget_placements(db, channel_ids)
                db.delete(obj)
                db.commit()
            except SQLAlchemyError as e:
                db.rollback()
                raise _translate(e)
        logger.debug(f"[GATEWAY] DELETE {table} id={row_id}")
        self.feed.publish(table, "DELETE")
        if layouts_touched:
            self.feed.publish("layouts", "UPDATE")

    async def upsert_layout(self, division_id, patch):
        _check_columns(Layout, "layouts", patch)
        with self._session_factory() as db:
            try:
                layout = db.query(Layout).filter(Layout.division_id == division_id).first()
                event = "UPDATE"
                if layout is None:
                    layout = Layout(division_id=division_id)
                    db.add(layout)
                    event = "INSERT"
                for key, value in patch.items():
                    setattr(layout, key, value)
                db.commit()
                db.refresh(layout)
                saved = _row(layout)
            except SQLAlchemyError as e:
                db.rollback()
                raise _translate(e)
        logger.debug(f"[GATEWAY] UPSERT layouts division={division_id} ({event})")
        self.feed.publish("layouts", event)
        return saved

    def subscribe_to_changes(self, tables, callback):
        return self.feed.subscribe(tables, callback)

    @staticmethod
    def _forget_placements(db, channel_ids: set) -> bool:
        if not channel_ids:
            return False
        touched = False
        for layout in db.query(Layout).all():
            cameras = layout.placed_cameras if isinstance(layout.placed_cameras, list) else []
            kept = [pc for pc in cameras
                    if not (isinstance(pc, dict) and pc.get("channelId") in channel_ids)]
            if len(kept) != len(cameras):
                layout.placed_cameras = kept
                touched = True
        return touched

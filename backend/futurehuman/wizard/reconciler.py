"""Diff two connection lists into create/update/delete calls.

`before` is the last list the server confirmed, `after` the list being
edited. Rows are keyed by durable id when they have one and by business
key (provider_id#ext_id) otherwise:

    key(c) = "id:<id>"               if c.id is not None
             "k:<provider>#<ext>"    otherwise

Calls are awaited one at a time: creates and updates in `after` order,
then deletes in `before` order. Nothing is retried; the first failing
call propagates and aborts the pass. A 409 on create and a 404 on delete
mean an earlier pass already applied the change.
"""

import logging
import time
from dataclasses import dataclass, field
from typing import Any, Protocol

from futurehuman.client.http import ApiError
from futurehuman.wizard.document import Connection, ConnectionId

logger = logging.getLogger(__name__)

TEMP_ID_PREFIX = "tmp:"
DEFAULT_STATUS = "needs_setup"


class ConnectionApi(Protocol):
    async def list(self, agent_id: int) -> list[dict]: ...

    async def create(self, agent_id: int, fields: dict[str, Any]) -> dict: ...

    async def update(self, agent_id: int, connection_id: int, fields: dict[str, Any]) -> dict: ...

    async def delete(self, agent_id: int, connection_id: int) -> None: ...


@dataclass
class ConnectionDelta:
    created: list[Connection] = field(default_factory=list)
    updated: list[Connection] = field(default_factory=list)
    deleted: list[ConnectionId] = field(default_factory=list)
    # Server rows an id-less `after` row was paired with, unchanged
    adopted: list[Connection] = field(default_factory=list)

    @property
    def calls(self) -> int:
        return len(self.created) + len(self.updated) + len(self.deleted)


# ── Keys & equality ──────────────────────────────────────────

def make_temp_id(provider_id: str) -> str:
    return f"{TEMP_ID_PREFIX}{provider_id}:{int(time.time() * 1000)}"


def is_temp_id(value: ConnectionId) -> bool:
    return isinstance(value, str) and value.startswith(TEMP_ID_PREFIX)


def is_durable(conn: Connection) -> bool:
    return conn.id is not None and not is_temp_id(conn.id)


def business_key(conn: Connection) -> str:
    return f"{conn.provider_id}#{conn.ext_id}"


def connection_key(conn: Connection) -> str:
    if conn.id is not None:
        return f"id:{conn.id}"
    return f"k:{business_key(conn)}"


def connections_equal(a: Connection, b: Connection) -> bool:
    """Compare the mutable fields; ids are not part of equality."""
    return (
        a.provider_id == b.provider_id
        and a.ext_id == b.ext_id
        and (a.status or DEFAULT_STATUS) == (b.status or DEFAULT_STATUS)
        and a.config == b.config
        and a.token == b.token
    )


def _write_fields(conn: Connection) -> dict[str, Any]:
    return {
        "provider_id": conn.provider_id,
        "ext_id": conn.ext_id,
        "status": conn.status or DEFAULT_STATUS,
        "config": conn.config,
        "token": conn.token,
    }


def _keyed(rows: list[Connection], label: str) -> dict[str, Connection]:
    mapped: dict[str, Connection] = {}
    for row in rows:
        key = connection_key(row)
        if key in mapped:
            logger.warning("Duplicate connection key %s in %s list, keeping the last", key, label)
        mapped[key] = row
    return mapped


# ── Delta ────────────────────────────────────────────────────

async def _create(api: ConnectionApi, agent_id: int, conn: Connection) -> Connection:
    """Create a row; on 409 adopt the server's row with the same key."""
    try:
        made = await api.create(agent_id, _write_fields(conn))
        return Connection.model_validate(made)
    except ApiError as e:
        if e.status != 409:
            raise
        rows = await api.list(agent_id)
        existing = next(
            (
                Connection.model_validate(row)
                for row in rows
                if row["provider_id"] == conn.provider_id and row["ext_id"] == conn.ext_id
            ),
            None,
        )
        if existing is None:
            raise
        logger.info("Connection %s already exists as id=%s, adopting it", business_key(conn), existing.id)
        if connections_equal(existing, conn):
            return existing
        return Connection.model_validate(
            await api.update(agent_id, existing.id, _write_fields(conn))
        )


async def _delete(api: ConnectionApi, agent_id: int, connection_id: int) -> None:
    """Delete a row; a 404 means an earlier pass already removed it."""
    try:
        await api.delete(agent_id, connection_id)
    except ApiError as e:
        if e.status != 404:
            raise
        logger.info("Connection %s is already gone, treating it as deleted", connection_id)


async def save_connections_delta(
    api: ConnectionApi,
    agent_id: int,
    before: list[Connection],
    after: list[Connection],
) -> ConnectionDelta:
    """Apply the difference between `before` and `after` to the server.

    Rows in `after` without a durable id whose business key matches a
    `before` row that is no longer present by id are paired with it, so
    removing and re-adding the same provider is an update, not a
    delete + create.

    Raises:
        ApiError: From the first call that fails
    """
    before_map = _keyed(before, "before")
    after_map = _keyed(after, "after")
    delta = ConnectionDelta()

    # Server rows dropped by id, still claimable by business key
    unclaimed = {
        business_key(c): key
        for key, c in before_map.items()
        if key not in after_map and is_durable(c)
    }
    claimed: set[str] = set()
    pending_creates: set[str] = set()

    for key, row in after_map.items():
        prev = before_map.get(key)

        if prev is None and not is_durable(row) and business_key(row) in unclaimed:
            prev_key = unclaimed.pop(business_key(row))
            claimed.add(prev_key)
            prev = before_map[prev_key]
            if connections_equal(prev, row):
                delta.adopted.append(prev)
                continue
            up = await api.update(agent_id, prev.id, _write_fields(row))
            delta.updated.append(Connection.model_validate(up))
            continue

        if prev is None:
            bkey = business_key(row)
            if bkey in pending_creates:
                logger.warning("Skipping second new connection %s in one save", bkey)
                continue
            pending_creates.add(bkey)
            delta.created.append(await _create(api, agent_id, row))
            continue

        if is_durable(prev) and not connections_equal(prev, row):
            up = await api.update(agent_id, prev.id, _write_fields(row))
            delta.updated.append(Connection.model_validate(up))

    for key, row in before_map.items():
        if key in after_map or key in claimed or not is_durable(row):
            continue
        await _delete(api, agent_id, row.id)
        delta.deleted.append(row.id)

    logger.info(
        "Connections saved for agent %s: %d created, %d updated, %d deleted",
        agent_id, len(delta.created), len(delta.updated), len(delta.deleted),
    )
    return delta


def reconcile_ids(
    after: list[Connection],
    created: list[Connection],
    updated: list[Connection],
    adopted: list[Connection] = (),
) -> list[Connection]:
    """Swap server rows into `after`.

    Rows without a durable id take the created (or paired) server row with
    the same business key; durable rows take the updated server row with
    the same id. Everything else passes through unchanged.
    """
    by_business_key = {business_key(c): c for c in (*adopted, *updated, *created)}
    by_id = {c.id: c for c in updated}

    result = []
    for row in after:
        if not is_durable(row):
            server = by_business_key.get(business_key(row))
        else:
            server = by_id.get(row.id)
        result.append(_merge(row, server) if server is not None else row)
    return result


def _merge(row: Connection, server: Connection) -> Connection:
    return row.model_copy(
        update={
            "id": server.id,
            "agent_id": server.agent_id if server.agent_id is not None else row.agent_id,
            "status": server.status,
            "config": server.config,
            "token": server.token,
        }
    )

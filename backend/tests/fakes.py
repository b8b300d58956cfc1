"""In-process fakes for the wizard API resources."""

import asyncio

from futurehuman.client.http import ApiError


class FakeConnectionApi:
    """Records every call; assigns ids like the server does."""

    def __init__(self, rows=None, fail_on=None):
        self.rows: dict[int, dict] = {r["id"]: dict(r) for r in (rows or [])}
        self.calls: list[tuple] = []
        self.fail_on = fail_on
        self._next_id = max(self.rows, default=99) + 1

    def _maybe_fail(self, op, connection_id=None):
        # fail_on is an op name, or (op, connection_id) for one row
        if self.fail_on in (op, (op, connection_id)):
            raise ApiError(500, f"{op} failed")

    async def list(self, agent_id):
        self.calls.append(("list", agent_id))
        return [dict(r) for r in self.rows.values()]

    async def create(self, agent_id, fields):
        self.calls.append(("create", fields["provider_id"], fields["ext_id"]))
        self._maybe_fail("create")
        for row in self.rows.values():
            if (row["provider_id"], row["ext_id"]) == (fields["provider_id"], fields["ext_id"]):
                raise ApiError(409, "Connection already exists")
        row = {"id": self._next_id, "agent_id": agent_id, **fields}
        self.rows[row["id"]] = row
        self._next_id += 1
        return dict(row)

    async def update(self, agent_id, connection_id, fields):
        self.calls.append(("update", connection_id, fields["status"]))
        self._maybe_fail("update")
        self.rows[connection_id].update(fields)
        return dict(self.rows[connection_id])

    async def delete(self, agent_id, connection_id):
        self.calls.append(("delete", connection_id))
        self._maybe_fail("delete", connection_id)
        if connection_id not in self.rows:
            raise ApiError(404, f"Connection not found: {connection_id}")
        del self.rows[connection_id]

    def ops(self, kind):
        return [c for c in self.calls if c[0] == kind]


class FakeAgentApi:
    """Agents keyed by id; `gate` holds `get`/`create` until it is set."""

    def __init__(self, agents=None):
        self.agents: dict[int, dict] = {a["id"]: dict(a) for a in (agents or [])}
        self.calls: list[tuple] = []
        self.gates: dict[int | str, asyncio.Event] = {}
        self._next_id = max(self.agents, default=0) + 1

    async def _wait(self, key):
        gate = self.gates.get(key)
        if gate is not None:
            await gate.wait()

    async def get(self, agent_id):
        self.calls.append(("get", agent_id))
        await self._wait(agent_id)
        if agent_id not in self.agents:
            raise ApiError(404, f"Agent not found: {agent_id}")
        return dict(self.agents[agent_id])

    async def create(self, payload):
        self.calls.append(("create",))
        await self._wait("create")
        agent = {"id": self._next_id, **payload}
        self.agents[agent["id"]] = agent
        self._next_id += 1
        return dict(agent)

    async def update(self, agent_id, payload):
        self.calls.append(("update", agent_id))
        self.agents[agent_id].update(payload)
        return dict(self.agents[agent_id])


def agent_json(agent_id, name="Nova", **sections):
    """An AgentOut-shaped body."""
    body = {
        "id": agent_id,
        "identity": {"name": name, "role": "Support", "company_name": None, "description": None},
        "appearance": {"persona_id": None, "background_color": None},
        "voice": {"language": "en", "name": "alex"},
        "style": {k: 5 for k in (
            "formality", "pace", "calm", "introvert",
            "empathy", "humor", "creativity", "directness",
        )},
        "brain": {"id": "level2", "instructions": None},
        "background": {"background_id": None},
        "draft_id": None,
    }
    body.update(sections)
    return body

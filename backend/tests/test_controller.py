"""Wizard controller: load, submit and derived view-model."""

import asyncio

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from fakes import FakeAgentApi, FakeConnectionApi, agent_json
from futurehuman.client.http import ApiClient
from futurehuman.client.resources import AgentResource, ConnectionResource
from futurehuman.main import app
from futurehuman.wizard.controller import WizardController
from futurehuman.wizard.document import STEPS, Connection, WizardStep, default_document
from futurehuman.wizard.mappers import WizardValidationError, build_agent_payload
from futurehuman.wizard.reconciler import is_temp_id
from futurehuman.wizard.storage import DRAFT_KEY, MemoryDraftStorage, draft_key
from futurehuman.wizard.store import WizardStore


class StaticToken:
    def __init__(self, token):
        self.access_token = token

    async def refresh(self):
        return False


class RecordingAgents(AgentResource):
    def __init__(self, api):
        super().__init__(api)
        self.calls = []

    async def create(self, payload):
        self.calls.append("create")
        return await super().create(payload)

    async def update(self, agent_id, payload):
        self.calls.append("update")
        return await super().update(agent_id, payload)


class RecordingConnections(ConnectionResource):
    def __init__(self, api):
        super().__init__(api)
        self.calls = []

    async def create(self, agent_id, fields):
        self.calls.append(("create", fields["provider_id"]))
        return await super().create(agent_id, fields)

    async def update(self, agent_id, connection_id, fields):
        self.calls.append(("update", connection_id))
        return await super().update(agent_id, connection_id, fields)

    async def delete(self, agent_id, connection_id):
        self.calls.append(("delete", connection_id))
        return await super().delete(agent_id, connection_id)


@pytest.fixture
def notes():
    return []


@pytest.fixture
def storage():
    return MemoryDraftStorage()


def make_controller(agents, connections, storage, notes):
    store = WizardStore(storage, debounce_ms=10)
    return WizardController(store, agents, connections, notify=notes.append)


# ── Against the real API ─────────────────────────────────────────

@pytest_asyncio.fixture
async def api(client: AsyncClient, test_token: str):
    api = ApiClient(
        base_url="http://test",
        auth=StaticToken(test_token),
        transport=ASGITransport(app=app),
    )
    yield api
    await api.close()


@pytest.mark.wizard
@pytest.mark.asyncio
class TestWizardEndToEnd:
    async def test_style_is_clamped_on_submit(self, api, storage, notes):
        agents = RecordingAgents(api)
        controller = make_controller(agents, RecordingConnections(api), storage, notes)
        await controller.mount()

        assert all(getattr(controller.document.style, k) == 5 for k in ("formality", "humor"))
        controller.save("identity", {"name": "Nova"})
        controller.save("style", {"formality": 13})

        assert await controller.submit() is True
        saved = await agents.get(controller.document.entity_id)
        assert saved["style"]["formality"] == 10

    async def test_create_flow(self, api, storage, notes):
        agents = RecordingAgents(api)
        connections = RecordingConnections(api)
        controller = make_controller(agents, connections, storage, notes)
        await controller.mount()

        controller.save("identity", {"name": "Nova"})
        controller.add_connection("gmail")
        controller.add_connection("facebook")
        assert all(is_temp_id(c.id) for c in controller.document.connections.items)

        assert await controller.submit() is True

        assert agents.calls == ["create"]
        assert connections.calls == [("create", "gmail"), ("create", "facebook")]
        entity_id = controller.document.entity_id
        items = controller.document.connections.items
        assert len(items) == 2
        assert all(isinstance(c.id, int) for c in items)
        assert not any(is_temp_id(c.id) for c in items)
        server_ids = {c["id"] for c in await connections.list(entity_id)}
        assert {c.id for c in items} == server_ids

        assert notes[-1].variant == "success"
        assert DRAFT_KEY not in storage
        assert draft_key(entity_id) not in storage
        assert controller.primary_action_label == "Save & Next"

    async def test_edit_flow_delete_and_create(self, api, storage, notes):
        agents = RecordingAgents(api)
        connections = RecordingConnections(api)
        agent = await agents.create(build_agent_payload(_named_document("Existing")))
        gmail = await connections.create(agent["id"], {"provider_id": "gmail", "ext_id": "gmail"})
        agents.calls.clear()
        connections.calls.clear()

        controller = make_controller(agents, connections, storage, notes)
        await controller.mount(entity_id=agent["id"])
        assert controller.document.identity.name == "Existing"
        assert [c.id for c in controller.document.connections.items] == [gmail["id"]]

        controller.remove_connection(gmail["id"])
        controller.add_connection("slack")
        assert await controller.submit() is True

        assert agents.calls == ["update"]
        assert connections.calls == [("create", "slack"), ("delete", gmail["id"])]
        remaining = await connections.list(agent["id"])
        assert [c["provider_id"] for c in remaining] == ["slack"]

        # A second submit with no edits is a no-op for connections
        connections.calls.clear()
        assert await controller.submit() is True
        assert connections.calls == []

    async def test_missing_agent_is_terminal(self, api, storage, notes):
        controller = make_controller(RecordingAgents(api), RecordingConnections(api), storage, notes)

        await controller.mount(entity_id=999)

        assert controller.load_error is not None
        assert controller.load_error.status == 404
        assert notes[-1].variant == "error"
        assert controller.document.entity_id == 999
        assert controller.document.identity.name == ""


def _named_document(name):
    document = default_document()
    document.identity.name = name
    return document


# ── Against in-process fakes ─────────────────────────────────────

@pytest.mark.wizard
@pytest.mark.asyncio
class TestLoadForEdit:
    async def test_maps_and_coerces_server_data(self, storage, notes):
        agents = FakeAgentApi([agent_json(
            4,
            style={"formality": 12, "pace": "3", "calm": None},
            appearance={"persona_id": "p", "background_color": "ABCDEF"},
        )])
        connections = FakeConnectionApi(rows=[
            {"id": 8, "agent_id": 4, "provider_id": "gmail", "ext_id": "gmail", "status": "connected"},
        ])
        controller = make_controller(agents, connections, storage, notes)

        assert await controller.load_for_edit(4) is True

        doc = controller.document
        assert doc.entity_id == 4
        assert doc.style.formality == 10
        assert doc.style.pace == 3
        assert doc.style.calm == 5
        assert doc.style.humor == 5
        assert doc.appearance.background_color == "#abcdef"
        assert doc.brain.id == "level2"
        assert doc.connections.items[0].status == "connected"

    async def test_stale_load_is_discarded(self, storage, notes):
        agents = FakeAgentApi([agent_json(1, name="Old"), agent_json(2, name="New")])
        agents.gates[1] = asyncio.Event()
        controller = make_controller(agents, FakeConnectionApi(), storage, notes)

        slow = asyncio.create_task(controller.load_for_edit(1))
        await asyncio.sleep(0)
        assert await controller.load_for_edit(2) is True
        agents.gates[1].set()

        assert await slow is False
        assert controller.document.identity.name == "New"
        assert controller.document.entity_id == 2

    async def test_dispose_discards_in_flight_load(self, storage, notes):
        agents = FakeAgentApi([agent_json(1, name="Late")])
        agents.gates[1] = asyncio.Event()
        controller = make_controller(agents, FakeConnectionApi(), storage, notes)

        task = asyncio.create_task(controller.load_for_edit(1))
        await asyncio.sleep(0)
        controller.dispose()
        agents.gates[1].set()

        assert await task is False
        assert controller.document.identity.name == ""


@pytest.mark.wizard
@pytest.mark.asyncio
class TestSubmit:
    async def test_blank_name_blocks_before_any_call(self, storage, notes):
        agents = FakeAgentApi()
        controller = make_controller(agents, FakeConnectionApi(), storage, notes)

        assert await controller.submit() is False
        assert agents.calls == []
        assert notes[-1].variant == "warning"

    async def test_failure_leaves_document_and_retry_updates(self, storage, notes):
        agents = FakeAgentApi()
        connections = FakeConnectionApi(fail_on="create")
        controller = make_controller(agents, connections, storage, notes)
        controller.store.hydrate()
        controller.save("identity", {"name": "Nova"})
        temp = controller.add_connection("gmail")

        assert await controller.submit() is False
        assert notes[-1].variant == "error"
        assert controller.document.connections.items[0].id == temp.id
        assert controller.document.identity.name == "Nova"
        # The agent itself was created; its id is kept for the retry
        assert controller.document.entity_id == 1

        connections.fail_on = None
        assert await controller.submit() is True
        assert [c[0] for c in agents.calls] == ["create", "update"]
        assert isinstance(controller.document.connections.items[0].id, int)

    async def test_second_submit_refused_while_in_flight(self, storage, notes):
        agents = FakeAgentApi()
        agents.gates["create"] = asyncio.Event()
        controller = make_controller(agents, FakeConnectionApi(), storage, notes)
        controller.save("identity", {"name": "Nova"})

        first = asyncio.create_task(controller.submit())
        await asyncio.sleep(0)
        assert controller.is_submitting
        assert await controller.submit() is False

        agents.gates["create"].set()
        assert await first is True
        assert agents.calls == [("create",)]

    async def test_retry_after_partial_delete_failure(self, storage, notes):
        agents = FakeAgentApi([agent_json(1)])
        connections = FakeConnectionApi(
            rows=[
                {"id": 5, "agent_id": 1, "provider_id": "gmail", "ext_id": "gmail", "status": "connected"},
                {"id": 6, "agent_id": 1, "provider_id": "facebook", "ext_id": "facebook", "status": "connected"},
            ],
            fail_on=("delete", 6),
        )
        controller = make_controller(agents, connections, storage, notes)
        await controller.mount(entity_id=1)
        controller.remove_connection(5)
        controller.remove_connection(6)

        assert await controller.submit() is False
        assert list(connections.rows) == [6]

        connections.fail_on = None
        assert await controller.submit() is True

        assert connections.ops("delete") == [("delete", 5), ("delete", 6), ("delete", 5), ("delete", 6)]
        assert connections.rows == {}
        assert controller.document.connections.items == []
        assert notes[-1].variant == "success"

    async def test_submit_finishing_after_dispose_is_dropped(self, storage, notes):
        agents = FakeAgentApi()
        agents.gates["create"] = asyncio.Event()
        controller = make_controller(agents, FakeConnectionApi(), storage, notes)
        await controller.mount()
        controller.save("identity", {"name": "Nova"})
        temp = controller.add_connection("gmail")

        task = asyncio.create_task(controller.submit())
        await asyncio.sleep(0)
        controller.dispose()
        draft = storage.get(DRAFT_KEY)
        version = controller.store.version
        agents.gates["create"].set()

        assert await task is False
        assert controller.store.version == version
        assert controller.document.entity_id is None
        assert controller.document.connections.items[0].id == temp.id
        assert draft is not None
        assert storage.get(DRAFT_KEY) == draft
        assert draft_key(1) not in storage
        assert not any(n.variant == "success" for n in notes)

    async def test_primary_action_submits_on_last_step(self, storage, notes):
        agents = FakeAgentApi()
        controller = make_controller(agents, FakeConnectionApi(), storage, notes)
        controller.save("identity", {"name": "Nova"})

        for _ in STEPS[:-1]:
            assert controller.primary_action_label == "Save & Next"
            await controller.primary_action()
        assert controller.primary_action_label == "Create Agent"

        assert await controller.primary_action() is True
        assert agents.calls == [("create",)]
        assert controller.primary_action_label == "Save Agent"


@pytest.mark.wizard
class TestViewModel:
    def _controller(self, storage, notes):
        return make_controller(FakeAgentApi(), FakeConnectionApi(), storage, notes)

    def test_step_indicators(self, storage, notes):
        controller = self._controller(storage, notes)
        controller.go_to_step(WizardStep.BRAIN)

        states = {i.step: i.state for i in controller.step_indicators()}

        assert states[WizardStep.IDENTITY] == "done"
        assert states[WizardStep.VOICE_SOUL] == "done"
        assert states[WizardStep.BRAIN] == "current"
        assert states[WizardStep.CONNECTIONS] == "pending"
        assert controller.subtitle == "Step 4 of 6: Brain"

    def test_titles(self, storage, notes):
        controller = self._controller(storage, notes)
        assert controller.title == "Create Agent"
        controller.store.bind_entity(3)
        controller.save("identity", {"name": "Nova"})
        assert controller.title == "Edit Nova"

    def test_select_brain(self, storage, notes):
        controller = self._controller(storage, notes)

        assert controller.select_brain("level2") is True
        assert controller.document.brain.id == "level2"
        assert controller.select_brain("super") is False
        assert controller.document.brain.id == "level2"
        assert notes[-1].title == "Locked"
        with pytest.raises(ValueError):
            controller.select_brain("level9")

    def test_provider_added_once(self, storage, notes):
        controller = self._controller(storage, notes)
        controller.store.patch_section(
            "connections", {"items": [Connection(id=5, agent_id=3, provider_id="gmail")]}
        )

        existing = controller.add_connection("gmail")

        assert existing.id == 5
        assert [c.id for c in controller.document.connections.items] == [5]
        assert notes[-1].title == "Already added"

        row = controller.add_connection("shopify")
        assert controller.add_connection("shopify").id == row.id
        assert len(controller.document.connections.items) == 2

    def test_token_marks_connection_connected(self, storage, notes):
        controller = self._controller(storage, notes)
        row = controller.add_connection("gmail")

        assert controller.configure_connection(row.id, token="tok").status == "connected"
        assert controller.configure_connection(row.id, token="tok2", status="error").status == "error"
        assert controller.configure_connection(row.id, config={"label": "x"}).status == "error"

    def test_connection_actions(self, storage, notes):
        controller = self._controller(storage, notes)
        row = controller.add_connection("shopify")

        assert row.status == "needs_setup"
        assert row.ext_id == "shopify"

        updated = controller.configure_connection(
            row.id, status="connected", config={"store": "acme"}, token="t"
        )
        assert updated.status == "connected"
        assert controller.document.connections.items[0].config == {"store": "acme"}

        with pytest.raises(ValueError):
            controller.configure_connection(row.id, status="great")
        with pytest.raises(ValueError):
            controller.configure_connection(row.id, provider_id="gmail")
        with pytest.raises(KeyError):
            controller.configure_connection("tmp:none:0", status="error")

        assert controller.remove_connection(row.id) is True
        assert controller.remove_connection(row.id) is False
        assert controller.document.connections.items == []


@pytest.mark.unit
class TestBuildAgentPayload:
    def test_clamps_and_normalizes(self):
        document = _named_document("  Nova  ")
        document.style.formality = 13
        document.style.humor = "junk"
        document.appearance.background_color = "ABC"

        payload = build_agent_payload(document)

        assert payload["identity"]["name"] == "Nova"
        assert payload["style"]["formality"] == 10
        assert payload["style"]["humor"] == 5
        assert payload["appearance"]["background_color"] == "#abc"

    def test_invalid_colour_dropped(self):
        document = _named_document("Nova")
        document.appearance.background_color = "not-a-colour"
        assert build_agent_payload(document)["appearance"]["background_color"] is None

    def test_requires_name_and_brain(self):
        with pytest.raises(WizardValidationError) as exc:
            build_agent_payload(_named_document(" "))
        assert exc.value.field == "identity.name"

        document = _named_document("Nova")
        document.brain.id = ""
        with pytest.raises(WizardValidationError) as exc:
            build_agent_payload(document)
        assert exc.value.field == "brain.id"

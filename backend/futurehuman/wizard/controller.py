"""Wizard controller: drives the store and the API together.

Loads an existing agent into the store, runs the create/update submit
with connection reconciliation, and derives what the step UI shows.
Each `load_for_edit` / `submit` takes a new request generation; results
that come back after a newer operation started (or after `dispose()`)
are dropped.
"""

import logging
from dataclasses import dataclass
from typing import Any, Callable, Literal, Optional

import httpx

from futurehuman.client.http import ApiError
from futurehuman.client.resources import AgentResource, ConnectionResource
from futurehuman.wizard.catalog import get_brain_tier, get_provider
from futurehuman.wizard.document import (
    STEPS,
    Connection,
    ConnectionsSection,
    WizardDocument,
    WizardStep,
)
from futurehuman.wizard.mappers import (
    WizardValidationError,
    build_agent_payload,
    connection_from_server,
    sections_from_agent,
)
from futurehuman.wizard.reconciler import (
    is_durable,
    make_temp_id,
    reconcile_ids,
    save_connections_delta,
)
from futurehuman.wizard.store import WizardStore

logger = logging.getLogger(__name__)

Variant = Literal["info", "success", "error", "warning"]

STEP_LABELS: dict[WizardStep, str] = {
    WizardStep.IDENTITY: "Identity",
    WizardStep.APPEARANCE: "Appearance",
    WizardStep.VOICE_SOUL: "Voice & Soul",
    WizardStep.BRAIN: "Brain",
    WizardStep.BACKGROUND: "Background",
    WizardStep.CONNECTIONS: "Connections",
}

CONFIGURABLE_FIELDS = {"status", "config", "token", "ext_id"}
CONNECTION_STATUSES = {"connected", "needs_setup", "error"}

# Network failures a submit or load turns into a notification
_REQUEST_ERRORS = (ApiError, httpx.HTTPError)


@dataclass(frozen=True)
class Notification:
    title: str
    description: str
    variant: Variant = "info"


@dataclass(frozen=True)
class StepIndicator:
    step: WizardStep
    label: str
    state: Literal["current", "done", "pending"]


def _log_notification(notification: Notification) -> None:
    logger.info("[%s] %s: %s", notification.variant, notification.title, notification.description)


class WizardController:
    def __init__(
        self,
        store: WizardStore,
        agents: AgentResource,
        connections: ConnectionResource,
        notify: Optional[Callable[[Notification], None]] = None,
    ):
        self.store = store
        self._agents = agents
        self._connections = connections
        self._notify = notify or _log_notification
        self._generation = 0
        self._submitting = False
        self._disposed = False
        # Last connection list the server confirmed; submits diff against it
        self._server_connections: list[Connection] = []
        self.load_error: Optional[ApiError] = None

    # ── Lifecycle ────────────────────────────────────────────

    def _next_generation(self) -> int:
        self._generation += 1
        return self._generation

    def _is_current(self, generation: int) -> bool:
        return not self._disposed and generation == self._generation

    def notify(self, title: str, description: str, variant: Variant = "info") -> None:
        self._notify(Notification(title, description, variant))

    async def mount(
        self,
        entity_id: Optional[int] = None,
        route_step: WizardStep | str | None = None,
    ) -> None:
        """Hydrate the local draft, then load server truth when editing."""
        if entity_id is not None:
            self.store.bind_entity(entity_id)
        self.store.hydrate(route_step)
        if entity_id is not None:
            await self.load_for_edit(entity_id)

    def dispose(self) -> None:
        """Invalidate in-flight work and write any pending autosave."""
        self._disposed = True
        self._generation += 1
        self.store.flush()
        self.store.close()

    # ── Loading ──────────────────────────────────────────────

    async def load_for_edit(self, entity_id: int) -> bool:
        """Overwrite the store's sections with the server's agent.

        Returns False when the load failed or was superseded; a failure is
        kept on `load_error` and notified.
        """
        generation = self._next_generation()
        self.load_error = None
        try:
            agent = await self._agents.get(entity_id)
            rows = await self._connections.list(entity_id)
        except _REQUEST_ERRORS as e:
            if not self._is_current(generation):
                return False
            logger.error("Loading agent %s failed: %s", entity_id, e)
            if isinstance(e, ApiError):
                self.load_error = e
            if isinstance(e, ApiError) and e.status == 404:
                self.notify("Not found", f"Agent {entity_id} does not exist", "error")
            else:
                self.notify("Error", "Failed to load agent", "error")
            return False

        if not self._is_current(generation):
            logger.debug("Discarding stale load of agent %s", entity_id)
            return False

        connections = [connection_from_server(row) for row in rows]
        sections: dict[str, Any] = sections_from_agent(agent)
        sections["connections"] = ConnectionsSection(items=connections)

        self.store.bind_entity(entity_id)
        self.store.replace_sections(sections)
        self._server_connections = [c.model_copy() for c in connections]
        return True

    # ── Editing ──────────────────────────────────────────────

    @property
    def document(self) -> WizardDocument:
        return self.store.document

    def save(self, section: str, partial: dict[str, Any]) -> None:
        """Local only; nothing is sent until submit."""
        self.store.patch_section(section, partial)

    def go_to_step(self, step: WizardStep | str) -> None:
        self.store.go_to_step(step)

    def back(self) -> None:
        self.store.previous_step()

    async def primary_action(self) -> bool:
        """The footer button: next step, or submit on the last one."""
        if self.store.current_step == STEPS[-1]:
            return await self.submit()
        self.store.next_step()
        return True

    def select_brain(self, tier_id: str) -> bool:
        tier = get_brain_tier(tier_id)
        if tier is None:
            raise ValueError(f"Unknown brain tier: {tier_id!r}")
        if tier.locked:
            self.notify("Locked", f"{tier.title} is not available on your plan", "info")
            return False
        self.store.patch_section("brain", {"id": tier.id})
        return True

    def add_connection(self, provider_id: str) -> Connection:
        """Add a provider row with a temporary id; it is created on submit.

        A provider already in the list is not added twice; its existing row
        is returned.
        """
        provider = get_provider(provider_id)
        ext_id = provider.ext_id if provider else provider_id
        name = provider.name if provider else provider_id
        for row in self.document.connections.items:
            if (row.provider_id, row.ext_id) == (provider_id, ext_id):
                self.notify("Already added", f"{name} is already in the list")
                return row
        connection = Connection(
            id=make_temp_id(provider_id),
            agent_id=self.document.entity_id,
            provider_id=provider_id,
            ext_id=ext_id,
            status="needs_setup",
        )
        items = [*self.document.connections.items, connection]
        self.store.patch_section("connections", {"items": items})
        return connection

    def remove_connection(self, connection_id: int | str) -> bool:
        items = self.document.connections.items
        kept = [c for c in items if c.id != connection_id]
        if len(kept) == len(items):
            return False
        self.store.patch_section("connections", {"items": kept})
        return True

    def configure_connection(self, connection_id: int | str, **fields: Any) -> Connection:
        """Set status/config/token (or ext_id) on one row.

        Setting a token without a status marks the row connected.
        """
        unknown = set(fields) - CONFIGURABLE_FIELDS
        if unknown:
            raise ValueError(f"Cannot configure {sorted(unknown)}")
        if "status" in fields and fields["status"] not in CONNECTION_STATUSES:
            raise ValueError(f"Invalid connection status: {fields['status']!r}")
        if fields.get("token") and "status" not in fields:
            fields["status"] = "connected"

        items = list(self.document.connections.items)
        for index, row in enumerate(items):
            if row.id == connection_id:
                items[index] = row.model_copy(update=fields)
                self.store.patch_section("connections", {"items": items})
                return items[index]
        raise KeyError(connection_id)

    # ── Submit ───────────────────────────────────────────────

    @property
    def is_submitting(self) -> bool:
        return self._submitting

    async def submit(self) -> bool:
        """Create or update the agent, then reconcile its connections.

        Any failure is logged and notified once; the document is left as
        the user left it. Returns True on full success.
        """
        if self._submitting:
            logger.warning("Submit already in progress, ignoring")
            return False

        document = self.store.document
        try:
            payload = build_agent_payload(document)
        except WizardValidationError as e:
            self.notify("Missing information", str(e), "warning")
            return False

        generation = self._next_generation()
        self._submitting = True
        start_key = self.store.storage_key
        after = list(document.connections.items)
        entity_id = document.entity_id
        creating = entity_id is None

        try:
            if creating:
                created = await self._agents.create(payload)
                entity_id = created["id"]
                # Adopt now: a retry after a failed reconcile must update, not re-create
                if self._is_current(generation):
                    self.store.bind_entity(entity_id)
                before: list[Connection] = []
            else:
                await self._agents.update(entity_id, payload)
                before = self._server_connections

            delta = await save_connections_delta(self._connections, entity_id, before, after)
        except _REQUEST_ERRORS as e:
            if self._is_current(generation):
                logger.error("Submitting agent %s failed", entity_id, exc_info=True)
                self.notify("Error", f"Failed to save agent: {e}", "error")
            return False
        finally:
            self._submitting = False

        if not self._is_current(generation):
            logger.debug("Discarding stale submit result for agent %s", entity_id)
            return False

        reconciled = reconcile_ids(after, delta.created, delta.updated, delta.adopted)
        self.store.patch_section("connections", {"items": reconciled})
        self._server_connections = [c.model_copy() for c in reconciled if is_durable(c)]

        self.store.discard_draft()
        if start_key != self.store.storage_key:
            self.store.discard_draft(start_key)

        self.notify(
            "Success",
            "Agent created" if creating else "Agent saved",
            "success",
        )
        return True

    # ── Derived view-model ───────────────────────────────────

    @property
    def is_editing(self) -> bool:
        return self.document.entity_id is not None

    def step_indicators(self) -> list[StepIndicator]:
        current = STEPS.index(self.store.current_step)
        return [
            StepIndicator(
                step=step,
                label=STEP_LABELS[step],
                state="current" if i == current else ("done" if i < current else "pending"),
            )
            for i, step in enumerate(STEPS)
        ]

    @property
    def primary_action_label(self) -> str:
        if self.store.current_step != STEPS[-1]:
            return "Save & Next"
        return "Save Agent" if self.is_editing else "Create Agent"

    @property
    def title(self) -> str:
        name = self.document.identity.name.strip()
        if self.is_editing:
            return f"Edit {name}" if name else "Edit Agent"
        return "Create Agent"

    @property
    def subtitle(self) -> str:
        step = self.store.current_step
        return f"Step {STEPS.index(step) + 1} of {len(STEPS)}: {STEP_LABELS[step]}"

"""Wizard state store: the single mutable document behind the wizard.

Every mutation is applied to the in-memory document immediately, bumps
`version`, notifies subscribers and schedules a debounced write to draft
storage. Storage failures are logged and swallowed; the server is the
durable copy once the agent exists.
"""

import asyncio
import json
import logging
import time
from typing import Any, Callable, Optional

from pydantic import BaseModel, ValidationError

from futurehuman.config import settings
from futurehuman.wizard.document import (
    SECTION_MODELS,
    STEPS,
    WizardDocument,
    WizardStep,
    default_document,
)
from futurehuman.wizard.storage import (
    DraftStorage,
    DraftStorageError,
    MemoryDraftStorage,
    draft_key,
)

logger = logging.getLogger(__name__)

Listener = Callable[[WizardDocument], None]


class WizardStore:
    def __init__(
        self,
        storage: Optional[DraftStorage] = None,
        entity_id: Optional[int] = None,
        debounce_ms: Optional[int] = None,
    ):
        self._storage = storage if storage is not None else MemoryDraftStorage()
        self._key = draft_key(entity_id)
        self._delay = (settings.autosave_debounce_ms if debounce_ms is None else debounce_ms) / 1000
        self._document = default_document()
        self._version = 0
        self._listeners: list[Listener] = []
        self._pending: Optional[asyncio.TimerHandle] = None
        self._hydrated = False

    # ── Read side ────────────────────────────────────────────

    @property
    def document(self) -> WizardDocument:
        return self._document

    @property
    def version(self) -> int:
        return self._version

    @property
    def current_step(self) -> WizardStep:
        return self._document.current_step

    @property
    def storage_key(self) -> str:
        return self._key

    @property
    def is_hydrated(self) -> bool:
        return self._hydrated

    @property
    def has_pending_save(self) -> bool:
        return self._pending is not None

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Call `listener(document)` after every mutation; returns unsubscribe."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    # ── Mutations ────────────────────────────────────────────

    def _commit(self, document: WizardDocument, autosave: bool = True) -> None:
        document.updated_at = time.time()
        self._document = document
        self._version += 1
        for listener in list(self._listeners):
            listener(document)
        if autosave:
            self._schedule_persist()

    def patch_section(self, section: str, partial: dict[str, Any] | BaseModel) -> None:
        """Shallow-merge `partial` into one section.

        Only the shape is checked: unknown sections or keys raise
        ValueError, wrongly typed values raise ValidationError. Values are
        kept as given (no clamping).
        """
        model = SECTION_MODELS.get(section)
        if model is None:
            raise ValueError(f"Unknown wizard section: {section!r}")
        if isinstance(partial, BaseModel):
            partial = partial.model_dump(exclude_unset=True)

        unknown = set(partial) - set(model.model_fields)
        if unknown:
            raise ValueError(f"Unknown keys for section {section!r}: {sorted(unknown)}")

        current: BaseModel = getattr(self._document, section)
        merged = model.model_validate({**dict(current), **partial})
        self._commit(self._document.model_copy(update={section: merged}))

    def replace_sections(self, sections: dict[str, BaseModel]) -> None:
        """Overwrite whole sections (server data on edit load)."""
        unknown = set(sections) - set(SECTION_MODELS)
        if unknown:
            raise ValueError(f"Unknown wizard sections: {sorted(unknown)}")
        update = {
            name: SECTION_MODELS[name].model_validate(value) for name, value in sections.items()
        }
        self._commit(self._document.model_copy(update=update))

    def go_to_step(self, step: WizardStep | str) -> None:
        step = WizardStep(step)
        if step == self._document.current_step:
            return
        self._commit(self._document.model_copy(update={"current_step": step}))

    def next_step(self) -> None:
        index = STEPS.index(self._document.current_step)
        if index < len(STEPS) - 1:
            self.go_to_step(STEPS[index + 1])

    def previous_step(self) -> None:
        index = STEPS.index(self._document.current_step)
        if index > 0:
            self.go_to_step(STEPS[index - 1])

    def bind_entity(self, entity_id: int) -> None:
        """Attach the server id; later writes go to that agent's draft key."""
        self._key = draft_key(entity_id)
        if self._document.entity_id != entity_id:
            self._commit(self._document.model_copy(update={"entity_id": entity_id}))

    def reset(self) -> None:
        """Back to defaults; entity and draft ids are cleared."""
        self._key = draft_key()
        self._commit(default_document())

    # ── Persistence ──────────────────────────────────────────

    def hydrate(self, route_step: WizardStep | str | None = None) -> bool:
        """Merge a stored draft into the document (first call only).

        The step comes from `route_step` when given, else from the draft,
        else the in-memory step is kept. Returns True when a draft was
        loaded.
        """
        if self._hydrated:
            return False
        self._hydrated = True

        saved = self._read()
        update: dict[str, Any] = {}
        step = self._document.current_step

        if saved is not None:
            update = {name: saved[name] for name in SECTION_MODELS if name in saved}
            for name in ("entity_id", "draft_id"):
                if saved.get(name) is not None:
                    update[name] = saved[name]
            if saved.get("current_step") in {s.value for s in STEPS}:
                step = WizardStep(saved["current_step"])

        if route_step is not None:
            step = WizardStep(route_step)

        try:
            merged = WizardDocument.model_validate(
                {**self._document.model_dump(), **update, "current_step": step}
            )
        except ValidationError as e:
            logger.warning("Discarding unreadable draft %s: %s", self._key, e)
            merged = self._document.model_copy(update={"current_step": step})
            saved = None

        if saved is not None or step != self._document.current_step:
            self._commit(merged)
        return saved is not None

    def _read(self) -> Optional[dict]:
        try:
            raw = self._storage.get(self._key)
        except DraftStorageError as e:
            logger.warning("Draft load skipped: %s", e)
            return None
        if not raw:
            return None
        try:
            data = json.loads(raw)
        except ValueError:
            logger.warning("Draft %s is not valid JSON, ignoring it", self._key)
            return None
        return data if isinstance(data, dict) else None

    def _schedule_persist(self) -> None:
        # Nothing is written before hydration so a stored draft is not clobbered
        if not self._hydrated:
            return
        self._cancel_pending()
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            self.persist()
            return
        self._pending = loop.call_later(self._delay, self._autosave)

    def _autosave(self) -> None:
        self._pending = None
        self.persist()

    def _cancel_pending(self) -> None:
        if self._pending is not None:
            self._pending.cancel()
            self._pending = None

    def persist(self) -> bool:
        """Write the whole document now; False when storage failed."""
        try:
            self._storage.set(self._key, self._document.to_json())
        except DraftStorageError as e:
            logger.warning("Draft save skipped: %s", e)
            return False
        return True

    def flush(self) -> bool:
        """Run a pending autosave immediately (no-op when none is pending)."""
        if self._pending is None:
            return False
        self._cancel_pending()
        return self.persist()

    def save_draft(self) -> None:
        """Explicit "save draft": mark the document and write it now."""
        if self._document.draft_id is None:
            self._commit(self._document.model_copy(update={"draft_id": "local"}), autosave=False)
        self._cancel_pending()
        self.persist()

    def discard_draft(self, key: Optional[str] = None) -> None:
        """Remove a stored draft (the current one unless `key` is given).

        Discarding the current draft also drops any pending autosave.
        """
        key = key or self._key
        if key == self._key:
            self._cancel_pending()
        try:
            self._storage.remove(key)
        except DraftStorageError as e:
            logger.warning("Draft remove skipped: %s", e)

    def close(self) -> None:
        self._cancel_pending()
        self._listeners.clear()

from futurehuman.wizard.controller import Notification, StepIndicator, WizardController
from futurehuman.wizard.document import Connection, WizardDocument, WizardStep, default_document
from futurehuman.wizard.mappers import WizardValidationError, build_agent_payload
from futurehuman.wizard.reconciler import ConnectionDelta, reconcile_ids, save_connections_delta
from futurehuman.wizard.storage import (
    DraftStorageError,
    FileDraftStorage,
    MemoryDraftStorage,
    RedisDraftStorage,
    draft_key,
    draft_storage_from_settings,
)
from futurehuman.wizard.store import WizardStore

__all__ = [
    "Notification",
    "StepIndicator",
    "WizardController",
    "Connection",
    "WizardDocument",
    "WizardStep",
    "default_document",
    "WizardValidationError",
    "build_agent_payload",
    "ConnectionDelta",
    "reconcile_ids",
    "save_connections_delta",
    "DraftStorageError",
    "FileDraftStorage",
    "MemoryDraftStorage",
    "RedisDraftStorage",
    "draft_key",
    "draft_storage_from_settings",
    "WizardStore",
]

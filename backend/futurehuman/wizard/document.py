"""The in-progress agent: one document, one section per wizard step.

Sections are always fully shaped; missing keys take the defaults below.
Style scores are held as entered (a slider may report 13 or "7"); they are
clamped only when a submission payload is built.
"""

import time
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field, model_validator

from futurehuman.schemas.validators import DEFAULT_SCORE, clamp_score, normalize_hex  # noqa: F401

RawScore = int | float | str | None
ConnectionId = int | str | None


class WizardStep(str, Enum):
    IDENTITY = "identity"
    APPEARANCE = "appearance"
    VOICE_SOUL = "voice_soul"
    BRAIN = "brain"
    BACKGROUND = "background"
    CONNECTIONS = "connections"


STEPS: tuple[WizardStep, ...] = tuple(WizardStep)


class IdentitySection(BaseModel):
    name: str = ""
    role: str = ""
    company_name: str | None = None
    description: str | None = None


class AppearanceSection(BaseModel):
    persona_id: str | None = None
    background_color: str | None = None


class VoiceSection(BaseModel):
    language: str = "en"
    name: str = "alex"


class StyleSection(BaseModel):
    formality: RawScore = DEFAULT_SCORE
    pace: RawScore = DEFAULT_SCORE
    calm: RawScore = DEFAULT_SCORE
    introvert: RawScore = DEFAULT_SCORE
    empathy: RawScore = DEFAULT_SCORE
    humor: RawScore = DEFAULT_SCORE
    creativity: RawScore = DEFAULT_SCORE
    directness: RawScore = DEFAULT_SCORE


class BrainSection(BaseModel):
    id: str = "level1"
    instructions: str | None = ""


class BackgroundSection(BaseModel):
    background_id: str | None = None


class Connection(BaseModel):
    """A third-party integration row; `id` may be a temporary `tmp:` id."""

    id: ConnectionId = None
    agent_id: int | None = None
    provider_id: str
    ext_id: str | None = None
    status: str | None = "needs_setup"
    config: dict[str, Any] | None = None
    token: str | None = None

    @model_validator(mode="after")
    def _default_ext_id(self):
        if not self.ext_id:
            self.ext_id = self.provider_id
        return self


class ConnectionsSection(BaseModel):
    items: list[Connection] = Field(default_factory=list)


# Section name -> model, in step order (voice_soul holds voice + style)
SECTION_MODELS: dict[str, type[BaseModel]] = {
    "identity": IdentitySection,
    "appearance": AppearanceSection,
    "voice": VoiceSection,
    "style": StyleSection,
    "brain": BrainSection,
    "background": BackgroundSection,
    "connections": ConnectionsSection,
}


class WizardDocument(BaseModel):
    identity: IdentitySection = Field(default_factory=IdentitySection)
    appearance: AppearanceSection = Field(default_factory=AppearanceSection)
    voice: VoiceSection = Field(default_factory=VoiceSection)
    style: StyleSection = Field(default_factory=StyleSection)
    brain: BrainSection = Field(default_factory=BrainSection)
    background: BackgroundSection = Field(default_factory=BackgroundSection)
    connections: ConnectionsSection = Field(default_factory=ConnectionsSection)

    entity_id: int | None = None
    draft_id: str | None = None
    current_step: WizardStep = WizardStep.IDENTITY
    updated_at: float = Field(default_factory=time.time)

    def to_json(self) -> str:
        return self.model_dump_json()

    @classmethod
    def from_json(cls, raw: str) -> "WizardDocument":
        return cls.model_validate_json(raw)


def default_document() -> WizardDocument:
    return WizardDocument()

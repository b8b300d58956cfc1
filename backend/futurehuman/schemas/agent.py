"""Agent payloads: nested by wizard section.

Create requires every section the wizard always fills (identity, voice,
style, brain); update is a deep partial where only the keys sent are
applied.
"""

from datetime import datetime
from typing import Annotated

from pydantic import AfterValidator, BaseModel, Field, StringConstraints

from futurehuman.schemas.validators import SCORE_MAX, SCORE_MIN, validate_hex_color

NonEmpty = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1)]
Score = Annotated[int, Field(ge=SCORE_MIN, le=SCORE_MAX)]
HexColor = Annotated[str | None, AfterValidator(validate_hex_color)]


# ── Create ───────────────────────────────────────────────────

class IdentityIn(BaseModel):
    name: NonEmpty
    role: str = ""
    company_name: str | None = None
    description: str | None = None


class AppearanceIn(BaseModel):
    persona_id: str | None = None
    background_color: HexColor = None


class VoiceIn(BaseModel):
    language: NonEmpty
    name: NonEmpty


class StyleIn(BaseModel):
    formality: Score
    pace: Score
    calm: Score
    introvert: Score
    empathy: Score
    humor: Score
    creativity: Score
    directness: Score


class BrainIn(BaseModel):
    id: NonEmpty
    instructions: str | None = None


class BackgroundIn(BaseModel):
    background_id: str | None = None


class AgentCreate(BaseModel):
    identity: IdentityIn
    appearance: AppearanceIn = Field(default_factory=AppearanceIn)
    voice: VoiceIn
    style: StyleIn
    brain: BrainIn
    background: BackgroundIn = Field(default_factory=BackgroundIn)
    draft_id: str | None = None


# ── Update (deep partial) ────────────────────────────────────

class IdentityPatch(BaseModel):
    name: NonEmpty | None = None
    role: str | None = None
    company_name: str | None = None
    description: str | None = None


class VoicePatch(BaseModel):
    language: NonEmpty | None = None
    name: NonEmpty | None = None


class StylePatch(BaseModel):
    formality: Score | None = None
    pace: Score | None = None
    calm: Score | None = None
    introvert: Score | None = None
    empathy: Score | None = None
    humor: Score | None = None
    creativity: Score | None = None
    directness: Score | None = None


class BrainPatch(BaseModel):
    id: NonEmpty | None = None
    instructions: str | None = None


class AgentUpdate(BaseModel):
    identity: IdentityPatch | None = None
    appearance: AppearanceIn | None = None
    voice: VoicePatch | None = None
    style: StylePatch | None = None
    brain: BrainPatch | None = None
    background: BackgroundIn | None = None
    draft_id: str | None = None


# ── Output ───────────────────────────────────────────────────

class IdentityOut(BaseModel):
    name: str
    role: str
    company_name: str | None
    description: str | None


class AppearanceOut(BaseModel):
    persona_id: str | None
    background_color: str | None


class VoiceOut(BaseModel):
    language: str
    name: str


class BrainOut(BaseModel):
    id: str
    instructions: str | None


class AgentOut(BaseModel):
    id: int
    owner_id: str
    identity: IdentityOut
    appearance: AppearanceOut
    voice: VoiceOut
    style: StyleIn
    brain: BrainOut
    background: BackgroundIn
    draft_id: str | None
    created_at: datetime
    updated_at: datetime

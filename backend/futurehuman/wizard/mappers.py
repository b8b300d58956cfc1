"""Translate between server JSON and wizard sections.

Inbound (`sections_from_agent`) coerces whatever the server sent into
fully-shaped sections. Outbound (`build_agent_payload`) is the only place
style scores are clamped and the background colour normalized.
"""

from typing import Any

from futurehuman.wizard.document import (
    AppearanceSection,
    BackgroundSection,
    BrainSection,
    Connection,
    IdentitySection,
    StyleSection,
    VoiceSection,
    WizardDocument,
    clamp_score,
    normalize_hex,
)

STYLE_KEYS = tuple(StyleSection.model_fields)


class WizardValidationError(ValueError):
    """The document cannot be submitted as it stands."""

    def __init__(self, message: str, field: str):
        super().__init__(message)
        self.field = field


def _section(data: dict[str, Any], name: str) -> dict[str, Any]:
    value = data.get(name)
    return value if isinstance(value, dict) else {}


def sections_from_agent(agent: dict[str, Any]) -> dict[str, Any]:
    """Map an AgentOut JSON body onto wizard sections."""
    identity = _section(agent, "identity")
    appearance = _section(agent, "appearance")
    voice = _section(agent, "voice")
    style = _section(agent, "style")
    brain = _section(agent, "brain")
    background = _section(agent, "background")

    voice_defaults = VoiceSection()
    brain_defaults = BrainSection()

    return {
        "identity": IdentitySection(
            name=identity.get("name") or "",
            role=identity.get("role") or "",
            company_name=identity.get("company_name"),
            description=identity.get("description"),
        ),
        "appearance": AppearanceSection(
            persona_id=appearance.get("persona_id"),
            background_color=normalize_hex(appearance.get("background_color")),
        ),
        "voice": VoiceSection(
            language=voice.get("language") or voice_defaults.language,
            name=voice.get("name") or voice_defaults.name,
        ),
        "style": StyleSection(**{key: clamp_score(style.get(key)) for key in STYLE_KEYS}),
        "brain": BrainSection(
            id=brain.get("id") or brain_defaults.id,
            instructions=brain.get("instructions") or "",
        ),
        "background": BackgroundSection(background_id=background.get("background_id")),
    }


def connection_from_server(row: dict[str, Any]) -> Connection:
    return Connection.model_validate(row)


def build_agent_payload(document: WizardDocument) -> dict[str, Any]:
    """Assemble the create/update body for the agents API.

    Raises:
        WizardValidationError: Blank agent name or no brain selected
    """
    name = document.identity.name.strip()
    if not name:
        raise WizardValidationError("Agent name is required", "identity.name")
    brain_id = (document.brain.id or "").strip()
    if not brain_id:
        raise WizardValidationError("Select a brain for the agent", "brain.id")

    return {
        "identity": {
            "name": name,
            "role": document.identity.role or "",
            "company_name": document.identity.company_name or None,
            "description": document.identity.description or None,
        },
        "appearance": {
            "persona_id": document.appearance.persona_id,
            "background_color": normalize_hex(document.appearance.background_color),
        },
        "voice": {
            "language": document.voice.language or VoiceSection().language,
            "name": document.voice.name or VoiceSection().name,
        },
        "style": {key: clamp_score(getattr(document.style, key)) for key in STYLE_KEYS},
        "brain": {"id": brain_id, "instructions": document.brain.instructions or None},
        "background": {"background_id": document.background.background_id},
        "draft_id": document.draft_id,
    }

"""Agent profile: one row per agent, sections flattened into columns.

The API exposes the nested section shape (identity, appearance, voice,
style, brain, background); routers map between the two.
"""

from datetime import datetime

from sqlalchemy import DateTime, ForeignKey, Integer, SmallInteger, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from futurehuman.database import Base


class Agent(Base):
    __tablename__ = "agents"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    owner_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )

    # Identity
    identity_name: Mapped[str] = mapped_column(String(120), nullable=False)
    identity_role: Mapped[str] = mapped_column(String(120), default="")
    identity_company_name: Mapped[str | None] = mapped_column(String(255))
    identity_description: Mapped[str | None] = mapped_column(Text)

    # Appearance
    appearance_persona_id: Mapped[str | None] = mapped_column(String(64))
    appearance_background_color: Mapped[str | None] = mapped_column(String(7))

    # Voice
    voice_language: Mapped[str] = mapped_column(String(16), nullable=False)
    voice_name: Mapped[str] = mapped_column(String(64), nullable=False)

    # Style (0..10)
    style_formality: Mapped[int] = mapped_column(SmallInteger, default=5)
    style_pace: Mapped[int] = mapped_column(SmallInteger, default=5)
    style_calm: Mapped[int] = mapped_column(SmallInteger, default=5)
    style_introvert: Mapped[int] = mapped_column(SmallInteger, default=5)
    style_empathy: Mapped[int] = mapped_column(SmallInteger, default=5)
    style_humor: Mapped[int] = mapped_column(SmallInteger, default=5)
    style_creativity: Mapped[int] = mapped_column(SmallInteger, default=5)
    style_directness: Mapped[int] = mapped_column(SmallInteger, default=5)

    # Brain
    brain_id: Mapped[str] = mapped_column(String(64), nullable=False)
    brain_instructions: Mapped[str | None] = mapped_column(Text)

    # Background
    background_id: Mapped[str | None] = mapped_column(String(64))

    draft_id: Mapped[str | None] = mapped_column(String(64))

    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.utcnow, onupdate=datetime.utcnow
    )

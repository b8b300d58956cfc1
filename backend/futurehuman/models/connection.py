"""Third-party service connections attached to an agent.

(agent_id, provider_id, ext_id) is the business key; creating a second row
with the same key is rejected with 409 by the connections router.
"""

from datetime import datetime

from sqlalchemy import DateTime, ForeignKey, Integer, JSON, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from futurehuman.database import Base

CONNECTION_STATUSES = ("connected", "needs_setup", "error")


class AgentConnection(Base):
    __tablename__ = "agent_connections"
    __table_args__ = (
        UniqueConstraint("agent_id", "provider_id", "ext_id", name="uq_agent_connection_key"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    agent_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("agents.id", ondelete="CASCADE"), nullable=False, index=True
    )
    provider_id: Mapped[str] = mapped_column(String(64), nullable=False)
    ext_id: Mapped[str] = mapped_column(String(128), nullable=False)
    status: Mapped[str] = mapped_column(String(20), default="needs_setup")
    config: Mapped[dict | None] = mapped_column(JSON, default=None)
    token: Mapped[str | None] = mapped_column(Text)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.utcnow, onupdate=datetime.utcnow
    )

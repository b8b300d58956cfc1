"""Aggregate model imports for Alembic auto-detection."""

from futurehuman.models.user import User, UserRole  # noqa: F401
from futurehuman.models.agent import Agent  # noqa: F401
from futurehuman.models.connection import AgentConnection  # noqa: F401

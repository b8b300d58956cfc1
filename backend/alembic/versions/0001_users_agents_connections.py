"""Users, agents and agent connections.

Revision ID: 0001
Revises: (none)
Create Date: 2026-10-18
"""

revision = "0001"
down_revision = None
branch_labels = None
depends_on = None

from alembic import op
import sqlalchemy as sa


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("email", sa.String(255), nullable=False),
        sa.Column("hashed_password", sa.String(255), nullable=False),
        sa.Column("first_name", sa.String(100), nullable=False),
        sa.Column("last_name", sa.String(100), nullable=False),
        sa.Column(
            "role",
            sa.Enum("SUPER_ADMIN", "ADMIN", "USER", name="userrole"),
            nullable=True,
        ),
        sa.Column("is_active", sa.Boolean(), nullable=True),
        sa.Column("phone_number", sa.String(30), nullable=True),
        sa.Column("address", sa.String(255), nullable=True),
        sa.Column("postal_code", sa.String(20), nullable=True),
        sa.Column("country", sa.String(100), nullable=True),
        sa.Column("created_at", sa.DateTime(), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(), server_default=sa.func.now()),
    )
    op.create_index("ix_users_email", "users", ["email"], unique=True)

    # ── Agents (wizard sections flattened into columns) ──────

    op.create_table(
        "agents",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column(
            "owner_id",
            sa.String(36),
            sa.ForeignKey("users.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("identity_name", sa.String(120), nullable=False),
        sa.Column("identity_role", sa.String(120), nullable=False, server_default=""),
        sa.Column("identity_company_name", sa.String(255), nullable=True),
        sa.Column("identity_description", sa.Text(), nullable=True),
        sa.Column("appearance_persona_id", sa.String(64), nullable=True),
        sa.Column("appearance_background_color", sa.String(7), nullable=True),
        sa.Column("voice_language", sa.String(16), nullable=False),
        sa.Column("voice_name", sa.String(64), nullable=False),
        *[
            sa.Column(f"style_{dim}", sa.SmallInteger(), nullable=False, server_default="5")
            for dim in (
                "formality", "pace", "calm", "introvert",
                "empathy", "humor", "creativity", "directness",
            )
        ],
        sa.Column("brain_id", sa.String(64), nullable=False),
        sa.Column("brain_instructions", sa.Text(), nullable=True),
        sa.Column("background_id", sa.String(64), nullable=True),
        sa.Column("draft_id", sa.String(64), nullable=True),
        sa.Column("created_at", sa.DateTime(), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(), server_default=sa.func.now()),
    )
    op.create_index("ix_agents_owner_id", "agents", ["owner_id"])

    op.create_table(
        "agent_connections",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column(
            "agent_id",
            sa.Integer(),
            sa.ForeignKey("agents.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("provider_id", sa.String(64), nullable=False),
        sa.Column("ext_id", sa.String(128), nullable=False),
        sa.Column("status", sa.String(20), nullable=False, server_default="needs_setup"),
        sa.Column("config", sa.JSON(), nullable=True),
        sa.Column("token", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(), server_default=sa.func.now()),
        sa.UniqueConstraint("agent_id", "provider_id", "ext_id", name="uq_agent_connection_key"),
    )
    op.create_index("ix_agent_connections_agent_id", "agent_connections", ["agent_id"])


def downgrade() -> None:
    op.drop_index("ix_agent_connections_agent_id", table_name="agent_connections")
    op.drop_table("agent_connections")
    op.drop_index("ix_agents_owner_id", table_name="agents")
    op.drop_table("agents")
    op.drop_index("ix_users_email", table_name="users")
    op.drop_table("users")
    sa.Enum(name="userrole").drop(op.get_bind(), checkfirst=True)

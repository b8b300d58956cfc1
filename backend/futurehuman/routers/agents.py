"""Agent router: owner-scoped CRUD over the wizard's agent profile.

Endpoints:
    GET    /api/agents/          List the caller's agents (newest first)
    POST   /api/agents/          Create agent from a full wizard payload
    GET    /api/agents/{id}      Fetch one agent
    PATCH  /api/agents/{id}      Deep-partial update by section
    DELETE /api/agents/{id}      Delete agent and its connections
"""

import logging

from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from futurehuman.auth.deps import get_current_user
from futurehuman.database import get_db
from futurehuman.middleware.exceptions import ResourceNotFoundError
from futurehuman.models.agent import Agent
from futurehuman.models.connection import AgentConnection
from futurehuman.models.user import User
from futurehuman.schemas.agent import AgentCreate, AgentOut, AgentUpdate
from futurehuman.schemas.common import PaginatedResponse

logger = logging.getLogger(__name__)

router = APIRouter()

STYLE_KEYS = (
    "formality", "pace", "calm", "introvert",
    "empathy", "humor", "creativity", "directness",
)

# Nested section key -> flat column on `agents`
SECTION_COLUMNS: dict[str, dict[str, str]] = {
    "identity": {
        "name": "identity_name",
        "role": "identity_role",
        "company_name": "identity_company_name",
        "description": "identity_description",
    },
    "appearance": {
        "persona_id": "appearance_persona_id",
        "background_color": "appearance_background_color",
    },
    "voice": {"language": "voice_language", "name": "voice_name"},
    "style": {key: f"style_{key}" for key in STYLE_KEYS},
    "brain": {"id": "brain_id", "instructions": "brain_instructions"},
    "background": {"background_id": "background_id"},
}


# ── Helpers ──────────────────────────────────────────────────

def _columns(sections: dict, skip_required_nulls: bool = False) -> dict:
    """Flatten nested section dicts into column -> value pairs."""
    table = Agent.__table__
    values = {}
    for section, fields in sections.items():
        mapping = SECTION_COLUMNS.get(section)
        if mapping is None or fields is None:
            continue
        for key, value in fields.items():
            column = mapping[key]
            if value is None and skip_required_nulls and not table.c[column].nullable:
                continue
            values[column] = value
    return values


def _agent_out(agent: Agent) -> AgentOut:
    data = {
        section: {key: getattr(agent, column) for key, column in mapping.items()}
        for section, mapping in SECTION_COLUMNS.items()
    }
    return AgentOut(
        id=agent.id,
        owner_id=agent.owner_id,
        draft_id=agent.draft_id,
        created_at=agent.created_at,
        updated_at=agent.updated_at,
        **data,
    )


async def get_owned_agent(db: AsyncSession, agent_id: int, user: User) -> Agent:
    """Load an agent owned by `user`; other owners' agents look missing."""
    result = await db.execute(
        select(Agent).where(Agent.id == agent_id, Agent.owner_id == user.id)
    )
    agent = result.scalar_one_or_none()
    if not agent:
        raise ResourceNotFoundError("Agent", agent_id)
    return agent


# ── Routes ───────────────────────────────────────────────────

@router.get("/", response_model=PaginatedResponse[AgentOut])
async def list_agents(
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
):
    base_stmt = select(Agent).where(Agent.owner_id == user.id)
    total = (
        await db.execute(select(func.count()).select_from(base_stmt.subquery()))
    ).scalar_one()

    result = await db.execute(
        base_stmt.order_by(Agent.created_at.desc(), Agent.id.desc()).offset(offset).limit(limit)
    )
    return PaginatedResponse(
        items=[_agent_out(a) for a in result.scalars().all()],
        total=total,
        limit=limit,
        offset=offset,
    )


@router.post("/", response_model=AgentOut, status_code=status.HTTP_201_CREATED)
async def create_agent(
    body: AgentCreate,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
):
    sections = body.model_dump(exclude={"draft_id"})
    agent = Agent(owner_id=user.id, draft_id=body.draft_id, **_columns(sections))
    db.add(agent)
    await db.flush()
    await db.refresh(agent)

    logger.info("Agent %s created by %s", agent.id, user.id)
    return _agent_out(agent)


@router.get("/{agent_id}", response_model=AgentOut)
async def get_agent(
    agent_id: int,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
):
    return _agent_out(await get_owned_agent(db, agent_id, user))


@router.patch("/{agent_id}", response_model=AgentOut)
async def update_agent(
    agent_id: int,
    body: AgentUpdate,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
):
    """Apply only the section keys present in the body."""
    agent = await get_owned_agent(db, agent_id, user)

    updates = body.model_dump(exclude_unset=True)
    if "draft_id" in updates:
        agent.draft_id = updates.pop("draft_id")
    for column, value in _columns(updates, skip_required_nulls=True).items():
        setattr(agent, column, value)

    await db.flush()
    await db.refresh(agent)
    return _agent_out(agent)


@router.delete("/{agent_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_agent(
    agent_id: int,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
):
    agent = await get_owned_agent(db, agent_id, user)

    await db.execute(delete(AgentConnection).where(AgentConnection.agent_id == agent.id))
    await db.delete(agent)
    await db.flush()

    logger.info("Agent %s deleted by %s", agent_id, user.id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)

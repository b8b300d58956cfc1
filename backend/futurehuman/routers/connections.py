"""Agent connection router: nested under an owned agent.

Endpoints:
    GET    /api/agents/{agent_id}/connections/        List connections
    POST   /api/agents/{agent_id}/connections/        Create (409 on duplicate key)
    PATCH  /api/agents/{agent_id}/connections/{id}    Partial update
    DELETE /api/agents/{agent_id}/connections/{id}    Delete
"""

from fastapi import APIRouter, Depends, Response, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from futurehuman.auth.deps import get_current_user
from futurehuman.database import get_db
from futurehuman.middleware.exceptions import ConflictError, ResourceNotFoundError
from futurehuman.models.connection import AgentConnection
from futurehuman.models.user import User
from futurehuman.routers.agents import get_owned_agent
from futurehuman.schemas.connection import ConnectionCreate, ConnectionOut, ConnectionUpdate

router = APIRouter()

# Columns that reject NULL; an explicit null in a PATCH leaves them as-is
_REQUIRED = ("provider_id", "ext_id", "status")


async def _find_by_key(
    db: AsyncSession, agent_id: int, provider_id: str, ext_id: str
) -> AgentConnection | None:
    result = await db.execute(
        select(AgentConnection).where(
            AgentConnection.agent_id == agent_id,
            AgentConnection.provider_id == provider_id,
            AgentConnection.ext_id == ext_id,
        )
    )
    return result.scalar_one_or_none()


def _duplicate(provider_id: str, ext_id: str) -> ConflictError:
    return ConflictError(
        f"Connection {provider_id}#{ext_id} already exists for this agent",
        error_code="DUPLICATE_CONNECTION",
    )


@router.get("/", response_model=list[ConnectionOut])
async def list_connections(
    agent_id: int,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
):
    await get_owned_agent(db, agent_id, user)
    result = await db.execute(
        select(AgentConnection)
        .where(AgentConnection.agent_id == agent_id)
        .order_by(AgentConnection.id)
    )
    return [ConnectionOut.model_validate(c) for c in result.scalars().all()]


@router.post("/", response_model=ConnectionOut, status_code=status.HTTP_201_CREATED)
async def create_connection(
    agent_id: int,
    body: ConnectionCreate,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
):
    await get_owned_agent(db, agent_id, user)
    if await _find_by_key(db, agent_id, body.provider_id, body.ext_id):
        raise _duplicate(body.provider_id, body.ext_id)

    connection = AgentConnection(agent_id=agent_id, **body.model_dump())
    db.add(connection)
    await db.flush()
    await db.refresh(connection)
    return ConnectionOut.model_validate(connection)


async def _get_connection(db: AsyncSession, agent_id: int, connection_id: int) -> AgentConnection:
    result = await db.execute(
        select(AgentConnection).where(
            AgentConnection.id == connection_id,
            AgentConnection.agent_id == agent_id,
        )
    )
    connection = result.scalar_one_or_none()
    if not connection:
        raise ResourceNotFoundError("Connection", connection_id)
    return connection


@router.patch("/{connection_id}", response_model=ConnectionOut)
async def update_connection(
    agent_id: int,
    connection_id: int,
    body: ConnectionUpdate,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
):
    await get_owned_agent(db, agent_id, user)
    connection = await _get_connection(db, agent_id, connection_id)

    updates = {
        key: value
        for key, value in body.model_dump(exclude_unset=True).items()
        if value is not None or key not in _REQUIRED
    }

    provider_id = updates.get("provider_id", connection.provider_id)
    ext_id = updates.get("ext_id", connection.ext_id)
    if (provider_id, ext_id) != (connection.provider_id, connection.ext_id):
        clash = await _find_by_key(db, agent_id, provider_id, ext_id)
        if clash and clash.id != connection.id:
            raise _duplicate(provider_id, ext_id)

    for key, value in updates.items():
        setattr(connection, key, value)
    await db.flush()
    await db.refresh(connection)
    return ConnectionOut.model_validate(connection)


@router.delete("/{connection_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_connection(
    agent_id: int,
    connection_id: int,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
):
    await get_owned_agent(db, agent_id, user)
    connection = await _get_connection(db, agent_id, connection_id)
    await db.delete(connection)
    await db.flush()
    return Response(status_code=status.HTTP_204_NO_CONTENT)

from datetime import datetime
from typing import Annotated, Any, Literal

from pydantic import BaseModel, StringConstraints, model_validator

ConnectionStatus = Literal["connected", "needs_setup", "error"]
NonEmpty = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1)]


class ConnectionCreate(BaseModel):
    provider_id: NonEmpty
    ext_id: NonEmpty | None = None  # defaults to provider_id
    status: ConnectionStatus = "needs_setup"
    config: dict[str, Any] | None = None
    token: str | None = None

    @model_validator(mode="after")
    def _default_ext_id(self):
        if self.ext_id is None:
            self.ext_id = self.provider_id
        return self


class ConnectionUpdate(BaseModel):
    provider_id: NonEmpty | None = None
    ext_id: NonEmpty | None = None
    status: ConnectionStatus | None = None
    config: dict[str, Any] | None = None
    token: str | None = None


class ConnectionOut(BaseModel):
    id: int
    agent_id: int
    provider_id: str
    ext_id: str
    status: ConnectionStatus
    config: dict[str, Any] | None
    token: str | None
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}

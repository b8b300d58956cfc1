from pydantic import BaseModel, Field


class AccountUpdate(BaseModel):
    """Profile fields a user may change. Email and role are not editable."""
    first_name: str | None = None
    last_name: str | None = None
    phone_number: str | None = None
    address: str | None = None
    postal_code: str | None = None
    country: str | None = None


class ChangePasswordRequest(BaseModel):
    current_password: str = Field(min_length=1)
    new_password: str = Field(min_length=6)

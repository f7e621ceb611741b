"""Request and response bodies of the HTTP API. Responses use camelCase."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from src.gatekeeper.entities import LoginHistoryEntry, User


class ApiModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class LoginRequest(ApiModel):
    # optional so that missing fields surface as a 400, not a 422
    username: str | None = None
    password: str | None = Field(default=None, repr=False)


class UserResponse(ApiModel):
    id: str
    username: str
    display_name: str
    email: str
    role: str
    last_login_at: datetime
    created_at: datetime

    @classmethod
    def from_user(cls, user: User) -> "UserResponse":
        return cls(
            id=user.id,
            username=user.external_username,
            display_name=user.display_name,
            email=user.email,
            role=user.role.value,
            last_login_at=user.last_login_at,
            created_at=user.created_at,
        )


class LoginResponse(ApiModel):
    token: str
    token_type: str = "Bearer"
    user: UserResponse
    expires_at: datetime


class MeResponse(ApiModel):
    user: UserResponse
    role: str
    permissions: list[str]


class UpdateUserRequest(ApiModel):
    display_name: str | None = None
    email: str | None = None
    role: str | None = None


class MessageResponse(ApiModel):
    message: str


class LoginHistoryResponse(ApiModel):
    id: str
    username: str
    timestamp: datetime
    success: bool
    failure_reason: str | None = None
    source_address: str | None = None
    user_agent: str | None = None
    user_id: str | None = None

    @classmethod
    def from_entry(cls, entry: LoginHistoryEntry) -> "LoginHistoryResponse":
        return cls.model_validate(entry.model_dump(exclude={"created_at"}))

from futurehuman.client.http import ApiClient, ApiError, TokenProvider
from futurehuman.client.resources import (
    AccountResource,
    AgentResource,
    AuthResource,
    ConnectionResource,
)
from futurehuman.client.session import AuthSession

__all__ = [
    "ApiClient",
    "ApiError",
    "TokenProvider",
    "AccountResource",
    "AgentResource",
    "AuthResource",
    "ConnectionResource",
    "AuthSession",
]

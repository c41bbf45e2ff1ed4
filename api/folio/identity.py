"""Authenticated identity as handed over by the authentication provider."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

DEFAULT_DISPLAY_NAME = "User"

# Provider metadata keys, in precedence order
DISPLAY_NAME_KEYS = ("full_name", "name")
AVATAR_KEYS = ("avatar_url", "picture")


@dataclass(frozen=True)
class Identity:
    id: str
    email: str | None = None
    metadata: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_provider_user(cls, user: dict[str, Any]) -> "Identity":
        """Build from a provider user object ({"id", "email", "user_metadata"})."""
        return cls(
            id=str(user["id"]),
            email=user.get("email"),
            metadata=dict(user.get("user_metadata") or {}),
        )

    @classmethod
    def from_claims(cls, claims: dict[str, Any]) -> "Identity":
        """Build from verified access token claims ({"sub", "email", "user_metadata"})."""
        return cls(
            id=str(claims["sub"]),
            email=claims.get("email"),
            metadata=dict(claims.get("user_metadata") or {}),
        )

    @property
    def display_name(self) -> str:
        for key in DISPLAY_NAME_KEYS:
            value = self.metadata.get(key)
            if value:
                return str(value)
        if self.email:
            local_part = self.email.split("@", 1)[0]
            if local_part:
                return local_part
        return DEFAULT_DISPLAY_NAME

    @property
    def avatar(self) -> str | None:
        for key in AVATAR_KEYS:
            value = self.metadata.get(key)
            if value:
                return str(value)
        return None

    def to_public(self) -> dict[str, Any]:
        return {"id": self.id, "email": self.email, "user_metadata": self.metadata}

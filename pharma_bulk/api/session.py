from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

"""Session context passed explicitly to the API client.

Holds the bearer token and the operator profile. The client reads the token
for every request and clears the session when the server answers 401.
"""

__all__ = [
    "SessionContext",
]


@dataclass
class SessionContext:
    token: str | None = None
    profile: dict[str, Any] = field(default_factory=dict)

    @property
    def is_authenticated(self) -> bool:
        return bool(self.token)

    def authorization_header(self) -> dict[str, str]:
        if not self.token:
            return {}
        return {"Authorization": f"Bearer {self.token}"}

    def sign_in(self, token: str, profile: dict[str, Any] | None = None) -> None:
        self.token = token
        self.profile = dict(profile or {})

    def clear(self) -> None:
        self.token = None
        self.profile = {}

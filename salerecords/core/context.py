from __future__ import annotations

from dataclasses import dataclass, field
from uuid import uuid4


@dataclass(frozen=True)
class TraceContext:
    """Call-scoped identifiers forwarded to every lookup and stamped on outbound events."""

    request_id: str = field(default_factory=lambda: str(uuid4()))
    action_id: str = ""
    auth_token: str = ""

    def headers(self) -> dict[str, str]:
        headers = {"X-Request-ID": self.request_id}
        if self.action_id:
            headers["X-Action-ID"] = self.action_id
        if self.auth_token:
            headers["Authorization"] = self.auth_token
        return headers

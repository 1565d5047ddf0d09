"""
Permission request and response types.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Optional

GLOBAL_RESOURCE = "global"


class PermissionType(Enum):
    """Category of capability a tool asks for."""

    FILESYSTEM_READ = "filesystem_read"
    FILESYSTEM_WRITE = "filesystem_write"
    SHELL_EXECUTE = "shell_execute"
    NETWORK = "network"
    UNKNOWN = "unknown"

    def __str__(self) -> str:
        return self.value


class PermissionResponse(Enum):
    ALLOW = "allow"
    DENY = "deny"
    ALLOW_ALWAYS = "allow_always"

    @property
    def is_allowed(self) -> bool:
        return self is not PermissionResponse.DENY

    @property
    def should_cache(self) -> bool:
        return self is PermissionResponse.ALLOW_ALWAYS


@dataclass(frozen=True)
class PermissionRequest:
    """
    A single request for a capability.

    ``metadata`` carries free-form context. Two keys are meaningful to the
    manager: ``session_id`` scopes caching and event routing, and
    ``resource`` narrows what an ``allow_always`` answer covers.
    """

    permission_type: PermissionType
    message: str
    metadata: dict[str, str] = field(default_factory=dict)
    id: str = field(default_factory=lambda: str(uuid.uuid4()))

    def with_metadata(self, key: str, value: str) -> PermissionRequest:
        return replace(self, metadata={**self.metadata, key: str(value)})

    def with_session_id(self, session_id: str) -> PermissionRequest:
        return self.with_metadata("session_id", session_id)

    def with_resource(self, resource: str) -> PermissionRequest:
        return self.with_metadata("resource", resource)

    @property
    def session_id(self) -> Optional[str]:
        return self.metadata.get("session_id")

    @property
    def resource(self) -> str:
        return self.metadata.get("resource", GLOBAL_RESOURCE)

    def cache_key(self) -> str:
        """
        Key under which an ``allow_always`` answer is remembered.

        Requests without a session omit the ``"{session}:"`` prefix.
        """
        prefix = f"{self.session_id}:" if self.session_id else ""
        return f"{prefix}{self.permission_type.value}:{self.resource}"

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "permission_type": self.permission_type.value,
            "message": self.message,
            "metadata": dict(self.metadata),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> PermissionRequest:
        return cls(
            id=data["id"],
            permission_type=PermissionType(data["permission_type"]),
            message=data.get("message", ""),
            metadata={str(k): str(v) for k, v in (data.get("metadata") or {}).items()},
        )

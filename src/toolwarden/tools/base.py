"""
Tool abstraction shared by built-in tools and skills.
"""

from __future__ import annotations

import json
import logging
import re
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, ClassVar, Optional

from pydantic import BaseModel, ValidationError

from toolwarden.errors import (
    InvalidArgumentError,
    MissingArgumentError,
    PermissionDeniedError,
    ValidationFailedError,
)
from toolwarden.permissions.types import PermissionRequest, PermissionType

if TYPE_CHECKING:
    from toolwarden.events.bridge import AgentObserver
    from toolwarden.permissions.manager import PermissionManager

logger = logging.getLogger(__name__)

ToolResult = dict[str, Any]

_WINDOWS_ABSOLUTE = re.compile(r"^[A-Za-z]:[\\/]")


def validate_relative_path(path: str) -> str:
    """
    Reject paths that could leave the workspace.

    Raises:
        ValidationFailedError: For ``..`` segments, absolute POSIX or Windows
            paths, and home-relative paths.
    """
    if path.startswith(("/", "\\")) or _WINDOWS_ABSOLUTE.match(path):
        raise ValidationFailedError(f"Absolute paths are not allowed: {path}")
    if path.startswith("~"):
        raise ValidationFailedError(f"Home-relative paths are not allowed: {path}")
    if ".." in re.split(r"[\\/]", path):
        raise ValidationFailedError(f"Path traversal is not allowed: {path}")
    return path


@dataclass(frozen=True)
class ToolDefinition:
    """What the model sees: a name, a description and a JSON schema."""

    name: str
    description: str
    parameters: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {"name": self.name, "description": self.description, "parameters": self.parameters}


@dataclass
class ToolContext:
    """Per-call context: how a tool asks for permission within a session."""

    permissions: PermissionManager
    observer: Optional[AgentObserver] = None
    session_id: Optional[str] = None

    async def request_permission(
        self,
        permission_type: PermissionType,
        message: str,
        resource: Optional[str] = None,
        **metadata: str,
    ) -> bool:
        request = PermissionRequest(permission_type, message)
        if self.session_id:
            request = request.with_session_id(self.session_id)
        if resource is not None:
            request = request.with_resource(resource)
        for key, value in metadata.items():
            request = request.with_metadata(key, value)
        return await self.permissions.check_or_request(request, self.observer)

    async def require_permission(
        self,
        permission_type: PermissionType,
        message: str,
        resource: Optional[str] = None,
        **metadata: str,
    ) -> None:
        """Like ``request_permission`` but raises ``PermissionDeniedError`` on denial."""
        if not await self.request_permission(permission_type, message, resource, **metadata):
            raise PermissionDeniedError()


class Tool(ABC):
    """
    Base class for everything the agent can call.

    Subclasses set ``name``, ``description`` and ``args_model`` and implement
    ``execute``. ``call`` runs the full pipeline: parse, validate, execute.
    """

    name: ClassVar[str] = ""
    description: ClassVar[str] = ""
    args_model: ClassVar[type[BaseModel]]

    def definition(self) -> ToolDefinition:
        return ToolDefinition(
            name=self.name,
            description=self.description,
            parameters=self.args_model.model_json_schema(),
        )

    def parse_args(self, raw: Any) -> BaseModel:
        """
        Parse raw model output into the tool's argument model.

        Raises:
            MissingArgumentError: If a required field is absent.
            InvalidArgumentError: If the payload is malformed.
        """
        if raw is None or raw == "":
            raw = {}
        if isinstance(raw, str):
            try:
                raw = json.loads(raw)
            except json.JSONDecodeError as e:
                raise InvalidArgumentError("arguments", f"not valid JSON: {e.msg}") from None
        if not isinstance(raw, dict):
            raise InvalidArgumentError("arguments", "expected a JSON object")

        try:
            return self.args_model.model_validate(raw)
        except ValidationError as e:
            first = e.errors()[0]
            field_name = ".".join(str(part) for part in first.get("loc", ())) or "arguments"
            if first.get("type") == "missing":
                raise MissingArgumentError(field_name) from None
            raise InvalidArgumentError(field_name, first.get("msg", "invalid value")) from None

    def validate_args(self, args: BaseModel) -> None:
        """Semantic checks beyond the schema. Raise a ``ToolError`` to reject."""

    @abstractmethod
    async def execute(self, args: BaseModel, context: ToolContext) -> ToolResult:
        ...

    def verify_result(self, result: ToolResult) -> bool:
        return True

    def needs_summarization(self, args: BaseModel, result: ToolResult) -> bool:
        return False

    def requires_approval(self, args: BaseModel) -> bool:
        return False

    async def call(self, raw: Any, context: ToolContext) -> ToolResult:
        args = self.parse_args(raw)
        self.validate_args(args)
        return await self.execute(args, context)

    def __repr__(self) -> str:
        return f"{type(self).__name__}(name={self.name!r})"

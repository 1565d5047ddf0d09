"""
Permission requests, handlers, caching and the approval protocol.
"""

from toolwarden.permissions.cache import PendingApprovals, PermissionCache, ResponseSlot
from toolwarden.permissions.handler import (
    AllowAllHandler,
    AllowAlwaysHandler,
    CallbackHandler,
    DenyAllHandler,
    PermissionHandler,
)
from toolwarden.permissions.manager import GLOBAL_PERMISSION_TOPIC, PermissionManager
from toolwarden.permissions.scope import ScopeEnforcer, ScopeType
from toolwarden.permissions.types import (
    GLOBAL_RESOURCE,
    PermissionRequest,
    PermissionResponse,
    PermissionType,
)

__all__ = [
    "AllowAllHandler",
    "AllowAlwaysHandler",
    "CallbackHandler",
    "DenyAllHandler",
    "GLOBAL_PERMISSION_TOPIC",
    "GLOBAL_RESOURCE",
    "PendingApprovals",
    "PermissionCache",
    "PermissionHandler",
    "PermissionManager",
    "PermissionRequest",
    "PermissionResponse",
    "PermissionType",
    "ResponseSlot",
    "ScopeEnforcer",
    "ScopeType",
]

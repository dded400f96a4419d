"""Fact provider boundary: types, protocol and adapters."""

from vantage.facts.http import HttpFactProvider
from vantage.facts.memory import InMemoryFactProvider
from vantage.facts.protocol import FactProvider
from vantage.facts.types import (
    ACCESS_CHANGE_ACTIONS,
    ActivityAction,
    ActivityEvent,
    ActivityMetadata,
    IdentityFacts,
    Location,
    PeerProfile,
    PermissionRef,
    RequestFacts,
    RequestStatus,
    ResourceType,
    RoleGrant,
    RoleRef,
    as_utc,
)

__all__ = [
    # Protocol and adapters
    "FactProvider",
    "HttpFactProvider",
    "InMemoryFactProvider",
    # Types
    "ACCESS_CHANGE_ACTIONS",
    "ActivityAction",
    "ActivityEvent",
    "ActivityMetadata",
    "IdentityFacts",
    "Location",
    "PeerProfile",
    "PermissionRef",
    "RequestFacts",
    "RequestStatus",
    "ResourceType",
    "RoleGrant",
    "RoleRef",
    "as_utc",
]

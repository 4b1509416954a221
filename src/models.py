"""Domain models for the Keystone/Manila bridge.

This module defines the typed data structures shared by the namespace
naming code and the share access provisioning code, plus the exception
hierarchy every component raises.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from constants import ALLOWED_DATA_TYPES_TO_SYNC, DEFAULT_NAMESPACE_FORMAT


# =============================================================================
# Enums for constrained values
# =============================================================================


class AccessState(Enum):
    """Outcome of a single access rule poll that is not an error."""

    PENDING = "Pending"
    READY = "Ready"


# =============================================================================
# Dataclasses
# =============================================================================


@dataclass(frozen=True)
class SyncConfig:
    """Configuration for synchronization between Keystone and Kubernetes."""

    # Data types to sync. Only "projects" is supported.
    data_types_to_sync: tuple[str, ...] = field(
        default_factory=lambda: tuple(sorted(ALLOWED_DATA_TYPES_TO_SYNC))
    )
    # Namespace name format. %i, %n and %d are replaced with the project
    # id, project name and domain respectively.
    namespace_format: str = DEFAULT_NAMESPACE_FORMAT
    # Project ids excluded from syncing
    projects_black_list: frozenset[str] = field(default_factory=frozenset)

    def validate(self) -> None:
        """Validate the config, raising ConfigValidationError on failure."""
        from naming import NamespaceNameFormatter

        NamespaceNameFormatter(self.namespace_format).validate(
            self.data_types_to_sync
        )

    def format_namespace_name(self, id: str, name: str, domain: str) -> str:
        """Render a namespace name for a project."""
        from naming import NamespaceNameFormatter

        return NamespaceNameFormatter(self.namespace_format).render(id, name, domain)

    def is_blacklisted(self, project_id: str) -> bool:
        """Check if a project is excluded from syncing."""
        return project_id in self.projects_black_list

    def syncs(self, data_type: str) -> bool:
        """Check if a data type is enabled for syncing."""
        return data_type in self.data_types_to_sync


@dataclass(frozen=True)
class AccessRight:
    """A Manila access rule on a share."""

    id: str
    access_type: str = ""
    access_to: str = ""
    access_level: str = ""
    access_key: str = ""
    state: str = ""

    @property
    def has_key(self) -> bool:
        return bool(self.access_key)

    @classmethod
    def from_resource(cls, resource: Any) -> "AccessRight":
        """Create from an SDK ShareAccessRule or a plain dict."""
        if isinstance(resource, dict):
            get = resource.get
        else:

            def get(key: str, default: Any = None) -> Any:
                return getattr(resource, key, default)

        return cls(
            id=get("id") or "",
            access_type=get("access_type") or "",
            access_to=get("access_to") or "",
            access_level=get("access_level") or "",
            access_key=get("access_key") or "",
            state=get("state") or "",
        )


# =============================================================================
# Exceptions
# =============================================================================


class BridgeError(Exception):
    """Base exception for bridge errors."""

    pass


class ConfigurationError(BridgeError):
    """Invalid or missing configuration."""

    pass


class ConfigValidationError(ConfigurationError):
    """Sync config failed validation."""

    pass


class ConfigLoadError(ConfigurationError):
    """Sync config document could not be read or parsed."""

    pass


class ExportLocationError(BridgeError):
    """Export location path could not be split into address and location."""

    pass


class ResourceNotFoundError(BridgeError):
    """A required OpenStack resource was not found."""

    pass


class OpenStackAPIError(BridgeError):
    """Error communicating with OpenStack API."""

    pass


class ProvisionError(BridgeError):
    """Base class for share access provisioning failures."""

    retryable = False

    def __init__(self, message: str, share_id: str = "") -> None:
        super().__init__(message)
        self.share_id = share_id


class BackendGrantError(ProvisionError):
    """The grant access request was rejected or failed."""

    pass


class BackendPollError(ProvisionError):
    """Listing access rules failed while waiting for the access key."""

    pass


class AccessInconsistencyError(ProvisionError):
    """More than one access rule exists for a share."""

    pass


class ProvisionTimeoutError(ProvisionError):
    """The access key was not populated within the polling budget."""

    retryable = True


class SecretStoreError(BridgeError):
    """Creating or deleting a Kubernetes Secret failed."""

    def __init__(
        self, message: str, status: int | None = None, reason: str | None = None
    ) -> None:
        super().__init__(message)
        self.status = status
        self.reason = reason

    @property
    def not_found(self) -> bool:
        return self.status == 404

    @property
    def already_exists(self) -> bool:
        return self.status == 409

"""OpenStack SDK wrapper for the Manila shared file system service."""

import logging
import os
import time
from collections.abc import Callable
from functools import wraps
from typing import ParamSpec, TypeVar

import openstack
from keystoneauth1.exceptions import ConnectionError as TransportError
from openstack.connection import Connection
from openstack.exceptions import HttpException, ResourceNotFound
from openstack.shared_file_system.v2.share import Share
from openstack.shared_file_system.v2.share_access_rule import ShareAccessRule
from openstack.shared_file_system.v2.share_export_locations import (
    ShareExportLocation,
)

from constants import MANILA_API_VERSION
from metrics import MANILA_API_RETRIES
from models import OpenStackAPIError, ResourceNotFoundError

logger = logging.getLogger(__name__)

P = ParamSpec("P")
T = TypeVar("T")

# Failures worth repeating a read-only Manila call for
TRANSIENT_ERRORS: tuple[type[Exception], ...] = (HttpException, TransportError)


def retry_on_error(
    max_retries: int = 3,
    delay: float = 1.0,
    backoff: float = 2.0,
    exceptions: tuple[type[Exception], ...] = TRANSIENT_ERRORS,
) -> Callable[[Callable[P, T]], Callable[P, T]]:
    """Decorator to retry read-only Manila calls on transient errors.

    Missing resources are never retried; callers map them to None.
    """

    def decorator(func: Callable[P, T]) -> Callable[P, T]:
        @wraps(func)
        def wrapper(*args: P.args, **kwargs: P.kwargs) -> T:
            current_delay = delay

            for attempt in range(1, max_retries + 2):
                try:
                    return func(*args, **kwargs)
                except ResourceNotFound:
                    raise
                except exceptions as e:
                    if attempt > max_retries:
                        logger.error(
                            "Manila call %s failed %d times, giving up: %s",
                            func.__name__,
                            attempt,
                            e,
                        )
                        raise OpenStackAPIError(
                            f"Manila call {func.__name__} failed after "
                            f"{attempt} attempts"
                        ) from e

                    MANILA_API_RETRIES.labels(operation=func.__name__).inc()
                    logger.warning(
                        "Manila call %s failed (attempt %d/%d): %s. "
                        "Retrying in %.1fs",
                        func.__name__,
                        attempt,
                        max_retries + 1,
                        e,
                        current_delay,
                    )
                    time.sleep(current_delay)
                    current_delay *= backoff

            raise OpenStackAPIError(f"Manila call {func.__name__} failed unexpectedly")

        return wrapper

    return decorator


class ManilaClient:
    """Wrapper around the OpenStack SDK shared file system proxy.

    Grant and list access rule calls are not retried; their errors go
    straight to the access provisioner.
    """

    def __init__(
        self, cloud: str | None = None, clouds_config: str | None = None
    ) -> None:
        """Initialize Manila connection settings.

        Args:
            cloud: Cloud name from clouds.yaml (default: from OS_CLOUD env)
            clouds_config: Path to clouds.yaml (default: OS_CLIENT_CONFIG_FILE env)
        """
        self.cloud_name = cloud or os.environ.get("OS_CLOUD", "openstack")
        if clouds_config:
            os.environ["OS_CLIENT_CONFIG_FILE"] = clouds_config

        self._conn: Connection | None = None

    @property
    def conn(self) -> Connection:
        """Get or create OpenStack connection."""
        if self._conn is None:
            logger.info("Connecting to OpenStack cloud: %s", self.cloud_name)
            self._conn = openstack.connect(
                cloud=self.cloud_name,
                shared_file_system_api_version=MANILA_API_VERSION,
            )
        return self._conn

    def close(self) -> None:
        """Close the OpenStack connection."""
        if self._conn is not None:
            self._conn.close()
            self._conn = None

    # -------------------------------------------------------------------------
    # Share operations
    # -------------------------------------------------------------------------

    @retry_on_error()
    def get_share(self, share_id: str) -> Share | None:
        """Get a share by ID."""
        try:
            return self.conn.shared_file_system.get_share(share_id)
        except ResourceNotFound:
            return None

    def require_share(self, share_id: str) -> Share:
        """Get a share, raising if not found."""
        share = self.get_share(share_id)
        if not share:
            raise ResourceNotFoundError(f"Share not found: {share_id}")
        return share

    @retry_on_error()
    def get_export_locations(self, share_id: str) -> list[ShareExportLocation]:
        """List the export locations of a share."""
        return list(self.conn.shared_file_system.export_locations(share_id))

    # -------------------------------------------------------------------------
    # Access rule operations
    # -------------------------------------------------------------------------

    def grant_access(
        self,
        share_id: str,
        access_type: str,
        access_to: str,
        access_level: str,
    ) -> ShareAccessRule:
        """Grant access to a share."""
        logger.info(
            "Granting %s %s access to %s on share %s",
            access_level,
            access_type,
            access_to,
            share_id,
        )
        return self.conn.shared_file_system.create_access_rule(
            share_id,
            access_type=access_type,
            access_to=access_to,
            access_level=access_level,
        )

    def list_access_rules(self, share_id: str) -> list[ShareAccessRule]:
        """List the access rules of a share."""
        return list(self.conn.shared_file_system.access_rules(share_id))

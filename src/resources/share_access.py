"""Share access provisioning for CephFS-backed Manila shares.

Ceph generates the cephx key out-of-band after Manila acknowledges the
grant request, so the key is not part of the grant response. It has to be
polled for with subsequent list access rules calls until the backend
populates it or the polling budget runs out.
"""

import logging
import time
from collections.abc import Callable
from typing import Any, Protocol

from keystoneauth1.exceptions import ClientException
from openstack.exceptions import SDKException

from constants import (
    ACCESS_LEVEL_RW,
    CEPHX_ACCESS_TYPE,
    DEFAULT_ACCESS_TIMEOUT,
    DEFAULT_POLL_INTERVAL,
)
from metrics import (
    ACCESS_GRANTS,
    ACCESS_POLLS,
    ACCESS_PROVISION_DURATION,
    ACCESS_PROVISION_TOTAL,
)
from models import (
    AccessInconsistencyError,
    AccessRight,
    AccessState,
    BackendGrantError,
    BackendPollError,
    ProvisionError,
    ProvisionTimeoutError,
)

logger = logging.getLogger(__name__)


class AccessClient(Protocol):
    """The Manila calls the provisioner needs (see ManilaClient)."""

    def grant_access(
        self, share_id: str, access_type: str, access_to: str, access_level: str
    ) -> Any: ...

    def list_access_rules(self, share_id: str) -> list[Any]: ...


_OUTCOMES: dict[type[ProvisionError], str] = {
    BackendGrantError: "grant_error",
    BackendPollError: "poll_error",
    AccessInconsistencyError: "inconsistent",
    ProvisionTimeoutError: "timeout",
}


class AccessProvisioner:
    """Grants cephx access to a share and waits for its access key.

    Not safe to run twice concurrently for the same share: the one access
    rule per share invariant would race. Callers must serialize.
    """

    def __init__(
        self,
        client: AccessClient,
        timeout: float = DEFAULT_ACCESS_TIMEOUT,
        interval: float = DEFAULT_POLL_INTERVAL,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        """Initialize the provisioner.

        Args:
            client: Manila client used for grant and list calls
            timeout: Seconds to wait for the access key to appear
            interval: Seconds between access rule polls
            clock: Monotonic time source
            sleep: Function used to wait between polls
        """
        self.client = client
        self.timeout = timeout
        self.interval = interval
        self._clock = clock
        self._sleep = sleep

    def grant(self, share: Any) -> None:
        """Request rw cephx access to a share for the share's name.

        Never retried: Manila rejects duplicate grants.
        """
        try:
            self.client.grant_access(
                share.id,
                access_type=CEPHX_ACCESS_TYPE,
                access_to=share.name,
                access_level=ACCESS_LEVEL_RW,
            )
        except (SDKException, ClientException) as e:
            ACCESS_GRANTS.labels(status="error").inc()
            raise BackendGrantError(
                f"Failed to grant access to share {share.id}: {e}", share_id=share.id
            ) from e
        ACCESS_GRANTS.labels(status="success").inc()

    def check_access(self, share_id: str) -> tuple[AccessState, AccessRight | None]:
        """Poll the access rules of a share once.

        Returns:
            (READY, access_right) once the key is populated, otherwise
            (PENDING, None)

        Raises:
            BackendPollError: if listing access rules failed
            AccessInconsistencyError: if the share has more than one rule
        """
        try:
            rules = [
                AccessRight.from_resource(r)
                for r in self.client.list_access_rules(share_id)
            ]
        except (SDKException, ClientException) as e:
            ACCESS_POLLS.labels(result="error").inc()
            raise BackendPollError(
                f"Failed to list access rules of share {share_id}: {e}",
                share_id=share_id,
            ) from e

        if len(rules) > 1:
            ACCESS_POLLS.labels(result="error").inc()
            raise AccessInconsistencyError(
                f"unexpected number of access rules on share {share_id}: "
                f"got {len(rules)}, expected 1",
                share_id=share_id,
            )

        if rules and rules[0].has_key:
            ACCESS_POLLS.labels(result="ready").inc()
            return AccessState.READY, rules[0]

        ACCESS_POLLS.labels(result="pending").inc()
        return AccessState.PENDING, None

    def wait_for_access_key(self, share_id: str) -> AccessRight:
        """Poll until the share's access rule carries an access key.

        Raises:
            ProvisionTimeoutError: if the key did not appear within timeout
        """
        deadline = self._clock() + self.timeout
        attempt = 0

        while True:
            attempt += 1
            state, access_right = self.check_access(share_id)
            if state is AccessState.READY and access_right is not None:
                logger.info(
                    "Access key for share %s ready after %d attempts",
                    share_id,
                    attempt,
                )
                return access_right

            remaining = deadline - self._clock()
            if remaining <= 0:
                raise ProvisionTimeoutError(
                    f"Timed out after {self.timeout:.0f}s waiting for the "
                    f"access key of share {share_id}",
                    share_id=share_id,
                )

            logger.debug(
                "Access key for share %s not ready (attempt %d), %.1fs left",
                share_id,
                attempt,
                remaining,
            )
            self._sleep(min(self.interval, remaining))

    def provision(self, share: Any) -> AccessRight:
        """Grant access to a share and wait for its access key."""
        start = self._clock()
        try:
            self.grant(share)
            access_right = self.wait_for_access_key(share.id)
        except ProvisionError as e:
            ACCESS_PROVISION_TOTAL.labels(outcome=_OUTCOMES[type(e)]).inc()
            logger.error("Provisioning access to share %s failed: %s", share.id, e)
            raise
        finally:
            ACCESS_PROVISION_DURATION.observe(self._clock() - start)

        ACCESS_PROVISION_TOTAL.labels(outcome="success").inc()
        return access_right

    def __repr__(self) -> str:
        return (
            f"AccessProvisioner(timeout={self.timeout}, interval={self.interval})"
        )

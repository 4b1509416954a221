"""CephFS share backend.

Ties the access provisioner and the secret binder together: access to a
share is granted via cephx, the resulting key is stored in a Secret, and
the share's export location is turned into a CephFS volume source that
references that Secret.
"""

import logging
from collections.abc import Sequence
from typing import Any

from kubernetes.client import V1CephFSPersistentVolumeSource, V1SecretReference

from manila_client import ManilaClient
from models import AccessRight, ExportLocationError
from resources.secret import SecretBinder
from resources.share_access import AccessProvisioner
from utils import make_secret_name, split_export_location

logger = logging.getLogger(__name__)

# Key of the cephx key in the share's Secret
SECRET_KEY = "key"


def choose_export_location(locations: Sequence[Any]) -> str:
    """Pick the export location path to mount.

    Prefers a location marked as preferred, otherwise the first one.
    """
    if not locations:
        raise ExportLocationError("share has no export locations")
    for location in locations:
        if getattr(location, "is_preferred", False):
            return location.path
    return locations[0].path


class CephFSShareBackend:
    """Share backend for Manila shares exported by CephFS."""

    def __init__(
        self,
        client: ManilaClient,
        provisioner: AccessProvisioner,
        binder: SecretBinder,
        secret_namespace: str,
    ) -> None:
        """Initialize the backend.

        Args:
            client: Manila client used to look up shares
            provisioner: Grants access and waits for the cephx key
            binder: Stores the key in a Secret
            secret_namespace: Namespace the share Secrets are created in
        """
        self.client = client
        self.provisioner = provisioner
        self.binder = binder
        self.secret_namespace = secret_namespace

    def grant_access(self, share: Any) -> AccessRight:
        """Grant access to a share and store its cephx key in a Secret."""
        access_right = self.provisioner.provision(share)
        self.binder.bind(
            share.id,
            self.secret_namespace,
            {SECRET_KEY: access_right.access_key.encode()},
        )
        return access_right

    def build_source(
        self, share: Any, access_right: AccessRight, export_path: str
    ) -> V1CephFSPersistentVolumeSource:
        """Build a CephFS volume source for a share."""
        monitors, root_path = split_export_location(export_path)
        return V1CephFSPersistentVolumeSource(
            monitors=monitors.split(","),
            path=root_path,
            user=access_right.access_to,
            secret_ref=V1SecretReference(
                name=make_secret_name(share.id),
                namespace=self.secret_namespace,
            ),
        )

    def provision(self, share_id: str) -> V1CephFSPersistentVolumeSource:
        """Grant access to a share and build the volume source to mount it.

        Raises:
            ResourceNotFoundError: if the share does not exist
            ExportLocationError: if the share has no usable export location
        """
        share = self.client.require_share(share_id)
        export_path = choose_export_location(
            self.client.get_export_locations(share.id)
        )
        # Fail on a malformed location before anything is granted
        split_export_location(export_path)
        access_right = self.grant_access(share)
        return self.build_source(share, access_right, export_path)

    def revoke_access(self, share_id: str) -> None:
        """Delete the Secret holding a share's cephx key."""
        logger.info("Revoking access to share %s", share_id)
        self.binder.unbind(share_id, self.secret_namespace)

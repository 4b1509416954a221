"""Kubernetes Secrets holding share credentials."""

import base64
import logging

from kubernetes.client import ApiException, CoreV1Api, V1ObjectMeta, V1Secret

from metrics import SECRET_OPERATIONS
from models import SecretStoreError
from utils import make_secret_name

logger = logging.getLogger(__name__)


class SecretBinder:
    """Creates and deletes the Secret belonging to a share.

    The Secret name is derived from the share id, so there is exactly one
    Secret per share and namespace. Errors from the API server, including
    already-exists and not-found, are raised as SecretStoreError.
    """

    def __init__(self, core_api: CoreV1Api) -> None:
        self.core_api = core_api

    def bind(self, share_id: str, namespace: str, data: dict[str, bytes]) -> None:
        """Create the share's Secret with the given payload."""
        name = make_secret_name(share_id)
        body = V1Secret(
            api_version="v1",
            kind="Secret",
            metadata=V1ObjectMeta(name=name, namespace=namespace),
            type="Opaque",
            data={k: base64.b64encode(v).decode() for k, v in data.items()},
        )
        try:
            self.core_api.create_namespaced_secret(namespace, body)
        except ApiException as e:
            SECRET_OPERATIONS.labels(operation="create", status="error").inc()
            raise SecretStoreError(
                f"Failed to create Secret {namespace}/{name}: {e.reason}",
                status=e.status,
                reason=e.reason,
            ) from e

        SECRET_OPERATIONS.labels(operation="create", status="success").inc()
        logger.info("Created Secret %s/%s", namespace, name)

    def unbind(self, share_id: str, namespace: str) -> None:
        """Delete the share's Secret."""
        name = make_secret_name(share_id)
        try:
            self.core_api.delete_namespaced_secret(name, namespace)
        except ApiException as e:
            SECRET_OPERATIONS.labels(operation="delete", status="error").inc()
            raise SecretStoreError(
                f"Failed to delete Secret {namespace}/{name}: {e.reason}",
                status=e.status,
                reason=e.reason,
            ) from e

        SECRET_OPERATIONS.labels(operation="delete", status="success").inc()
        logger.info("Deleted Secret %s/%s", namespace, name)

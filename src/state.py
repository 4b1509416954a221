"""Shared bridge state - thread-safe singleton for Manila and Kubernetes clients."""

import os
import threading
from dataclasses import dataclass, field

from kubernetes import client as k8s_client
from kubernetes import config as k8s_config

from constants import DEFAULT_ACCESS_TIMEOUT, DEFAULT_POLL_INTERVAL
from manila_client import ManilaClient
from models import SyncConfig
from naming import NamespaceNameFormatter
from resources.cephfs import CephFSShareBackend
from resources.secret import SecretBinder
from resources.share_access import AccessProvisioner
from sync_config import default_sync_config, load_sync_config_from_file


@dataclass
class BridgeState:
    """Thread-safe bridge state container.

    This class provides thread-safe access to shared resources:
    - Manila client
    - Kubernetes CoreV1Api client
    - Validated sync config

    Callers should use the global `state` instance rather than
    creating their own clients.
    """

    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False)
    _manila_client: ManilaClient | None = field(default=None, repr=False)
    _k8s_core_api: k8s_client.CoreV1Api | None = field(default=None, repr=False)
    _k8s_configured: bool = field(default=False, repr=False)
    _sync_config: SyncConfig | None = field(default=None, repr=False)

    def _ensure_k8s_config(self) -> None:
        """Ensure Kubernetes configuration is loaded (must hold lock)."""
        if not self._k8s_configured:
            try:
                k8s_config.load_incluster_config()
            except k8s_config.ConfigException:
                k8s_config.load_kube_config()
            self._k8s_configured = True

    def get_manila_client(self) -> ManilaClient:
        """Get or create the Manila client (thread-safe)."""
        with self._lock:
            if self._manila_client is None:
                self._manila_client = ManilaClient()
            return self._manila_client

    def get_k8s_core_api(self) -> k8s_client.CoreV1Api:
        """Get or create the Kubernetes CoreV1Api client (thread-safe)."""
        with self._lock:
            self._ensure_k8s_config()
            if self._k8s_core_api is None:
                self._k8s_core_api = k8s_client.CoreV1Api()
            return self._k8s_core_api

    def get_sync_config(self) -> SyncConfig:
        """Get the validated sync config (thread-safe).

        Loaded from KEYSTONE_SYNC_CONFIG if set, otherwise the defaults.
        """
        with self._lock:
            if self._sync_config is None:
                path = os.environ.get("KEYSTONE_SYNC_CONFIG", "")
                config = (
                    load_sync_config_from_file(path) if path else default_sync_config()
                )
                config.validate()
                self._sync_config = config
            return self._sync_config

    def close(self) -> None:
        """Close all connections."""
        with self._lock:
            if self._manila_client is not None:
                self._manila_client.close()
                self._manila_client = None


# Global bridge state singleton
state = BridgeState()


def get_manila_client() -> ManilaClient:
    """Get the shared Manila client."""
    return state.get_manila_client()


def get_k8s_core_api() -> k8s_client.CoreV1Api:
    """Get the shared Kubernetes CoreV1Api client."""
    return state.get_k8s_core_api()


def get_sync_config() -> SyncConfig:
    """Get the shared, validated sync config."""
    return state.get_sync_config()


def get_namespace_formatter() -> NamespaceNameFormatter:
    """Get a formatter for the configured namespace format."""
    return NamespaceNameFormatter(get_sync_config().namespace_format)


def get_access_provisioner() -> AccessProvisioner:
    """Create an access provisioner using the shared Manila client.

    Configuration via environment variables:
        MANILA_ACCESS_TIMEOUT: Seconds to wait for the access key (default: 120)
        MANILA_ACCESS_POLL_INTERVAL: Seconds between polls (default: 1)
    """
    timeout = float(
        os.environ.get("MANILA_ACCESS_TIMEOUT", str(DEFAULT_ACCESS_TIMEOUT))
    )
    interval = float(
        os.environ.get("MANILA_ACCESS_POLL_INTERVAL", str(DEFAULT_POLL_INTERVAL))
    )
    return AccessProvisioner(get_manila_client(), timeout=timeout, interval=interval)


def get_cephfs_backend() -> CephFSShareBackend:
    """Create the CephFS share backend.

    Configuration via environment variables:
        MANILA_SECRET_NAMESPACE: Namespace for share Secrets (default: default)
    """
    namespace = os.environ.get("MANILA_SECRET_NAMESPACE", "default")
    return CephFSShareBackend(
        get_manila_client(),
        get_access_provisioner(),
        SecretBinder(get_k8s_core_api()),
        secret_namespace=namespace,
    )

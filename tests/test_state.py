"""Tests for shared bridge state."""

from unittest.mock import MagicMock

import pytest

import state as state_module
from models import ConfigValidationError
from resources.cephfs import CephFSShareBackend
from state import BridgeState


@pytest.fixture
def fresh_state(monkeypatch):
    s = BridgeState()
    monkeypatch.setattr(state_module, "state", s)
    return s


class TestBridgeState:
    """Tests for BridgeState class."""

    def test_manila_client_is_shared(self, fresh_state):
        assert fresh_state.get_manila_client() is fresh_state.get_manila_client()

    def test_k8s_falls_back_to_kube_config(self, fresh_state, monkeypatch):
        incluster = MagicMock(
            side_effect=state_module.k8s_config.ConfigException("not in cluster")
        )
        kube_config = MagicMock()
        monkeypatch.setattr(
            state_module.k8s_config, "load_incluster_config", incluster
        )
        monkeypatch.setattr(state_module.k8s_config, "load_kube_config", kube_config)

        api = fresh_state.get_k8s_core_api()

        assert api is fresh_state.get_k8s_core_api()
        incluster.assert_called_once()
        kube_config.assert_called_once()

    def test_sync_config_defaults(self, fresh_state, monkeypatch):
        monkeypatch.delenv("KEYSTONE_SYNC_CONFIG", raising=False)

        assert fresh_state.get_sync_config().namespace_format == "%i"

    def test_sync_config_from_file(self, fresh_state, monkeypatch, tmp_path):
        path = tmp_path / "sync.yaml"
        path.write_text("namespace_format: '%n-%i'\n")
        monkeypatch.setenv("KEYSTONE_SYNC_CONFIG", str(path))

        assert fresh_state.get_sync_config().namespace_format == "%n-%i"
        assert state_module.get_namespace_formatter().template == "%n-%i"

    def test_invalid_sync_config_rejected(self, fresh_state, monkeypatch, tmp_path):
        path = tmp_path / "sync.yaml"
        path.write_text("namespace_format: '%n'\n")
        monkeypatch.setenv("KEYSTONE_SYNC_CONFIG", str(path))

        with pytest.raises(ConfigValidationError):
            fresh_state.get_sync_config()


class TestFactories:
    """Tests for the module level factory functions."""

    def test_access_provisioner_from_env(self, fresh_state, monkeypatch):
        monkeypatch.setenv("MANILA_ACCESS_TIMEOUT", "30")
        monkeypatch.setenv("MANILA_ACCESS_POLL_INTERVAL", "2.5")

        provisioner = state_module.get_access_provisioner()

        assert provisioner.timeout == 30.0
        assert provisioner.interval == 2.5
        assert provisioner.client is fresh_state.get_manila_client()

    def test_access_provisioner_defaults(self, fresh_state, monkeypatch):
        monkeypatch.delenv("MANILA_ACCESS_TIMEOUT", raising=False)
        monkeypatch.delenv("MANILA_ACCESS_POLL_INTERVAL", raising=False)

        provisioner = state_module.get_access_provisioner()

        assert provisioner.timeout == 120.0
        assert provisioner.interval == 1.0

    def test_cephfs_backend(self, fresh_state, monkeypatch):
        monkeypatch.setenv("MANILA_SECRET_NAMESPACE", "storage")
        core_api = MagicMock()
        monkeypatch.setattr(fresh_state, "get_k8s_core_api", lambda: core_api)

        backend = state_module.get_cephfs_backend()

        assert isinstance(backend, CephFSShareBackend)
        assert backend.secret_namespace == "storage"
        assert backend.binder.core_api is core_api

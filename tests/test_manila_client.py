"""Tests for the Manila client wrapper."""

from unittest.mock import MagicMock

import pytest
from keystoneauth1.exceptions import ConnectFailure
from openstack.exceptions import HttpException, ResourceNotFound
from prometheus_client import REGISTRY

import manila_client
from manila_client import ManilaClient, retry_on_error
from models import OpenStackAPIError, ResourceNotFoundError


@pytest.fixture(autouse=True)
def no_sleep(monkeypatch):
    monkeypatch.setattr(manila_client.time, "sleep", lambda _: None)


@pytest.fixture
def client():
    c = ManilaClient(cloud="test")
    c._conn = MagicMock()
    return c


class TestRetryOnError:
    """Tests for retry_on_error decorator."""

    def test_retries_until_success(self):
        calls = []

        @retry_on_error(max_retries=2)
        def flaky():
            calls.append(1)
            if len(calls) < 3:
                raise HttpException("transient")
            return "ok"

        assert flaky() == "ok"
        assert len(calls) == 3

    def test_raises_after_all_attempts(self):
        @retry_on_error(max_retries=1)
        def broken():
            raise HttpException("down")

        with pytest.raises(OpenStackAPIError, match="after 2 attempts"):
            broken()

    def test_retries_transport_errors(self):
        calls = []

        @retry_on_error(max_retries=1)
        def unreachable():
            calls.append(1)
            raise ConnectFailure("unreachable")

        with pytest.raises(OpenStackAPIError) as exc_info:
            unreachable()

        assert len(calls) == 2
        assert isinstance(exc_info.value.__cause__, ConnectFailure)

    def test_not_found_not_retried(self):
        calls = []

        @retry_on_error()
        def missing():
            calls.append(1)
            raise ResourceNotFound()

        with pytest.raises(ResourceNotFound):
            missing()
        assert len(calls) == 1

    def test_counts_retries(self):
        def retries():
            return (
                REGISTRY.get_sample_value(
                    "keystone_manila_bridge_manila_api_retries_total",
                    {"operation": "counted"},
                )
                or 0.0
            )

        before = retries()
        attempts = []

        @retry_on_error(max_retries=2)
        def counted():
            attempts.append(1)
            if len(attempts) < 3:
                raise HttpException("transient")

        counted()

        assert retries() == before + 2

    def test_other_errors_not_retried(self):
        calls = []

        @retry_on_error()
        def bad():
            calls.append(1)
            raise ValueError("bug")

        with pytest.raises(ValueError):
            bad()
        assert len(calls) == 1


class TestManilaClient:
    """Tests for ManilaClient."""

    def test_cloud_from_env(self, monkeypatch):
        monkeypatch.setenv("OS_CLOUD", "mycloud")

        assert ManilaClient().cloud_name == "mycloud"

    def test_grant_access(self, client):
        client.grant_access("share-1", "cephx", "myshare", "rw")

        client.conn.shared_file_system.create_access_rule.assert_called_once_with(
            "share-1", access_type="cephx", access_to="myshare", access_level="rw"
        )

    def test_grant_access_not_retried(self, client):
        sfs = client.conn.shared_file_system
        sfs.create_access_rule.side_effect = HttpException("conflict")

        with pytest.raises(HttpException):
            client.grant_access("share-1", "cephx", "myshare", "rw")
        assert sfs.create_access_rule.call_count == 1

    def test_list_access_rules(self, client):
        client.conn.shared_file_system.access_rules.return_value = iter(["r1", "r2"])

        assert client.list_access_rules("share-1") == ["r1", "r2"]
        client.conn.shared_file_system.access_rules.assert_called_once_with("share-1")

    def test_require_share(self, client):
        share = client.require_share("share-1")

        assert share is client.conn.shared_file_system.get_share.return_value

    def test_get_export_locations(self, client):
        sfs = client.conn.shared_file_system
        sfs.export_locations.return_value = iter(["loc"])

        assert client.get_export_locations("share-1") == ["loc"]
        sfs.export_locations.assert_called_once_with("share-1")

    def test_require_share_not_found(self, client):
        client.conn.shared_file_system.get_share.side_effect = ResourceNotFound()

        with pytest.raises(ResourceNotFoundError):
            client.require_share("missing")

    def test_close(self, client):
        conn = client.conn

        client.close()

        conn.close.assert_called_once()
        assert client._conn is None

"""Tests for the Kubernetes cluster client."""

from unittest.mock import MagicMock

import pytest
from kubernetes import client as k8s
from kubernetes.client.exceptions import ApiException
from urllib3.exceptions import MaxRetryError

from secret_sync.domain.exceptions import (
    BackendAmbiguousError,
    ClusterAPIError,
    StoreSetupError,
)
from secret_sync.domain.models import (
    ConditionStatus,
    GeneratedSecret,
    OperationResult,
    OwnerReference,
    StatusCondition,
)
from secret_sync.infrastructure.cluster.kubernetes import KubernetesClusterClient


def v1_secret(data: dict[str, str], resource_version: str = "1") -> k8s.V1Secret:
    return k8s.V1Secret(
        metadata=k8s.V1ObjectMeta(
            name="creds",
            namespace="default",
            resource_version=resource_version,
            owner_references=[
                k8s.V1OwnerReference(
                    api_version="secret-manager.itscontained.io/v1alpha1",
                    kind="ExternalSecret",
                    name="creds",
                    uid="uid-1",
                    controller=True,
                    block_owner_deletion=True,
                )
            ],
        ),
        type="Opaque",
        data=data,
    )


GENERATED = GeneratedSecret(
    name="creds",
    namespace="default",
    data={"password": b"hunter2"},
    owner_references=[OwnerReference(name="creds", uid="uid-1")],
)


class TestKubernetesClusterClient:
    """Test KubernetesClusterClient."""

    def setup_method(self):
        """Set up test fixtures."""
        self.cluster = KubernetesClusterClient(MagicMock())
        self.core = MagicMock()
        self.custom = MagicMock()
        self.cluster._core = self.core
        self.cluster._custom = self.custom

    @pytest.mark.asyncio
    async def test_get_secret_decodes_data(self):
        """Test secret data is base64-decoded into raw bytes."""
        self.core.read_namespaced_secret.return_value = v1_secret({"password": "aHVudGVyMg=="})

        secret = await self.cluster.get_secret("default", "creds")

        assert secret.data == {"password": b"hunter2"}
        assert secret.owner_references[0].uid == "uid-1"

    @pytest.mark.asyncio
    async def test_get_secret_not_found(self):
        """Test a 404 maps to None."""
        self.core.read_namespaced_secret.side_effect = ApiException(status=404)

        assert await self.cluster.get_secret("default", "missing") is None

    @pytest.mark.asyncio
    async def test_get_secret_api_error(self):
        """Test other API errors are raised."""
        self.core.read_namespaced_secret.side_effect = ApiException(
            status=403, reason="Forbidden"
        )

        with pytest.raises(ClusterAPIError, match="Forbidden"):
            await self.cluster.get_secret("default", "creds")

    @pytest.mark.asyncio
    async def test_apply_creates_with_encoded_data(self):
        """Test a missing secret is created with base64 data encoded once."""
        self.core.read_namespaced_secret.side_effect = ApiException(status=404)

        result = await self.cluster.apply_secret(GENERATED)

        assert result == OperationResult.CREATED
        namespace, body = self.core.create_namespaced_secret.call_args.args
        assert namespace == "default"
        assert body.data == {"password": "aHVudGVyMg=="}
        assert body.metadata.owner_references[0].controller is True

    @pytest.mark.asyncio
    async def test_apply_unchanged(self):
        """Test an identical secret is not written."""
        self.core.read_namespaced_secret.return_value = v1_secret(
            {"password": "aHVudGVyMg=="}
        )

        assert await self.cluster.apply_secret(GENERATED) == OperationResult.UNCHANGED
        self.core.replace_namespaced_secret.assert_not_called()

    @pytest.mark.asyncio
    async def test_apply_replaces_with_resource_version(self):
        """Test a changed secret is replaced at the observed version."""
        self.core.read_namespaced_secret.return_value = v1_secret(
            {"password": "b2xk"}, resource_version="42"
        )

        assert await self.cluster.apply_secret(GENERATED) == OperationResult.UPDATED
        name, namespace, body = self.core.replace_namespaced_secret.call_args.args
        assert (name, namespace) == ("creds", "default")
        assert body.metadata.resource_version == "42"

    @pytest.mark.asyncio
    async def test_apply_conflict(self):
        """Test a write conflict is raised as a cluster error."""
        self.core.read_namespaced_secret.return_value = v1_secret({"password": "b2xk"})
        self.core.replace_namespaced_secret.side_effect = ApiException(
            status=409, reason="Conflict"
        )

        with pytest.raises(ClusterAPIError) as exc_info:
            await self.cluster.apply_secret(GENERATED)

        assert exc_info.value.status == 409

    @pytest.mark.asyncio
    async def test_get_cluster_store(self):
        """Test cluster-scoped stores use the cluster API."""
        self.custom.get_cluster_custom_object.return_value = {
            "metadata": {"name": "shared"},
            "spec": {"aws": {"region": "us-east-1"}},
        }

        store = await self.cluster.get_store("ClusterSecretStore", "shared")

        assert store.cluster_scoped
        assert store.spec.aws.region == "us-east-1"
        self.custom.get_cluster_custom_object.assert_called_once_with(
            "secret-manager.itscontained.io", "v1alpha1", "clustersecretstores", "shared"
        )

    @pytest.mark.asyncio
    async def test_get_store_ambiguous(self):
        """Test a store with two backends surfaces the configuration error."""
        self.custom.get_namespaced_custom_object.return_value = {
            "metadata": {"name": "bad", "namespace": "default"},
            "spec": {"aws": {}, "gcp": {}},
        }

        with pytest.raises(BackendAmbiguousError):
            await self.cluster.get_store("SecretStore", "bad", "default")

    @pytest.mark.asyncio
    async def test_get_store_invalid(self):
        """Test a store failing validation is a setup error."""
        self.custom.get_namespaced_custom_object.return_value = {
            "metadata": {"name": "bad", "namespace": "default"},
            "spec": {"vault": {"server": "https://vault"}},
        }

        with pytest.raises(StoreSetupError, match="invalid SecretStore"):
            await self.cluster.get_store("SecretStore", "bad", "default")

    @pytest.mark.asyncio
    async def test_get_external_secret(self):
        """Test ExternalSecrets are parsed from custom objects."""
        self.custom.get_namespaced_custom_object.return_value = {
            "metadata": {"name": "creds", "namespace": "default", "uid": "uid-1"},
            "spec": {"storeRef": {"name": "vault"}},
        }

        external_secret = await self.cluster.get_external_secret("default", "creds")

        assert external_secret.metadata.uid == "uid-1"
        assert external_secret.spec.store_ref.name == "vault"

    @pytest.mark.asyncio
    async def test_update_status(self, external_secret):
        """Test status is patched through the status subresource."""
        external_secret.status.set_condition(
            StatusCondition(status=ConditionStatus.TRUE, reason="Available")
        )

        await self.cluster.update_external_secret_status(external_secret)

        args = self.custom.patch_namespaced_custom_object_status.call_args.args
        assert args[2:5] == ("default", "externalsecrets", "app-credentials")
        assert args[5]["status"]["conditions"][0]["status"] == "True"

    @pytest.mark.asyncio
    async def test_transport_error(self):
        """Test connection failures are raised as cluster errors."""
        self.core.read_namespaced_secret.side_effect = MaxRetryError(
            None, "/api/v1/namespaces/default/secrets/creds", "connection refused"
        )

        with pytest.raises(ClusterAPIError, match="get Secret"):
            await self.cluster.get_secret("default", "creds")

    @pytest.mark.asyncio
    async def test_invalid_external_secret(self):
        """Test an ExternalSecret failing validation is a cluster error."""
        self.custom.get_namespaced_custom_object.return_value = {
            "metadata": {"name": "creds", "namespace": "default"},
            "spec": {"data": "not-a-list"},
        }

        with pytest.raises(ClusterAPIError, match="invalid ExternalSecret 'creds'"):
            await self.cluster.get_external_secret("default", "creds")

    @pytest.mark.asyncio
    async def test_request_timeout_passed(self):
        """Test the configured timeout is passed on API calls."""
        self.cluster.request_timeout = 5.0
        self.core.read_namespaced_secret.return_value = v1_secret({})

        await self.cluster.get_secret("default", "creds")

        self.core.read_namespaced_secret.assert_called_once_with(
            "creds", "default", _request_timeout=5.0
        )

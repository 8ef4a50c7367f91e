"""AWS Secrets Manager integration."""

import asyncio
import json
from typing import Any

import boto3
import structlog
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError

from secret_sync.config.settings import AWSSettings, Settings
from secret_sync.domain.exceptions import BackendReadError, StoreSetupError
from secret_sync.domain.models import (
    AWSStore,
    RemoteReference,
    SecretStore,
    StoreBackend,
)
from secret_sync.infrastructure.cluster.base import ClusterClient

from .base import (
    StoreClient,
    decode_string_map,
    resolve_secret_key_ref,
    select_property,
)

logger = structlog.get_logger()


def _client_error_detail(error: ClientError | BotoCoreError) -> str:
    if isinstance(error, ClientError):
        err = error.response.get("Error", {})
        return f"{err.get('Code', 'Unknown')}: {err.get('Message', str(error))}"
    return str(error)


def boto_config(settings: AWSSettings) -> Config:
    """Client configuration bounding retries and socket waits."""
    return Config(
        retries={"max_attempts": settings.max_attempts, "mode": "adaptive"},
        connect_timeout=settings.connect_timeout,
        read_timeout=settings.read_timeout,
    )


def build_session(
    config: AWSStore,
    settings: AWSSettings,
    access_key_id: str | None = None,
    secret_access_key: str | None = None,
) -> boto3.Session:
    """Create a boto3 session for a store.

    A store with a static key pair never falls back to the ambient credential
    chain. When the store names a role, it is assumed through STS with
    whichever identity the first session carries.
    """
    session_kwargs: dict[str, Any] = {"region_name": config.region}
    if config.auth is not None and config.auth.secret_ref is not None:
        if not access_key_id or not secret_access_key:
            raise StoreSetupError(
                "missing accessKeyID/secretAccessKey in store config",
                StoreBackend.AWS,
            )
        session_kwargs.update(
            {
                "aws_access_key_id": access_key_id,
                "aws_secret_access_key": secret_access_key,
            }
        )
    session = boto3.Session(**session_kwargs)

    role = config.auth.role if config.auth else None
    if not role:
        return session

    sts_client = session.client(
        "sts",
        endpoint_url=settings.sts_endpoint,
        config=boto_config(settings),
    )
    response = sts_client.assume_role(
        RoleArn=role, RoleSessionName=settings.role_session_name
    )
    credentials = response["Credentials"]

    return boto3.Session(
        aws_access_key_id=credentials["AccessKeyId"],
        aws_secret_access_key=credentials["SecretAccessKey"],
        aws_session_token=credentials["SessionToken"],
        region_name=config.region or session.region_name,
    )


class AWSSecretsClient(StoreClient):
    """Reads JSON key/value secrets from AWS Secrets Manager."""

    backend = StoreBackend.AWS

    def __init__(self, secrets_client: Any):
        self._client = secrets_client

    @classmethod
    async def create(
        cls,
        store: SecretStore,
        cluster: ClusterClient,
        namespace: str,
        settings: Settings,
    ) -> "AWSSecretsClient":
        config = store.spec.aws
        if config is None:
            raise StoreSetupError("store has no aws configuration", StoreBackend.AWS)

        access_key_id = secret_access_key = None
        secret_ref = config.auth.secret_ref if config.auth else None
        if secret_ref is not None:
            if secret_ref.access_key_id is None or secret_ref.secret_access_key is None:
                raise StoreSetupError(
                    "missing accessKeyID/secretAccessKey in store config",
                    StoreBackend.AWS,
                )
            access_key_id = await resolve_secret_key_ref(
                cluster, store, namespace, secret_ref.access_key_id
            )
            secret_access_key = await resolve_secret_key_ref(
                cluster, store, namespace, secret_ref.secret_access_key
            )
            if not access_key_id or not secret_access_key:
                raise StoreSetupError(
                    "empty accessKeyID/secretAccessKey in referenced secret",
                    StoreBackend.AWS,
                )

        def connect() -> Any:
            session = build_session(
                config, settings.aws, access_key_id, secret_access_key
            )
            return session.client(
                "secretsmanager",
                endpoint_url=settings.aws.secretsmanager_endpoint,
                config=boto_config(settings.aws),
            )

        try:
            secrets_client = await asyncio.to_thread(connect)
        except (BotoCoreError, ClientError) as e:
            raise StoreSetupError(
                f"failed to create AWS session: {_client_error_detail(e)}",
                StoreBackend.AWS,
            )

        logger.debug(
            "Created AWS Secrets Manager client",
            region=config.region,
            assume_role=bool(config.auth and config.auth.role),
        )
        return cls(secrets_client)

    async def get_secret(self, ref: RemoteReference) -> bytes:
        return select_property(await self._read_secret(ref), ref)

    async def get_secret_map(self, ref: RemoteReference) -> dict[str, bytes]:
        return await self._read_secret(ref)

    async def _read_secret(self, ref: RemoteReference) -> dict[str, bytes]:
        request_params = {"SecretId": ref.name}
        if ref.version:
            request_params["VersionStage"] = ref.version

        try:
            response = await asyncio.to_thread(
                self._client.get_secret_value, **request_params
            )
        except (BotoCoreError, ClientError) as e:
            raise BackendReadError(
                ref.name, f"error getting secret value: {_client_error_detail(e)}"
            )

        payload = response.get("SecretString")
        if payload is None:
            payload = response.get("SecretBinary")
        if payload is None:
            raise BackendReadError(ref.name, "secret value has no payload")

        try:
            decoded = json.loads(payload)
        except (ValueError, UnicodeDecodeError) as e:
            raise BackendReadError(ref.name, f"unable to unmarshal secret value: {e}")

        return decode_string_map(ref.name, decoded)

    async def close(self) -> None:
        self._client = None

"""
Object-store capability consumed by the restore engine.

The engine only ever reads whole objects by key. :class:`S3ObjectStore` backs
that capability with boto3 and works against any S3-compatible service
(AWS S3, MinIO, Ceph RGW, ...) by pointing ``endpoint`` at it.

Credentials are resolved by boto3's default provider chain (environment
variables, shared credentials file, instance metadata), optionally pinned to
a named profile. Nothing here is process-global: callers build a store from
an explicit :class:`ObjectStoreConfig` and pass it down.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Protocol

import boto3
from botocore.config import Config as BotoConfig
from botocore.exceptions import BotoCoreError, ClientError

from .errors import ConfigError, RemoteError

logger = logging.getLogger(__name__)

_ADDRESSING_STYLES = ("auto", "path", "virtual")


class ObjectStore(Protocol):
    """Read-only, whole-object access to a content-addressed store."""

    def get_object(self, path: str) -> bytes:
        """
        Return the full contents of the object at `path`.

        Raises
        ------
        RemoteError
            If the object is missing or cannot be retrieved.
        """
        ...


@dataclass(frozen=True, slots=True)
class ObjectStoreConfig:
    """
    Connection settings for an S3-compatible bucket.

    Attributes
    ----------
    endpoint:
        Service URL. A bare ``host[:port]`` is treated as HTTPS.
    region:
        Region name sent with signed requests.
    bucket:
        Bucket holding the backup.
    profile_name:
        Optional named profile from the shared AWS config/credentials files.
    addressing_style:
        S3 addressing style: ``auto``, ``path`` or ``virtual``.
    """

    endpoint: str
    region: str
    bucket: str
    profile_name: str | None = None
    addressing_style: str = "auto"

    def __post_init__(self) -> None:
        for name in ("endpoint", "region", "bucket"):
            if not str(getattr(self, name)).strip():
                raise ConfigError(f"Object store {name} must be a non-empty string")
        if self.addressing_style not in _ADDRESSING_STYLES:
            raise ConfigError(
                f"addressing_style must be one of {_ADDRESSING_STYLES}, got {self.addressing_style!r}"
            )

    @property
    def endpoint_url(self) -> str:
        """Return the endpoint with an explicit scheme."""
        if self.endpoint.startswith(("http://", "https://")):
            return self.endpoint
        return f"https://{self.endpoint}"


class S3ObjectStore:
    """boto3-backed implementation of :class:`ObjectStore`."""

    def __init__(self, config: ObjectStoreConfig, *, client: Any | None = None) -> None:
        """
        Create a store for one bucket.

        Parameters
        ----------
        config:
            Connection settings.
        client:
            Pre-built S3 client. When omitted, one is created from `config`.
        """
        self.config = config
        self.client = client if client is not None else self._build_client(config)

    @staticmethod
    def _build_client(config: ObjectStoreConfig) -> Any:
        try:
            session = boto3.session.Session(profile_name=config.profile_name)
            return session.client(
                "s3",
                endpoint_url=config.endpoint_url,
                region_name=config.region,
                config=BotoConfig(s3={"addressing_style": config.addressing_style}),
            )
        except BotoCoreError as exc:
            raise ConfigError(f"Could not create S3 client: {exc}") from exc

    def get_object(self, path: str) -> bytes:
        """Fetch the whole object stored at `path` in the configured bucket."""
        bucket = self.config.bucket
        logger.debug("Fetching s3://%s/%s", bucket, path)
        try:
            response = self.client.get_object(Bucket=bucket, Key=path)
            return response["Body"].read()
        except ClientError as exc:
            code = exc.response.get("Error", {}).get("Code")
            raise RemoteError(
                f"Failed to fetch s3://{bucket}/{path}: {code or exc}",
                key=path,
                code=code,
            ) from exc
        except BotoCoreError as exc:
            raise RemoteError(f"Failed to fetch s3://{bucket}/{path}: {exc}", key=path) from exc

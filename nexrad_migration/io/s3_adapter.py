from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

import boto3
from botocore import UNSIGNED
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError

from nexrad_migration.core.errors import FetchError, RemoteListError

LOGGER = logging.getLogger(__name__)


class NexradS3Client:
    """
    Small read-only wrapper around a boto3 S3 client for public buckets.

    The NOAA NEXRAD Level-II archive is world-readable, so requests are
    unsigned and no credentials are read from the environment.

    Implemented operations:
      - head_bucket: check that the bucket is reachable
      - list_keys: list object keys under a prefix (all pages)
      - download_to_file: copy one object to a local path

    Design notes:
      - botocore errors are translated into RemoteListError / FetchError
        so callers never parse transport-level exceptions.
      - The underlying boto3 client is thread-safe and is shared across
        all download workers.
      - Timeouts are the botocore connect/read timeouts; a timed-out
        request surfaces as a FetchError for that key only.
    """

    def __init__(
        self,
        *,
        region: str = "us-east-1",
        timeout_s: float = 60.0,
        max_pool_connections: int = 10,
        client: Any | None = None,
    ) -> None:
        """
        Create a new anonymous client.

        Parameters:
          region:
            AWS region of the bucket. The NEXRAD archive lives in us-east-1.

          timeout_s:
            Connect and read timeout applied to every request.

          max_pool_connections:
            HTTP connection pool size; should be at least the number of
            concurrent download workers.

          client:
            Pre-built S3 client. Used by tests to inject a fake.
        """
        if client is None:
            config = Config(
                signature_version=UNSIGNED,
                connect_timeout=timeout_s,
                read_timeout=timeout_s,
                retries={"max_attempts": 3, "mode": "standard"},
                max_pool_connections=max_pool_connections,
            )
            client = boto3.client("s3", region_name=region, config=config)

        self.client = client

    def head_bucket(self, bucket: str) -> None:
        """Raise RemoteListError if the bucket does not exist or is unreachable."""
        try:
            self.client.head_bucket(Bucket=bucket)
        except (BotoCoreError, ClientError) as exc:
            raise RemoteListError(f"bucket {bucket!r} is not reachable: {exc}") from exc

    def list_keys(self, bucket: str, prefix: str) -> list[str]:
        """
        List every object key under a prefix.

        Pagination is followed transparently. An empty prefix yields an
        empty list; only transport and permission failures raise.
        """
        keys: list[str] = []

        try:
            paginator = self.client.get_paginator("list_objects_v2")
            for page in paginator.paginate(Bucket=bucket, Prefix=prefix):
                for obj in page.get("Contents", []) or []:
                    key = obj.get("Key")
                    if key:
                        keys.append(key)
        except (BotoCoreError, ClientError) as exc:
            raise RemoteListError(
                f"listing s3://{bucket}/{prefix} failed: {exc}"
            ) from exc

        LOGGER.debug(
            "Listed objects",
            extra={"bucket": bucket, "prefix": prefix, "count": len(keys)},
        )
        return keys

    def download_to_file(
        self,
        bucket: str,
        key: str,
        destination: str | Path,
    ) -> None:
        """
        Copy one object to a local file.

        boto3 writes to a temporary file next to the destination and
        renames it on completion, so an interrupted download never
        leaves a truncated volume behind. Parent directories must
        already exist. Existing files are overwritten.

        Raises:
            FetchError:
                On any transport, permission or missing-key failure.
        """
        destination_path = Path(destination)

        try:
            self.client.download_file(bucket, key, str(destination_path))
        except (BotoCoreError, ClientError, OSError) as exc:
            raise FetchError(key, str(exc)) from exc

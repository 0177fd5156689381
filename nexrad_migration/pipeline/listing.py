"""
Remote listing.

Resolves the raw volumes available in the archive for one prefix
(one site, one UTC day).
"""

from __future__ import annotations

import logging
from typing import Protocol

from nexrad_migration.core.domain.types import RemoteObjectRef

LOGGER = logging.getLogger(__name__)


class ObjectLister(Protocol):
    def list_keys(self, bucket: str, prefix: str) -> list[str]:
        """Return object keys under the prefix, in listing order."""


def list_remote_objects(
    store: ObjectLister,
    *,
    bucket: str,
    prefix: str,
) -> list[RemoteObjectRef]:
    """
    List the objects under ``prefix`` as RemoteObjectRefs.

    Keys ending in "/" are folder placeholders and are dropped. An empty
    listing is returned as an empty list; the caller decides whether that
    is worth a warning.
    """
    refs = [
        RemoteObjectRef(bucket=bucket, key=key)
        for key in store.list_keys(bucket, prefix)
        if not key.endswith("/")
    ]

    if not refs:
        LOGGER.warning(
            "No objects found under prefix",
            extra={"bucket": bucket, "prefix": prefix},
        )

    return refs

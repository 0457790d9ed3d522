# Copyright (c) 2025 CoReason, Inc.
#
# This software is proprietary and dual-licensed.
# Licensed under the Prosperity Public License 3.0 (the "License").
# A copy of the license is available at https://prosperitylicense.com/versions/3.0.0
# For details, see the LICENSE file.
# Commercial use beyond a 30-day trial requires a separate license.
#
# Source Code: https://github.com/CoReason-AI/coreason_cas_store

"""
Single-use storage for proxy-granting tickets.

The CAS server delivers a proxy-granting ticket to the client's callback URL keyed by a
pgt_iou, and later returns the same pgt_iou in the validation response. This module keeps
the pgt_iou -> pgt_id pair until it is redeemed once.
"""

from typing import Optional

from coreason_cas_store.cache import KeyValueCache, SupportsPop
from coreason_cas_store.exceptions import (
    CacheBackendError,
    InvalidArgumentError,
    NotFoundError,
    StoreWriteFailedError,
)
from coreason_cas_store.keys import PGT_IOU_PREFIX, namespaced_key
from coreason_cas_store.utils.logger import logger, redact


class ProxyGrantingTicketStore:
    """
    Stores pgt_iou -> pgt_id pairs and hands each one out at most once.
    """

    def __init__(
        self,
        cache: KeyValueCache,
        namespace: Optional[str] = None,
        ttl_seconds: Optional[int] = None,
    ) -> None:
        self.cache = cache
        self.namespace = namespace
        self.ttl_seconds = ttl_seconds

    def key(self, pgt_iou: str) -> str:
        return namespaced_key(PGT_IOU_PREFIX, pgt_iou, self.namespace)

    def create(self, pgt_iou: str, pgt_id: str) -> None:
        """
        Stores a pgt_iou -> pgt_id pair, replacing any earlier pair for the same IOU.

        Raises:
            InvalidArgumentError: If either argument is empty.
            StoreWriteFailedError: If the cache did not accept the write.
        """
        if not pgt_iou:
            raise InvalidArgumentError("Invalid pgt_iou")
        if not pgt_id:
            raise InvalidArgumentError("Invalid pgt")

        try:
            stored = self.cache.set(self.key(pgt_iou), pgt_id, ttl=self.ttl_seconds)
        except CacheBackendError as e:
            raise StoreWriteFailedError(f"Unable to store pgt_iou {redact(pgt_iou)}: {e}") from e
        if not stored:
            raise StoreWriteFailedError(f"Unable to store pgt_iou {redact(pgt_iou)}: the cache rejected the write.")
        logger.debug(f"Stored proxy-granting ticket for pgt_iou {redact(pgt_iou)}.")

    def redeem(self, pgt_iou: str) -> str:
        """
        Returns the pgt_id stored for `pgt_iou` and removes the pair.

        Backends with an atomic read-and-delete use it, so concurrent redemptions of the
        same IOU yield at most one pgt_id. Other backends read, then delete.

        Raises:
            InvalidArgumentError: If `pgt_iou` is empty.
            NotFoundError: If the IOU was already redeemed, never stored, or has expired.
        """
        if not pgt_iou:
            raise InvalidArgumentError("No pgt_iou specified. Cannot retrieve the pgt.")

        key = self.key(pgt_iou)
        if isinstance(self.cache, SupportsPop):
            pgt_id = self.cache.pop(key)
        else:
            pgt_id = self.cache.get(key)
            if pgt_id is not None:
                self.cache.delete(key)

        if not pgt_id:
            logger.warning(f"No proxy-granting ticket found for pgt_iou {redact(pgt_iou)}.")
            raise NotFoundError("Invalid pgt_iou specified. Perhaps this pgt has already been retrieved?")

        logger.info(f"Redeemed proxy-granting ticket for pgt_iou {redact(pgt_iou)}.")
        return pgt_id

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
Main entry point for the CoReason CAS ticket store.

This module exposes the `TicketStore` class, the surface the CAS client runtime talks to.
It ties service tickets to application sessions (SessionIndex) and keeps proxy-granting
tickets until they are redeemed (ProxyGrantingTicketStore), all on top of a shared
key-value cache.
"""

from typing import Optional, Tuple

from coreason_cas_store.cache import KeyValueCache, get_cache_client
from coreason_cas_store.config import Settings
from coreason_cas_store.exceptions import (
    CacheBackendError,
    InvalidArgumentError,
    MissingContextError,
    MissingPgtIdError,
    MissingPgtIouError,
    MissingTicketError,
    PersistenceFailureError,
    StoreWriteFailedError,
)
from coreason_cas_store.models import RequestContext, SessionRecord, TicketLike, ticket_value
from coreason_cas_store.pgt_store import ProxyGrantingTicketStore
from coreason_cas_store.session_index import SessionIndex
from coreason_cas_store.utils.logger import logger, redact


class TicketStore:
    """
    The ticket store used by the CAS client.
    Coordinates SessionIndex and ProxyGrantingTicketStore.
    """

    def __init__(self, cache: KeyValueCache, settings: Optional[Settings] = None) -> None:
        """
        Initializes the TicketStore.

        Args:
            cache: The key-value cache shared by both stores.
            settings: Namespace, TTL and lookup options. Defaults to Settings().
        """
        self.settings = settings or Settings()
        self.cache = cache
        self.session_index = SessionIndex(
            cache,
            namespace=self.settings.key_namespace,
            ttl_seconds=self.settings.session_ttl_seconds,
            verify_reverse_pointers=self.settings.verify_reverse_pointers,
        )
        self.pgt_store = ProxyGrantingTicketStore(
            cache,
            namespace=self.settings.key_namespace,
            ttl_seconds=self.settings.pgt_iou_ttl_seconds,
        )

    @classmethod
    def from_settings(cls, settings: Optional[Settings] = None) -> "TicketStore":
        """Builds a TicketStore on the process-wide cache client."""
        active = settings or Settings()
        return cls(get_cache_client(active), active)

    def store_service_session_lookup(
        self,
        service_ticket: Optional[TicketLike],
        request_context: Optional[RequestContext],
    ) -> SessionRecord:
        """
        Binds a validated service ticket to the session of the current request.

        The first ticket seen for a session creates its record; later tickets update it.

        Args:
            service_ticket: The service ticket (string or ServiceTicket).
            request_context: The request whose session id is used.

        Returns:
            The stored SessionRecord.

        Raises:
            MissingTicketError: If no service ticket is given.
            MissingContextError: If no request context is given.
            InvalidArgumentError: If the context yields no session id.
            PersistenceFailureError: If the cache write fails or the cache is unreachable.
        """
        st = ticket_value(service_ticket)
        if not st:
            raise MissingTicketError("No service_ticket specified.")
        if request_context is None:
            raise MissingContextError("No request context specified.")

        session_id = request_context.resolve_session_id()
        if not session_id:
            raise InvalidArgumentError("Unable to resolve a session id from the request context.")

        try:
            return self.session_index.upsert_for_ticket(st, session_id, request_context)
        except (StoreWriteFailedError, CacheBackendError) as e:
            logger.error(f"Unable to store session {session_id} for service ticket {redact(st)}: {e}")
            raise PersistenceFailureError(
                f"Unable to store session {session_id} for service ticket {redact(st)}."
            ) from e

    def get_session_for_service_ticket(
        self, service_ticket: Optional[TicketLike]
    ) -> Tuple[Optional[str], Optional[SessionRecord]]:
        """
        Looks up the session bound to a service ticket.

        Returns:
            A tuple of (session_id, session_record). Either half may be None; the
            record alone is None when it expired before the ticket key did.

        Raises:
            MissingTicketError: If no service ticket is given.
        """
        st = ticket_value(service_ticket)
        if not st:
            raise MissingTicketError("No service_ticket specified.")
        return self.session_index.find_by_ticket(st)

    def read_service_session_lookup(self, service_ticket: Optional[TicketLike]) -> Optional[str]:
        """
        Returns the session id bound to a service ticket, or None.

        Raises:
            MissingTicketError: If no service ticket is given.
        """
        st = ticket_value(service_ticket)
        if not st:
            raise MissingTicketError("No service_ticket specified.")
        return self.session_index.find_session_id_by_ticket(st)

    def cleanup_service_session_lookup(self, service_ticket: Optional[TicketLike]) -> None:
        """
        No cleanup is needed: both keys expire through the cache TTL.
        The ticket is still validated for API compliance.

        Raises:
            MissingTicketError: If no service ticket is given.
        """
        st = ticket_value(service_ticket)
        if not st:
            raise MissingTicketError("No service_ticket specified.")
        self.session_index.invalidate(st)

    def save_pgt_iou(self, pgt_iou: Optional[str], pgt_id: Optional[str]) -> None:
        """
        Stores a proxy-granting ticket under its IOU.

        Raises:
            MissingPgtIouError: If no pgt_iou is given.
            MissingPgtIdError: If no pgt is given.
            PersistenceFailureError: If the cache write fails.
        """
        if not pgt_iou:
            raise MissingPgtIouError("Invalid pgt_iou")
        if not pgt_id:
            raise MissingPgtIdError("Invalid pgt")
        try:
            self.pgt_store.create(pgt_iou, pgt_id)
        except StoreWriteFailedError as e:
            logger.error(f"Unable to store pgt_iou {redact(pgt_iou)}: {e}")
            raise PersistenceFailureError(f"Unable to store pgt_iou {redact(pgt_iou)}.") from e

    def retrieve_pgt(self, pgt_iou: Optional[str]) -> str:
        """
        Returns the proxy-granting ticket for an IOU and forgets it.

        Raises:
            MissingPgtIouError: If no pgt_iou is given.
            NotFoundError: If the IOU is unknown or was already retrieved.
        """
        if not pgt_iou:
            raise MissingPgtIouError("No pgt_iou specified. Cannot retrieve the pgt.")
        return self.pgt_store.redeem(pgt_iou)

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
Bidirectional session <-> service ticket index.

Two independent cache keys make up the index:

    session:<session_id>     -> SessionRecord (forward key)
    ticket:<service_ticket>  -> session_id    (reverse key)

The cache offers no multi-key transaction, so the pair can drift apart: when a session
moves to a new ticket the old reverse key is left behind, and either key can expire on
its own. Lookups therefore treat each key independently.
"""

from typing import Optional, Tuple

from coreason_cas_store.cache import KeyValueCache
from coreason_cas_store.exceptions import (
    CacheBackendError,
    InvalidArgumentError,
    StoreWriteFailedError,
    TicketStoreError,
)
from coreason_cas_store.keys import SESSION_PREFIX, TICKET_PREFIX, namespaced_key
from coreason_cas_store.models import RequestContext, SessionRecord
from coreason_cas_store.utils.logger import logger, redact


class SessionIndex:
    """
    Maintains the session_id -> SessionRecord and service_ticket -> session_id mappings.
    """

    def __init__(
        self,
        cache: KeyValueCache,
        namespace: Optional[str] = None,
        ttl_seconds: Optional[int] = None,
        verify_reverse_pointers: bool = False,
    ) -> None:
        """
        Initializes the SessionIndex.

        Args:
            cache: The key-value cache holding both keys.
            namespace: Optional prefix for every key.
            ttl_seconds: TTL handed to the cache on every write. None means no expiry.
            verify_reverse_pointers: If True, a ticket lookup is only trusted when the
                session record still names that ticket.
        """
        self.cache = cache
        self.namespace = namespace
        self.ttl_seconds = ttl_seconds
        self.verify_reverse_pointers = verify_reverse_pointers

    def session_key(self, session_id: str) -> str:
        return namespaced_key(SESSION_PREFIX, session_id, self.namespace)

    def ticket_key(self, service_ticket: str) -> str:
        return namespaced_key(TICKET_PREFIX, service_ticket, self.namespace)

    def upsert_for_ticket(
        self,
        service_ticket: str,
        session_id: str,
        context: Optional[RequestContext] = None,
    ) -> SessionRecord:
        """
        Creates or updates the session record backing `session_id`.

        A new record is written when none exists for the session, and `context` is told
        about it so the framework does not create a duplicate session of its own. An
        existing record keeps its attributes and only has its service_ticket replaced.
        In both cases the reverse key for `service_ticket` is written; the reverse key
        of a previous ticket is left untouched.

        Args:
            service_ticket: The validated service ticket.
            session_id: The session to bind it to.
            context: Receives the record when a new one is created.

        Returns:
            The record as written.

        Raises:
            InvalidArgumentError: If either identifier is empty.
            StoreWriteFailedError: If a write did not succeed. The forward key is
                restored to its previous state before this is raised.
        """
        if not service_ticket:
            raise InvalidArgumentError("No service_ticket specified.")
        if not session_id:
            raise InvalidArgumentError("No session_id specified.")

        forward_key = self.session_key(session_id)
        previous_raw = self.cache.get(forward_key)
        existing = self._parse(previous_raw, session_id)

        if existing is None:
            logger.info(f"Session {session_id} not found in the session store. Creating it now.")
            record = SessionRecord(session_id=session_id, service_ticket=service_ticket)
        else:
            logger.debug(f"Updating session {session_id} with ticket {redact(service_ticket)}.")
            record = existing.model_copy(update={"service_ticket": service_ticket})
        # a corrupt previous document is not worth restoring
        restore_raw = previous_raw if existing is not None else None

        self._write(forward_key, record.dumps(), f"session {session_id}")
        try:
            self._write(self.ticket_key(service_ticket), session_id, f"ticket {redact(service_ticket)}")
        except StoreWriteFailedError:
            logger.error(
                f"Reverse key write failed for session {session_id}; restoring the session key."
            )
            self._restore(forward_key, restore_raw)
            raise

        if existing is None and context is not None:
            context.attach_session_record(record)
        return record

    def find_by_session_id(self, session_id: str) -> Optional[SessionRecord]:
        """
        Retrieves the session record for a session id.

        Returns:
            The SessionRecord, or None if it was never written or has expired.
        """
        if not session_id:
            return None
        return self._parse(self.cache.get(self.session_key(session_id)), session_id)

    def find_session_id_by_ticket(self, service_ticket: str) -> Optional[str]:
        """
        Retrieves the session id a service ticket was bound to.

        Returns:
            The session id, or None if the ticket was never indexed or has expired.
        """
        if not service_ticket:
            return None
        return self.cache.get(self.ticket_key(service_ticket)) or None

    def find_by_ticket(self, service_ticket: str) -> Tuple[Optional[str], Optional[SessionRecord]]:
        """
        Resolves a service ticket to its session id and session record.

        The two halves are independent: if the reverse key resolves but the session record
        has expired, the result is `(session_id, None)`.
        """
        session_id = self.find_session_id_by_ticket(service_ticket)
        if session_id is None:
            return None, None
        record = self.find_by_session_id(session_id)
        if self.verify_reverse_pointers and record is not None and record.service_ticket != service_ticket:
            logger.debug(f"Ignoring stale ticket {redact(service_ticket)} for session {session_id}.")
            return None, None
        return session_id, record

    def invalidate(self, service_ticket: str) -> None:
        """
        Validates the ticket and leaves both keys to expire through the cache TTL.

        Raises:
            InvalidArgumentError: If the ticket is empty.
        """
        if not service_ticket:
            raise InvalidArgumentError("No service_ticket specified.")

    def _write(self, key: str, value: str, label: str) -> None:
        try:
            stored = self.cache.set(key, value, ttl=self.ttl_seconds)
        except CacheBackendError as e:
            raise StoreWriteFailedError(f"Unable to write {label}: {e}") from e
        if not stored:
            raise StoreWriteFailedError(f"Unable to write {label}: the cache rejected the write.")

    def _restore(self, key: str, previous_raw: Optional[str]) -> None:
        try:
            if previous_raw is None:
                self.cache.delete(key)
            else:
                self.cache.set(key, previous_raw, ttl=self.ttl_seconds)
        except TicketStoreError as e:
            logger.error(f"Could not restore {key}: {e}")

    @staticmethod
    def _parse(raw: Optional[str], session_id: str) -> Optional[SessionRecord]:
        if raw is None:
            return None
        try:
            return SessionRecord.loads(raw, session_id)
        except ValueError as e:
            logger.warning(f"Discarding unreadable session document for {session_id}: {e}")
            return None

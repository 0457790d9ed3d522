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
Data models for the CAS ticket store.

This module defines the Pydantic models persisted in the cache (SessionRecord),
the value objects passed in by the CAS client (ServiceTicket, ProxyGrantingTicketIou)
and the RequestContext protocol through which the web framework hands over its session id.
"""

import json
from typing import Any, Dict, Optional, Protocol, Union, runtime_checkable

from pydantic import BaseModel, Field, field_validator

RESERVED_SESSION_FIELDS = ("session_id", "service_ticket")


class ServiceTicket(BaseModel):
    """
    A service ticket issued by the CAS server.

    Attributes:
        ticket: The opaque ticket string (e.g. "ST-1-abc").
        service: The service URL the ticket was issued for, if known.
    """

    ticket: str
    service: Optional[str] = None


TicketLike = Union[str, ServiceTicket]


def ticket_value(service_ticket: Optional[TicketLike]) -> Optional[str]:
    """Unwraps a ServiceTicket into its ticket string; plain strings pass through."""
    if isinstance(service_ticket, ServiceTicket):
        return service_ticket.ticket
    return service_ticket


class SessionRecord(BaseModel):
    """
    The session document stored under `session:<session_id>`.

    Attributes:
        session_id: The application session identifier.
        service_ticket: The service ticket that most recently backed this session.
        attributes: Any additional session attributes, keyed by name.
    """

    session_id: str
    service_ticket: Optional[str] = None
    attributes: Dict[str, Any] = Field(default_factory=dict)

    @field_validator("attributes")
    @classmethod
    def check_reserved_names(cls, v: Dict[str, Any]) -> Dict[str, Any]:
        clash = [name for name in RESERVED_SESSION_FIELDS if name in v]
        if clash:
            raise ValueError(f"Session attributes may not use reserved names: {', '.join(clash)}")
        return v

    def to_document(self) -> Dict[str, Any]:
        """
        Flattens the record into a single key -> value document.

        The attributes are merged at the top level next to session_id and service_ticket.
        """
        document: Dict[str, Any] = dict(self.attributes)
        document["session_id"] = self.session_id
        document["service_ticket"] = self.service_ticket
        return document

    @classmethod
    def from_document(cls, document: Dict[str, Any], session_id: Optional[str] = None) -> "SessionRecord":
        """
        Rebuilds a record from a flat document produced by `to_document`.

        Documents written by the web framework itself may lack session_id; the
        `session_id` argument (taken from the cache key) fills it in.

        Raises:
            ValueError: If neither the document nor the argument has a session_id.
        """
        data = dict(document)
        session_id = data.pop("session_id", None) or session_id
        if not session_id:
            raise ValueError("Session document has no session_id")
        service_ticket = data.pop("service_ticket", None)
        return cls(session_id=session_id, service_ticket=service_ticket, attributes=data)

    def dumps(self) -> str:
        """Serializes the record to the JSON blob written to the cache."""
        return json.dumps(self.to_document(), sort_keys=True)

    @classmethod
    def loads(cls, raw: Union[str, bytes], session_id: Optional[str] = None) -> "SessionRecord":
        """Parses a JSON blob read from the cache."""
        document = json.loads(raw)
        if not isinstance(document, dict):
            raise ValueError("Session document must be a JSON object")
        return cls.from_document(document, session_id)


class ProxyGrantingTicketIou(BaseModel):
    """
    A pgt_iou -> pgt_id pair delivered by the CAS proxy callback.

    Attributes:
        pgt_iou: The one-time IOU the CAS server also returns in the validation response.
        pgt_id: The proxy-granting ticket itself.
    """

    pgt_iou: str
    pgt_id: str


@runtime_checkable
class RequestContext(Protocol):
    """
    The part of the web framework's request the ticket store needs.
    """

    def resolve_session_id(self) -> Optional[str]:
        """Returns the session id of the current request (assigning one if the framework does so)."""
        ...

    def attach_session_record(self, record: SessionRecord) -> None:
        """Tells the framework that a stored record now backs its session."""
        ...


class StaticRequestContext(BaseModel):
    """
    RequestContext with a fixed session id.

    Used by the HTTP server and by callers that already resolved the session id themselves.

    Attributes:
        session_id: The session id of the request.
        session_record: Set by the ticket store when it creates a record for this session.
    """

    session_id: Optional[str] = None
    session_record: Optional[SessionRecord] = None

    def resolve_session_id(self) -> Optional[str]:
        return self.session_id

    def attach_session_record(self, record: SessionRecord) -> None:
        self.session_record = record

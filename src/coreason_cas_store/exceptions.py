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
Exception hierarchy for the CAS ticket store.

Validation errors subclass ValueError and lookup misses subclass LookupError so
callers that only know the builtin types still catch them.
"""


class TicketStoreError(Exception):
    """Base class for every error raised by the ticket store."""


class InvalidArgumentError(TicketStoreError, ValueError):
    """A required identifier was missing or empty."""


class MissingTicketError(InvalidArgumentError):
    """No service ticket was specified."""


class MissingContextError(InvalidArgumentError):
    """No request context was specified."""


class MissingPgtIouError(InvalidArgumentError):
    """No pgt_iou was specified."""


class MissingPgtIdError(InvalidArgumentError):
    """No proxy-granting ticket was specified."""


class NotFoundError(TicketStoreError, LookupError):
    """The requested record does not exist (never created, consumed, or expired)."""


class StoreWriteFailedError(TicketStoreError):
    """The cache did not acknowledge a write."""


class PersistenceFailureError(StoreWriteFailedError):
    """Caller-facing name for a failed write, raised by the TicketStore facade."""


class CacheBackendError(TicketStoreError):
    """The cache backend itself failed (connection lost, timeout, ...)."""

# Copyright (c) 2025 CoReason, Inc.
#
# This software is proprietary and dual-licensed.
# Licensed under the Prosperity Public License 3.0 (the "License").
# A copy of the license is available at https://prosperitylicense.com/versions/3.0.0
# For details, see the LICENSE file.
# Commercial use beyond a 30-day trial requires a separate license.
#
# Source Code: https://github.com/CoReason-AI/coreason_cas_store

"""FastAPI server for the CAS proxy callback.

The CAS server delivers proxy-granting tickets by calling back a URL on the client with
`pgtIou` and `pgtId` query parameters. This module receives those callbacks and stores the
pair in the ticket store, and exposes a health check.
"""

from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional

from fastapi import FastAPI, HTTPException, Query
from pydantic import BaseModel

from coreason_cas_store.config import Settings
from coreason_cas_store.exceptions import TicketStoreError
from coreason_cas_store.main import TicketStore
from coreason_cas_store.utils.logger import configure_logging, logger


class ProxyCallbackResponse(BaseModel):
    """Response model for the proxy callback."""

    status: str


class HealthResponse(BaseModel):
    """Response model for service health check."""

    status: str
    backend: str


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Builds the TicketStore on startup from environment settings."""
    settings = Settings()
    configure_logging(settings.log_level)
    app.state.ticket_store = TicketStore.from_settings(settings)
    yield


app = FastAPI(lifespan=lifespan)


@app.get("/cas/proxy_callback", response_model=ProxyCallbackResponse)
def proxy_callback(
    pgt_iou: Optional[str] = Query(None, alias="pgtIou"),
    pgt_id: Optional[str] = Query(None, alias="pgtId"),
) -> ProxyCallbackResponse:
    """Receives a proxy-granting ticket from the CAS server.

    Args:
        pgt_iou: The IOU the CAS server will also return in the validation response.
        pgt_id: The proxy-granting ticket.

    Returns:
        "ok" for the parameterless probe the CAS server sends first, "stored" otherwise.

    Raises:
        HTTPException: 400 if only one parameter is present, 500 if storing fails (Fail Closed).
    """
    if not pgt_iou and not pgt_id:
        return ProxyCallbackResponse(status="ok")
    if not pgt_iou or not pgt_id:
        raise HTTPException(status_code=400, detail="Both pgtIou and pgtId are required")

    try:
        app.state.ticket_store.save_pgt_iou(pgt_iou, pgt_id)
    except TicketStoreError as e:
        logger.error(f"Proxy callback failed: {e}")
        raise HTTPException(status_code=500, detail="Unable to store proxy-granting ticket") from e
    return ProxyCallbackResponse(status="stored")


@app.get("/health", response_model=HealthResponse)
def health() -> HealthResponse:
    """Checks the health of the ticket store.

    Raises:
        HTTPException: 503 if the ticket store is not initialized.
    """
    ticket_store = getattr(app.state, "ticket_store", None)
    if ticket_store is None:
        raise HTTPException(status_code=503, detail="Ticket store not initialized")
    return HealthResponse(status="ok", backend=getattr(ticket_store.cache, "name", "custom"))

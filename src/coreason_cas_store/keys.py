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
Cache key layout.

    session:<session_id>      -> serialized SessionRecord
    ticket:<service_ticket>   -> session_id
    pgtiou:<pgt_iou>          -> pgt_id

An optional namespace is prepended as `<namespace>:` to every key.
"""

from typing import Optional

SESSION_PREFIX = "session"
TICKET_PREFIX = "ticket"
PGT_IOU_PREFIX = "pgtiou"


def namespaced_key(prefix: str, value: str, namespace: Optional[str] = None) -> str:
    key = f"{prefix}:{value}"
    if namespace:
        return f"{namespace}:{key}"
    return key

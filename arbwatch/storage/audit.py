"""Audit trail sink.

Accepts (actor, action, target, payload) events. The payload is stored
as a SHA-256 hash plus a short preview. A failing sink is logged and
never breaks the calling flow.
"""

import hashlib
import json
from typing import Any

import structlog

from ..core.models import AuditEntry
from .base import Storage

logger = structlog.get_logger()

PREVIEW_CHARS = 200


def _encode_payload(payload: Any) -> str:
    return json.dumps(payload, default=str, sort_keys=True)


class AuditLog:

    def __init__(self, storage: Storage):
        self._storage = storage

    async def record(
        self,
        actor: str,
        action: str,
        target: str | None = None,
        payload: Any = None,
    ) -> AuditEntry | None:
        payload_string = _encode_payload(payload if payload is not None else {})
        preview = payload_string
        if len(preview) > PREVIEW_CHARS:
            preview = preview[:PREVIEW_CHARS] + "..."

        entry = AuditEntry(
            actor=actor,
            action=action,
            target=target,
            payload_hash=hashlib.sha256(payload_string.encode()).hexdigest(),
            payload_preview=preview,
        )

        try:
            return await self._storage.create_audit_entry(entry)
        except Exception:
            logger.exception("audit_write_failed", actor=actor, action=action, target=target)
            return None

    async def system(self, action: str, target: str | None = None, payload: Any = None) -> AuditEntry | None:
        return await self.record("system", action, target, payload)

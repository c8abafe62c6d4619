import json
from typing import Any

from flask import g, has_request_context
from sqlalchemy.orm import Session

from app.cms.models import AdminUser, AuditEvent


def record_event(
    s: Session,
    *,
    actor: AdminUser | None,
    action: str,
    entity_type: str | None = None,
    entity_id: str | None = None,
    reason: str | None = None,
    metadata: dict[str, Any] | None = None,
    request_id: str | None = None,
) -> AuditEvent:
    """
    Append-only audit event helper.
    """
    client_ip = None
    rid = request_id
    if has_request_context():
        from app.cms.security import client_ip as _client_ip
        from flask import request

        rid = rid or getattr(g, "request_id", None)
        client_ip = _client_ip(request)
    ev = AuditEvent(
        request_id=rid,
        actor_user_id=actor.id if actor else None,
        actor_username=actor.username if actor else None,
        action=action,
        entity_type=entity_type,
        entity_id=entity_id,
        reason=reason,
        metadata_json=json.dumps(metadata, sort_keys=True, default=str) if metadata else None,
        client_ip=client_ip,
    )
    s.add(ev)
    return ev

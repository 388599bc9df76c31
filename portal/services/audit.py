from __future__ import annotations
from typing import Any, Dict, Optional
from flask import g
from portal import get_db
from portal.models.audit import AuditLog


def add_audit(action: str, entity: Optional[str] = None, entity_id: Optional[Any] = None,
              meta: Optional[Dict[str, Any]] = None, actor_user_id: Optional[int] = None):
    """Stage an audit log entry in the current DB session.

    Parameters:
      action: short action code e.g. ROLE.CREATE, ROLE.UPDATE, USER.DEACTIVATE, AUTH.LOGIN
      entity: optional entity name (Role, User)
      entity_id: optional primary key
      meta: additional JSON-safe dictionary (shallow copied)
      actor_user_id: explicit actor; defaults to the request principal when one was resolved
    """
    session = get_db()
    principal = g.get('principal')
    actor = actor_user_id if actor_user_id is not None else (principal.user_id if principal else 0)
    log = AuditLog(
        actor_user_id=actor,
        actor_role=principal.role_tag if principal else None,
        action=action,
        entity=entity,
        entity_id=str(entity_id) if entity_id is not None else None,
        meta=dict(meta or {}),
    )
    session.add(log)
    # No commit here; caller's transaction boundary controls durability.
    return log

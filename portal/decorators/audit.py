from __future__ import annotations
"""Audit logging decorator for management endpoints.

@audit_log('ROLE.CREATE', entity='Role', entity_id_key='id', meta_keys=['role_name'])
def create_role(): ... return {'id': role.id, 'role_name': role.role_name}, 201

@audit_log('ROLE.UPDATE', entity='Role', entity_id_arg='role_id',
           diff_keys=['permissions', 'status'], pre_fetch=lambda a, kw: _snapshot(kw['role_id']))
def update_role(role_id): ...

Only successful responses (status < 400) are audited. Audit failures are logged
and never change the endpoint's response.
"""

from functools import wraps
from typing import Any, Callable, Dict, Iterable, Optional

from flask import current_app

from portal import get_db
from portal.services.audit import add_audit


def _split(rv: Any):
    """Return (payload, status) for the common Flask return shapes."""
    if isinstance(rv, tuple) and rv:
        status = rv[1] if len(rv) > 1 and isinstance(rv[1], int) else 200
        return rv[0], status
    return rv, 200


def audit_log(
    action: str,
    *,
    entity: Optional[str] = None,
    entity_id_key: Optional[str] = None,
    entity_id_arg: Optional[str] = None,
    meta_keys: Optional[Iterable[str]] = None,
    diff_keys: Optional[Iterable[str]] = None,
    pre_fetch: Optional[Callable[[tuple, dict], Dict[str, Any]]] = None,
):
    def outer(fn):
        @wraps(fn)
        def wrapper(*args, **kwargs):
            before = pre_fetch(args, kwargs) if (diff_keys and pre_fetch) else None
            rv = fn(*args, **kwargs)
            data, status = _split(rv)
            if status >= 400:
                return rv
            try:
                data = data if isinstance(data, dict) else {}
                entity_id = data.get(entity_id_key) if entity_id_key else None
                if entity_id is None and entity_id_arg:
                    entity_id = kwargs.get(entity_id_arg)
                meta = {k: data.get(k) for k in (meta_keys or ()) if k in data}
                if diff_keys and before:
                    changes = {
                        k: {'before': before.get(k), 'after': data.get(k)}
                        for k in diff_keys
                        if k in before and k in data and before.get(k) != data.get(k)
                    }
                    if changes:
                        meta['changes'] = changes
                add_audit(action, entity, entity_id, meta)
                get_db().commit()
            except Exception:
                current_app.logger.exception('Audit write failed for %s', action)
                get_db().rollback()
            return rv
        return wrapper
    return outer

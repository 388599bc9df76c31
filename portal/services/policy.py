from __future__ import annotations
from typing import Optional
from flask import abort, g, request
from flask_jwt_extended import get_jwt, verify_jwt_in_request
from portal.services.principal import Principal, resolve_principal, load_user_record
from portal.services.tenancy import EffectiveScope, resolve_scope
from portal import get_db


def current_principal() -> Principal:
    """Principal for the current request; resolved once, dropped with the request."""
    principal = g.get('principal')
    if principal is None:
        verify_jwt_in_request()
        session = get_db()
        principal = resolve_principal(get_jwt(), lambda uid: load_user_record(session, uid))
        g.principal = principal
    return principal


def request_scope(requested: Optional[str] = None, *, source: str = 'args') -> EffectiveScope:
    """EffectiveScope for the current principal.

    requested: explicit customer code (path parameter); when omitted it is taken
    from ``customer_code`` in the query string or JSON body depending on source.
    """
    if requested is None:
        if source == 'json':
            requested = (request.get_json(silent=True) or {}).get('customer_code')
        else:
            requested = request.args.get('customer_code')
    return resolve_scope(current_principal(), requested)


def scoped_query(query, column, requested: Optional[str] = None):
    return request_scope(requested).apply(query, column)


def write_tenant_code() -> str:
    """Tenant a created or moved row is written into, from ``customer_code`` in the JSON body.

    Customers always write into their own tenant (403 when they have none);
    admins must name one, a tenant-owned row never ends up without a code.
    """
    scope = request_scope(source='json')
    if scope.matches_nothing:
        abort(403, description='Access denied. No customer code assigned to your account')
    code = scope.tenant_code_for_write()
    if code is None:
        abort(400, description='customer_code required')
    return code


__all__ = ['current_principal', 'request_scope', 'scoped_query', 'write_tenant_code']

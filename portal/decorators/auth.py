"""Route decorators binding Flask views to the authorization guard.

Usage:

@require_permission('products', 'add')
def create_product(): ...

@require_any_permission(('payments', 'view'), ('invoice_delivery', 'view'))
def list_statements(): ...

@require_permission('meetings', 'edit')
@require_owner_or_admin(lambda meeting_id: _meeting_owner(meeting_id))
def update_meeting(meeting_id): ...

The owner lookup receives the view's keyword arguments (path parameters).
"""
from functools import wraps
from typing import Any, Callable, Tuple
from werkzeug.exceptions import Forbidden
from portal.services import guard
from portal.services.policy import current_principal


def require_permission(module: str, operation: str = 'view'):
    def outer(fn):
        @wraps(fn)
        def wrapper(*args, **kwargs):
            guard.require(current_principal(), module, operation)
            return fn(*args, **kwargs)
        return wrapper
    return outer


def require_module_access(module: str):
    def outer(fn):
        @wraps(fn)
        def wrapper(*args, **kwargs):
            guard.require_module_access(current_principal(), module)
            return fn(*args, **kwargs)
        return wrapper
    return outer


def require_any_permission(*pairs: Tuple[str, str]):
    def outer(fn):
        @wraps(fn)
        def wrapper(*args, **kwargs):
            guard.require_any(current_principal(), pairs)
            return fn(*args, **kwargs)
        return wrapper
    return outer


def require_owner_or_admin(owner_lookup: Callable[..., Any]):
    def outer(fn):
        @wraps(fn)
        def wrapper(*args, **kwargs):
            guard.require_owner_or_admin(current_principal(), lambda: owner_lookup(**kwargs))
            return fn(*args, **kwargs)
        return wrapper
    return outer


def require_authenticated(fn):
    @wraps(fn)
    def wrapper(*args, **kwargs):
        current_principal()
        return fn(*args, **kwargs)
    return wrapper


def require_admin(fn):
    @wraps(fn)
    def wrapper(*args, **kwargs):
        if not current_principal().is_admin:
            raise Forbidden(description='Admin access required')
        return fn(*args, **kwargs)
    return wrapper

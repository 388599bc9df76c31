"""Authorization guard: the single place that answers "may this principal do X".

All checks share one admin bypass, evaluated first. Non-admin principals are
judged purely from their normalized permission document; a principal without a
document (no role, or an inactive role) is denied every module check.
"""
from __future__ import annotations
import logging
from typing import Any, Callable, Iterable, Tuple

from portal.errors import ModuleAccessDenied, OwnershipLookupError, OwnershipRequired, PermissionDenied
from portal.services.principal import Principal

logger = logging.getLogger(__name__)

Requirement = Tuple[str, str]


def _bypass(principal: Principal) -> bool:
    return principal.is_admin


def _has(principal: Principal, module: str, operation: str) -> bool:
    doc = principal.permission_document
    return doc is not None and doc.has(module, operation)


def require(principal: Principal, module: str, operation: str) -> None:
    if _bypass(principal):
        return
    if not _has(principal, module, operation):
        logger.info('User %s denied %s.%s', principal.user_id, module, operation)
        raise PermissionDenied([(module, operation)])


def require_module_access(principal: Principal, module: str) -> None:
    if _bypass(principal):
        return
    doc = principal.permission_document
    if doc is None or not doc.has_any(module):
        logger.info('User %s denied module %s', principal.user_id, module)
        raise ModuleAccessDenied(module)


def require_any(principal: Principal, requirements: Iterable[Requirement]) -> None:
    """Allow when at least one (module, operation) pair is granted."""
    if _bypass(principal):
        return
    pairs = [tuple(r) for r in requirements]
    if not pairs:
        raise ValueError('require_any needs at least one (module, operation) pair')
    if any(_has(principal, m, o) for m, o in pairs):
        return
    logger.info('User %s denied all of %s', principal.user_id, pairs)
    raise PermissionDenied(pairs)


def require_owner_or_admin(principal: Principal, resource_owner_id: Callable[[], Any]) -> None:
    """Allow admins, or the principal the lookup names as owner.

    The lookup runs exactly once. Its failures surface as OwnershipLookupError,
    never as a grant and never as OwnershipRequired.
    """
    if _bypass(principal):
        return
    try:
        owner_id = resource_owner_id()
    except Exception as e:
        raise OwnershipLookupError(f'resource owner lookup failed: {e}') from e
    if owner_id is not None and _same_id(owner_id, principal.user_id):
        return
    logger.info('User %s is not the owner (owner=%s)', principal.user_id, owner_id)
    raise OwnershipRequired()


def _same_id(owner_id: Any, user_id: int) -> bool:
    # owner ids read from request data may arrive as strings
    try:
        return int(owner_id) == int(user_id)
    except (TypeError, ValueError):
        return False


__all__ = ['require', 'require_module_access', 'require_any', 'require_owner_or_admin']

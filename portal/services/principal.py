"""Principal resolution: verified token claims -> per-request caller identity."""
from __future__ import annotations
import logging
from dataclasses import dataclass
from typing import Any, Callable, Mapping, Optional

from portal.constants.permissions import ROLE_ADMIN, ROLE_CUSTOMER, STATUS_ACTIVE
from portal.errors import AccountInactive, Unauthenticated
from portal.services.permission_document import PermissionDocument, normalize

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Principal:
    user_id: int
    role_tag: str
    tenant_code: Optional[str] = None
    permission_document: Optional[PermissionDocument] = None
    role_id: Optional[int] = None

    @property
    def is_admin(self) -> bool:
        return self.role_tag == ROLE_ADMIN


@dataclass(frozen=True)
class UserRecord:
    """Fields of the stored user the resolver needs, detached from the ORM."""
    id: int
    role: str
    status: str
    customer_code: Optional[str] = None
    role_id: Optional[int] = None
    role_status: Optional[str] = None
    role_permissions: Any = None


UserLoader = Callable[[int], Optional[UserRecord]]


def _identity(claims: Mapping[str, Any]) -> int:
    raw = claims.get('sub')
    try:
        return int(raw)
    except (TypeError, ValueError):
        raise Unauthenticated('Authentication required')


def resolve_principal(claims: Mapping[str, Any], load_user: UserLoader) -> Principal:
    """Build the Principal for verified JWT claims.

    The stored user row is authoritative: role tag, tenant code and role are
    re-read through ``load_user`` on every call, so claims baked into an older
    token never outlive a change made by an administrator.
    """
    user_id = _identity(claims)
    record = load_user(user_id)
    if record is None:
        raise Unauthenticated('User not found')
    if record.status != STATUS_ACTIVE:
        raise AccountInactive()
    if record.role == ROLE_ADMIN:
        return Principal(user_id=record.id, role_tag=ROLE_ADMIN, tenant_code=record.customer_code)
    document = None
    if record.role_id is not None and record.role_status == STATUS_ACTIVE:
        document = normalize(record.role_permissions, source=f'role {record.role_id}')
    elif record.role_id is not None:
        logger.info('Role %s of user %s is inactive; no permissions granted', record.role_id, record.id)
    return Principal(
        user_id=record.id,
        role_tag=ROLE_CUSTOMER,
        tenant_code=record.customer_code or None,
        permission_document=document,
        role_id=record.role_id,
    )


def load_user_record(session, user_id: int) -> Optional[UserRecord]:
    """Default loader reading User + Role with a forced refresh of both rows."""
    from sqlalchemy import select
    from portal.models.authz import User, Role
    user = session.execute(
        select(User).where(User.id == user_id).execution_options(populate_existing=True)
    ).scalar_one_or_none()
    if user is None:
        return None
    role = None
    if user.role_id is not None:
        role = session.execute(
            select(Role).where(Role.id == user.role_id).execution_options(populate_existing=True)
        ).scalar_one_or_none()
    return UserRecord(
        id=user.id,
        role=user.role,
        status=user.status,
        customer_code=user.customer_code,
        role_id=role.id if role else None,
        role_status=role.status if role else None,
        role_permissions=role.permissions if role else None,
    )


__all__ = ['Principal', 'UserRecord', 'resolve_principal', 'load_user_record']

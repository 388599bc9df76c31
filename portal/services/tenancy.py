"""Tenant scope filter.

``resolve_scope`` turns (principal, requested customer code) into an
EffectiveScope carrying an explicit mode, because "no code" means opposite
things for the two roles: an admin with no code sees every tenant, a customer
with no code sees nothing.
"""
from __future__ import annotations
from dataclasses import dataclass
from typing import Optional

from sqlalchemy import false

from portal.errors import TenantScopeViolation
from portal.services.principal import Principal

SCOPE_ALL = 'all'
SCOPE_TENANT = 'tenant'
SCOPE_NONE = 'none'


@dataclass(frozen=True)
class EffectiveScope:
    mode: str
    tenant_code: Optional[str] = None

    @classmethod
    def all(cls) -> 'EffectiveScope':
        return cls(SCOPE_ALL)

    @classmethod
    def tenant(cls, code: str) -> 'EffectiveScope':
        return cls(SCOPE_TENANT, code)

    @classmethod
    def nothing(cls) -> 'EffectiveScope':
        return cls(SCOPE_NONE)

    @property
    def is_unrestricted(self) -> bool:
        return self.mode == SCOPE_ALL

    @property
    def matches_nothing(self) -> bool:
        return self.mode == SCOPE_NONE

    def apply(self, query, column):
        """Add the tenant predicate for ``column`` to a Query or Select."""
        if self.mode == SCOPE_ALL:
            return query
        if self.mode == SCOPE_TENANT:
            return query.where(column == self.tenant_code)
        return query.where(false())

    def allows(self, code: Optional[str]) -> bool:
        if self.mode == SCOPE_ALL:
            return True
        if self.mode == SCOPE_TENANT:
            return code == self.tenant_code
        return False

    def tenant_code_for_write(self) -> Optional[str]:
        return self.tenant_code if self.mode == SCOPE_TENANT else None


def _clean(code: Optional[str]) -> Optional[str]:
    if code is None:
        return None
    code = str(code).strip()
    return code or None


def resolve_scope(principal: Principal, requested_tenant_code: Optional[str] = None) -> EffectiveScope:
    requested = _clean(requested_tenant_code)
    if principal.is_admin:
        return EffectiveScope.tenant(requested) if requested else EffectiveScope.all()
    own = _clean(principal.tenant_code)
    if requested is not None and requested != own:
        raise TenantScopeViolation(requested, own)
    if own is None:
        return EffectiveScope.nothing()
    return EffectiveScope.tenant(own)


__all__ = ['EffectiveScope', 'resolve_scope', 'SCOPE_ALL', 'SCOPE_TENANT', 'SCOPE_NONE']

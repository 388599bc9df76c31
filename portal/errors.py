"""Access-control outcomes.

Each deny outcome is an HTTPException so the app-wide error handler renders it
with the right status and a message naming exactly what was missing.
"""
from __future__ import annotations
from typing import Optional, Sequence, Tuple
from werkzeug.exceptions import Forbidden, Unauthorized


class AccessError:
    """Mixin tagging an HTTPException with a machine-readable kind."""
    kind = 'ACCESS_DENIED'


class Unauthenticated(AccessError, Unauthorized):
    kind = 'UNAUTHENTICATED'

    def __init__(self, description: str = 'Authentication required'):
        super().__init__(description=description)


class AccountInactive(AccessError, Unauthorized):
    kind = 'ACCOUNT_INACTIVE'

    def __init__(self, description: str = 'Account is inactive'):
        super().__init__(description=description)


class PermissionDenied(AccessError, Forbidden):
    kind = 'PERMISSION_DENIED'

    def __init__(self, alternatives: Sequence[Tuple[str, str]]):
        self.alternatives = tuple(alternatives)
        codes = [f'{m}.{o}' for m, o in self.alternatives]
        if len(codes) == 1:
            description = f'Permission denied. Required permission: {codes[0]}'
        else:
            description = f"Permission denied. Required permissions: {' or '.join(codes)}"
        super().__init__(description=description)

    @property
    def module(self) -> Optional[str]:
        return self.alternatives[0][0] if len(self.alternatives) == 1 else None

    @property
    def operation(self) -> Optional[str]:
        return self.alternatives[0][1] if len(self.alternatives) == 1 else None


class ModuleAccessDenied(AccessError, Forbidden):
    kind = 'MODULE_ACCESS_DENIED'

    def __init__(self, module: str):
        self.module = module
        super().__init__(description=f'Access denied. No permissions for module: {module}')


class OwnershipRequired(AccessError, Forbidden):
    kind = 'OWNERSHIP_REQUIRED'

    def __init__(self):
        super().__init__(description='Access denied. You can only access your own resources.')


class TenantScopeViolation(AccessError, Forbidden):
    kind = 'TENANT_SCOPE_VIOLATION'

    def __init__(self, requested: str, actual: Optional[str]):
        self.requested = requested
        self.actual = actual
        super().__init__(
            description=f'Access denied. Customer code {requested} is outside your scope ({actual or "unassigned"})'
        )


class OwnershipLookupError(RuntimeError):
    """Resource-owner lookup failed; neither an allow nor an ownership denial."""


__all__ = [
    'AccessError', 'Unauthenticated', 'AccountInactive', 'PermissionDenied', 'ModuleAccessDenied',
    'OwnershipRequired', 'TenantScopeViolation', 'OwnershipLookupError',
]

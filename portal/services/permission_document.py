"""Role capability documents: module -> operation -> bool.

Stored role permissions are loose JSON written by the admin UI. They are
normalized exactly once when a principal is resolved; everything downstream
works with the immutable :class:`PermissionDocument` produced here.

Normalization is fail-closed: anything that is not literally ``true`` for a
known module/operation pair becomes ``false``, and input that cannot be read at
all yields the fully denied document instead of an error.
"""
from __future__ import annotations
import json
import logging
from dataclasses import dataclass, fields
from types import MappingProxyType
from typing import Any, Dict, Mapping, Optional

from portal.constants.permissions import MODULE_OPERATIONS, MODULES, OPERATIONS

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class OperationSet:
    view: bool = False
    add: bool = False
    edit: bool = False
    delete: bool = False

    def allows(self, operation: str) -> bool:
        if operation not in OPERATIONS:
            return False
        return getattr(self, operation)

    def any(self) -> bool:
        return self.view or self.add or self.edit or self.delete

    def to_dict(self) -> Dict[str, bool]:
        return {f.name: getattr(self, f.name) for f in fields(self)}


DENY_ALL = OperationSet()


@dataclass(frozen=True)
class PermissionDocument:
    modules: Mapping[str, OperationSet]

    @classmethod
    def empty(cls) -> 'PermissionDocument':
        return cls(MappingProxyType({m: DENY_ALL for m in MODULES}))

    def operations(self, module: str) -> OperationSet:
        return self.modules.get(module, DENY_ALL)

    def has(self, module: str, operation: str) -> bool:
        return self.operations(module).allows(operation)

    def has_any(self, module: str) -> bool:
        return self.operations(module).any()

    def to_dict(self) -> Dict[str, Dict[str, bool]]:
        return {m: ops.to_dict() for m, ops in self.modules.items()}


def _load(raw: Any) -> Optional[Mapping]:
    if isinstance(raw, (bytes, bytearray)):
        try:
            raw = raw.decode('utf-8')
        except UnicodeDecodeError:
            return None
    if isinstance(raw, str):
        try:
            raw = json.loads(raw)
        except ValueError:
            return None
    if isinstance(raw, Mapping):
        return raw
    return None


def _normalize_module(module: str, value: Any) -> OperationSet:
    if not isinstance(value, Mapping):
        return DENY_ALL
    applicable = MODULE_OPERATIONS[module]
    return OperationSet(**{op: (op in applicable and value.get(op) is True) for op in OPERATIONS})


def normalize(raw: Any, source: Optional[str] = None) -> PermissionDocument:
    """Build a PermissionDocument from stored/request data; never raises.

    source: label for the warning logged when raw cannot be read (e.g. 'role 7').
    """
    data = _load(raw)
    if data is None:
        if raw is not None:
            logger.warning('Unreadable permission document for %s (%s); denying all', source or 'request', type(raw).__name__)
        return PermissionDocument.empty()
    modules = {m: _normalize_module(m, data.get(m)) for m in MODULES}
    return PermissionDocument(MappingProxyType(modules))


__all__ = ['OperationSet', 'PermissionDocument', 'normalize', 'DENY_ALL']

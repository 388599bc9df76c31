"""Central definitions for the module/operation permission vocabulary.
Extend cautiously; stored role documents are normalized against these names, so a
renamed module silently drops every grant recorded under the old name.
"""
from __future__ import annotations
from typing import Dict, Tuple

ROLE_ADMIN = 'admin'
ROLE_CUSTOMER = 'customer'
ROLE_TAGS = (ROLE_ADMIN, ROLE_CUSTOMER)

STATUS_ACTIVE = 'active'
STATUS_INACTIVE = 'inactive'
ACCOUNT_STATUSES = (STATUS_ACTIVE, STATUS_INACTIVE)

OP_VIEW = 'view'
OP_ADD = 'add'
OP_EDIT = 'edit'
OP_DELETE = 'delete'
OPERATIONS: Tuple[str, ...] = (OP_VIEW, OP_ADD, OP_EDIT, OP_DELETE)

# Module -> operations that carry meaning for it. Every module still stores all
# four operations; the ones outside this tuple stay false after normalization.
MODULE_OPERATIONS: Dict[str, Tuple[str, ...]] = {
    'dashboard': (OP_VIEW,),
    'users': OPERATIONS,
    'roles': OPERATIONS,
    'products': OPERATIONS,
    'orders': OPERATIONS,
    'meetings': OPERATIONS,
    'market_reports': OPERATIONS,
    'news': OPERATIONS,
    'payments': OPERATIONS,
    'invoice_delivery': OPERATIONS,
}

MODULES: Tuple[str, ...] = tuple(MODULE_OPERATIONS)

# Presets used by the seed script. Only operations set to True are listed.
ROLE_PRESETS: Dict[str, Dict[str, Tuple[str, ...]]] = {
    'Customer Viewer': {
        'dashboard': (OP_VIEW,),
        'products': (OP_VIEW,),
        'orders': (OP_VIEW,),
        'meetings': (OP_VIEW,),
        'market_reports': (OP_VIEW,),
        'news': (OP_VIEW,),
        'payments': (OP_VIEW,),
        'invoice_delivery': (OP_VIEW,),
    },
    'Customer Manager': {
        'dashboard': (OP_VIEW,),
        'products': (OP_VIEW,),
        'orders': (OP_VIEW, OP_ADD, OP_EDIT),
        'meetings': (OP_VIEW, OP_ADD, OP_EDIT, OP_DELETE),
        'market_reports': (OP_VIEW,),
        'news': (OP_VIEW,),
        'payments': (OP_VIEW, OP_ADD),
        'invoice_delivery': (OP_VIEW,),
    },
    'Content Editor': {
        'dashboard': (OP_VIEW,),
        'products': OPERATIONS,
        'market_reports': OPERATIONS,
        'news': OPERATIONS,
    },
}


def preset_document(name: str) -> Dict[str, Dict[str, bool]]:
    """Expand a preset into the raw nested shape accepted by normalize()."""
    grants = ROLE_PRESETS[name]
    return {module: {op: True for op in ops} for module, ops in grants.items()}

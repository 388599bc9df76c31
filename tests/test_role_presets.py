from sqlalchemy import select
from portal import get_db
from portal.constants.permissions import MODULE_OPERATIONS, ROLE_PRESETS, preset_document
from portal.models.authz import Role
from portal.services.permission_document import normalize


def test_presets_only_name_known_modules_and_operations():
    for name, grants in ROLE_PRESETS.items():
        for module, ops in grants.items():
            assert module in MODULE_OPERATIONS, f'{name}: unknown module {module}'
            assert set(ops) <= set(MODULE_OPERATIONS[module]), f'{name}: {module} has non-applicable ops'


def test_preset_grants_survive_normalization():
    for name, grants in ROLE_PRESETS.items():
        doc = normalize(preset_document(name))
        for module, ops in grants.items():
            for op in ops:
                assert doc.has(module, op), f'{name} lost {module}.{op}'


def test_seed_roles_idempotent(app_instance):
    from scripts.seed_portal import ensure_roles, find_problems
    session = get_db()
    first = ensure_roles(session)
    session.commit()
    assert ensure_roles(session) == 0
    names = set(session.execute(select(Role.role_name)).scalars().all())
    assert set(ROLE_PRESETS) <= names
    assert first in (0, len(ROLE_PRESETS))
    assert not [p for p in find_problems(session) if any(n in p for n in ROLE_PRESETS)]
    session.commit()

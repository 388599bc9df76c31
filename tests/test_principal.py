import pytest
from portal.errors import AccountInactive, Unauthenticated
from portal.services.principal import UserRecord, resolve_principal


def _loader(*records):
    table = {r.id: r for r in records}
    calls = []

    def load(user_id):
        calls.append(user_id)
        return table.get(user_id)
    load.calls = calls
    return load


def test_customer_principal_carries_normalized_document():
    rec = UserRecord(id=7, role='customer', status='active', customer_code='C001', role_id=3,
                     role_status='active', role_permissions={'orders': {'view': True, 'add': 'yes'}})
    p = resolve_principal({'sub': '7'}, _loader(rec))
    assert p.user_id == 7
    assert p.role_tag == 'customer'
    assert p.tenant_code == 'C001'
    assert not p.is_admin
    assert p.permission_document.has('orders', 'view')
    assert not p.permission_document.has('orders', 'add')


def test_admin_principal_needs_no_document():
    rec = UserRecord(id=1, role='admin', status='active')
    p = resolve_principal({'sub': '1'}, _loader(rec))
    assert p.is_admin
    assert p.permission_document is None


def test_stored_row_wins_over_token_claims():
    rec = UserRecord(id=5, role='customer', status='active', customer_code='C005')
    p = resolve_principal({'sub': '5', 'role': 'admin', 'customer_code': 'C999'}, _loader(rec))
    assert not p.is_admin
    assert p.tenant_code == 'C005'


def test_inactive_role_yields_no_document():
    rec = UserRecord(id=9, role='customer', status='active', role_id=4, role_status='inactive',
                     role_permissions={'orders': {'view': True}})
    p = resolve_principal({'sub': '9'}, _loader(rec))
    assert p.permission_document is None
    assert p.role_id == 4


def test_empty_customer_code_becomes_none():
    rec = UserRecord(id=11, role='customer', status='active', customer_code='')
    assert resolve_principal({'sub': '11'}, _loader(rec)).tenant_code is None


def test_inactive_account_rejected():
    rec = UserRecord(id=2, role='customer', status='inactive')
    with pytest.raises(AccountInactive) as exc:
        resolve_principal({'sub': '2'}, _loader(rec))
    assert exc.value.code == 401


def test_missing_user_and_bad_subject_unauthenticated():
    with pytest.raises(Unauthenticated):
        resolve_principal({'sub': '404'}, _loader())
    loader = _loader()
    with pytest.raises(Unauthenticated):
        resolve_principal({'sub': 'abc'}, loader)
    with pytest.raises(Unauthenticated):
        resolve_principal({}, loader)
    assert loader.calls == []

from sqlalchemy import select
from portal import get_db
from portal.models.audit import AuditLog
from tests.test_utils_seed import ensure_admin, ensure_user, grants, login, unique, seed_customer


def _admin_headers(client):
    username = unique('admin')
    ensure_admin(username)
    return login(client, username)


def test_role_crud_flow(client):
    headers = _admin_headers(client)
    name = unique('Viewer')
    resp = client.post('/roles', json={
        'role_name': name,
        'description': 'read only',
        'permissions': {'orders': {'view': True, 'add': 'yes'}, 'bogus': {'view': True}},
    }, headers=headers)
    assert resp.status_code == 201, resp.get_json()
    role = resp.get_json()
    assert role['permissions']['orders'] == {'view': True, 'add': False, 'edit': False, 'delete': False}
    assert 'bogus' not in role['permissions']

    dup = client.post('/roles', json={'role_name': name}, headers=headers)
    assert dup.status_code == 400
    short = client.post('/roles', json={'role_name': 'ab'}, headers=headers)
    assert short.status_code == 400

    listing = client.get(f'/roles?search={name}', headers=headers).get_json()
    assert [r['id'] for r in listing['data']] == [role['id']]
    assert listing['pagination']['total'] == 1

    upd = client.put(f"/roles/{role['id']}", json={'permissions': {'payments': {'view': True}}}, headers=headers)
    assert upd.status_code == 200
    # Wholesale replacement: orders.view is gone
    assert upd.get_json()['permissions']['orders']['view'] is False
    assert upd.get_json()['permissions']['payments']['view'] is True

    session = get_db()
    audit = session.execute(
        select(AuditLog).where(AuditLog.action == 'ROLE.UPDATE', AuditLog.entity_id == str(role['id']))
    ).scalars().one()
    assert 'permissions' in audit.meta['changes']

    deleted = client.delete(f"/roles/{role['id']}", headers=headers)
    assert deleted.status_code == 200
    assert deleted.get_json()['status'] == 'inactive'
    active = client.get('/roles/active', headers=headers).get_json()['data']
    assert role['id'] not in [r['id'] for r in active]


def test_cannot_delete_assigned_role(client):
    headers = _admin_headers(client)
    _, role_id, _ = seed_customer(grants(orders=['view']))
    resp = client.delete(f'/roles/{role_id}', headers=headers)
    assert resp.status_code == 400
    assert resp.get_json()['error']['detail'] == 'Cannot delete role. It is assigned to users.'


def test_role_edit_applies_to_next_request(client):
    headers = _admin_headers(client)
    username = unique('cust')
    role = client.post('/roles', json={'role_name': unique('Orders'), 'permissions': grants(orders=['view'])},
                       headers=headers).get_json()
    ensure_user(username, customer_code=unique('C'), role_id=role['id'])
    customer_headers = login(client, username)

    assert client.get('/orders', headers=customer_headers).status_code == 200
    client.put(f"/roles/{role['id']}", json={'permissions': {}}, headers=headers)
    resp = client.get('/orders', headers=customer_headers)
    assert resp.status_code == 403
    assert resp.get_json()['error']['detail'] == 'Permission denied. Required permission: orders.view'

    client.put(f"/roles/{role['id']}", json={'permissions': grants(orders=['view'])}, headers=headers)
    assert client.get('/orders', headers=customer_headers).status_code == 200
    client.put(f"/roles/{role['id']}", json={'status': 'inactive'}, headers=headers)
    assert client.get('/orders', headers=customer_headers).status_code == 403


def test_roles_endpoints_require_permission(client):
    user_id, _, _ = seed_customer(grants(orders=['view']))
    from tests.test_utils_seed import jwt_headers
    headers = jwt_headers(client.application, user_id)
    assert client.get('/roles', headers=headers).status_code == 403
    assert client.post('/roles', json={'role_name': 'Nope role'}, headers=headers).status_code == 403
    # Any signed-in user may list active roles
    assert client.get('/roles/active', headers=headers).status_code == 200


def test_customer_with_roles_permission_can_manage(client):
    user_id, _, _ = seed_customer(grants(roles=['view', 'add']))
    from tests.test_utils_seed import jwt_headers
    headers = jwt_headers(client.application, user_id)
    assert client.get('/roles', headers=headers).status_code == 200
    created = client.post('/roles', json={'role_name': unique('Delegated')}, headers=headers)
    assert created.status_code == 201
    assert created.get_json()['created_by'] == user_id
    edit = client.put(f"/roles/{created.get_json()['id']}", json={'description': 'x'}, headers=headers)
    assert edit.status_code == 403

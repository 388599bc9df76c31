from portal import get_db
from portal.models.meeting import MeetingMinute
from tests.test_utils_seed import ensure_admin, ensure_user, grants, jwt_headers, ensure_role, unique

EDITOR = grants(meetings=['view', 'add', 'edit', 'delete'])


def test_creator_can_edit_and_colleague_cannot(client, app_instance):
    code = unique('CUST')
    role_id = ensure_role(permissions=EDITOR)
    author = ensure_user(customer_code=code, role_id=role_id)
    # Another user of the same role; customer codes are unique so this one has its own tenant
    colleague = ensure_user(customer_code=unique('CUST'), role_id=role_id)

    created = client.post('/meetings', json={'title': 'Kickoff', 'attendees': ['a', 'b']},
                          headers=jwt_headers(app_instance, author))
    assert created.status_code == 201, created.get_json()
    meeting = created.get_json()
    assert meeting['customer_code'] == code
    assert meeting['created_by'] == author

    edit = client.put(f"/meetings/{meeting['id']}", json={'title': 'Kickoff v2'}, headers=jwt_headers(app_instance, author))
    assert edit.status_code == 200
    assert edit.get_json()['title'] == 'Kickoff v2'

    denied = client.put(f"/meetings/{meeting['id']}", json={'title': 'Hijack'}, headers=jwt_headers(app_instance, colleague))
    assert denied.status_code == 403
    assert denied.get_json()['error']['detail'] == 'Access denied. You can only access your own resources.'


def test_admin_may_edit_any_meeting(client, app_instance):
    code = unique('CUST')
    author = ensure_user(customer_code=code, role_id=ensure_role(permissions=EDITOR))
    session = get_db()
    m = MeetingMinute(title='Review', customer_code=code, created_by=author)
    session.add(m); session.commit()
    meeting_id = m.id

    admin_headers = jwt_headers(app_instance, ensure_admin())
    assert client.put(f'/meetings/{meeting_id}', json={'status': 'finalized'}, headers=admin_headers).status_code == 200
    assert client.delete(f'/meetings/{meeting_id}', headers=admin_headers).status_code == 200


def test_missing_meeting_is_ownership_denial(client, app_instance):
    user = ensure_user(customer_code=unique('CUST'), role_id=ensure_role(permissions=EDITOR))
    resp = client.delete('/meetings/999999', headers=jwt_headers(app_instance, user))
    assert resp.status_code == 403


def test_permission_checked_before_ownership(client, app_instance):
    code = unique('CUST')
    author = ensure_user(customer_code=code, role_id=ensure_role(permissions=grants(meetings=['view', 'add'])))
    session = get_db()
    m = MeetingMinute(title='Mine', customer_code=code, created_by=author)
    session.add(m); session.commit()
    resp = client.put(f'/meetings/{m.id}', json={'title': 'x'}, headers=jwt_headers(app_instance, author))
    assert resp.status_code == 403
    assert resp.get_json()['error']['detail'] == 'Permission denied. Required permission: meetings.edit'


def test_owner_lookup_failure_is_server_error(client, app_instance, monkeypatch):
    import portal.routes.meetings as meetings_mod
    user = ensure_user(customer_code=unique('CUST'), role_id=ensure_role(permissions=EDITOR))
    headers = jwt_headers(app_instance, user)

    class BoomSession:
        def execute(self, *a, **k):
            raise RuntimeError('explode')
    monkeypatch.setattr(meetings_mod, 'get_db', lambda: BoomSession())
    resp = client.delete('/meetings/1', headers=headers)
    assert resp.status_code == 500
    assert resp.get_json()['error']['title'] == 'Internal Server Error'

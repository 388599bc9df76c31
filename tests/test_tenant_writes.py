from sqlalchemy import select
from portal import get_db
from portal.models.market_report import MarketReport
from portal.models.order import Order
from tests.test_utils_seed import ensure_admin, ensure_role, ensure_user, grants, jwt_headers, seed_customer, unique

REPORT_GRANTS = grants(market_reports=['view', 'add', 'edit', 'delete'])


def _global_report(title='Shared outlook'):
    session = get_db()
    r = MarketReport(title=title, status='published')
    session.add(r); session.commit()
    return r.id


def test_customer_without_code_cannot_publish_global_report(client, app_instance):
    role_id = ensure_role(permissions=REPORT_GRANTS)
    headers = jwt_headers(app_instance, ensure_user(role_id=role_id))
    resp = client.post('/market-research', json={'title': 'Leak', 'status': 'published'}, headers=headers)
    assert resp.status_code == 403
    session = get_db()
    assert session.execute(select(MarketReport).where(MarketReport.title == 'Leak')).scalars().all() == []


def test_customer_cannot_change_global_reports(client, app_instance):
    report_id = _global_report()
    user_id, _, code = seed_customer(REPORT_GRANTS)
    headers = jwt_headers(app_instance, user_id)

    edit = client.put(f'/market-research/{report_id}', json={'title': 'Defaced'}, headers=headers)
    assert edit.status_code == 403
    moved = client.put(f'/market-research/{report_id}', json={'customer_code': code}, headers=headers)
    assert moved.status_code == 403
    assert client.delete(f'/market-research/{report_id}', headers=headers).status_code == 403

    reader_id, _, _ = seed_customer(grants(market_reports=['view']))
    seen = client.get(f'/market-research/{report_id}', headers=jwt_headers(app_instance, reader_id))
    assert seen.status_code == 200
    assert seen.get_json()['title'] == 'Shared outlook'
    assert seen.get_json()['customer_code'] is None


def test_customer_edits_and_deletes_own_tenant_report(client, app_instance):
    user_id, _, code = seed_customer(REPORT_GRANTS)
    headers = jwt_headers(app_instance, user_id)
    created = client.post('/market-research', json={'title': 'Mine', 'status': 'published'}, headers=headers)
    assert created.status_code == 201
    report = created.get_json()
    assert report['customer_code'] == code

    edited = client.put(f"/market-research/{report['id']}", json={'summary': 'Updated'}, headers=headers)
    assert edited.status_code == 200
    assert edited.get_json()['summary'] == 'Updated'
    assert client.delete(f"/market-research/{report['id']}", headers=headers).status_code == 200


def test_admin_keeps_global_report_authoring(client, app_instance):
    report_id = _global_report('Admin outlook')
    admin = jwt_headers(app_instance, ensure_admin())
    resp = client.put(f'/market-research/{report_id}', json={'title': 'Admin outlook v2'}, headers=admin)
    assert resp.status_code == 200
    assert resp.get_json()['customer_code'] is None


def test_admin_order_and_meeting_writes_require_customer_code(client, app_instance):
    admin = jwt_headers(app_instance, ensure_admin())
    order = client.post('/orders', json={'invoice_number': unique('INV'), 'customer_name': 'Nobody'}, headers=admin)
    assert order.status_code == 400
    assert order.get_json()['error']['detail'] == 'customer_code required'
    meeting = client.post('/meetings', json={'title': 'Kickoff'}, headers=admin)
    assert meeting.status_code == 400
    assert meeting.get_json()['error']['detail'] == 'customer_code required'

    code = unique('CUST')
    created = client.post('/orders', json={
        'invoice_number': unique('INV'), 'customer_name': 'Someone', 'customer_code': code,
    }, headers=admin)
    assert created.status_code == 201
    order_id = created.get_json()['id']

    cleared = client.put(f'/orders/{order_id}', json={'customer_code': ''}, headers=admin)
    assert cleared.status_code == 400
    session = get_db()
    assert session.execute(select(Order.customer_code).where(Order.id == order_id)).scalar_one() == code

    moved_to = unique('CUST')
    moved = client.put(f'/orders/{order_id}', json={'customer_code': moved_to}, headers=admin)
    assert moved.status_code == 200
    assert moved.get_json()['customer_code'] == moved_to


def test_admin_meeting_update_cannot_drop_tenant(client, app_instance):
    admin = jwt_headers(app_instance, ensure_admin())
    code = unique('CUST')
    created = client.post('/meetings', json={'title': 'Review', 'customer_code': code}, headers=admin)
    assert created.status_code == 201
    meeting_id = created.get_json()['id']
    resp = client.put(f'/meetings/{meeting_id}', json={'customer_code': None}, headers=admin)
    assert resp.status_code == 400
    assert client.get(f'/meetings/{meeting_id}', headers=admin).get_json()['customer_code'] == code

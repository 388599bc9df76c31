from datetime import datetime
from portal import get_db
from portal.models.invoice_delivery import InvoiceDelivery
from portal.models.market_report import MarketReport
from portal.models.meeting import MeetingMinute
from portal.models.order import Order
from portal.models.payment import Payment, Statement
from tests.test_utils_seed import ensure_admin, ensure_user, ensure_role, grants, jwt_headers, seed_customer, unique


def _orders(*codes):
    session = get_db()
    for code in codes:
        session.add(Order(invoice_number=unique('INV'), customer_code=code, customer_name=f'Name {code}', amount=100))
    session.commit()


def test_customer_sees_only_own_orders(client, app_instance):
    user_id, _, code = seed_customer(grants(orders=['view']))
    other = unique('CUST')
    _orders(code, code, other)
    headers = jwt_headers(app_instance, user_id)

    body = client.get('/orders', headers=headers).get_json()
    assert body['pagination']['total'] == 2
    assert {o['customer_code'] for o in body['data']} == {code}


def test_requesting_another_customer_code_is_denied(client, app_instance):
    user_id, _, code = seed_customer(grants(orders=['view']))
    other = unique('CUST')
    headers = jwt_headers(app_instance, user_id)

    resp = client.get(f'/orders?customer_code={other}', headers=headers)
    assert resp.status_code == 403
    detail = resp.get_json()['error']['detail']
    assert other in detail and code in detail
    assert resp.get_json()['error']['kind'] == 'TENANT_SCOPE_VIOLATION'

    path = client.get(f'/customer/{other}/orders', headers=headers)
    assert path.status_code == 403
    own = client.get(f'/customer/{code}/orders', headers=headers)
    assert own.status_code == 200


def test_customer_without_code_gets_empty_results(client, app_instance):
    role_id = ensure_role(permissions=grants(orders=['view', 'add']))
    user_id = ensure_user(role_id=role_id)
    _orders(unique('CUST'))
    headers = jwt_headers(app_instance, user_id)

    body = client.get('/orders', headers=headers).get_json()
    assert body['data'] == []
    assert body['pagination']['total'] == 0
    create = client.post('/orders', json={'invoice_number': unique('INV'), 'customer_name': 'X'}, headers=headers)
    assert create.status_code == 403


def test_admin_sees_all_and_can_narrow(client, app_instance):
    admin_id = ensure_admin()
    a, b = unique('CUST'), unique('CUST')
    _orders(a, b)
    headers = jwt_headers(app_instance, admin_id)

    everything = client.get('/orders?limit=200', headers=headers).get_json()
    codes = {o['customer_code'] for o in everything['data']}
    assert {a, b} <= codes
    narrowed = client.get(f'/orders?customer_code={a}', headers=headers).get_json()
    assert {o['customer_code'] for o in narrowed['data']} == {a}
    assert client.get(f'/customer/{b}/order-stats', headers=headers).get_json()['total_orders'] == 1


def test_out_of_scope_order_is_not_found(client, app_instance):
    user_id, _, code = seed_customer(grants(orders=['view', 'edit']))
    other = unique('CUST')
    session = get_db()
    foreign = Order(invoice_number=unique('INV'), customer_code=other, customer_name='Other')
    session.add(foreign); session.commit()
    foreign_id = foreign.id
    headers = jwt_headers(app_instance, user_id)

    assert client.get(f'/orders/{foreign_id}', headers=headers).status_code == 404
    assert client.patch(f'/orders/{foreign_id}/status', json={'status': 'shipped'}, headers=headers).status_code == 404


def test_customer_order_create_is_stamped_with_own_code(client, app_instance):
    user_id, _, code = seed_customer(grants(orders=['view', 'add']))
    headers = jwt_headers(app_instance, user_id)
    resp = client.post('/orders', json={'invoice_number': unique('INV'), 'customer_name': 'Me', 'amount': 12.5}, headers=headers)
    assert resp.status_code == 201, resp.get_json()
    assert resp.get_json()['customer_code'] == code
    hijack = client.post('/orders', json={
        'invoice_number': unique('INV'), 'customer_name': 'Me', 'customer_code': unique('CUST'),
    }, headers=headers)
    assert hijack.status_code == 403


def test_customer_portal_module_access(client, app_instance):
    # Any single payments grant opens the customer statements view
    user_id, _, code = seed_customer(grants(payments=['add']))
    session = get_db()
    session.add(Statement(customer_code=code, document_number=unique('DOC'), amount=50, balance=20))
    session.commit()
    headers = jwt_headers(app_instance, user_id)

    ok = client.get(f'/customer/{code}/statements', headers=headers)
    assert ok.status_code == 200
    assert len(ok.get_json()['data']) == 1
    denied = client.get(f'/customer/{code}/meetings', headers=headers)
    assert denied.status_code == 403
    assert denied.get_json()['error']['detail'] == 'Access denied. No permissions for module: meetings'


def test_statements_accept_either_permission(client, app_instance):
    user_id, _, _ = seed_customer(grants(invoice_delivery=['view']))
    headers = jwt_headers(app_instance, user_id)
    assert client.get('/payments/statements', headers=headers).status_code == 200
    denied = client.get('/payments', headers=headers)
    assert denied.status_code == 403
    none_id, _, _ = seed_customer(grants(orders=['view']))
    resp = client.get('/payments/statements', headers=jwt_headers(app_instance, none_id))
    assert resp.status_code == 403
    assert resp.get_json()['error']['detail'] == (
        'Permission denied. Required permissions: payments.view or invoice_delivery.view'
    )


def test_dashboard_summary_is_scoped(client, app_instance):
    user_id, _, code = seed_customer(grants(dashboard=['view']))
    _orders(code, unique('CUST'))
    session = get_db()
    session.add(Statement(customer_code=code, document_number=unique('DOC'), amount=80, balance=30))
    session.commit()
    body = client.get('/dashboard/summary', headers=jwt_headers(app_instance, user_id)).get_json()
    assert body['customer_code'] == code
    assert body['orders'] == 1
    assert body['open_orders'] == 1
    assert body['outstanding_balance'] == 30.0


def test_order_stats_echo_resolved_code(client, app_instance):
    user_id, _, code = seed_customer(grants(orders=['view']))
    _orders(code)
    headers = jwt_headers(app_instance, user_id)
    resp = client.get(f'/customer/%20{code}%20/order-stats', headers=headers)
    assert resp.status_code == 200
    assert resp.get_json()['customer_code'] == code
    assert resp.get_json()['total_orders'] == 1


def test_customer_path_single_records(client, app_instance):
    user_id, _, code = seed_customer(grants(orders=['view'], meetings=['view'], payments=['view']))
    other = unique('CUST')
    author = ensure_admin()
    session = get_db()
    rows = {
        'order': Order(invoice_number=unique('INV'), customer_code=code, customer_name='Me', product_name='Bolts'),
        'foreign_order': Order(invoice_number=unique('INV'), customer_code=other, customer_name='Them'),
        'meeting': MeetingMinute(title='Sync', customer_code=code, created_by=author),
        'foreign_meeting': MeetingMinute(title='Theirs', customer_code=other, created_by=author),
        'payment': Payment(customer_code=code, amount=40),
        'foreign_payment': Payment(customer_code=other, amount=60),
    }
    session.add_all(rows.values()); session.commit()
    ids = {k: v.id for k, v in rows.items()}
    headers = jwt_headers(app_instance, user_id)

    assert client.get(f"/customer/{code}/orders/{ids['order']}", headers=headers).get_json()['customer_name'] == 'Me'
    assert client.get(f"/customer/{code}/orders/{ids['foreign_order']}", headers=headers).status_code == 404
    assert client.get(f"/customer/{other}/orders/{ids['foreign_order']}", headers=headers).status_code == 403
    assert client.get(f"/customer/{code}/meetings/{ids['meeting']}", headers=headers).get_json()['title'] == 'Sync'
    assert client.get(f"/customer/{code}/meetings/{ids['foreign_meeting']}", headers=headers).status_code == 404
    assert client.get(f"/customer/{other}/meetings/{ids['foreign_meeting']}", headers=headers).status_code == 403

    payments = client.get(f'/customer/{code}/payments', headers=headers).get_json()
    assert [p['id'] for p in payments['data']] == [ids['payment']]
    assert client.get(f"/customer/{code}/payments/{ids['payment']}", headers=headers).status_code == 200
    assert client.get(f"/customer/{code}/payments/{ids['foreign_payment']}", headers=headers).status_code == 404
    assert client.get(f'/customer/{other}/payments', headers=headers).status_code == 403
    assert client.get(f"/payments/{ids['payment']}", headers=headers).get_json()['amount'] == 40.0
    assert client.get(f"/payments/{ids['foreign_payment']}", headers=headers).status_code == 404

    products = client.get(f'/customer/{code}/products/list', headers=headers).get_json()
    assert products['data'] == ['Bolts']
    assert client.get(f'/customer/{other}/products/list', headers=headers).status_code == 403


def test_customer_path_market_reports(client, app_instance):
    user_id, _, code = seed_customer(grants(market_reports=['view']))
    other = unique('CUST')
    session = get_db()
    reports = {
        'global': MarketReport(title='Global', status='published'),
        'mine': MarketReport(title='Mine', status='published', customer_code=code),
        'theirs': MarketReport(title='Theirs', status='published', customer_code=other),
    }
    session.add_all(reports.values()); session.commit()
    ids = {k: v.id for k, v in reports.items()}
    headers = jwt_headers(app_instance, user_id)

    listed = client.get(f'/customer/{code}/market-reports?limit=200', headers=headers).get_json()['data']
    listed = {r['id'] for r in listed}
    assert ids['global'] in listed and ids['mine'] in listed and ids['theirs'] not in listed
    assert client.get(f"/customer/{code}/market-reports/{ids['mine']}", headers=headers).status_code == 200
    assert client.get(f"/customer/{code}/market-reports/{ids['theirs']}", headers=headers).status_code == 404
    assert client.get(f'/customer/{other}/market-reports', headers=headers).status_code == 403

    admin = jwt_headers(app_instance, ensure_admin())
    narrowed = client.get(f'/customer/{other}/market-reports?limit=200', headers=admin).get_json()['data']
    narrowed = {r['id'] for r in narrowed}
    assert ids['theirs'] in narrowed and ids['mine'] not in narrowed


def test_customer_path_deliveries(client, app_instance):
    user_id, _, code = seed_customer(grants(invoice_delivery=['view']))
    other = unique('CUST')
    session = get_db()
    session.add_all([
        InvoiceDelivery(invoice_number=unique('INV'), invoice_date=datetime(2025, 5, 1), customer_code=code),
        InvoiceDelivery(invoice_number=unique('INV'), invoice_date=datetime(2025, 5, 2), customer_code=other),
    ])
    session.commit()
    headers = jwt_headers(app_instance, user_id)
    body = client.get(f'/customer/{code}/invoice-to-delivery', headers=headers).get_json()
    assert {d['customer_code'] for d in body['data']} == {code}
    assert body['pagination']['total'] == 1
    assert client.get(f'/customer/{other}/invoice-to-delivery', headers=headers).status_code == 403


def test_statement_summary_and_single_statement(client, app_instance):
    user_id, _, code = seed_customer(grants(invoice_delivery=['view']))
    other = unique('CUST')
    session = get_db()
    statements = [
        Statement(customer_code=code, document_number=unique('DOC'), amount=100, balance=100, status='pending'),
        Statement(customer_code=code, document_number=unique('DOC'), amount=50, balance=0, status='paid'),
        Statement(customer_code=other, document_number=unique('DOC'), amount=999, balance=999, status='pending'),
    ]
    session.add_all(statements); session.commit()
    mine_id, foreign_id = statements[0].id, statements[2].id
    headers = jwt_headers(app_instance, user_id)

    summary = client.get('/payments/statements/summary', headers=headers).get_json()
    assert summary['overall'] == {'total_statements': 2, 'total_amount': 150.0, 'total_outstanding': 100.0}
    assert summary['by_status']['paid']['count'] == 1
    assert client.get(f'/payments/statements/{mine_id}', headers=headers).get_json()['balance'] == 100.0
    assert client.get(f'/payments/statements/{foreign_id}', headers=headers).status_code == 404

"""Customer portal views addressed by customer code in the path.

The path code is the requested tenant: a customer naming any code but their own
is rejected before a query is built; admins may address any customer.
"""
from flask import Blueprint, request, abort
from sqlalchemy import select
from portal import get_db
from portal.decorators.auth import require_module_access
from portal.models.market_report import MarketReport
from portal.models.order import Order
from portal.routes.invoice_delivery import deliveries_query, delivery_json
from portal.routes.market_research import visible_reports, report_json
from portal.routes.meetings import meetings_query, meeting_json, get_meeting_row
from portal.routes.orders import orders_query, sorted_orders, order_stats, order_json, get_order_row
from portal.routes.payments import statements_query, statement_json, payments_query, payment_json, get_payment_row
from portal.services.policy import current_principal, request_scope
from portal.utils.filters import apply_search
from portal.utils.listing import list_response
from portal.utils.sorting import apply_multi_sort

customer_bp = Blueprint('customer', __name__)


@customer_bp.get('/<customer_code>/orders')
@require_module_access('orders')
def customer_orders(customer_code: str):
    session = get_db()
    q = orders_query(session, request_scope(customer_code), request.args)
    return list_response(sorted_orders(q), order_json)


@customer_bp.get('/<customer_code>/orders/<int:order_id>')
@require_module_access('orders')
def customer_order(customer_code: str, order_id: int):
    return order_json(get_order_row(get_db(), order_id, request_scope(customer_code)))


@customer_bp.get('/<customer_code>/order-stats')
@require_module_access('orders')
def customer_order_stats(customer_code: str):
    scope = request_scope(customer_code)
    stats = order_stats(get_db(), scope)
    stats['customer_code'] = scope.tenant_code
    return stats


@customer_bp.get('/<customer_code>/products/list')
@require_module_access('orders')
def customer_products(customer_code: str):
    """Distinct product names this customer has ordered."""
    q = select(Order.product_name).where(Order.product_name.is_not(None), Order.product_name != '').distinct()
    rows = get_db().execute(request_scope(customer_code).apply(q, Order.customer_code)).scalars().all()
    return {'data': sorted(rows)}


@customer_bp.get('/<customer_code>/meetings')
@require_module_access('meetings')
def customer_meetings(customer_code: str):
    return list_response(meetings_query(get_db(), request_scope(customer_code), request.args), meeting_json)


@customer_bp.get('/<customer_code>/meetings/<int:meeting_id>')
@require_module_access('meetings')
def customer_meeting(customer_code: str, meeting_id: int):
    return meeting_json(get_meeting_row(get_db(), meeting_id, request_scope(customer_code)))


@customer_bp.get('/<customer_code>/market-reports')
@require_module_access('market_reports')
def customer_market_reports(customer_code: str):
    q = visible_reports(get_db().query(MarketReport), request_scope(customer_code), current_principal().is_admin)
    q = apply_search(q, request.args.get('search'), [MarketReport.title, MarketReport.summary])
    allowed = {'title': MarketReport.title, 'updated_at': MarketReport.updated_at, 'id': MarketReport.id}
    q = apply_multi_sort(q, request.args.get('sort'), allowed, MarketReport.id, default=MarketReport.updated_at.desc())
    return list_response(q, report_json)


@customer_bp.get('/<customer_code>/market-reports/<int:report_id>')
@require_module_access('market_reports')
def customer_market_report(customer_code: str, report_id: int):
    q = visible_reports(select(MarketReport).where(MarketReport.id == report_id),
                        request_scope(customer_code), current_principal().is_admin)
    r = get_db().execute(q).scalar_one_or_none()
    if not r:
        abort(404, description='Report not found')
    return report_json(r)


@customer_bp.get('/<customer_code>/payments')
@require_module_access('payments')
def customer_payments(customer_code: str):
    return list_response(payments_query(get_db(), request_scope(customer_code), request.args), payment_json)


@customer_bp.get('/<customer_code>/payments/<int:payment_id>')
@require_module_access('payments')
def customer_payment(customer_code: str, payment_id: int):
    return payment_json(get_payment_row(get_db(), payment_id, request_scope(customer_code)))


@customer_bp.get('/<customer_code>/statements')
@require_module_access('payments')
def customer_statements(customer_code: str):
    return list_response(statements_query(get_db(), request_scope(customer_code), request.args), statement_json)


@customer_bp.get('/<customer_code>/invoice-to-delivery')
@require_module_access('invoice_delivery')
def customer_deliveries(customer_code: str):
    return list_response(deliveries_query(get_db(), request_scope(customer_code), request.args), delivery_json)

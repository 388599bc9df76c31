from __future__ import annotations
from flask import Blueprint, request, abort
from sqlalchemy import select, func
from portal import get_db
from portal.decorators.auth import require_permission
from portal.models.order import Order
from portal.services.policy import current_principal, request_scope, write_tenant_code
from portal.services.tenancy import EffectiveScope
from portal.utils.filters import apply_filters, apply_search
from portal.utils.listing import list_response, iso
from portal.utils.sorting import apply_multi_sort
from portal.utils.validation import validate_choice, require_fields, parse_number, parse_datetime

orders_bp = Blueprint('orders', __name__)


def order_json(o: Order):
    return {
        'id': o.id,
        'invoice_number': o.invoice_number,
        'customer_code': o.customer_code,
        'customer_name': o.customer_name,
        'product_name': o.product_name,
        'quantity': o.quantity,
        'amount': o.amount,
        'status': o.status,
        'invoice_date': iso(o.invoice_date),
    }


def get_order_row(session, order_id: int, scope: EffectiveScope) -> Order:
    o = session.execute(scope.apply(select(Order).where(Order.id == order_id), Order.customer_code)).scalar_one_or_none()
    if not o:
        abort(404, description='Order not found')
    return o


def orders_query(session, scope: EffectiveScope, params):
    """Scoped + filtered orders query shared with the customer portal routes."""
    q = scope.apply(session.query(Order), Order.customer_code)
    q = apply_search(q, params.get('search'), [Order.invoice_number, Order.customer_name, Order.product_name])
    return apply_filters(q, {
        'status': {'op': lambda qu, v: qu.filter(Order.status == v), 'validate': lambda v: v in Order.ALL_STATUSES},
        'start_date': {'coerce': lambda v: parse_datetime(v, 'start_date'), 'op': lambda qu, v: qu.filter(Order.invoice_date >= v)},
        'end_date': {'coerce': lambda v: parse_datetime(v, 'end_date'), 'op': lambda qu, v: qu.filter(Order.invoice_date <= v)},
    }, params)


def sorted_orders(q):
    allowed = {
        'invoice_date': Order.invoice_date,
        'amount': Order.amount,
        'customer_name': Order.customer_name,
        'status': Order.status,
        'id': Order.id,
    }
    return apply_multi_sort(q, request.args.get('sort'), allowed, Order.id, default=Order.invoice_date.desc())


def order_stats(session, scope: EffectiveScope):
    base = scope.apply(select(Order.status, func.count(Order.id), func.coalesce(func.sum(Order.amount), 0)), Order.customer_code)
    rows = session.execute(base.group_by(Order.status)).all()
    by_status = {status: {'count': count, 'amount': float(amount)} for status, count, amount in rows}
    return {
        'total_orders': sum(v['count'] for v in by_status.values()),
        'total_amount': sum(v['amount'] for v in by_status.values()),
        'by_status': by_status,
    }


@orders_bp.get('')
@require_permission('orders', 'view')
def list_orders():
    session = get_db()
    q = orders_query(session, request_scope(), request.args)
    return list_response(sorted_orders(q), order_json)


@orders_bp.get('/stats')
@require_permission('orders', 'view')
def get_order_stats():
    return order_stats(get_db(), request_scope())


@orders_bp.get('/<int:order_id>')
@require_permission('orders', 'view')
def get_order(order_id: int):
    return order_json(get_order_row(get_db(), order_id, request_scope()))


@orders_bp.post('')
@require_permission('orders', 'add')
def create_order():
    data = request.json or {}
    customer_code = write_tenant_code()
    require_fields(data, 'invoice_number', 'customer_name')
    session = get_db()
    if session.execute(select(Order).where(Order.invoice_number == data['invoice_number'])).scalar_one_or_none():
        abort(400, description='invoice_number already exists')
    o = Order(
        invoice_number=data['invoice_number'],
        customer_code=customer_code,
        customer_name=data['customer_name'],
        product_name=data.get('product_name'),
        quantity=parse_number(data.get('quantity', 0), 'quantity', integer=True),
        amount=parse_number(data.get('amount', 0), 'amount'),
        status=validate_choice(data.get('status') or Order.STATUS_PENDING, Order.ALL_STATUSES),
        invoice_date=parse_datetime(data.get('invoice_date'), 'invoice_date'),
        created_by=current_principal().user_id,
    )
    session.add(o)
    session.commit()
    return order_json(o), 201


@orders_bp.put('/<int:order_id>')
@require_permission('orders', 'edit')
def update_order(order_id: int):
    session = get_db()
    o = get_order_row(session, order_id, request_scope())
    data = request.json or {}
    if 'customer_code' in data:
        # Moving an order between tenants must stay inside the caller's scope
        o.customer_code = write_tenant_code()
    for f in ('customer_name', 'product_name'):
        if f in data:
            setattr(o, f, data[f])
    if not o.customer_name:
        abort(400, description='customer_name cannot be empty')
    if 'quantity' in data:
        o.quantity = parse_number(data['quantity'], 'quantity', integer=True)
    if 'amount' in data:
        o.amount = parse_number(data['amount'], 'amount')
    if 'invoice_date' in data:
        o.invoice_date = parse_datetime(data['invoice_date'], 'invoice_date')
    if 'status' in data:
        o.status = validate_choice(data['status'], Order.ALL_STATUSES)
    session.commit()
    return order_json(o)


@orders_bp.patch('/<int:order_id>/status')
@require_permission('orders', 'edit')
def update_order_status(order_id: int):
    session = get_db()
    o = get_order_row(session, order_id, request_scope())
    data = request.json or {}
    require_fields(data, 'status')
    o.status = validate_choice(data['status'], Order.ALL_STATUSES)
    session.commit()
    return order_json(o)


@orders_bp.delete('/<int:order_id>')
@require_permission('orders', 'delete')
def delete_order(order_id: int):
    session = get_db()
    o = get_order_row(session, order_id, request_scope())
    session.delete(o)
    session.commit()
    return {'status': 'deleted'}

from __future__ import annotations
from flask import Blueprint, request, abort
from sqlalchemy import select, func
from portal import get_db
from portal.decorators.auth import require_permission
from portal.models.invoice_delivery import InvoiceDelivery
from portal.services.policy import current_principal, request_scope, write_tenant_code
from portal.services.tenancy import EffectiveScope
from portal.utils.filters import apply_filters, apply_search
from portal.utils.listing import list_response, iso
from portal.utils.sorting import apply_multi_sort
from portal.utils.validation import validate_choice, require_fields, require_strings, parse_number, parse_datetime

invoice_delivery_bp = Blueprint('invoice_delivery', __name__)

TEXT_FIELDS = ('invoice_number', 'lr_number', 'delivery_partner')
DATE_FIELDS = ('dispatch_date', 'delivered_date')


def delivery_json(d: InvoiceDelivery):
    return {
        'id': d.id,
        'invoice_number': d.invoice_number,
        'invoice_date': iso(d.invoice_date),
        'invoice_value': d.invoice_value,
        'dispatch_date': iso(d.dispatch_date),
        'lr_number': d.lr_number,
        'delivery_partner': d.delivery_partner,
        'delivered_date': iso(d.delivered_date),
        'customer_code': d.customer_code,
        'status': d.status,
    }


def deliveries_query(session, scope: EffectiveScope, params):
    q = scope.apply(session.query(InvoiceDelivery), InvoiceDelivery.customer_code)
    q = apply_search(q, params.get('search'), [InvoiceDelivery.invoice_number, InvoiceDelivery.lr_number, InvoiceDelivery.delivery_partner])
    q = apply_filters(q, {
        'status': {'op': lambda qu, v: qu.filter(InvoiceDelivery.status == v), 'validate': lambda v: v in InvoiceDelivery.ALL_STATUSES},
        'start_date': {'coerce': lambda v: parse_datetime(v, 'start_date'), 'op': lambda qu, v: qu.filter(InvoiceDelivery.invoice_date >= v)},
        'end_date': {'coerce': lambda v: parse_datetime(v, 'end_date'), 'op': lambda qu, v: qu.filter(InvoiceDelivery.invoice_date <= v)},
    }, params)
    allowed = {
        'invoice_date': InvoiceDelivery.invoice_date,
        'dispatch_date': InvoiceDelivery.dispatch_date,
        'invoice_value': InvoiceDelivery.invoice_value,
        'id': InvoiceDelivery.id,
    }
    return apply_multi_sort(q, params.get('sort'), allowed, InvoiceDelivery.id, default=InvoiceDelivery.invoice_date.desc())


def _get_delivery(session, delivery_id: int, scope: EffectiveScope) -> InvoiceDelivery:
    d = session.execute(
        scope.apply(select(InvoiceDelivery).where(InvoiceDelivery.id == delivery_id), InvoiceDelivery.customer_code)
    ).scalar_one_or_none()
    if not d:
        abort(404, description='Invoice delivery not found')
    return d


@invoice_delivery_bp.get('')
@require_permission('invoice_delivery', 'view')
def list_deliveries():
    return list_response(deliveries_query(get_db(), request_scope(), request.args), delivery_json)


@invoice_delivery_bp.get('/stats')
@require_permission('invoice_delivery', 'view')
def delivery_stats():
    q = select(InvoiceDelivery.status, func.count(InvoiceDelivery.id))
    rows = get_db().execute(request_scope().apply(q, InvoiceDelivery.customer_code).group_by(InvoiceDelivery.status)).all()
    counts = {status: 0 for status in InvoiceDelivery.ALL_STATUSES}
    counts.update({status: count for status, count in rows})
    return {'total_records': sum(counts.values()), **counts}


@invoice_delivery_bp.get('/<int:delivery_id>')
@require_permission('invoice_delivery', 'view')
def get_delivery(delivery_id: int):
    return delivery_json(_get_delivery(get_db(), delivery_id, request_scope()))


@invoice_delivery_bp.post('')
@require_permission('invoice_delivery', 'add')
def create_delivery():
    data = request.json or {}
    customer_code = write_tenant_code()
    require_fields(data, 'invoice_number', 'invoice_date')
    require_strings(data, *TEXT_FIELDS)
    d = InvoiceDelivery(
        customer_code=customer_code,
        invoice_date=parse_datetime(data['invoice_date'], 'invoice_date'),
        invoice_value=parse_number(data['invoice_value'], 'invoice_value') if data.get('invoice_value') is not None else None,
        status=validate_choice(data.get('status') or InvoiceDelivery.STATUS_PENDING, InvoiceDelivery.ALL_STATUSES),
        created_by=current_principal().user_id,
        **{f: data.get(f) for f in TEXT_FIELDS},
        **{f: parse_datetime(data.get(f), f) for f in DATE_FIELDS},
    )
    session = get_db()
    session.add(d)
    session.commit()
    return delivery_json(d), 201


@invoice_delivery_bp.put('/<int:delivery_id>')
@require_permission('invoice_delivery', 'edit')
def update_delivery(delivery_id: int):
    session = get_db()
    d = _get_delivery(session, delivery_id, request_scope())
    data = request.json or {}
    require_strings(data, *TEXT_FIELDS)
    if 'customer_code' in data:
        d.customer_code = write_tenant_code()
    for f in TEXT_FIELDS:
        if f in data:
            setattr(d, f, data[f])
    if not d.invoice_number:
        abort(400, description='invoice_number cannot be empty')
    if 'invoice_date' in data:
        require_fields(data, 'invoice_date')
        d.invoice_date = parse_datetime(data['invoice_date'], 'invoice_date')
    for f in DATE_FIELDS:
        if f in data:
            setattr(d, f, parse_datetime(data[f], f))
    if 'invoice_value' in data:
        d.invoice_value = parse_number(data['invoice_value'], 'invoice_value') if data['invoice_value'] is not None else None
    if 'status' in data:
        d.status = validate_choice(data['status'], InvoiceDelivery.ALL_STATUSES)
    session.commit()
    return delivery_json(d)


@invoice_delivery_bp.delete('/<int:delivery_id>')
@require_permission('invoice_delivery', 'delete')
def delete_delivery(delivery_id: int):
    session = get_db()
    d = _get_delivery(session, delivery_id, request_scope())
    session.delete(d)
    session.commit()
    return {'status': 'deleted'}

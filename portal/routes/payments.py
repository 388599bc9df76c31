from __future__ import annotations
from flask import Blueprint, request, abort
from sqlalchemy import select, func
from portal import get_db
from portal.decorators.auth import require_permission, require_any_permission
from portal.models.payment import Payment, Statement
from portal.services.policy import current_principal, request_scope, write_tenant_code
from portal.services.tenancy import EffectiveScope
from portal.utils.filters import apply_filters, apply_search
from portal.utils.listing import list_response, iso
from portal.utils.sorting import apply_multi_sort
from portal.utils.validation import validate_choice, require_fields, parse_number, parse_datetime

payments_bp = Blueprint('payments', __name__)


def payment_json(p: Payment):
    return {
        'id': p.id,
        'customer_code': p.customer_code,
        'reference': p.reference,
        'amount': p.amount,
        'method': p.method,
        'paid_at': iso(p.paid_at),
        'status': p.status,
    }


def statement_json(s: Statement):
    return {
        'id': s.id,
        'customer_code': s.customer_code,
        'document_number': s.document_number,
        'document_date': iso(s.document_date),
        'due_date': iso(s.due_date),
        'amount': s.amount,
        'balance': s.balance,
        'status': s.status,
    }


def statements_query(session, scope: EffectiveScope, params):
    q = scope.apply(session.query(Statement), Statement.customer_code)
    q = apply_search(q, params.get('search'), [Statement.document_number, Statement.customer_code])
    q = apply_filters(q, {
        'status': {'op': lambda qu, v: qu.filter(Statement.status == v), 'validate': lambda v: v in Statement.ALL_STATUSES},
    }, params)
    allowed = {'document_date': Statement.document_date, 'due_date': Statement.due_date, 'amount': Statement.amount, 'id': Statement.id}
    return apply_multi_sort(q, params.get('sort'), allowed, Statement.id, default=Statement.document_date.desc())


def get_payment_row(session, payment_id: int, scope: EffectiveScope) -> Payment:
    p = session.execute(scope.apply(select(Payment).where(Payment.id == payment_id), Payment.customer_code)).scalar_one_or_none()
    if not p:
        abort(404, description='Payment not found')
    return p


def payments_query(session, scope: EffectiveScope, params):
    q = scope.apply(session.query(Payment), Payment.customer_code)
    q = apply_search(q, params.get('search'), [Payment.reference, Payment.customer_code])
    q = apply_filters(q, {
        'status': {'op': lambda qu, v: qu.filter(Payment.status == v), 'validate': lambda v: v in Payment.ALL_STATUSES},
        'method': {'op': lambda qu, v: qu.filter(Payment.method == v)},
    }, params)
    allowed = {'paid_at': Payment.paid_at, 'amount': Payment.amount, 'id': Payment.id}
    return apply_multi_sort(q, params.get('sort'), allowed, Payment.id, default=Payment.paid_at.desc())


@payments_bp.get('')
@require_permission('payments', 'view')
def list_payments():
    return list_response(payments_query(get_db(), request_scope(), request.args), payment_json)


@payments_bp.post('')
@require_permission('payments', 'add')
def create_payment():
    data = request.json or {}
    code = write_tenant_code()
    require_fields(data, 'amount')
    amount = parse_number(data['amount'], 'amount')
    if amount <= 0:
        abort(400, description='amount must be positive')
    session = get_db()
    p = Payment(
        customer_code=code,
        reference=data.get('reference'),
        amount=amount,
        method=data.get('method'),
        paid_at=parse_datetime(data.get('paid_at'), 'paid_at'),
        status=validate_choice(data.get('status') or Payment.STATUS_PENDING, Payment.ALL_STATUSES),
        created_by=current_principal().user_id,
    )
    session.add(p)
    session.commit()
    return payment_json(p), 201


@payments_bp.get('/statements')
@require_any_permission(('payments', 'view'), ('invoice_delivery', 'view'))
def list_statements():
    return list_response(statements_query(get_db(), request_scope(), request.args), statement_json)


@payments_bp.get('/<int:payment_id>')
@require_permission('payments', 'view')
def get_payment(payment_id: int):
    return payment_json(get_payment_row(get_db(), payment_id, request_scope()))


def statement_summary(session, scope: EffectiveScope):
    q = select(
        Statement.status,
        func.count(Statement.id),
        func.coalesce(func.sum(Statement.amount), 0),
        func.coalesce(func.sum(Statement.balance), 0),
    )
    rows = session.execute(scope.apply(q, Statement.customer_code).group_by(Statement.status)).all()
    by_status = {
        status: {'count': count, 'amount': float(amount), 'outstanding': float(balance)}
        for status, count, amount, balance in rows
    }
    return {
        'by_status': by_status,
        'overall': {
            'total_statements': sum(v['count'] for v in by_status.values()),
            'total_amount': sum(v['amount'] for v in by_status.values()),
            'total_outstanding': sum(v['outstanding'] for v in by_status.values()),
        },
    }


@payments_bp.get('/statements/summary')
@require_any_permission(('payments', 'view'), ('invoice_delivery', 'view'))
def get_statement_summary():
    return statement_summary(get_db(), request_scope())


@payments_bp.get('/statements/<int:statement_id>')
@require_any_permission(('payments', 'view'), ('invoice_delivery', 'view'))
def get_statement(statement_id: int):
    session = get_db()
    s = session.execute(
        request_scope().apply(select(Statement).where(Statement.id == statement_id), Statement.customer_code)
    ).scalar_one_or_none()
    if not s:
        abort(404, description='Statement not found')
    return statement_json(s)

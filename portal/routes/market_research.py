from flask import Blueprint, request, abort
from sqlalchemy import select, or_
from portal import get_db
from portal.decorators.auth import require_permission
from portal.models.market_report import MarketReport
from portal.services.policy import current_principal, request_scope, write_tenant_code
from portal.services.tenancy import EffectiveScope
from portal.utils.filters import apply_filters, apply_search
from portal.utils.listing import list_response, iso
from portal.utils.sorting import apply_multi_sort
from portal.utils.validation import validate_choice, require_fields

market_bp = Blueprint('market_research', __name__)

EDITABLE = ('title', 'category', 'summary', 'content')


def report_json(r: MarketReport):
    return {
        'id': r.id,
        'title': r.title,
        'category': r.category,
        'summary': r.summary,
        'content': r.content,
        'customer_code': r.customer_code,
        'status': r.status,
        'updated_at': iso(r.updated_at),
    }


def visible_reports(q, scope: EffectiveScope, is_admin: bool):
    """Reports a scope may read: global ones plus the scope's tenant; customers see published only."""
    if is_admin and scope.is_unrestricted:
        return q
    if not is_admin:
        q = q.filter(MarketReport.status == MarketReport.STATUS_PUBLISHED)
    if scope.matches_nothing:
        return q.filter(MarketReport.customer_code.is_(None))
    return q.filter(or_(MarketReport.customer_code.is_(None), MarketReport.customer_code == scope.tenant_code))


def _visible(q):
    return visible_reports(q, request_scope(), current_principal().is_admin)


def _get_report(session, report_id: int) -> MarketReport:
    r = session.execute(_visible(select(MarketReport).where(MarketReport.id == report_id))).scalar_one_or_none()
    if not r:
        abort(404, description='Report not found')
    return r


def _target_code():
    """Tenant a report is written into; None (global) is reserved to admins."""
    if current_principal().is_admin:
        # Admins may narrow to any customer; no code publishes to everyone
        return request_scope(source='json').tenant_code_for_write()
    return write_tenant_code()


def _get_writable_report(session, report_id: int) -> MarketReport:
    r = _get_report(session, report_id)
    principal = current_principal()
    if not principal.is_admin and (r.customer_code is None or r.customer_code != principal.tenant_code):
        abort(403, description='Access denied. Only administrators can change shared reports')
    return r


@market_bp.get('')
@require_permission('market_reports', 'view')
def list_reports():
    session = get_db()
    q = _visible(session.query(MarketReport))
    q = apply_search(q, request.args.get('search'), [MarketReport.title, MarketReport.summary])
    q = apply_filters(q, {
        'category': {'op': lambda qu, v: qu.filter(MarketReport.category == v)},
        'status': {'op': lambda qu, v: qu.filter(MarketReport.status == v), 'validate': lambda v: v in MarketReport.ALL_STATUSES},
    }, request.args)
    allowed = {'title': MarketReport.title, 'updated_at': MarketReport.updated_at, 'id': MarketReport.id}
    q = apply_multi_sort(q, request.args.get('sort'), allowed, MarketReport.id, default=MarketReport.updated_at.desc())
    return list_response(q, report_json)


@market_bp.get('/<int:report_id>')
@require_permission('market_reports', 'view')
def get_report(report_id: int):
    return report_json(_get_report(get_db(), report_id))


@market_bp.post('')
@require_permission('market_reports', 'add')
def create_report():
    data = request.json or {}
    require_fields(data, 'title')
    session = get_db()
    r = MarketReport(
        title=data['title'],
        category=data.get('category'),
        summary=data.get('summary'),
        content=data.get('content'),
        customer_code=_target_code(),
        status=validate_choice(data.get('status') or MarketReport.STATUS_DRAFT, MarketReport.ALL_STATUSES),
        created_by=current_principal().user_id,
    )
    session.add(r)
    session.commit()
    return report_json(r), 201


@market_bp.put('/<int:report_id>')
@require_permission('market_reports', 'edit')
def update_report(report_id: int):
    session = get_db()
    r = _get_writable_report(session, report_id)
    data = request.json or {}
    for f in EDITABLE:
        if f in data:
            setattr(r, f, data[f])
    if not r.title:
        abort(400, description='title cannot be empty')
    if 'customer_code' in data:
        r.customer_code = _target_code()
    if 'status' in data:
        r.status = validate_choice(data['status'], MarketReport.ALL_STATUSES)
    session.commit()
    return report_json(r)


@market_bp.delete('/<int:report_id>')
@require_permission('market_reports', 'delete')
def delete_report(report_id: int):
    session = get_db()
    r = _get_writable_report(session, report_id)
    session.delete(r)
    session.commit()
    return {'status': 'deleted'}

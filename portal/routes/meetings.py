from __future__ import annotations
from flask import Blueprint, request, abort
from sqlalchemy import select
from portal import get_db
from portal.decorators.auth import require_permission, require_owner_or_admin
from portal.models.meeting import MeetingMinute
from portal.services.policy import current_principal, request_scope, write_tenant_code
from portal.services.tenancy import EffectiveScope
from portal.utils.filters import apply_filters, apply_search
from portal.utils.listing import list_response, iso
from portal.utils.sorting import apply_multi_sort
from portal.utils.validation import validate_choice, require_fields, parse_datetime

meetings_bp = Blueprint('meetings', __name__)

TEXT_FIELDS = ('title', 'agenda', 'discussion', 'mom_number')


def meeting_json(m: MeetingMinute):
    return {
        'id': m.id,
        'mom_number': m.mom_number,
        'title': m.title,
        'customer_code': m.customer_code,
        'meeting_date': iso(m.meeting_date),
        'attendees': m.attendees or [],
        'agenda': m.agenda,
        'discussion': m.discussion,
        'action_items': m.action_items or [],
        'status': m.status,
        'created_by': m.created_by,
    }


def _json_list(data, key):
    value = data.get(key)
    if value is None:
        return []
    if not isinstance(value, list):
        abort(400, description=f'{key} must be a list')
    return value


def _meeting_owner(meeting_id: int):
    """Owner lookup for the ownership guard; None when the meeting does not exist."""
    session = get_db()
    return session.execute(select(MeetingMinute.created_by).where(MeetingMinute.id == meeting_id)).scalar_one_or_none()


def get_meeting_row(session, meeting_id: int, scope: EffectiveScope) -> MeetingMinute:
    m = session.execute(
        scope.apply(select(MeetingMinute).where(MeetingMinute.id == meeting_id), MeetingMinute.customer_code)
    ).scalar_one_or_none()
    if not m:
        abort(404, description='Meeting not found')
    return m


def meetings_query(session, scope: EffectiveScope, params):
    q = scope.apply(session.query(MeetingMinute), MeetingMinute.customer_code)
    q = apply_search(q, params.get('search'), [MeetingMinute.title, MeetingMinute.mom_number, MeetingMinute.agenda])
    q = apply_filters(q, {
        'status': {'op': lambda qu, v: qu.filter(MeetingMinute.status == v), 'validate': lambda v: v in MeetingMinute.ALL_STATUSES},
    }, params)
    allowed = {'meeting_date': MeetingMinute.meeting_date, 'title': MeetingMinute.title, 'id': MeetingMinute.id}
    return apply_multi_sort(q, params.get('sort'), allowed, MeetingMinute.id, default=MeetingMinute.meeting_date.desc())


@meetings_bp.get('')
@require_permission('meetings', 'view')
def list_meetings():
    return list_response(meetings_query(get_db(), request_scope(), request.args), meeting_json)


@meetings_bp.get('/<int:meeting_id>')
@require_permission('meetings', 'view')
def get_meeting(meeting_id: int):
    return meeting_json(get_meeting_row(get_db(), meeting_id, request_scope()))


@meetings_bp.post('')
@require_permission('meetings', 'add')
def create_meeting():
    data = request.json or {}
    customer_code = write_tenant_code()
    require_fields(data, 'title')
    session = get_db()
    m = MeetingMinute(
        mom_number=data.get('mom_number'),
        title=data['title'],
        customer_code=customer_code,
        meeting_date=parse_datetime(data.get('meeting_date'), 'meeting_date'),
        attendees=_json_list(data, 'attendees'),
        agenda=data.get('agenda'),
        discussion=data.get('discussion'),
        action_items=_json_list(data, 'action_items'),
        status=validate_choice(data.get('status') or MeetingMinute.STATUS_DRAFT, MeetingMinute.ALL_STATUSES),
        created_by=current_principal().user_id,
    )
    session.add(m)
    session.commit()
    return meeting_json(m), 201


@meetings_bp.put('/<int:meeting_id>')
@require_permission('meetings', 'edit')
@require_owner_or_admin(_meeting_owner)
def update_meeting(meeting_id: int):
    session = get_db()
    m = get_meeting_row(session, meeting_id, request_scope())
    data = request.json or {}
    for f in TEXT_FIELDS:
        if f in data:
            setattr(m, f, data[f])
    if not m.title:
        abort(400, description='title cannot be empty')
    if 'customer_code' in data:
        m.customer_code = write_tenant_code()
    if 'meeting_date' in data:
        m.meeting_date = parse_datetime(data['meeting_date'], 'meeting_date')
    for key in ('attendees', 'action_items'):
        if key in data:
            setattr(m, key, _json_list(data, key))
    if 'status' in data:
        m.status = validate_choice(data['status'], MeetingMinute.ALL_STATUSES)
    session.commit()
    return meeting_json(m)


@meetings_bp.delete('/<int:meeting_id>')
@require_permission('meetings', 'delete')
@require_owner_or_admin(_meeting_owner)
def delete_meeting(meeting_id: int):
    session = get_db()
    m = get_meeting_row(session, meeting_id, request_scope())
    session.delete(m)
    session.commit()
    return {'status': 'deleted'}

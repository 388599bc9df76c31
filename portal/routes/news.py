from flask import Blueprint, request, abort
from sqlalchemy import select
from portal import get_db
from portal.decorators.auth import require_permission
from portal.models.news import News
from portal.services.policy import current_principal
from portal.utils.filters import apply_filters, apply_search
from portal.utils.listing import list_response, iso
from portal.utils.sorting import apply_multi_sort
from portal.utils.validation import validate_choice, require_fields, require_strings, parse_number

news_bp = Blueprint('news', __name__)

TEXT_FIELDS = ('name', 'title', 'short_description', 'long_description')
LATEST_DEFAULT = 5
LATEST_MAX = 50


def _news_json(n: News):
    return {
        'id': n.id,
        'news_number': n.news_number,
        'name': n.name,
        'title': n.title,
        'short_description': n.short_description,
        'long_description': n.long_description,
        'status': n.status,
        'priority': n.priority,
        'created_at': iso(n.created_at),
        'updated_at': iso(n.updated_at),
    }


def _visible(q):
    # Inactive items are drafts for everyone but admins
    if not current_principal().is_admin:
        q = q.filter(News.status == News.STATUS_ACTIVE)
    return q


def _get_news(session, news_id: int) -> News:
    n = session.execute(_visible(select(News).where(News.id == news_id))).scalar_one_or_none()
    if not n:
        abort(404, description='News not found')
    return n


@news_bp.get('')
@require_permission('news', 'view')
def list_news():
    session = get_db()
    q = _visible(session.query(News))
    q = apply_search(q, request.args.get('search'), [News.name, News.title, News.news_number])
    q = apply_filters(q, {
        'status': {'op': lambda qu, v: qu.filter(News.status == v), 'validate': lambda v: v in News.ALL_STATUSES},
    }, request.args)
    allowed = {'priority': News.priority, 'created_at': News.created_at, 'name': News.name, 'id': News.id}
    q = apply_multi_sort(q, request.args.get('sort'), allowed, News.id, default=News.priority.asc())
    return list_response(q, _news_json)


@news_bp.get('/latest')
@require_permission('news', 'view')
def latest_news():
    limit = parse_number(request.args.get('limit', LATEST_DEFAULT), 'limit', integer=True)
    limit = max(1, min(limit, LATEST_MAX))
    rows = get_db().execute(
        select(News)
        .where(News.status == News.STATUS_ACTIVE)
        .order_by(News.created_at.desc(), News.priority.asc(), News.id.desc())
        .limit(limit)
    ).scalars().all()
    return {'data': [_news_json(n) for n in rows]}


@news_bp.get('/<int:news_id>')
@require_permission('news', 'view')
def get_news(news_id: int):
    return _news_json(_get_news(get_db(), news_id))


@news_bp.post('')
@require_permission('news', 'add')
def create_news():
    data = request.json or {}
    require_fields(data, 'news_number', 'name')
    require_strings(data, 'news_number', *TEXT_FIELDS)
    session = get_db()
    if session.execute(select(News).where(News.news_number == data['news_number'])).scalar_one_or_none():
        abort(400, description='news_number already exists')
    n = News(
        news_number=data['news_number'],
        status=validate_choice(data.get('status') or News.STATUS_ACTIVE, News.ALL_STATUSES),
        priority=parse_number(data.get('priority', 0), 'priority', integer=True),
        created_by=current_principal().user_id,
        **{f: data.get(f) for f in TEXT_FIELDS},
    )
    session.add(n)
    session.commit()
    return _news_json(n), 201


@news_bp.put('/<int:news_id>')
@require_permission('news', 'edit')
def update_news(news_id: int):
    session = get_db()
    n = _get_news(session, news_id)
    data = request.json or {}
    require_strings(data, *TEXT_FIELDS)
    for f in TEXT_FIELDS:
        if f in data:
            setattr(n, f, data[f])
    if not n.name:
        abort(400, description='name cannot be empty')
    if 'priority' in data:
        n.priority = parse_number(data['priority'], 'priority', integer=True)
    if 'status' in data:
        n.status = validate_choice(data['status'], News.ALL_STATUSES)
    session.commit()
    return _news_json(n)


@news_bp.delete('/<int:news_id>')
@require_permission('news', 'delete')
def delete_news(news_id: int):
    session = get_db()
    n = _get_news(session, news_id)
    session.delete(n)
    session.commit()
    return {'status': 'deleted'}

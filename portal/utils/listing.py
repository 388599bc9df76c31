from __future__ import annotations
from typing import Callable, Tuple, Any
from flask import request, abort
from portal.config.pagination import normalize_pagination


def apply_pagination(q) -> Tuple[Any, int, int, int]:
    try:
        limit, offset = normalize_pagination(request.args.get('limit'), request.args.get('offset'), request.args.get('page'))
    except ValueError as e:
        abort(400, description=str(e))
    total = q.count()
    return q.offset(offset).limit(limit), total, limit, offset


def build_list_payload(rows: list, total: int, limit: int, offset: int):
    return {
        'data': rows,
        'pagination': {
            'total': total,
            'limit': limit,
            'offset': offset,
            'returned': len(rows)
        }
    }


def list_response(q, serialize: Callable[[Any], dict]):
    """Paginate a Query and render each row with serialize."""
    paged_q, total, limit, offset = apply_pagination(q)
    rows = [serialize(r) for r in paged_q.all()]
    return build_list_payload(rows, total, limit, offset)


def iso(dt) -> str | None:
    return dt.isoformat() if dt else None

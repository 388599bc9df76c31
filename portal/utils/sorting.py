from __future__ import annotations
from flask import abort


def apply_multi_sort(query, sort_expr: str | None, allowed: dict, tie_breaker, default=None):
    """Apply a comma-separated sort expression ('-field' for descending).

    allowed: mapping of public field name -> column.
    default: clause used when no expression is given (falls back to tie_breaker asc).
    """
    if not sort_expr:
        if default is not None:
            return query.order_by(default, tie_breaker.asc())
        return query.order_by(tie_breaker.asc())
    clauses = []
    for raw in sort_expr.split(','):
        token = raw.strip()
        if not token:
            continue
        desc = token.startswith('-')
        key = token[1:] if desc else token
        col = allowed.get(key)
        if col is None:
            abort(400, description=f'Invalid sort field {key}')
        clauses.append(col.desc() if desc else col.asc())
    clauses.append(tie_breaker.asc())
    return query.order_by(*clauses)

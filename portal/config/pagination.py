DEFAULT_LIMIT = 50
MAX_LIMIT = 200


def normalize_pagination(limit_raw, offset_raw, page_raw=None):
    """Return (limit, offset) from raw query values.

    Portal clients page with ``page`` (1-based) + ``limit``; ``offset`` wins when both are sent.
    """
    try:
        limit = int(limit_raw) if limit_raw is not None else DEFAULT_LIMIT
        page = int(page_raw) if page_raw is not None else None
        offset = int(offset_raw) if offset_raw is not None else None
    except ValueError:
        raise ValueError('limit/offset/page must be int')
    limit = max(1, min(limit, MAX_LIMIT))
    if offset is None:
        offset = (max(page, 1) - 1) * limit if page is not None else 0
    offset = max(0, offset)
    return limit, offset

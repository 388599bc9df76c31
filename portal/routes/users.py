from flask import Blueprint, request, abort
from sqlalchemy import select
from portal import get_db
from portal.constants.permissions import ACCOUNT_STATUSES, ROLE_ADMIN, ROLE_CUSTOMER, ROLE_TAGS, STATUS_ACTIVE, STATUS_INACTIVE
from portal.decorators.audit import audit_log
from portal.decorators.auth import require_permission
from portal.models.authz import User, Role
from portal.services.permission_document import normalize
from portal.services.policy import current_principal
from portal.utils.filters import apply_filters, apply_search
from portal.utils.listing import list_response, iso
from portal.utils.sorting import apply_multi_sort
from portal.utils.validation import validate_choice, require_fields, require_strings, parse_text

users_bp = Blueprint('users', __name__)

PROFILE_FIELDS = ('first_name', 'last_name', 'phone')


def _user_json(u: User):
    return {
        'id': u.id,
        'username': u.username,
        'email': u.email,
        'first_name': u.first_name,
        'last_name': u.last_name,
        'phone': u.phone,
        'customer_code': u.customer_code,
        'role': u.role,
        'role_id': u.role_id,
        'status': u.status,
        'last_login_at': iso(u.last_login_at),
        'created_at': iso(u.created_at),
    }


def _get_user(session, user_id: int) -> User:
    user = session.execute(select(User).where(User.id == user_id)).scalar_one_or_none()
    if not user:
        abort(404, description='User not found')
    return user


def _check_unique(session, field, value, exclude_id=None):
    q = select(User).where(field == value)
    if exclude_id is not None:
        q = q.where(User.id != exclude_id)
    if session.execute(q).scalar_one_or_none():
        abort(400, description=f'{field.key} already in use')


def _check_role_tag(tag):
    validate_choice(tag, ROLE_TAGS, 'role')
    # Granting the bypass tag is reserved to principals who already hold it
    if tag == ROLE_ADMIN and not current_principal().is_admin:
        abort(403, description='Only administrators can grant the admin role')
    return tag


def _check_role_id(session, role_id):
    if role_id is None:
        return None
    role = session.execute(select(Role).where(Role.id == role_id)).scalar_one_or_none()
    if not role:
        abort(400, description=f'Unknown role id: {role_id}')
    return role.id


@users_bp.get('')
@require_permission('users', 'view')
def list_users():
    session = get_db()
    q = session.query(User)
    q = apply_search(q, request.args.get('search'), [User.username, User.email, User.customer_code, User.first_name, User.last_name])
    q = apply_filters(q, {
        'role': {'op': lambda qu, v: qu.filter(User.role == v), 'validate': lambda v: v in ROLE_TAGS},
        'status': {'op': lambda qu, v: qu.filter(User.status == v), 'validate': lambda v: v in ACCOUNT_STATUSES},
        'role_id': {'coerce': int, 'op': lambda qu, v: qu.filter(User.role_id == v)},
    }, request.args)
    allowed = {'username': User.username, 'email': User.email, 'created_at': User.created_at, 'id': User.id}
    q = apply_multi_sort(q, request.args.get('sort'), allowed, User.id, default=User.created_at.desc())
    return list_response(q, _user_json)


@users_bp.get('/<int:user_id>')
@require_permission('users', 'view')
def get_user(user_id: int):
    return _user_json(_get_user(get_db(), user_id))


@users_bp.get('/<int:user_id>/permissions')
@require_permission('users', 'view')
def get_user_permissions(user_id: int):
    session = get_db()
    user = _get_user(session, user_id)
    role = session.execute(select(Role).where(Role.id == user.role_id)).scalar_one_or_none() if user.role_id else None
    return {
        'user_id': user.id,
        'role': user.role,
        'role_id': role.id if role else None,
        'role_name': role.role_name if role else None,
        'role_status': role.status if role else None,
        'permissions': normalize(role.permissions).to_dict() if role else None,
    }


@users_bp.post('')
@require_permission('users', 'add')
@audit_log('USER.CREATE', entity='User', entity_id_key='id', meta_keys=['username', 'role', 'role_id', 'customer_code'])
def create_user():
    data = request.json or {}
    require_fields(data, 'username', 'email', 'password')
    require_strings(data, 'username', 'email', 'password', *PROFILE_FIELDS)
    if len(data['username']) < 3:
        abort(400, description='username must be at least 3 characters')
    if len(data['password']) < 6:
        abort(400, description='password must be at least 6 characters')
    session = get_db()
    _check_unique(session, User.username, data['username'])
    _check_unique(session, User.email, data['email'])
    customer_code = parse_text(data.get('customer_code'), 'customer_code')
    if customer_code:
        _check_unique(session, User.customer_code, customer_code)
    user = User(
        username=data['username'],
        email=data['email'],
        customer_code=customer_code,
        role=_check_role_tag(data.get('role') or ROLE_CUSTOMER),
        role_id=_check_role_id(session, data.get('role_id')),
        status=validate_choice(data.get('status') or STATUS_ACTIVE, ACCOUNT_STATUSES),
        created_by=current_principal().user_id,
        **{f: data.get(f) for f in PROFILE_FIELDS},
    )
    user.set_password(data['password'])
    session.add(user)
    session.commit()
    return _user_json(user), 201


@users_bp.put('/<int:user_id>')
@require_permission('users', 'edit')
@audit_log('USER.UPDATE', entity='User', entity_id_key='id', meta_keys=['role', 'role_id', 'status', 'customer_code'])
def update_user(user_id: int):
    session = get_db()
    user = _get_user(session, user_id)
    data = request.json or {}
    if user.role == ROLE_ADMIN and not current_principal().is_admin:
        abort(403, description='Only administrators can modify administrator accounts')
    require_strings(data, 'email', 'password', *PROFILE_FIELDS)
    if 'email' in data:
        require_fields(data, 'email')
        _check_unique(session, User.email, data['email'], exclude_id=user.id)
        user.email = data['email']
    if 'customer_code' in data:
        code = parse_text(data['customer_code'], 'customer_code')
        if code:
            _check_unique(session, User.customer_code, code, exclude_id=user.id)
        user.customer_code = code
    if 'role' in data:
        user.role = _check_role_tag(data['role'])
    if 'role_id' in data:
        user.role_id = _check_role_id(session, data['role_id'])
    if 'status' in data:
        user.status = validate_choice(data['status'], ACCOUNT_STATUSES)
    if data.get('password'):
        if len(data['password']) < 6:
            abort(400, description='password must be at least 6 characters')
        user.set_password(data['password'])
    for f in PROFILE_FIELDS:
        if f in data:
            setattr(user, f, data[f])
    session.commit()
    return _user_json(user)


@users_bp.delete('/<int:user_id>')
@require_permission('users', 'delete')
@audit_log('USER.DEACTIVATE', entity='User', entity_id_key='id')
def delete_user(user_id: int):
    session = get_db()
    user = _get_user(session, user_id)
    if user.id == current_principal().user_id:
        abort(400, description='Cannot deactivate your own account')
    if user.role == ROLE_ADMIN and not current_principal().is_admin:
        abort(403, description='Only administrators can modify administrator accounts')
    user.status = STATUS_INACTIVE
    session.commit()
    return {'id': user.id, 'status': user.status, 'message': 'User deactivated successfully'}

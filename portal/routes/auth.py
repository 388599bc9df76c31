from datetime import datetime, timezone
from flask import Blueprint, request, abort
from flask_jwt_extended import create_access_token
from sqlalchemy import select
from portal import get_db
from portal.constants.permissions import STATUS_ACTIVE
from portal.decorators.auth import require_authenticated
from portal.errors import AccountInactive, Unauthenticated
from portal.models.authz import User, Role, LoginLog
from portal.services.audit import add_audit
from portal.services.permission_document import normalize
from portal.services.policy import current_principal
from portal.utils.listing import iso
from portal.utils.validation import require_strings

auth_bp = Blueprint('auth', __name__)


def _user_json(user: User, role: Role = None):
    body = {
        'id': user.id,
        'username': user.username,
        'email': user.email,
        'first_name': user.first_name,
        'last_name': user.last_name,
        'phone': user.phone,
        'customer_code': user.customer_code,
        'role': user.role,
        'role_id': user.role_id,
        'status': user.status,
        'last_login_at': iso(user.last_login_at),
    }
    if role is not None:
        body['user_role'] = {
            'id': role.id,
            'role_name': role.role_name,
            'permissions': normalize(role.permissions).to_dict(),
            'status': role.status,
        }
    return body


def _role_of(session, user: User):
    if user.role_id is None:
        return None
    return session.execute(select(Role).where(Role.id == user.role_id)).scalar_one_or_none()


@auth_bp.post('/login')
def login():
    data = request.json or {}
    username = data.get('username') or data.get('email')
    password = data.get('password')
    require_strings({'username': username, 'password': password}, 'username', 'password')
    if not username or not password:
        abort(400, description='username & password required')
    session = get_db()
    # Usernames win over e-mails; one login string can match two different rows
    user = session.execute(select(User).where(User.username == username)).scalar_one_or_none()
    if user is None and '@' in username:
        user = session.execute(select(User).where(User.email == username)).scalar_one_or_none()
    if not user or not user.verify_password(password):
        raise Unauthenticated('Invalid credentials')
    if user.status != STATUS_ACTIVE:
        raise AccountInactive()
    now = datetime.now(timezone.utc)
    user.last_login_at = now
    session.add(LoginLog(
        user_id=user.id,
        login_at=now,
        ip_address=request.remote_addr,
        user_agent=(request.headers.get('User-Agent') or '')[:255],
    ))
    add_audit('AUTH.LOGIN', 'User', user.id, actor_user_id=user.id)
    session.commit()
    # Claims are informational; every request re-reads the user row
    token = create_access_token(identity=str(user.id), additional_claims={
        'role': user.role,
        'role_id': user.role_id,
        'customer_code': user.customer_code,
    })
    return {'access_token': token, 'user': _user_json(user, _role_of(session, user))}


@auth_bp.post('/logout')
@require_authenticated
def logout():
    principal = current_principal()
    session = get_db()
    entry = session.execute(
        select(LoginLog)
        .where(LoginLog.user_id == principal.user_id, LoginLog.logout_at.is_(None))
        .order_by(LoginLog.login_at.desc(), LoginLog.id.desc())
        .limit(1)
    ).scalar_one_or_none()
    if entry:
        entry.logout_at = datetime.now(timezone.utc)
        session.commit()
    return {'status': 'logged_out'}


@auth_bp.get('/me')
@require_authenticated
def me():
    principal = current_principal()
    session = get_db()
    user = session.execute(select(User).where(User.id == principal.user_id)).scalar_one()
    return _user_json(user, _role_of(session, user))


@auth_bp.get('/me/permissions')
@require_authenticated
def my_permissions():
    principal = current_principal()
    if principal.is_admin:
        return {'is_admin': True, 'has_role': False, 'permissions': None}
    doc = principal.permission_document
    return {
        'is_admin': False,
        'has_role': principal.role_id is not None,
        'role_id': principal.role_id,
        'customer_code': principal.tenant_code,
        'permissions': doc.to_dict() if doc else None,
    }


@auth_bp.put('/me/password')
@require_authenticated
def change_password():
    data = request.json or {}
    old, new = data.get('old_password'), data.get('new_password')
    require_strings(data, 'old_password', 'new_password')
    if not old or not new:
        abort(400, description='old_password & new_password required')
    if len(new) < 6:
        abort(400, description='new_password must be at least 6 characters')
    session = get_db()
    user = session.execute(select(User).where(User.id == current_principal().user_id)).scalar_one()
    if not user.verify_password(old):
        abort(400, description='Invalid old password')
    user.set_password(new)
    add_audit('AUTH.PASSWORD.CHANGE', 'User', user.id)
    session.commit()
    return {'status': 'password_changed'}

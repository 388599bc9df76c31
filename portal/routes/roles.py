from flask import Blueprint, request, abort
from sqlalchemy import select, func
from portal import get_db
from portal.constants.permissions import ACCOUNT_STATUSES, STATUS_ACTIVE, STATUS_INACTIVE
from portal.decorators.audit import audit_log
from portal.decorators.auth import require_permission, require_authenticated
from portal.models.authz import Role, User
from portal.services.permission_document import PermissionDocument, normalize
from portal.services.policy import current_principal
from portal.utils.filters import apply_filters, apply_search
from portal.utils.listing import list_response, iso
from portal.utils.sorting import apply_multi_sort
from portal.utils.validation import validate_choice, parse_text

roles_bp = Blueprint('roles', __name__)


def _role_json(r: Role):
    return {
        'id': r.id,
        'role_name': r.role_name,
        'description': r.description,
        'permissions': normalize(r.permissions).to_dict(),
        'status': r.status,
        'created_by': r.created_by,
        'created_at': iso(r.created_at),
    }


def _validated_name(session, name, exclude_id=None):
    name = parse_text(name, 'role_name') or ''
    if not 3 <= len(name) <= 100:
        abort(400, description='role_name must be 3-100 characters')
    q = select(Role).where(Role.role_name == name)
    if exclude_id is not None:
        q = q.where(Role.id != exclude_id)
    if session.execute(q).scalar_one_or_none():
        abort(400, description='Role name already exists')
    return name


def _get_role(session, role_id: int) -> Role:
    role = session.execute(select(Role).where(Role.id == role_id)).scalar_one_or_none()
    if not role:
        abort(404, description='Role not found')
    return role


def _snapshot(role_id: int):
    session = get_db()
    role = session.execute(select(Role).where(Role.id == role_id)).scalar_one_or_none()
    if not role:
        return {}
    return {'role_name': role.role_name, 'status': role.status, 'permissions': normalize(role.permissions).to_dict()}


@roles_bp.get('')
@require_permission('roles', 'view')
def list_roles():
    session = get_db()
    q = session.query(Role)
    q = apply_search(q, request.args.get('search'), [Role.role_name, Role.description])
    q = apply_filters(q, {
        'status': {'op': lambda qu, v: qu.filter(Role.status == v), 'validate': lambda v: v in ACCOUNT_STATUSES},
    }, request.args)
    allowed = {'role_name': Role.role_name, 'created_at': Role.created_at, 'id': Role.id}
    q = apply_multi_sort(q, request.args.get('sort'), allowed, Role.id, default=Role.created_at.desc())
    return list_response(q, _role_json)


@roles_bp.get('/active')
@require_authenticated
def list_active_roles():
    session = get_db()
    rows = session.execute(
        select(Role).where(Role.status == STATUS_ACTIVE).order_by(Role.role_name.asc())
    ).scalars().all()
    return {'data': [{'id': r.id, 'role_name': r.role_name, 'description': r.description} for r in rows]}


@roles_bp.get('/<int:role_id>')
@require_permission('roles', 'view')
def get_role(role_id: int):
    return _role_json(_get_role(get_db(), role_id))


@roles_bp.post('')
@require_permission('roles', 'add')
@audit_log('ROLE.CREATE', entity='Role', entity_id_key='id', meta_keys=['role_name'])
def create_role():
    data = request.json or {}
    session = get_db()
    name = _validated_name(session, data.get('role_name'))
    status = validate_choice(data.get('status') or STATUS_ACTIVE, ACCOUNT_STATUSES)
    perms = normalize(data['permissions']) if 'permissions' in data else PermissionDocument.empty()
    role = Role(
        role_name=name,
        description=data.get('description'),
        permissions=perms.to_dict(),
        status=status,
        created_by=current_principal().user_id,
    )
    session.add(role)
    session.commit()
    return _role_json(role), 201


@roles_bp.put('/<int:role_id>')
@require_permission('roles', 'edit')
@audit_log(
    'ROLE.UPDATE',
    entity='Role',
    entity_id_key='id',
    diff_keys=['role_name', 'status', 'permissions'],
    pre_fetch=lambda a, kw: _snapshot(kw.get('role_id')),
)
def update_role(role_id: int):
    session = get_db()
    role = _get_role(session, role_id)
    data = request.json or {}
    if 'role_name' in data:
        role.role_name = _validated_name(session, data['role_name'], exclude_id=role.id)
    if 'description' in data:
        role.description = data['description']
    if 'status' in data:
        role.status = validate_choice(data['status'], ACCOUNT_STATUSES)
    if 'permissions' in data:
        # Replace wholesale; a partial payload denies whatever it leaves out
        role.permissions = normalize(data['permissions']).to_dict()
    session.commit()
    return _role_json(role)


@roles_bp.delete('/<int:role_id>')
@require_permission('roles', 'delete')
@audit_log('ROLE.DEACTIVATE', entity='Role', entity_id_key='id')
def delete_role(role_id: int):
    session = get_db()
    role = _get_role(session, role_id)
    assigned = session.execute(select(func.count(User.id)).where(User.role_id == role.id)).scalar_one()
    if assigned:
        abort(400, description='Cannot delete role. It is assigned to users.')
    role.status = STATUS_INACTIVE
    session.commit()
    return {'id': role.id, 'status': role.status, 'message': 'Role deactivated successfully'}

from flask import Blueprint, request, abort
from sqlalchemy import select
from portal import get_db
from portal.decorators.auth import require_permission
from portal.models.product import Product
from portal.services.policy import current_principal
from portal.utils.filters import apply_filters, apply_search
from portal.utils.listing import list_response, iso
from portal.utils.sorting import apply_multi_sort
from portal.utils.validation import validate_choice, require_fields, parse_number

products_bp = Blueprint('products', __name__)

EDITABLE = ('name', 'category', 'description')


def _product_json(p: Product):
    return {
        'id': p.id,
        'name': p.name,
        'sku': p.sku,
        'category': p.category,
        'description': p.description,
        'price': p.price,
        'status': p.status,
        'updated_at': iso(p.updated_at),
    }


def _visible(q):
    # Customers only ever see the active catalogue
    if not current_principal().is_admin:
        q = q.filter(Product.status == Product.STATUS_ACTIVE)
    return q


def _get_product(session, product_id: int) -> Product:
    p = session.execute(_visible(select(Product).where(Product.id == product_id))).scalar_one_or_none()
    if not p:
        abort(404, description='Product not found')
    return p


@products_bp.get('')
@require_permission('products', 'view')
def list_products():
    session = get_db()
    q = _visible(session.query(Product))
    q = apply_search(q, request.args.get('search'), [Product.name, Product.sku, Product.description])
    q = apply_filters(q, {
        'category': {'op': lambda qu, v: qu.filter(Product.category == v)},
        'status': {'op': lambda qu, v: qu.filter(Product.status == v), 'validate': lambda v: v in Product.ALL_STATUSES},
    }, request.args)
    allowed = {'name': Product.name, 'price': Product.price, 'updated_at': Product.updated_at, 'id': Product.id}
    q = apply_multi_sort(q, request.args.get('sort'), allowed, Product.id)
    return list_response(q, _product_json)


@products_bp.get('/<int:product_id>')
@require_permission('products', 'view')
def get_product(product_id: int):
    return _product_json(_get_product(get_db(), product_id))


@products_bp.post('')
@require_permission('products', 'add')
def create_product():
    data = request.json or {}
    require_fields(data, 'name', 'sku')
    session = get_db()
    if session.execute(select(Product).where(Product.sku == data['sku'])).scalar_one_or_none():
        abort(400, description='sku already exists')
    p = Product(
        name=data['name'],
        sku=data['sku'],
        category=data.get('category'),
        description=data.get('description'),
        price=parse_number(data['price'], 'price') if data.get('price') is not None else None,
        status=validate_choice(data.get('status') or Product.STATUS_ACTIVE, Product.ALL_STATUSES),
        created_by=current_principal().user_id,
    )
    session.add(p)
    session.commit()
    return _product_json(p), 201


@products_bp.put('/<int:product_id>')
@require_permission('products', 'edit')
def update_product(product_id: int):
    session = get_db()
    p = _get_product(session, product_id)
    data = request.json or {}
    for f in EDITABLE:
        if f in data:
            setattr(p, f, data[f])
    if not p.name:
        abort(400, description='name cannot be empty')
    if 'price' in data:
        p.price = parse_number(data['price'], 'price') if data['price'] is not None else None
    if 'status' in data:
        p.status = validate_choice(data['status'], Product.ALL_STATUSES)
    session.commit()
    return _product_json(p)


@products_bp.delete('/<int:product_id>')
@require_permission('products', 'delete')
def delete_product(product_id: int):
    session = get_db()
    p = _get_product(session, product_id)
    session.delete(p)
    session.commit()
    return {'status': 'deleted'}

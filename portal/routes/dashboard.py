from flask import Blueprint
from sqlalchemy import select, func
from portal import get_db
from portal.decorators.auth import require_permission
from portal.models.meeting import MeetingMinute
from portal.models.order import Order
from portal.models.payment import Statement
from portal.services.policy import request_scope

dashboard_bp = Blueprint('dashboard', __name__)


@dashboard_bp.get('/summary')
@require_permission('dashboard', 'view')
def summary():
    session = get_db()
    scope = request_scope()

    def count(model):
        return session.execute(scope.apply(select(func.count(model.id)), model.customer_code)).scalar_one()

    outstanding = session.execute(
        scope.apply(select(func.coalesce(func.sum(Statement.balance), 0)), Statement.customer_code)
        .where(Statement.status != Statement.STATUS_PAID)
    ).scalar_one()
    open_orders = session.execute(
        scope.apply(select(func.count(Order.id)), Order.customer_code)
        .where(Order.status.in_([Order.STATUS_PENDING, Order.STATUS_PROCESSING, Order.STATUS_SHIPPED]))
    ).scalar_one()
    return {
        'customer_code': scope.tenant_code,
        'orders': count(Order),
        'open_orders': open_orders,
        'meetings': count(MeetingMinute),
        'statements': count(Statement),
        'outstanding_balance': float(outstanding),
    }

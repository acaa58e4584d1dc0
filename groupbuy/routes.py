from datetime import datetime

from flask import Blueprint, current_app, jsonify, request, send_file

from .aggregator import OrderAggregator
from .auth import admin_required, authenticate
from .errors import NotFound, ValidationError, register_error_handlers
from .export import orders_to_excel
from .general_orders import GeneralOrderDirectory
from .models import ROLE_ADMIN, db
from .notifications import NotificationDirectory
from .notifier import notify_general_order_closed, notify_general_order_opened
from .orders import OrderRepository
from .shop_status import ShopStatusController

api_bp = Blueprint('api', __name__)
register_error_handlers(api_bp)


def _json_body():
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        raise ValidationError("request body must be a JSON object")
    return data


def _aggregated_orders():
    repo = OrderRepository(db.session, transactional=current_app.config['ORDER_DELETE_TRANSACTIONAL'])
    return OrderAggregator(db.session).aggregate(repo.list_orders())


# --------------------------------------------------------------------------------
# Auth
# --------------------------------------------------------------------------------

@api_bp.route('/auth/token', methods=['POST'])
def issue_token():
    """Email/password -> bearer token"""
    data = _json_body()
    token = authenticate(data.get('email'), data.get('password'))
    return jsonify({"success": True, "token": token})


# --------------------------------------------------------------------------------
# Orders (admin)
# --------------------------------------------------------------------------------

@api_bp.route('/orders', methods=['GET'])
@admin_required('list_orders')
def list_orders(grant):
    orders = _aggregated_orders()
    return jsonify({"orders": orders, "total": len(orders)})


@api_bp.route('/orders/export', methods=['GET'])
@admin_required('export_orders')
def export_orders(grant):
    """Order listing as an Excel download"""
    orders = _aggregated_orders()
    if not orders:
        raise NotFound("no orders to export")
    return send_file(
        orders_to_excel(orders),
        mimetype='application/vnd.openxmlformats-officedocument.spreadsheetml.sheet',
        download_name=f"orders_{datetime.now().strftime('%Y%m%d')}.xlsx",
        as_attachment=True,
    )


@api_bp.route('/orders/<int:order_id>', methods=['DELETE'])
@admin_required('delete_order')
def delete_order(order_id, grant):
    repo = OrderRepository(db.session, transactional=current_app.config['ORDER_DELETE_TRANSACTIONAL'])
    repo.delete_order(grant, order_id)
    return jsonify({"success": True, "message": "Order deleted successfully"})


# --------------------------------------------------------------------------------
# Shop status
# --------------------------------------------------------------------------------

@api_bp.route('/shop/status', methods=['GET'])
def get_shop_status():
    return jsonify(ShopStatusController(db.session).get_status())


@api_bp.route('/shop/status', methods=['PUT'])
@admin_required('set_shop_status')
def put_shop_status(grant):
    """Full open/close transition, or a message-only update when is_open is absent"""
    data = _json_body()
    controller = ShopStatusController(db.session)
    if 'is_open' in data:
        controller.set_status(grant, data['is_open'], data.get('current_general_order_id'), data.get('message'))
        return jsonify({"success": True, "message": "Shop status updated"})
    if 'message' in data:
        controller.update_message(grant, data['message'])
        return jsonify({"success": True, "message": "Shop message updated"})
    raise ValidationError("is_open or message is required")


# --------------------------------------------------------------------------------
# Notification recipients (admin)
# --------------------------------------------------------------------------------

@api_bp.route('/notifications/users', methods=['GET'])
@admin_required('list_recipients')
def notification_users(grant):
    users = NotificationDirectory(db.session).list_users(grant, request.args.get('role'))
    return jsonify({"success": True, "users": users})


# --------------------------------------------------------------------------------
# General orders
# --------------------------------------------------------------------------------

@api_bp.route('/general-orders', methods=['GET'])
def list_general_orders():
    directory = GeneralOrderDirectory(db.session)
    status = request.args.get('status')
    if status == 'open':
        general_orders = directory.list_open(datetime.now())
    elif not status:
        general_orders = directory.list_all()
    else:
        raise ValidationError(f"unknown status filter: {status}")
    return jsonify(directory.summarize(general_orders))


@api_bp.route('/general-orders/close-expired', methods=['POST'])
@admin_required('close_expired_general_orders')
def close_expired_general_orders(grant):
    """Manual trigger for closing campaigns past their deadline"""
    directory = GeneralOrderDirectory(db.session)
    closed = directory.close_expired(grant, datetime.now(), ShopStatusController(db.session),
                                     current_app.config['EXPIRED_CLOSED_MESSAGE'])
    if closed:
        recipients = NotificationDirectory(db.session).list_users(grant, ROLE_ADMIN)
        for general_order in closed:
            notify_general_order_closed(general_order, recipients)
    return jsonify({"success": True, "closed_orders": [g.summary() for g in closed]})


@api_bp.route('/general-orders/open-scheduled', methods=['POST'])
@admin_required('open_scheduled_general_orders')
def open_scheduled_general_orders(grant):
    """Manual trigger for opening scheduled campaigns whose opening time has come"""
    directory = GeneralOrderDirectory(db.session)
    opened = directory.open_scheduled(grant, datetime.now(), ShopStatusController(db.session),
                                      current_app.config['OPENED_MESSAGE'])
    if opened:
        recipients = NotificationDirectory(db.session).list_users(grant, ROLE_ADMIN)
        for general_order in opened:
            notify_general_order_opened(general_order, recipients)
    return jsonify({"success": True, "opened_orders": [g.summary() for g in opened]})

"""Display-ready orders: items with product snapshots, purchaser, derived totals."""
import math

from flask import current_app
from sqlalchemy.exc import SQLAlchemyError

from .models import User


def _to_number(value):
    try:
        number = float(value)
    except (TypeError, ValueError):
        return 0
    if math.isnan(number) or math.isinf(number):
        return 0
    return number


def compute_total(stored_total, items):
    """Stored total when present and non-zero, otherwise the sum of item totals."""
    stored = _to_number(stored_total)
    if stored:
        return stored
    return sum(_to_number(item.get('total_price')) for item in items)


class OrderAggregator:

    def __init__(self, session):
        self.session = session

    def aggregate(self, orders):
        # build every payload before any user lookup so a failed lookup can
        # roll the session back without losing the rows already read
        payloads = [self.enrich(order) for order in orders]
        purchasers = {}
        for payload in payloads:
            user_id = payload['user_id']
            if user_id not in purchasers:
                try:
                    purchasers[user_id] = self._purchaser(user_id)
                except SQLAlchemyError as e:
                    # only this order loses its user; the next order retries
                    self.session.rollback()
                    current_app.logger.warning("Could not load purchaser %s, omitting: %s", user_id, e)
                    continue
            payload['user'] = purchasers[user_id]
        return payloads

    def enrich(self, order):
        items = [self._item(item) for item in order.items]
        general_order = order.general_order
        return {
            'id': order.id,
            'user_id': order.user_id,
            'general_order_id': order.general_order_id,
            'created_at': order.created_at.isoformat() if order.created_at else None,
            'order_items': items,
            'general_order': {
                'id': general_order.id,
                'title': general_order.title,
                'status': general_order.status,
            } if general_order else None,
            'user': None,
            'total_amount': compute_total(order.total_amount, items),
            'items_count': len(items),
            'is_group_order': order.general_order_id is not None,
        }

    def _item(self, item):
        return {
            'id': item.id,
            'product_id': item.product_id,
            'quantity': item.quantity,
            'unit_price': item.unit_price,
            'total_price': item.total_price,
            # current product data, not a purchase-time copy
            'product': item.product.snapshot() if item.product else None,
        }

    def _fetch_user(self, user_id):
        return self.session.get(User, user_id)

    def _purchaser(self, user_id):
        user = self._fetch_user(user_id)
        if user is None:
            return None
        return {'full_name': user.full_name, 'phone': user.phone, 'username': user.username}

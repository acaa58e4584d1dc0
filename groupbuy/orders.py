from flask import current_app
from sqlalchemy import delete, select
from sqlalchemy.exc import SQLAlchemyError

from .auth import require_grant
from .errors import NotFound, PartialFailure, StorageError
from .models import Order, OrderItem


class OrderRepository:
    """Reads and deletes Order rows together with their OrderItem children.

    Purchaser identity is not joined here; OrderAggregator attaches it per order.
    """

    def __init__(self, session, transactional=True):
        self.session = session
        self.transactional = transactional

    def list_orders(self):
        """Every order with its items and general order summary, newest first"""
        stmt = select(Order).order_by(Order.created_at.desc(), Order.id.desc())
        try:
            return self.session.execute(stmt).unique().scalars().all()
        except SQLAlchemyError as e:
            self.session.rollback()
            current_app.logger.error("Error fetching orders: %s", e)
            raise StorageError("could not load orders") from e

    def get(self, order_id):
        try:
            order = self.session.get(Order, order_id)
        except SQLAlchemyError as e:
            self.session.rollback()
            raise StorageError(f"could not load order {order_id}") from e
        if order is None:
            raise NotFound(f"order {order_id} does not exist")
        return order

    def delete_order(self, grant, order_id):
        """Remove the order's items, then the order row.

        A failure while removing items never touches the order row. When the
        store runs each step in its own transaction, a failure on the order row
        after the items are gone raises PartialFailure.
        """
        require_grant(grant)
        order = self.get(order_id)

        if self.transactional:
            try:
                removed = self._delete_items(order.id)
                self._delete_order_row(order.id)
                self.session.commit()
            except SQLAlchemyError as e:
                self.session.rollback()
                current_app.logger.error("Error deleting order %s: %s", order_id, e)
                raise StorageError(f"failed to delete order {order_id}") from e
        else:
            try:
                removed = self._delete_items(order.id)
                self.session.commit()
            except SQLAlchemyError as e:
                self.session.rollback()
                current_app.logger.error("Error deleting items of order %s: %s", order_id, e)
                raise StorageError(f"failed to delete items of order {order_id}") from e
            try:
                self._delete_order_row(order.id)
                self.session.commit()
            except SQLAlchemyError as e:
                self.session.rollback()
                current_app.logger.error("Order %s lost its items but the order row remains: %s", order_id, e)
                raise PartialFailure(f"items of order {order_id} were removed but the order row was not",
                                     order_id=order_id) from e

        current_app.logger.info("Order %s deleted with %s item(s) by user %s", order_id, removed, grant.user.id)
        return removed

    def _delete_items(self, order_id):
        result = self.session.execute(delete(OrderItem).where(OrderItem.order_id == order_id))
        return result.rowcount

    def _delete_order_row(self, order_id):
        self.session.execute(delete(Order).where(Order.id == order_id))

from flask import current_app
from sqlalchemy import select, update
from sqlalchemy.exc import SQLAlchemyError

from .aggregator import compute_total
from .auth import require_grant
from .errors import NotFound, ShopError, StorageError
from .models import GeneralOrder, Order


class GeneralOrderDirectory:
    """Lists group-order campaigns; ``now`` is always passed in, never read here."""

    def __init__(self, session):
        self.session = session

    def _all(self, stmt):
        try:
            return self.session.execute(stmt).scalars().all()
        except SQLAlchemyError as e:
            self.session.rollback()
            current_app.logger.error("Error fetching general orders: %s", e)
            raise StorageError("could not load general orders") from e

    def list_all(self):
        return self._all(select(GeneralOrder).order_by(GeneralOrder.created_at.desc(), GeneralOrder.id.desc()))

    def list_open(self, now):
        return self._all(
            select(GeneralOrder)
            .where(GeneralOrder.status == GeneralOrder.STATUS_OPEN, GeneralOrder.deadline >= now)
            .order_by(GeneralOrder.deadline.asc())
        )

    def get(self, general_order_id):
        try:
            general_order = self.session.get(GeneralOrder, general_order_id)
        except SQLAlchemyError as e:
            self.session.rollback()
            raise StorageError("could not load general order") from e
        if general_order is None:
            raise NotFound(f"general order {general_order_id} does not exist")
        return general_order

    def summarize(self, general_orders):
        """Attach order count, amount and distinct participants to each campaign"""
        ids = [g.id for g in general_orders]
        orders = self._all(select(Order).where(Order.general_order_id.in_(ids))) if ids else []
        totals = {gid: {'total_orders': 0, 'total_amount': 0, 'participants': set()} for gid in ids}
        for order in orders:
            bucket = totals[order.general_order_id]
            items = [{'total_price': item.total_price} for item in order.items]
            bucket['total_orders'] += 1
            bucket['total_amount'] += compute_total(order.total_amount, items)
            bucket['participants'].add(order.user_id)

        result = []
        for general_order in general_orders:
            bucket = totals[general_order.id]
            data = general_order.to_dict()
            data.update({
                'total_orders': bucket['total_orders'],
                'total_amount': bucket['total_amount'],
                'participant_count': len(bucket['participants']),
            })
            result.append(data)
        return result

    def close_expired(self, grant, now, shop, closed_message):
        """Close open campaigns past their deadline and release the shop if bound to one."""
        require_grant(grant)
        expired = self._all(
            select(GeneralOrder)
            .where(GeneralOrder.status == GeneralOrder.STATUS_OPEN, GeneralOrder.deadline < now)
        )
        if not expired:
            current_app.logger.info("No expired general orders found")
            return []

        ids = [g.id for g in expired]
        try:
            self.session.execute(
                update(GeneralOrder)
                .where(GeneralOrder.id.in_(ids))
                .values(status=GeneralOrder.STATUS_CLOSED, updated_at=now)
            )
            released = shop.release_general_orders(grant, ids, closed_message, now)
            self.session.commit()
        except SQLAlchemyError as e:
            self.session.rollback()
            current_app.logger.error("Error closing expired general orders: %s", e)
            raise StorageError("could not close expired general orders") from e

        current_app.logger.info("Closed %s expired general order(s)%s", len(ids),
                                ", shop closed" if released else "")
        return expired

    def open_scheduled(self, grant, now, shop, message):
        """Open scheduled campaigns whose opening time has come and bind the shop.

        ``message`` is formatted with the bound campaign's ``title``. The shop is
        bound to the latest-opening campaign still before its deadline; when none
        qualifies the campaigns open but the shop is left as it is.
        """
        require_grant(grant)
        due = self._all(
            select(GeneralOrder)
            .where(GeneralOrder.status == GeneralOrder.STATUS_SCHEDULED,
                   GeneralOrder.opening_time.is_not(None),
                   GeneralOrder.opening_time <= now)
            .order_by(GeneralOrder.opening_time.desc(), GeneralOrder.id.desc())
        )
        if not due:
            current_app.logger.info("No scheduled general orders due to open")
            return []

        bound = next((g for g in due if g.deadline >= now), None)
        bound_id = bound.id if bound else None
        bound_message = message.format(title=bound.title) if bound else None
        try:
            self.session.execute(
                update(GeneralOrder)
                .where(GeneralOrder.id.in_([g.id for g in due]))
                .values(status=GeneralOrder.STATUS_OPEN, updated_at=now)
            )
            if bound_id is not None:
                shop.bind_general_order(grant, bound_id, bound_message, now)
            self.session.commit()
        except SQLAlchemyError as e:
            self.session.rollback()
            current_app.logger.error("Error opening scheduled general orders: %s", e)
            raise StorageError("could not open scheduled general orders") from e
        except ShopError:
            self.session.rollback()
            raise

        current_app.logger.info("Opened %s scheduled general order(s), shop bound to %s", len(due), bound_id)
        return due

"""The global shop open/closed switch.

``shop_status`` holds exactly one row. All writes go through a single UPDATE
statement so the open flag, the bound general order and the message change
together.
"""
import json
from datetime import datetime

from flask import current_app
from sqlalchemy import func, select, update
from sqlalchemy.exc import SQLAlchemyError

from .auth import require_grant
from .errors import NotFound, StorageError, ValidationError
from .models import GeneralOrder, ShopStatus


def ensure_singleton(session, message):
    """Insert the closed default row if the table is empty."""
    if session.scalar(select(func.count()).select_from(ShopStatus)):
        return False
    session.add(ShopStatus(is_open=False, message=message))
    session.commit()
    return True


def _message_text(message):
    if isinstance(message, (dict, list)):
        return json.dumps(message, ensure_ascii=False)
    if not isinstance(message, str):
        raise ValidationError("message must be a string or an object")
    return message


class ShopStatusController:

    def __init__(self, session):
        self.session = session

    def _singleton(self):
        try:
            rows = self.session.execute(select(ShopStatus).limit(2)).unique().scalars().all()
        except SQLAlchemyError as e:
            self.session.rollback()
            current_app.logger.error("Error fetching shop status: %s", e)
            raise StorageError("could not load shop status") from e
        if not rows:
            raise NotFound("shop status is not configured")
        if len(rows) > 1:
            raise StorageError("more than one shop status row exists")
        return rows[0]

    def get_status(self):
        row = self._singleton()
        bound = row.current_general_order
        return {
            'id': row.id,
            'is_open': row.is_open,
            'current_general_order_id': row.current_general_order_id,
            'message': row.message,
            'updated_at': row.updated_at.isoformat() if row.updated_at else None,
            'current_general_order': bound.summary() if bound else None,
        }

    def set_status(self, grant, is_open, general_order_id=None, message=None):
        """Open or close the shop and (re)bind its general order in one write.

        Omitting ``general_order_id`` clears the binding; omitting ``message``
        keeps the current one.
        """
        require_grant(grant)
        if not isinstance(is_open, bool):
            raise ValidationError("is_open must be a boolean")
        if general_order_id is not None:
            self._check_bindable(general_order_id)

        values = {
            'is_open': is_open,
            'current_general_order_id': general_order_id,
            'updated_at': datetime.now(),
        }
        if message is not None:
            values['message'] = _message_text(message)
        self._write(values)
        current_app.logger.info("Shop %s by user %s (general order: %s)",
                                "opened" if is_open else "closed", grant.user.id, general_order_id)

    def update_message(self, grant, message):
        """Change only the message, leaving the flag and binding as they are"""
        require_grant(grant)
        if message is None:
            raise ValidationError("message is required")
        self._write({'message': _message_text(message), 'updated_at': datetime.now()})

    def release_general_orders(self, grant, general_order_ids, message, now):
        """Close the shop if it is bound to one of ``general_order_ids``.

        Runs inside the caller's transaction; the caller commits.
        """
        require_grant(grant)
        if not general_order_ids:
            return 0
        result = self.session.execute(
            update(ShopStatus)
            .where(ShopStatus.current_general_order_id.in_(general_order_ids))
            .values(is_open=False, current_general_order_id=None, message=message, updated_at=now)
        )
        return result.rowcount

    def bind_general_order(self, grant, general_order_id, message, now):
        """Open the shop on ``general_order_id``.

        Runs inside the caller's transaction; the caller commits.
        """
        require_grant(grant)
        row = self._singleton()
        self.session.execute(
            update(ShopStatus)
            .where(ShopStatus.id == row.id)
            .values(is_open=True, current_general_order_id=general_order_id, message=message, updated_at=now)
        )

    def _check_bindable(self, general_order_id):
        if isinstance(general_order_id, bool) or not isinstance(general_order_id, int):
            raise ValidationError("current_general_order_id must be an integer")
        try:
            general_order = self.session.get(GeneralOrder, general_order_id)
        except SQLAlchemyError as e:
            self.session.rollback()
            raise StorageError("could not load general order") from e
        if general_order is None:
            raise NotFound(f"general order {general_order_id} does not exist")
        if general_order.status == GeneralOrder.STATUS_ARCHIVED:
            raise ValidationError(f"general order {general_order_id} is archived")
        if general_order.status != GeneralOrder.STATUS_OPEN:
            current_app.logger.warning("Binding shop to general order %s with status %s",
                                       general_order_id, general_order.status)

    def _write(self, values):
        row = self._singleton()
        try:
            self.session.execute(update(ShopStatus).where(ShopStatus.id == row.id).values(**values))
            self.session.commit()
        except SQLAlchemyError as e:
            self.session.rollback()
            current_app.logger.error("Error updating shop status: %s", e)
            raise StorageError("could not update shop status") from e

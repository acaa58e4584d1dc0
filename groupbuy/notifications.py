from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError

from .auth import require_grant
from .errors import StorageError, ValidationError
from .models import ROLES, User

MISSING_PHONE = 'N/A'


class NotificationDirectory:
    """Recipient listing for admin notification pickers"""

    def __init__(self, session):
        self.session = session

    def list_users(self, grant, role=None):
        # exposes every user's contact details, so admin only
        require_grant(grant)
        stmt = select(User).order_by(User.full_name.asc(), User.id.asc())
        if role:
            if role not in ROLES:
                raise ValidationError(f"unknown role: {role}")
            stmt = stmt.where(User.role == role)
        try:
            users = self.session.execute(stmt).scalars().all()
        except SQLAlchemyError as e:
            self.session.rollback()
            raise StorageError("failed to fetch users") from e
        return [{
            'id': u.id,
            'name': u.full_name,
            'email': u.email,
            'phone': u.phone or MISSING_PHONE,
            'role': u.role,
        } for u in users]

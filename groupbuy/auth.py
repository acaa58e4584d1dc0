"""Caller identity and the admin gate in front of every mutating operation.

One scheme for the whole API: ``Authorization: Bearer <token>``, where the
token is the user id signed with the application's secret key. The role is
read from the database when the request first touches ``current_user`` and is
never cached beyond that request, so role changes apply immediately.
"""
from collections import namedtuple
from functools import wraps

from flask import current_app, request
from flask_login import LoginManager, current_user
from itsdangerous import BadSignature, URLSafeTimedSerializer
from sqlalchemy.exc import SQLAlchemyError
from werkzeug.security import check_password_hash

from .errors import Forbidden, StorageError, Unauthenticated, ValidationError
from .models import ROLE_ADMIN, User, db

TOKEN_SALT = 'groupbuy-api-token'

login_manager = LoginManager()

Authorized = namedtuple('Authorized', ['user', 'action'])


def _serializer():
    return URLSafeTimedSerializer(current_app.config['SECRET_KEY'], salt=TOKEN_SALT)


def issue_token(user):
    return _serializer().dumps({'uid': user.id})


def _bearer_token():
    header = request.headers.get('Authorization', '')
    scheme, _, token = header.partition(' ')
    if scheme.lower() != 'bearer' or not token.strip():
        return None
    return token.strip()


def _load_user(user_id):
    try:
        return db.session.get(User, int(user_id))
    except SQLAlchemyError as e:
        db.session.rollback()
        current_app.logger.error("User lookup failed for %s: %s", user_id, e)
        raise StorageError("could not resolve caller") from e


@login_manager.user_loader
def load_user(user_id):
    return _load_user(user_id)


@login_manager.request_loader
def load_user_from_request(req):
    token = _bearer_token()
    if token is None:
        return None
    try:
        payload = _serializer().loads(token, max_age=current_app.config['TOKEN_MAX_AGE'])
    except BadSignature:
        current_app.logger.warning("Rejected bearer token from %s", req.remote_addr)
        return None
    uid = payload.get('uid') if isinstance(payload, dict) else None
    if uid is None:
        return None
    return _load_user(uid)


def authenticate(email, password):
    """Exchange email/password for a token"""
    if not email or not password:
        raise ValidationError("email and password are required")
    try:
        user = User.query.filter_by(email=email).first()
    except SQLAlchemyError as e:
        db.session.rollback()
        raise StorageError("could not verify credentials") from e
    if not user or not user.password or not check_password_hash(user.password, password):
        raise Unauthenticated("invalid credentials")
    return issue_token(user)


def authorize(action, user=None):
    """Return an Authorized grant for an admin caller, raise otherwise."""
    if user is None:
        user = current_user._get_current_object()
    if user is None or not user.is_authenticated:
        raise Unauthenticated(f"authentication required for {action}")
    if user.role != ROLE_ADMIN:
        raise Forbidden(f"admin role required for {action}")
    return Authorized(user, action)


def require_grant(grant):
    if not isinstance(grant, Authorized):
        raise Forbidden("operation requires an authorized admin caller")
    return grant


def admin_required(action):
    """View decorator: runs the guard and passes the grant as ``grant``."""
    def decorator(view):
        @wraps(view)
        def wrapped(*args, **kwargs):
            kwargs['grant'] = authorize(action)
            return view(*args, **kwargs)
        return wrapped
    return decorator

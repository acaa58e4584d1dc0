import os

from dotenv import load_dotenv

load_dotenv()

BASE_DIR = os.path.abspath(os.path.dirname(os.path.dirname(__file__)))


def _flag(name, default):
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ('1', 'true', 'yes', 'on')


class Config:
    SECRET_KEY = os.getenv("FLASK_SECRET_KEY", "groupbuy-dev-key-change-me")
    SQLALCHEMY_DATABASE_URI = os.getenv("DATABASE_URL", f"sqlite:///{os.path.join(BASE_DIR, 'groupbuy.db')}")
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    TOKEN_MAX_AGE = int(os.getenv("TOKEN_MAX_AGE", 7 * 24 * 3600))

    # False for stores without multi-statement transactions: each delete step
    # commits on its own and a failed second step surfaces as PartialFailure.
    ORDER_DELETE_TRANSACTIONAL = _flag("ORDER_DELETE_TRANSACTIONAL", True)

    NOTIFY_WEBHOOK_URL = os.getenv("NOTIFY_WEBHOOK_URL")
    NOTIFY_TIMEOUT = float(os.getenv("NOTIFY_TIMEOUT", 5))

    DEFAULT_CLOSED_MESSAGE = "The shop is currently closed"
    EXPIRED_CLOSED_MESSAGE = "The shop is closed - the group order has ended"
    OPENED_MESSAGE = 'The group order "{title}" is open!'

    ADMIN_EMAIL = os.getenv("ADMIN_EMAIL")
    ADMIN_PASSWORD = os.getenv("ADMIN_PASSWORD")

    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

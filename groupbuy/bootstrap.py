from flask import current_app
from werkzeug.security import generate_password_hash

from .models import ROLE_ADMIN, User, db
from .shop_status import ensure_singleton


def init_db(admin_email=None, admin_password=None):
    """Create tables, the shop status row and (optionally) the first admin"""
    db.create_all()
    created = ensure_singleton(db.session, current_app.config['DEFAULT_CLOSED_MESSAGE'])

    if admin_email and admin_password and not User.query.filter_by(email=admin_email).first():
        db.session.add(User(
            email=admin_email,
            username=admin_email.split('@')[0],
            full_name="Administrator",
            password=generate_password_hash(admin_password),
            role=ROLE_ADMIN,
        ))
        db.session.commit()
        print(f"✅ [System] admin account {admin_email} created")
    return created


def register_commands(app):
    @app.cli.command('init-db')
    def init_db_command():
        """Create tables and the shop status singleton."""
        created = init_db(app.config.get('ADMIN_EMAIL'), app.config.get('ADMIN_PASSWORD'))
        if created:
            print("✅ [System] shop status row created (closed)")
        else:
            print("✅ [System] shop status row already present")

from datetime import datetime, timedelta

import pytest
from werkzeug.security import generate_password_hash

from groupbuy import create_app
from groupbuy.auth import Authorized, issue_token
from groupbuy.bootstrap import init_db
from groupbuy.models import GeneralOrder, Order, OrderItem, Product, User, db

NOW = datetime.now().replace(microsecond=0)


@pytest.fixture
def app():
    app = create_app({
        'TESTING': True,
        'SECRET_KEY': 'test-secret',
        'SQLALCHEMY_DATABASE_URI': 'sqlite://',
        'NOTIFY_WEBHOOK_URL': None,
        'ORDER_DELETE_TRANSACTIONAL': True,
    })
    with app.app_context():
        init_db()
    yield app
    with app.app_context():
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def ctx(app):
    # direct repository calls only; requests through the client push their own context
    with app.app_context():
        yield db.session


@pytest.fixture
def seeded(app):
    """Admin, customer, two products, one open and one closed campaign, three orders"""
    with app.app_context():
        admin = User(email='admin@shop.test', username='admin', full_name='Avi Admin', phone='050-1111111',
                     password=generate_password_hash('secret'), role='admin')
        customer = User(email='dana@shop.test', username='dana', full_name='Dana Customer', phone=None,
                        password=generate_password_hash('hunter2'), role='customer')
        db.session.add_all([admin, customer])

        cola = Product(name='Cola', price=10, description='1.5L bottle', image_url='/img/cola.png')
        chips = Product(name='Chips', price=5, description='Salted')
        db.session.add_all([cola, chips])

        open_go = GeneralOrder(title='October group buy', description='Snacks', status='open',
                               deadline=NOW + timedelta(days=3), created_at=NOW - timedelta(days=1))
        closed_go = GeneralOrder(title='September group buy', status='closed',
                                 deadline=NOW - timedelta(days=20), created_at=NOW - timedelta(days=30))
        db.session.add_all([open_go, closed_go])
        db.session.flush()

        o1 = Order(user_id=customer.id, general_order_id=open_go.id, total_amount=None,
                   created_at=NOW - timedelta(hours=2))
        o1.items = [
            OrderItem(product_id=cola.id, quantity=2, unit_price=10, total_price=20),
            OrderItem(product_id=chips.id, quantity=1, unit_price=5, total_price=5),
        ]
        o2 = Order(user_id=admin.id, general_order_id=None, total_amount=42,
                   created_at=NOW - timedelta(hours=1))
        o2.items = [OrderItem(product_id=cola.id, quantity=1, unit_price=10, total_price=10)]
        o3 = Order(user_id=customer.id, general_order_id=open_go.id, total_amount=0, created_at=NOW)
        db.session.add_all([o1, o2, o3])
        db.session.commit()

        return {
            'admin_id': admin.id,
            'customer_id': customer.id,
            'open_go': open_go.id,
            'closed_go': closed_go.id,
            'o1': o1.id,
            'o2': o2.id,
            'o3': o3.id,
            'admin_token': issue_token(admin),
            'customer_token': issue_token(customer),
        }


@pytest.fixture
def admin_headers(seeded):
    return {'Authorization': f"Bearer {seeded['admin_token']}"}


@pytest.fixture
def customer_headers(seeded):
    return {'Authorization': f"Bearer {seeded['customer_token']}"}


@pytest.fixture
def grant(ctx, seeded):
    return Authorized(db.session.get(User, seeded['admin_id']), 'test')

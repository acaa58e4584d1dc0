from datetime import datetime

from flask_login import UserMixin
from flask_sqlalchemy import SQLAlchemy

db = SQLAlchemy()

# --------------------------------------------------------------------------------
# Database models
# --------------------------------------------------------------------------------

ROLE_CUSTOMER = 'customer'
ROLE_ADMIN = 'admin'
ROLES = (ROLE_CUSTOMER, ROLE_ADMIN)


class User(db.Model, UserMixin):
    """Shop member; role is the only authorization signal"""
    __tablename__ = 'users'
    id = db.Column(db.Integer, primary_key=True)
    username = db.Column(db.String(80), unique=True)
    full_name = db.Column(db.String(120))
    email = db.Column(db.String(120), unique=True, nullable=False)
    phone = db.Column(db.String(30))
    password = db.Column(db.String(255))
    role = db.Column(db.String(20), default=ROLE_CUSTOMER, nullable=False)
    created_at = db.Column(db.DateTime, default=datetime.now)


class Product(db.Model):
    __tablename__ = 'products'
    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(200), nullable=False)
    price = db.Column(db.Float, default=0)
    description = db.Column(db.Text)
    image_url = db.Column(db.String(500))

    def snapshot(self):
        return {
            'name': self.name,
            'price': self.price,
            'description': self.description,
            'image_url': self.image_url,
        }


class GeneralOrder(db.Model):
    """Group purchase campaign with a deadline"""
    __tablename__ = 'general_orders'

    STATUS_SCHEDULED = 'scheduled'
    STATUS_OPEN = 'open'
    STATUS_CLOSED = 'closed'
    STATUS_ARCHIVED = 'archived'

    id = db.Column(db.Integer, primary_key=True)
    title = db.Column(db.String(200), nullable=False)
    description = db.Column(db.Text)
    deadline = db.Column(db.DateTime, nullable=False)
    opening_time = db.Column(db.DateTime, nullable=True)
    status = db.Column(db.String(20), default=STATUS_OPEN, nullable=False, index=True)
    created_at = db.Column(db.DateTime, default=datetime.now)
    updated_at = db.Column(db.DateTime, default=datetime.now)

    def summary(self):
        return {
            'id': self.id,
            'title': self.title,
            'description': self.description,
            'deadline': _iso(self.deadline),
            'status': self.status,
        }

    def to_dict(self):
        data = self.summary()
        data.update({
            'opening_time': _iso(self.opening_time),
            'created_at': _iso(self.created_at),
            'updated_at': _iso(self.updated_at),
        })
        return data


class Order(db.Model):
    """Purchase record; general_order_id is null for standalone orders"""
    __tablename__ = 'orders'
    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=False)
    general_order_id = db.Column(db.Integer, db.ForeignKey('general_orders.id'), nullable=True)
    total_amount = db.Column(db.Float, nullable=True)
    created_at = db.Column(db.DateTime, default=datetime.now)

    # items are deleted explicitly by OrderRepository before the order row
    items = db.relationship('OrderItem', backref='order', lazy='selectin', passive_deletes=True,
                            order_by='OrderItem.id')
    general_order = db.relationship('GeneralOrder', lazy='joined')


class OrderItem(db.Model):
    __tablename__ = 'order_items'
    id = db.Column(db.Integer, primary_key=True)
    order_id = db.Column(db.Integer, db.ForeignKey('orders.id'), nullable=False, index=True)
    product_id = db.Column(db.Integer, db.ForeignKey('products.id'))
    quantity = db.Column(db.Integer, default=1, nullable=False)
    unit_price = db.Column(db.Float, default=0, nullable=False)
    total_price = db.Column(db.Float)

    product = db.relationship('Product', lazy='joined')


class ShopStatus(db.Model):
    """Singleton row: global open/closed flag bound to at most one general order"""
    __tablename__ = 'shop_status'
    id = db.Column(db.Integer, primary_key=True)
    is_open = db.Column(db.Boolean, default=False, nullable=False)
    current_general_order_id = db.Column(db.Integer, db.ForeignKey('general_orders.id'), nullable=True)
    message = db.Column(db.Text)
    updated_at = db.Column(db.DateTime, default=datetime.now)

    current_general_order = db.relationship('GeneralOrder', lazy='joined')


def _iso(value):
    return value.isoformat() if value else None

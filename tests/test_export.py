from io import BytesIO

import pandas as pd

from groupbuy.export import COLUMNS, orders_to_excel
from groupbuy.models import Order, OrderItem, db


def test_export_download(client, seeded, admin_headers):
    res = client.get('/orders/export', headers=admin_headers)
    assert res.status_code == 200
    assert res.headers['Content-Disposition'].startswith('attachment')

    df = pd.read_excel(BytesIO(res.data), sheet_name='Orders')
    assert list(df.columns) == COLUMNS
    assert len(df) == 3
    assert set(df['Total']) == {0, 25, 42}


def test_export_forbidden_for_customers(client, seeded, customer_headers):
    assert client.get('/orders/export', headers=customer_headers).status_code == 403


def test_export_with_no_orders(client, app, admin_headers):
    with app.app_context():
        OrderItem.query.delete()
        Order.query.delete()
        db.session.commit()

    res = client.get('/orders/export', headers=admin_headers)
    assert res.status_code == 404


def test_missing_purchaser_renders_placeholders():
    output = orders_to_excel([{
        'id': 7, 'created_at': '2026-10-01T09:30:00', 'user': None, 'general_order': None,
        'items_count': 0, 'total_amount': 0,
    }])
    df = pd.read_excel(output)
    assert df.loc[0, 'Customer'] == '-'
    assert df.loc[0, 'Date'] == '2026-10-01 09:30'

from io import BytesIO

import pandas as pd

COLUMNS = ["Date", "Order ID", "Customer", "Phone", "General Order", "Items", "Total"]


def orders_to_excel(orders):
    """Aggregated orders -> in-memory .xlsx workbook"""
    rows = []
    for o in orders:
        user = o.get('user') or {}
        general_order = o.get('general_order') or {}
        rows.append({
            "Date": o['created_at'][:16].replace('T', ' ') if o.get('created_at') else "-",
            "Order ID": o['id'],
            "Customer": user.get('full_name') or "-",
            "Phone": user.get('phone') or "-",
            "General Order": general_order.get('title') or "-",
            "Items": o['items_count'],
            "Total": o['total_amount'],
        })

    df = pd.DataFrame(rows, columns=COLUMNS)
    output = BytesIO()
    with pd.ExcelWriter(output, engine='openpyxl') as writer:
        df.to_excel(writer, index=False, sheet_name='Orders')
    output.seek(0)
    return output

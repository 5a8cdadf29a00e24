from datetime import datetime
from html import escape
from typing import List, Optional
from pydantic import BaseModel
from sqlmodel import Session, select

from app.models.membership import Membership
from app.models.order import Order, OrderItem
from app.models.product import Product
from app.services.order_notes import parse_membership_ids

class ReceiptLine(BaseModel):
    name: str
    quantity: int
    price: float

class ReceiptAddress(BaseModel):
    address: str = ""
    city: str = ""
    state: str = ""
    zip: str = ""

class ReceiptData(BaseModel):
    order_id: int
    order_number: str
    order_date: datetime
    customer_name: str
    customer_email: str
    customer_phone: str
    items: List[ReceiptLine]
    subtotal: float
    shipping: float = 0.0
    total: float
    status: str
    payment_status: str
    shipping_address: Optional[ReceiptAddress] = None

def membership_lines(session: Session, membership_ids: List[int], charged: float) -> List[ReceiptLine]:
    """Receipt lines for the memberships on an order.

    The lines share out what the order charged for memberships, weighted by the
    current plan prices. A deleted plan is listed by id.
    """
    plans = [(membership_id, session.get(Membership, membership_id)) for membership_id in membership_ids]
    if not plans:
        return []
    charged = max(round(charged, 2), 0.0)
    weights = [plan.price if plan else 0.0 for _, plan in plans]
    if not all(plan for _, plan in plans) or sum(weights) <= 0:
        weights = [1.0] * len(plans)

    lines = []
    allotted = 0.0
    for index, (membership_id, plan) in enumerate(plans):
        if index == len(plans) - 1:
            # Last line takes the rounding remainder
            price = round(charged - allotted, 2)
        else:
            price = round(charged * weights[index] / sum(weights), 2)
        allotted += price
        name = f"{plan.name} Membership" if plan else f"Membership #{membership_id}"
        lines.append(ReceiptLine(name=name, quantity=1, price=price))
    return lines

def build_receipt_data(session: Session, order: Order) -> ReceiptData:
    """Collect product lines and membership lines (from the notes) for an order."""
    lines = []
    for item in session.exec(select(OrderItem).where(OrderItem.order_id == order.id)).all():
        product = session.get(Product, item.product_id) if item.product_id else None
        lines.append(ReceiptLine(
            name=product.name if product else "Unknown Product",
            quantity=item.quantity,
            price=item.price,
        ))

    product_total = sum(line.price * line.quantity for line in lines)
    lines.extend(membership_lines(session, parse_membership_ids(order.notes), order.total_amount - product_total))

    address = order.shipping_address or {}
    return ReceiptData(
        order_id=order.id,
        order_number=order.order_number,
        order_date=order.created_at,
        customer_name=address.get("name", ""),
        customer_email=order.customer_email or "",
        customer_phone=order.customer_phone or address.get("phone", ""),
        items=lines,
        subtotal=sum(line.price * line.quantity for line in lines),
        total=order.total_amount,
        status=order.status.value,
        payment_status=order.payment_status.value,
        shipping_address=ReceiptAddress(**{k: address.get(k, "") for k in ("address", "city", "state", "zip")}) if address else None,
    )

RECEIPT_STYLES = """
    body { font-family: Arial, sans-serif; margin: 0; padding: 20px; background-color: #f5f5f5; }
    .receipt-container { max-width: 800px; margin: 0 auto; background-color: white; padding: 30px; border-radius: 8px; }
    .receipt-header { text-align: center; border-bottom: 2px solid #007bff; padding-bottom: 20px; margin-bottom: 20px; }
    .order-info { display: grid; grid-template-columns: 1fr 1fr; gap: 20px; margin-bottom: 20px; padding: 15px; background-color: #f9f9f9; }
    .info-label { font-weight: bold; color: #333; font-size: 12px; text-transform: uppercase; }
    .status-badge { display: inline-block; padding: 4px 12px; border-radius: 4px; font-size: 12px; font-weight: bold; }
    .status-pending, .payment-pending { background-color: #fff3cd; color: #856404; }
    .status-confirmed, .status-processing { background-color: #d1ecf1; color: #0c5460; }
    .status-shipped, .payment-refunded { background-color: #e2e3e5; color: #383d41; }
    .status-delivered, .payment-completed { background-color: #d4edda; color: #155724; }
    .status-cancelled, .payment-failed { background-color: #f8d7da; color: #721c24; }
    table { width: 100%; margin-bottom: 20px; border-collapse: collapse; }
    table th { background-color: #007bff; color: white; padding: 12px; text-align: left; }
    .totals { padding: 20px 0; border-top: 2px solid #ddd; border-bottom: 2px solid #ddd; text-align: right; }
    .total-row.final { font-size: 18px; font-weight: bold; color: #007bff; }
    .receipt-footer { margin-top: 20px; text-align: center; color: #666; font-size: 12px; }
    @media print { body { background-color: white; padding: 0; } }
"""

def _money(value: float) -> str:
    return f"₹{value:.2f}"

def _info(label: str, value_html: str) -> str:
    return f'<div class="info-item"><span class="info-label">{label}</span> <span class="info-value">{value_html}</span></div>'

def generate_receipt_html(data: ReceiptData) -> str:
    items_html = "".join(
        f"""
      <tr style="border-bottom: 1px solid #ddd;">
        <td style="padding: 8px;">{escape(item.name)}</td>
        <td style="padding: 8px; text-align: center;">{item.quantity}</td>
        <td style="padding: 8px; text-align: right;">{_money(item.price)}</td>
        <td style="padding: 8px; text-align: right;">{_money(item.price * item.quantity)}</td>
      </tr>"""
        for item in data.items
    )

    address_html = ""
    if data.shipping_address:
        a = data.shipping_address
        address_html = f"""
    <div style="margin-top: 20px; border-top: 1px solid #ddd; padding-top: 15px;">
      <h3>Shipping Address</h3>
      <p>{escape(a.address)}<br>{escape(a.city)}, {escape(a.state)} {escape(a.zip)}</p>
    </div>"""

    status = escape(data.status)
    payment_status = escape(data.payment_status)
    order_number = escape(data.order_number)

    return f"""<!DOCTYPE html>
<html>
<head>
  <meta charset="UTF-8">
  <title>Order Receipt - {order_number}</title>
  <style>{RECEIPT_STYLES}</style>
</head>
<body>
  <div class="receipt-container">
    <div class="receipt-header">
      <h1>Order Receipt</h1>
      <p>Thank you for your order!</p>
    </div>
    <div class="order-info">
      {_info("Order Number", order_number)}
      {_info("Order Date", data.order_date.strftime("%d %b %Y %H:%M"))}
      {_info("Order Status", f'<span class="status-badge status-{status}">{status.upper()}</span>')}
      {_info("Payment Status", f'<span class="status-badge payment-{payment_status}">{payment_status.upper()}</span>')}
    </div>
    <div class="order-info">
      {_info("Customer Name", escape(data.customer_name))}
      {_info("Customer Email", escape(data.customer_email))}
      {_info("Customer Phone", escape(data.customer_phone))}
    </div>
    <h3>Order Items</h3>
    <table>
      <thead><tr><th>Product</th><th>Quantity</th><th>Price</th><th>Total</th></tr></thead>
      <tbody>{items_html}
      </tbody>
    </table>
    <div class="totals">
      <div class="total-row"><span>Subtotal:</span> <span>{_money(data.subtotal)}</span></div>
      <div class="total-row"><span>Shipping:</span> <span>{_money(data.shipping)}</span></div>
      <div class="total-row final"><span>Total:</span> <span>{_money(data.total)}</span></div>
    </div>
    {address_html}
    <div class="receipt-footer">
      <p>This is an automated receipt. Please keep it for your records.</p>
      <p>For any inquiries, please contact our customer support team.</p>
    </div>
  </div>
</body>
</html>
"""

from datetime import datetime

from app.models import Order, OrderItem
from app.services.receipt import ReceiptAddress, ReceiptData, ReceiptLine, build_receipt_data, generate_receipt_html


def receipt(**overrides):
    data = dict(
        order_id=1,
        order_number="ORD-1700000000000",
        order_date=datetime(2024, 6, 1, 10, 30),
        customer_name="Test Skater",
        customer_email="skater@example.com",
        customer_phone="9999999999",
        items=[ReceiptLine(name="Elite Figure Skates", quantity=2, price=100.0)],
        subtotal=200.0,
        total=200.0,
        status="confirmed",
        payment_status="completed",
    )
    data.update(overrides)
    return ReceiptData(**data)


def test_contains_totals_and_badges():
    html = generate_receipt_html(receipt())

    assert "ORD-1700000000000" in html
    assert "₹200.00" in html
    assert "₹100.00" in html
    assert 'class="status-badge status-confirmed">CONFIRMED' in html
    assert 'class="status-badge payment-completed">COMPLETED' in html


def test_escapes_customer_text():
    html = generate_receipt_html(receipt(
        customer_name="<script>alert(1)</script>",
        shipping_address=ReceiptAddress(address="1 Rink <Road>", city="Pune", state="MH", zip="411001"),
    ))

    assert "<script>" not in html
    assert "&lt;script&gt;" in html
    assert "1 Rink &lt;Road&gt;" in html


def test_address_block_is_optional():
    assert "Shipping Address" not in generate_receipt_html(receipt())


def test_build_from_order_includes_memberships(session, customer, product, plan):
    order = Order(
        user_id=customer.id,
        order_number="ORD-1",
        total_amount=250.0,
        notes=f"MEMBERSHIPS:[{plan.id}]",
        customer_email=customer.email,
        shipping_address={"name": "Test Skater", "address": "1 Rink Road", "city": "Pune", "state": "MH", "zip": "411001", "phone": "99"},
    )
    session.add(order)
    session.commit()
    session.refresh(order)
    session.add(OrderItem(order_id=order.id, product_id=product.id, quantity=2, price=100.0))
    session.commit()

    data = build_receipt_data(session, order)

    assert [(line.name, line.quantity, line.price) for line in data.items] == [
        ("Elite Figure Skates", 2, 100.0),
        ("Gold Membership", 1, 50.0),
    ]
    assert data.subtotal == 250.0
    assert data.customer_name == "Test Skater"
    assert data.shipping_address.city == "Pune"


def membership_order(session, customer, product, plan_ids, total):
    order = Order(
        user_id=customer.id,
        order_number="ORD-2",
        total_amount=total,
        notes=f"MEMBERSHIPS:[{','.join(str(plan_id) for plan_id in plan_ids)}]",
    )
    session.add(order)
    session.commit()
    session.refresh(order)
    session.add(OrderItem(order_id=order.id, product_id=product.id, quantity=2, price=100.0))
    session.commit()
    return order


def test_repriced_plan_keeps_the_charged_price(session, customer, product, plan):
    order = membership_order(session, customer, product, [plan.id], 250.0)
    plan.price = 80.0
    session.add(plan)
    session.commit()

    data = build_receipt_data(session, order)

    assert data.items[-1].name == "Gold Membership"
    assert data.items[-1].price == 50.0
    assert data.subtotal == data.total == 250.0


def test_deleted_plan_is_listed_by_id(session, customer, product, plan):
    plan_id = plan.id
    order = membership_order(session, customer, product, [plan_id], 250.0)
    session.delete(plan)
    session.commit()

    data = build_receipt_data(session, order)

    assert [(line.name, line.price) for line in data.items] == [
        ("Elite Figure Skates", 100.0),
        (f"Membership #{plan_id}", 50.0),
    ]
    assert data.subtotal == 250.0


def test_two_periods_share_the_charged_amount(session, customer, product, plan):
    order = membership_order(session, customer, product, [plan.id, plan.id], 300.0)

    data = build_receipt_data(session, order)

    assert [line.price for line in data.items[1:]] == [50.0, 50.0]
    assert data.subtotal == 300.0

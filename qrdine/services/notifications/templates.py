"""
Notification message templates.

Plain functions that turn domain rows into SMS/email text. Keeping the
wording here lets the dispatcher stay channel-agnostic.
"""

from typing import Optional

from qrdine.models import Order, OrderStatus, WaitingListEntry

# notification kinds stored on NotificationLog.kind
ORDER_CONFIRMATION = "order_confirmation"
ORDER_RECEIPT_EMAIL = "order_receipt"
ALLERGEN_ALERT = "allergen_alert"
ORDER_STATUS = "order_status"
PAYMENT_CONFIRMED = "payment_confirmed"
TABLE_READY = "table_ready"


def order_reference(order: Order) -> str:
    return f"#{order.id}"


def order_confirmation_sms(order: Order, restaurant_name: str) -> str:
    return (
        f"Hi {order.customer_name}! Your order {order_reference(order)} at "
        f"{restaurant_name} has been received. Total: ${order.total:.2f}. "
        f"Estimated prep time: {order.estimated_prep_time} minutes."
    )


def order_receipt_email(order: Order, restaurant_name: str) -> tuple[str, str, str]:
    """Return (subject, html, text) for the emailed receipt."""
    subject = f"Your order {order_reference(order)} at {restaurant_name}"

    rows = []
    lines = []
    for line in order.items or []:
        rows.append(
            f"<tr><td>{line['quantity']} x {line['name']}</td>"
            f"<td>${line['line_total']:.2f}</td></tr>"
        )
        lines.append(f"{line['quantity']} x {line['name']}  ${line['line_total']:.2f}")

    html = (
        f"<h2>Thanks for your order, {order.customer_name}!</h2>"
        f"<p>Table {order.table_number}</p>"
        f"<table>{''.join(rows)}</table>"
        f"<p>Subtotal: ${order.subtotal:.2f}<br>"
        f"Tax: ${order.tax:.2f}<br>"
        f"<strong>Total: ${order.total:.2f}</strong></p>"
        f"<p>Estimated prep time: {order.estimated_prep_time} minutes</p>"
    )
    text = "\n".join(
        [f"Thanks for your order, {order.customer_name}!", f"Table {order.table_number}", ""]
        + lines
        + [
            "",
            f"Subtotal: ${order.subtotal:.2f}",
            f"Tax: ${order.tax:.2f}",
            f"Total: ${order.total:.2f}",
        ]
    )
    return subject, html, text


def allergen_alert_sms(order: Order) -> str:
    summary = order.allergen_summary or {}
    parts = [f"ALLERGEN ALERT - Table {order.table_number}, order {order_reference(order)}"]

    allergens = summary.get("avoided_allergens") or []
    if allergens:
        parts.append(f"avoid: {', '.join(allergens)}")
    dietary = summary.get("dietary_preferences") or []
    if dietary:
        parts.append(f"dietary: {', '.join(dietary)}")
    count = summary.get("special_instructions_count") or 0
    if count:
        parts.append(f"{count} special instruction(s)")

    return ". ".join(parts) + "."


def status_update_sms(order: Order, restaurant_name: str) -> Optional[str]:
    """Message for the order's current status; None when nothing is sent."""
    ref = order_reference(order)
    messages = {
        OrderStatus.CONFIRMED: (
            f"Your order {ref} has been confirmed and will be ready in about "
            f"{order.estimated_prep_time} minutes."
        ),
        OrderStatus.PREPARING: f"The kitchen is now preparing your order {ref}.",
        OrderStatus.READY: f"Your order {ref} is ready!",
        OrderStatus.SERVED: f"Your order {ref} has been served. Enjoy your meal!",
        OrderStatus.COMPLETED: f"Thank you for dining at {restaurant_name}! Your order {ref} is complete.",
        OrderStatus.CANCELLED: (
            f"Your order {ref} has been cancelled. "
            f"Please ask a member of staff if you have any questions."
        ),
    }
    return messages.get(order.status)


def payment_confirmed_sms(order: Order) -> str:
    return f"Payment of ${order.total:.2f} received for order {order_reference(order)}. Thank you!"


def table_ready_sms(entry: WaitingListEntry, restaurant_name: str) -> str:
    return (
        f"Hi {entry.customer_name}, your table for {entry.party_size} at "
        f"{restaurant_name} is ready! Please come to the host stand."
    )

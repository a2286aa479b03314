"""
Merchant notification helpers.

Orders are relayed to the shop owner through a WhatsApp deep link with a
pre-filled message. Everything here is pure string building; opening the
link is up to the client and never affects the order itself.
"""

from urllib.parse import quote

WHATSAPP_BASE_URL = "https://wa.me"


def build_message_url(phone_number: str, text: str) -> str:
    """
    Build a wa.me link that opens a chat with `text` pre-filled.

    The number is reduced to digits, as wa.me expects.
    """
    digits = "".join(ch for ch in phone_number if ch.isdigit())
    return f"{WHATSAPP_BASE_URL}/{digits}?text={quote(text, safe='')}"


def build_order_message(
    *,
    customer_name: str,
    customer_phone: str,
    items: list[tuple[str, float, int]],
    subtotal: float,
    shipping_cost: float,
    total_amount: float,
    customer_email: str | None = None,
    customer_address: str | None = None,
    special_instructions: str | None = None,
) -> str:
    """
    Render the order notification text.

    `items` is a list of (name, unit_price, quantity).
    """
    lines = [
        "🛒 *New Order*",
        "",
        "*Customer Information:*",
        f"👤 Name: {customer_name}",
        f"📱 Phone: {customer_phone}",
    ]
    if customer_email:
        lines.append(f"📧 Email: {customer_email}")
    if customer_address:
        lines.append(f"📍 Address: {customer_address}")

    lines += ["", "*Order Details:*"]
    lines += [f"• {name} - {price:.2f} DA x{qty}" for name, price, qty in items]

    shipping = "Free" if shipping_cost == 0 else f"{shipping_cost:.2f} DA"
    lines += [
        "",
        f"Subtotal: {subtotal:.2f} DA",
        f"Shipping: {shipping}",
        f"*Total: {total_amount:.2f} DA*",
    ]
    if special_instructions:
        lines += ["", f"*Notes:* {special_instructions}"]

    lines += ["", "Please confirm this order and provide delivery information."]
    return "\n".join(lines)

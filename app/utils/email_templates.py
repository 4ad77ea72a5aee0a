from html import escape

from app.core.config import settings


def _money(value) -> str:
    return f"${float(value):,.2f}"


def order_confirmation_template(order: dict) -> str:
    """HTML email template for order confirmation"""
    items_html = ""
    for item in order.get("products", []):
        product = item.get("product") or {}
        items_html += f"""
        <tr>
            <td>{escape(product.get("name", "Item"))}</td>
            <td>{item["quantity"]}</td>
            <td>{_money(item["purchase_price"])}</td>
            <td>{_money(item["total_price"])}</td>
        </tr>
        """

    html = f"""
    <!DOCTYPE html>
    <html>
    <head>
        <style>
            body {{ font-family: Arial, sans-serif; line-height: 1.6; }}
            .container {{ max-width: 600px; margin: 0 auto; padding: 20px; }}
            .header {{ background: #2d3748; color: white; padding: 20px; text-align: center; }}
            table {{ width: 100%; border-collapse: collapse; margin: 20px 0; }}
            th, td {{ padding: 10px; text-align: left; border-bottom: 1px solid #ddd; }}
            .total {{ font-size: 18px; font-weight: bold; }}
        </style>
    </head>
    <body>
        <div class="container">
            <div class="header">
                <h1>{escape(settings.EMAILS_FROM_NAME)}</h1>
                <p>Order Confirmation</p>
            </div>

            <p>Thank you for your order! Your order <strong>#{order["id"]}</strong> has been placed.</p>

            <h3>Order Details:</h3>
            <table>
                <thead>
                    <tr>
                        <th>Item</th>
                        <th>Qty</th>
                        <th>Price</th>
                        <th>Total</th>
                    </tr>
                </thead>
                <tbody>
                    {items_html}
                </tbody>
            </table>

            <table>
                <tr>
                    <td>Subtotal:</td>
                    <td>{_money(order["total"])}</td>
                </tr>
                <tr>
                    <td>Tax:</td>
                    <td>{_money(order["total_tax"])}</td>
                </tr>
                <tr class="total">
                    <td>Total:</td>
                    <td>{_money(order["total_with_tax"])}</td>
                </tr>
            </table>
        </div>
    </body>
    </html>
    """
    return html

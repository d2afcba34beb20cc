"""
Transactional emails sent through the Resend HTTP API.

Every send returns the provider message id or raises EmailDeliveryError.
"""
import logging
import os
from datetime import datetime
from html import escape
from typing import Dict, Iterable, Optional

import requests

logger = logging.getLogger(__name__)

RESEND_API_URL = os.getenv("RESEND_API_URL", "https://api.resend.com")
RESEND_API_KEY = os.getenv("RESEND_API_KEY", "")
RESEND_AUDIENCE_ID = os.getenv("RESEND_AUDIENCE_ID", "")
SITE_NAME = os.getenv("SITE_NAME", "DistinctGyrro")
EMAIL_DOMAIN = os.getenv("EMAIL_DOMAIN", "distinctgyrro.com")
SUPPORT_PHONE = os.getenv("SUPPORT_PHONE", "+1 (212) 555-1234")
REQUEST_TIMEOUT = 10

DEFAULT_ESTIMATED_TIME = "30-45 minutes"


class EmailDeliveryError(Exception):
    pass


def _post(path: str, payload: Dict) -> Dict:
    if not RESEND_API_KEY:
        raise EmailDeliveryError("RESEND_API_KEY is not configured")

    try:
        resp = requests.post(
            f"{RESEND_API_URL}{path}",
            json=payload,
            headers={"Authorization": f"Bearer {RESEND_API_KEY}"},
            timeout=REQUEST_TIMEOUT,
        )
    except requests.RequestException as e:
        raise EmailDeliveryError(f"Email provider unreachable: {e}") from e

    if not resp.ok:
        raise EmailDeliveryError(f"Email provider returned {resp.status_code}: {resp.text}")
    return resp.json()


def send_email(sender: str, to: str, subject: str, html: str) -> str:
    data = _post("/emails", {"from": sender, "to": [to], "subject": subject, "html": html})
    email_id = data.get("id")
    logger.info(f"Email '{subject}' sent to {to} (id={email_id})")
    return email_id


def _layout(title: str, header_html: str, body_html: str, footer_html: str) -> str:
    return f"""<!DOCTYPE html>
<html>
<head>
  <meta charset="utf-8">
  <meta name="viewport" content="width=device-width, initial-scale=1">
  <title>{title}</title>
</head>
<body style="font-family: -apple-system, 'Segoe UI', Roboto, sans-serif; line-height: 1.6; color: #333; max-width: 600px; margin: 0 auto; padding: 20px; background-color: #f9f9f9;">
  <div style="background: white; border-radius: 8px; overflow: hidden;">
    <div style="background: linear-gradient(135deg, #22c55e, #16a34a); color: white; padding: 30px; text-align: center;">
      {header_html}
    </div>
    <div style="padding: 30px;">
      {body_html}
    </div>
    <div style="background: #f9fafb; padding: 20px; text-align: center; font-size: 14px; color: #6b7280;">
      {footer_html}
    </div>
  </div>
</body>
</html>"""


def render_order_confirmation(customer_name: str, order_id: str, order_items: Iterable[Dict],
                              total: float, estimated_time: str) -> str:
    rows = []
    for item in order_items:
        price = float(item["price"])
        quantity = int(item["quantity"])
        rows.append(
            "<tr>"
            f"<td style=\"padding: 8px; border-bottom: 1px solid #eee;\">{escape(str(item['name']))}</td>"
            f"<td style=\"padding: 8px; border-bottom: 1px solid #eee; text-align: center;\">{quantity}</td>"
            f"<td style=\"padding: 8px; border-bottom: 1px solid #eee; text-align: right;\">${price:.2f}</td>"
            f"<td style=\"padding: 8px; border-bottom: 1px solid #eee; text-align: right;\">${price * quantity:.2f}</td>"
            "</tr>"
        )

    order_ref = escape(str(order_id))
    body = f"""
      <h3>Order Details</h3>
      <p><strong>Order ID:</strong> #{order_ref}</p>
      <p><strong>Estimated Delivery:</strong> {escape(estimated_time)}</p>
      <p><strong>Status:</strong> Confirmed &amp; Being Prepared</p>
      <h3>Your Items</h3>
      <table style="width: 100%; border-collapse: collapse;">
        <thead>
          <tr>
            <th style="text-align: left;">Item</th>
            <th style="text-align: center;">Qty</th>
            <th style="text-align: right;">Price</th>
            <th style="text-align: right;">Subtotal</th>
          </tr>
        </thead>
        <tbody>
          {''.join(rows)}
          <tr style="font-weight: bold; background: #f0f0f0;">
            <td colspan="3" style="padding: 12px 8px; text-align: right;">Total:</td>
            <td style="padding: 12px 8px; text-align: right;">${float(total):.2f}</td>
          </tr>
        </tbody>
      </table>
      <p><strong>Questions?</strong> Reply to this email or call us at {escape(SUPPORT_PHONE)}</p>"""

    return _layout(
        "Order Confirmation",
        f"<h1>Order Confirmed!</h1><p>Thank you for your order, {escape(customer_name)}!</p>",
        body,
        f"<p>Thank you for choosing {escape(SITE_NAME)}!</p>"
        f"<p>This email was sent regarding your order #{order_ref}</p>",
    )


def send_order_confirmation(customer_email: str, customer_name: str, order_id, order_items: Iterable[Dict],
                            total: float, estimated_time: Optional[str] = None) -> str:
    html = render_order_confirmation(
        customer_name, str(order_id), list(order_items), total, estimated_time or DEFAULT_ESTIMATED_TIME
    )
    return send_email(
        f"{SITE_NAME} <orders@{EMAIL_DOMAIN}>",
        customer_email,
        f"Order Confirmation - #{order_id}",
        html,
    )


def send_admin_verification(email: str, confirm_url: str, site_name: Optional[str] = None) -> str:
    site_name = site_name or SITE_NAME
    body = f"""
      <p>Hello,</p>
      <p>An administrator account for <strong>{escape(site_name)}</strong> was created for {escape(email)}.</p>
      <p>Please confirm your email address to activate it:</p>
      <p style="text-align: center;">
        <a href="{escape(confirm_url, quote=True)}" style="display: inline-block; background: #22c55e; color: white; padding: 12px 24px; text-decoration: none; border-radius: 6px; font-weight: bold;">Verify Admin Account</a>
      </p>
      <p>If you did not expect this invitation, you can ignore this email.</p>"""

    html = _layout(
        "Admin Account Verification",
        f"<h1>{escape(site_name)} Admin</h1><p>Verify your administrator account</p>",
        body,
        f"<p>This is an automated message from {escape(site_name)}.</p>",
    )
    return send_email(
        f"{site_name} Admin <admin@{EMAIL_DOMAIN}>",
        email,
        f"Verify your {site_name} Admin Account",
        html,
    )


def add_audience_contact(email: str, name: str) -> Optional[str]:
    if not RESEND_AUDIENCE_ID:
        return None

    parts = name.split(" ")
    data = _post(f"/audiences/{RESEND_AUDIENCE_ID}/contacts", {
        "email": email,
        "first_name": parts[0] or "Food",
        "last_name": " ".join(parts[1:]) or "Lover",
        "unsubscribed": False,
    })
    return data.get("id")


def send_newsletter_welcome(email: str, name: Optional[str] = None) -> str:
    name = name or "Food Lover"

    try:
        add_audience_contact(email, name)
    except EmailDeliveryError as e:
        # The welcome email still goes out
        logger.error(f"Error adding {email} to the newsletter audience: {e}")

    body = f"""
      <p>Hi {escape(name)},</p>
      <p>Thanks for subscribing to the {escape(SITE_NAME)} newsletter! You'll be the first to hear about
      new dishes, seasonal specials and exclusive offers.</p>
      <p>As a welcome gift, use code <strong>WELCOME15</strong> for 15% off your first order.</p>"""

    html = _layout(
        f"Welcome to {SITE_NAME} Newsletter",
        f"<h1>Welcome to {escape(SITE_NAME)}!</h1>",
        body,
        "<p>You are receiving this email because you subscribed to our newsletter.</p>",
    )
    return send_email(
        f"{SITE_NAME} Newsletter <newsletter@{EMAIL_DOMAIN}>",
        email,
        f"Welcome to {SITE_NAME} Newsletter!",
        html,
    )


def send_test_email(email: str, subject: Optional[str] = None, content: Optional[str] = None) -> str:
    subject = subject or f"Test Email from {SITE_NAME}"
    content = content or (
        f"This is a test email from the {SITE_NAME} system. "
        "If you received this, email functionality is working correctly!"
    )

    body = f"""
      <h2 style="margin-top: 0;">Test Email Content</h2>
      <div style="background: #f8f9fa; border-left: 4px solid #e74c3c; padding: 20px; margin: 20px 0;">
        {escape(content)}
      </div>
      <p style="font-size: 14px; color: #6c757d;">Email sent at: {datetime.now().strftime('%Y-%m-%d %H:%M:%S')}</p>"""

    html = _layout(escape(subject), f"<h1>Test Email</h1><p>From {escape(SITE_NAME)} System</p>", body,
                   f"<p>System: {escape(SITE_NAME)} Email Service</p>")
    return send_email(f"{SITE_NAME} <noreply@{EMAIL_DOMAIN}>", email, subject, html)

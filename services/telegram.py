"""
Telegram delivery for committed notifications.

Delivery is best effort: a failed send is logged and the notification row
stays as it is. Nothing here retries.
"""

import requests
from flask import current_app

from extensions import db
from models import User


def send_telegram_message(chat_id, text):
    """POST one message to the Bot API. Returns True when Telegram accepted it."""
    token = current_app.config.get('TELEGRAM_BOT_TOKEN')
    if not token or not chat_id:
        return False

    base = current_app.config.get('TELEGRAM_API_BASE', 'https://api.telegram.org').rstrip('/')
    url = f"{base}/bot{token}/sendMessage"
    payload = {'chat_id': chat_id, 'text': text}
    try:
        response = requests.post(url, json=payload, timeout=current_app.config.get('TELEGRAM_TIMEOUT', 5))
        response.raise_for_status()
    except requests.RequestException as e:
        current_app.logger.error(f"Telegram delivery to {chat_id} failed: {e}")
        return False
    return True


def format_notification_text(notification):
    title = f"📢 {notification.title}\n\n" if notification.title else ''
    return f"{title}{notification.message}"


def _recipient(notification):
    if notification.parent is not None:
        return notification.parent
    data = notification.data or {}
    recipient_id = data.get('recipient_id')
    if recipient_id:
        return db.session.get(User, recipient_id)
    return None


def deliver_notification(notification):
    """Hand a committed notification to Telegram if delivery is enabled."""
    if not current_app.config.get('NOTIFICATION_DELIVERY_ENABLED'):
        return False
    recipient = _recipient(notification)
    chat_id = recipient.telegram_id if recipient else None
    if not chat_id:
        current_app.logger.debug(f"Notification {notification.id} has no Telegram recipient")
        return False
    return send_telegram_message(chat_id, format_notification_text(notification))

import logging
import os
from html import escape

import requests

logger = logging.getLogger(__name__)

TELEGRAM_API_URL = "https://api.telegram.org/bot{token}/sendMessage"

STATUS_ICONS = {
    'contacted': '📧',
    'qualified': '⭐',
    'proposal': '📄',
    'won': '🎉',
    'lost': '❌',
    'archived': '🗄️',
}


def esc(text):
    return escape(str(text or ''), quote=False)


class TelegramNotifier:
    notifier_type = "telegram"

    def __init__(self, bot_token, chat_id, timeout=10):
        self.bot_token = bot_token
        self.chat_id = chat_id
        self.timeout = timeout

    @classmethod
    def from_env(cls):
        return cls(os.environ.get('TELEGRAM_BOT_TOKEN', ''), os.environ.get('TELEGRAM_CHAT_ID', ''))

    @property
    def configured(self):
        return bool(self.bot_token and self.chat_id)

    def send(self, text):
        """Send an HTML message. Returns True when Telegram accepted it.

        Delivery problems are logged and never raised.
        """
        if not self.configured:
            logger.warning("Telegram bot token or chat ID not configured, skipping notification")
            return False

        payload = {'chat_id': self.chat_id, 'text': text, 'parse_mode': 'HTML'}
        try:
            response = requests.post(TELEGRAM_API_URL.format(token=self.bot_token), json=payload,
                                     timeout=self.timeout)
        except requests.RequestException as e:
            logger.error(f"Failed to send Telegram notification: {e}")
            return False

        if response.status_code >= 400:
            logger.error(f"Telegram API error ({response.status_code}): {response.text[:300]}")
            return False
        return True


def new_lead_message(lead):
    lines = [
        '🔔 <b>New Lead</b>',
        '',
        f"👤 <b>Name:</b> {esc(lead.name or 'Not provided')}",
        f"📧 <b>Email:</b> {esc(lead.email)}",
        f"📋 <b>Subject:</b> {esc(lead.subject)}",
    ]
    if lead.service_type:
        lines.append(f"🛠 <b>Service:</b> {esc(lead.service_type)}")
    if lead.budget:
        lines.append(f"💰 <b>Budget:</b> {esc(lead.budget)}")
    lines.extend(['', '💬 <b>Message:</b>', esc(lead.message)])
    return '\n'.join(lines)


def status_change_message(lead, old_status, new_status):
    icon = STATUS_ICONS.get(new_status, '📋')
    lines = [
        f"{icon} <b>Lead Status Changed</b>",
        '',
        f"👤 <b>{esc(lead.name)}</b> ({esc(lead.email)})",
        f"📊 {esc(old_status)} → <b>{esc(new_status)}</b>",
    ]
    if new_status == 'won' and lead.deal_value and lead.deal_value > 0:
        lines.append(f"💰 <b>Deal Value:</b> ${lead.deal_value:,}")
    return '\n'.join(lines)


def overdue_tasks_message(tasks):
    plural = 's' if len(tasks) > 1 else ''
    lines = [f"⚠️ <b>{len(tasks)} Overdue Task{plural}</b>", '']
    for task in tasks:
        due = task.due_date.date().isoformat() if task.due_date else ''
        lines.append(f"• {esc(task.title)} ({esc(task.project.title)}), due {esc(due)}")
    return '\n'.join(lines)


def notify_new_lead(lead, notifier=None):
    notifier = notifier or TelegramNotifier.from_env()
    return notifier.send(new_lead_message(lead))


def notify_lead_status_change(lead, old_status, new_status, notifier=None):
    notifier = notifier or TelegramNotifier.from_env()
    return notifier.send(status_change_message(lead, old_status, new_status))


def notify_overdue_tasks(tasks, notifier=None):
    if not tasks:
        return False
    notifier = notifier or TelegramNotifier.from_env()
    return notifier.send(overdue_tasks_message(tasks))

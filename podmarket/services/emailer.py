# podmarket/services/emailer.py
from __future__ import annotations

import base64
import json
import re
import time
from abc import ABC, abstractmethod
from typing import Optional

import requests

from podmarket.infra.log import get_logger

logger = get_logger('podmarket.email')

EMAILLABS_SEND_URL = "https://api.emaillabs.net.pl/api/sendmail"

_LINE_BREAK_TAGS = re.compile(r"<\s*(br\s*/?|/p|/div|/li)\s*>", re.IGNORECASE)
_ANY_TAG = re.compile(r"<[^>]*>")


def html_to_text(html: Optional[str]) -> str:
    """Plain-text body for a message that only has html."""
    text = _LINE_BREAK_TAGS.sub("\n", html or "")
    text = _ANY_TAG.sub("", text)
    return "\n".join(line.strip() for line in text.splitlines()).strip()


class EmailSender(ABC):

    @abstractmethod
    def send(self, to: str, subject: str, html: str, text: Optional[str] = None) -> bool:
        """Send one message. Returns False on failure; never raises."""


class EmailLabsSender(EmailSender):
    """
    Minimal EmailLabs send. Returns True when the API answers with
    status "success". Missing credentials only log a warning.
    """

    def __init__(self, app_key: Optional[str], secret_key: Optional[str], from_email: str,
                 from_name: str = "PodMarket", smtp_account: str = "1.default.smtp",
                 timeout: int = 10):
        self.app_key = app_key
        self.secret_key = secret_key
        self.from_email = from_email
        self.from_name = from_name
        self.smtp_account = smtp_account
        self.timeout = timeout

    def _auth_header(self) -> str:
        raw = f"{self.app_key}:{self.secret_key}".encode("utf-8")
        return "Basic " + base64.b64encode(raw).decode("ascii")

    def send(self, to: str, subject: str, html: str, text: Optional[str] = None) -> bool:
        if not self.app_key or not self.secret_key:
            logger.warning("EmailLabs credentials not set; skipping email", to=to, subject=subject)
            return False

        if not text:
            text = html_to_text(html)

        form = {
            "from": self.from_email,
            "from_name": self.from_name,
            "to": json.dumps({to: {"message_id": f"podmarket_{int(time.time() * 1000)}"}}),
            "subject": subject,
            "smtp_account": self.smtp_account,
            "html": html,
            "text": text,
        }

        try:
            resp = requests.post(
                EMAILLABS_SEND_URL,
                headers={"Authorization": self._auth_header()},
                data=form,
                timeout=self.timeout,
            )
            try:
                result = resp.json()
            except ValueError:
                result = {}
            ok = resp.ok and result.get("status") == "success"
            if not ok:
                logger.error("EmailLabs send failed", to=to, status_code=resp.status_code, response=result)
            return ok
        except requests.RequestException as e:
            logger.error(f"EmailLabs exception: {e}", to=to)
            return False


def verification_message(first_name: str, link: str):
    subject = "Confirm your email address - PodMarket"
    html = (
        f"<p>Hi {first_name}!</p>"
        f"<p>Confirm your email address: <a href=\"{link}\">{link}</a></p>"
        "<p>The link is valid for 24 hours.</p>"
    )
    text = f"Hi {first_name}!\n\nConfirm your email address: {link}\n\nThe link is valid for 24 hours."
    return subject, html, text


def password_reset_message(first_name: str, link: str):
    subject = "Password reset - PodMarket"
    html = (
        f"<p>Hi {first_name}!</p>"
        f"<p>Set a new password: <a href=\"{link}\">{link}</a></p>"
        "<p>The link is valid for 1 hour. Ignore this email if you did not ask for it.</p>"
    )
    text = (f"Hi {first_name}!\n\nSet a new password: {link}\n\n"
            "The link is valid for 1 hour. Ignore this email if you did not ask for it.")
    return subject, html, text

import asyncio
import logging

import requests

from core.config import settings
from core.errors import ExternalUnavailable

logger = logging.getLogger(__name__)

APPROVED_SUBJECT = "Your Matrimony Profile is Now Live!"


class MailgunNotifier:
    """
    Уведомления владельцам анкет через HTTP API Mailgun.

    requests блокирующий, поэтому отправка идёт в пуле потоков.
    Ошибки отдаются как ExternalUnavailable, решение о них принимает вызывающий.
    """

    def __init__(self, api_key: str, domain: str, sender: str, frontend_url: str,
                 api_url: str = "https://api.mailgun.net/v3", timeout: float = 5.0):
        self.api_key = api_key
        self.domain = domain
        self.sender = sender
        self.frontend_url = frontend_url.rstrip("/")
        self.api_url = api_url.rstrip("/")
        self.timeout = timeout

    @property
    def configured(self) -> bool:
        return True

    def _send(self, to: str, subject: str, text: str) -> None:
        response = requests.post(
            f"{self.api_url}/{self.domain}/messages",
            auth=("api", self.api_key),
            data={"from": self.sender, "to": [to], "subject": subject, "text": text},
            timeout=self.timeout,
        )
        response.raise_for_status()

    async def send(self, to: str, subject: str, text: str) -> None:
        loop = asyncio.get_running_loop()
        try:
            await loop.run_in_executor(None, self._send, to, subject, text)
        except requests.RequestException as exc:
            raise ExternalUnavailable(f"Mail delivery failed: {exc}") from exc

    async def profile_approved(self, email: str, name: str, profile_id: int) -> None:
        text = (
            f"Dear {name},\n\n"
            "Your matrimony profile has been approved and is now visible to other members.\n"
            f"{self.frontend_url}/matrimony/profile/{profile_id}\n"
        )
        await self.send(email, APPROVED_SUBJECT, text)
        logger.info("Matrimony approval email sent to %s", email)


class UnconfiguredNotifier:
    """Отправка отключена: письма не уходят, об этом пишется в лог."""

    @property
    def configured(self) -> bool:
        return False

    async def profile_approved(self, email: str, name: str, profile_id: int) -> None:
        logger.warning("Email sending disabled - matrimony approval email not sent to %s", email)


def build_notifier():
    if not (settings.MAILGUN_API_KEY and settings.MAILGUN_DOMAIN):
        return UnconfiguredNotifier()
    return MailgunNotifier(
        api_key=settings.MAILGUN_API_KEY,
        domain=settings.MAILGUN_DOMAIN,
        sender=settings.MAIL_FROM,
        frontend_url=settings.FRONTEND_URL,
        api_url=settings.MAILGUN_API_URL,
        timeout=settings.NOTIFY_TIMEOUT_SECONDS,
    )

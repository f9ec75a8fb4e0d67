import hashlib
import hmac
import logging
from typing import Optional

logger = logging.getLogger(__name__)


def compute_payment_signature(order_id: str, payment_id: str, secret: str) -> str:
    """HMAC-SHA256 от "order_id|payment_id" на секрете шлюза, в hex."""
    return hmac.new(
        key=secret.encode("utf-8"),
        msg=f"{order_id}|{payment_id}".encode("utf-8"),
        digestmod=hashlib.sha256,
    ).hexdigest()


def verify_payment_signature(
    order_id: str,
    payment_id: str,
    signature: str,
    secret: Optional[str],
) -> bool:
    """
    Проверяет подпись колбэка платёжного шлюза.

    Никогда не бросает исключений: пустой секрет или пустые аргументы дают False,
    и вызывающий код трактует это как «оплата отклонена».
    Сравнение через hmac.compare_digest, чтобы время ответа не зависело
    от совпавшего префикса.
    """
    if not secret:
        return False
    if not order_id or not payment_id or not signature:
        return False
    expected = compute_payment_signature(order_id, payment_id, secret)
    return hmac.compare_digest(expected.encode("utf-8"), signature.encode("utf-8"))


class PaymentVerifier:
    """Проверка подписей с секретом, переданным при сборке сервиса."""

    def __init__(self, secret: Optional[str]):
        self.secret = secret
        if not secret:
            logger.warning("Payment gateway secret not configured - payment verification disabled")

    @property
    def configured(self) -> bool:
        return bool(self.secret)

    def verify(self, order_id: str, payment_id: str, signature: str) -> bool:
        return verify_payment_signature(order_id, payment_id, signature, self.secret)

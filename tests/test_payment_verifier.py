import hashlib
import hmac

import pytest

from services.payment_verifier import PaymentVerifier, compute_payment_signature, verify_payment_signature

SECRET = "rzp_secret"


def _expected(order_id: str, payment_id: str) -> str:
    return hmac.new(SECRET.encode(), f"{order_id}|{payment_id}".encode(), hashlib.sha256).hexdigest()


def test_signature_is_hmac_sha256_of_order_and_payment():
    assert compute_payment_signature("order_A", "pay_B", SECRET) == _expected("order_A", "pay_B")


def test_valid_signature_is_accepted_every_time():
    signature = _expected("order_A", "pay_B")
    results = {verify_payment_signature("order_A", "pay_B", signature, SECRET) for _ in range(3)}
    assert results == {True}


@pytest.mark.parametrize("position", [0, 17, 63])
def test_flipping_one_character_rejects_signature(position):
    signature = _expected("order_A", "pay_B")
    flipped = "0" if signature[position] != "0" else "1"
    tampered = signature[:position] + flipped + signature[position + 1:]

    assert verify_payment_signature("order_A", "pay_B", tampered, SECRET) is False


def test_signature_is_bound_to_order_and_payment():
    signature = _expected("order_A", "pay_B")
    assert verify_payment_signature("order_X", "pay_B", signature, SECRET) is False
    assert verify_payment_signature("order_A", "pay_X", signature, SECRET) is False
    assert verify_payment_signature("order_A", "pay_B", signature, "other-secret") is False


@pytest.mark.parametrize("secret", [None, ""])
def test_missing_secret_rejects_without_raising(secret):
    signature = _expected("order_A", "pay_B")
    assert verify_payment_signature("order_A", "pay_B", signature, secret) is False


def test_missing_arguments_reject_without_raising():
    assert verify_payment_signature("", "pay_B", "abc", SECRET) is False
    assert verify_payment_signature("order_A", "pay_B", "", SECRET) is False


def test_verifier_object_reports_configuration():
    assert PaymentVerifier(SECRET).configured is True
    unconfigured = PaymentVerifier(None)
    assert unconfigured.configured is False
    assert unconfigured.verify("order_A", "pay_B", _expected("order_A", "pay_B")) is False

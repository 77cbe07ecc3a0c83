"""Payment bridges for the two hosted checkout widgets.

A bridge never moves money itself. ``widget_config`` builds what the browser
passes to the provider's checkout script, and ``authorize`` interprets the
payload that script handed to its callback once the user finished.

* Flutterwave (bridge A) succeeds only when the provider reports
  ``status == "successful"``.
* Paystack (bridge B) succeeds whenever its callback fired; the widget only
  calls back on success.

Closing either widget before completion is a ``PaymentError``.
"""
import secrets
import time
from abc import ABC, abstractmethod
from decimal import Decimal
from typing import Dict, Optional

import requests
from pydantic import BaseModel

from config import Config
from errors import PaymentError
from logger import get_logger
from models import PaymentProvider

log = get_logger("payments")

FLUTTERWAVE_VERIFY_URL = "https://api.flutterwave.com/v3/transactions/{transaction_id}/verify"
PAYSTACK_VERIFY_URL = "https://api.paystack.co/transaction/verify/{reference}"
VERIFY_TIMEOUT = 15


class PaymentData(BaseModel):
    amount: Decimal
    email: str
    name: str = ""
    phone: str = ""
    reference: str = ""
    description: str = "General Donation"


class PaymentResult(BaseModel):
    transaction_id: str
    reference: str
    amount: Decimal
    status: str = "success"


def _millis() -> int:
    return int(time.time() * 1000)


class PaymentBridge(ABC):
    provider: PaymentProvider
    prefix: str

    def __init__(self, public_key: Optional[str], secret_key: Optional[str] = None, verify: bool = False):
        self.public_key = public_key
        self.secret_key = secret_key
        self.verify = verify and bool(secret_key)

    @property
    def available(self) -> bool:
        return bool(self.public_key)

    def new_reference(self) -> str:
        return f"{self.prefix}-{_millis()}-{secrets.token_hex(3)}"

    @abstractmethod
    def widget_config(self, payment: PaymentData) -> dict:
        """Configuration handed to the provider's checkout script."""

    @abstractmethod
    def authorize(self, payment: PaymentData, response: dict) -> PaymentResult:
        """Interpret the widget callback payload, raising ``PaymentError`` on rejection."""

    @abstractmethod
    def verify_transaction(self, result: PaymentResult, payment: PaymentData) -> None:
        """Confirm the charge with the provider's verify endpoint."""

    def cancel(self) -> None:
        raise PaymentError("Payment cancelled")

    def ensure_available(self) -> None:
        if not self.available:
            raise PaymentError(f"{self.provider.value.capitalize()} not loaded")

    def _fetch(self, url: str) -> dict:
        try:
            resp = requests.get(
                url,
                headers={"Authorization": f"Bearer {self.secret_key}"},
                timeout=VERIFY_TIMEOUT,
            )
            resp.raise_for_status()
            return resp.json().get("data") or {}
        except (requests.RequestException, ValueError) as exc:
            log.error("Payment verification error (%s): %s", self.provider.value, exc)
            raise PaymentError("Payment verification failed") from exc


class FlutterwaveBridge(PaymentBridge):
    provider = PaymentProvider.flutterwave
    prefix = "FLW"

    def widget_config(self, payment: PaymentData) -> dict:
        self.ensure_available()
        return {
            "public_key": self.public_key,
            "tx_ref": payment.reference,
            "amount": str(payment.amount),
            "currency": Config.CURRENCY,
            "country": "NG",
            "payment_options": "card,mobilemoney,ussd",
            "customer": {
                "email": payment.email,
                "name": payment.name,
                "phone_number": payment.phone or "",
            },
            "customizations": {
                "title": "FoodLink Donation",
                "description": payment.description or "Supporting communities in need",
            },
        }

    def authorize(self, payment: PaymentData, response: dict) -> PaymentResult:
        if response.get("status") != "successful":
            raise PaymentError("Payment failed")
        reference = response.get("tx_ref") or payment.reference
        if reference != payment.reference:
            raise PaymentError("Payment reference does not match this checkout")
        result = PaymentResult(
            transaction_id=str(response.get("transaction_id") or ""),
            reference=reference,
            amount=payment.amount,
        )
        if self.verify:
            self.verify_transaction(result, payment)
        return result

    def verify_transaction(self, result: PaymentResult, payment: PaymentData) -> None:
        data = self._fetch(FLUTTERWAVE_VERIFY_URL.format(transaction_id=result.transaction_id))
        if (
            data.get("status") != "successful"
            or data.get("tx_ref") != payment.reference
            or Decimal(str(data.get("amount", 0))) < payment.amount
            or data.get("currency") != Config.CURRENCY
        ):
            raise PaymentError("Payment verification failed")


class PaystackBridge(PaymentBridge):
    provider = PaymentProvider.paystack
    prefix = "PS"

    @staticmethod
    def to_kobo(amount: Decimal) -> int:
        return int((amount * 100).to_integral_value())

    def widget_config(self, payment: PaymentData) -> dict:
        self.ensure_available()
        return {
            "key": self.public_key,
            "email": payment.email,
            "amount": self.to_kobo(payment.amount),
            "currency": Config.CURRENCY,
            "ref": payment.reference,
        }

    def authorize(self, payment: PaymentData, response: dict) -> PaymentResult:
        reference = str(response.get("reference") or "")
        if reference and reference != payment.reference:
            raise PaymentError("Payment reference does not match this checkout")
        result = PaymentResult(
            transaction_id=reference,
            reference=reference,
            amount=payment.amount,
        )
        if self.verify:
            self.verify_transaction(result, payment)
        return result

    def verify_transaction(self, result: PaymentResult, payment: PaymentData) -> None:
        data = self._fetch(PAYSTACK_VERIFY_URL.format(reference=result.reference))
        if data.get("status") != "success" or int(data.get("amount", 0)) != self.to_kobo(payment.amount):
            raise PaymentError("Payment verification failed")


def build_bridges() -> Dict[PaymentProvider, PaymentBridge]:
    return {
        PaymentProvider.flutterwave: FlutterwaveBridge(
            Config.FLUTTERWAVE_PUBLIC_KEY, Config.FLUTTERWAVE_SECRET_KEY, Config.VERIFY_PAYMENTS
        ),
        PaymentProvider.paystack: PaystackBridge(
            Config.PAYSTACK_PUBLIC_KEY, Config.PAYSTACK_SECRET_KEY, Config.VERIFY_PAYMENTS
        ),
    }


def format_amount(amount, currency: str = "NGN") -> str:
    symbol = {"NGN": "₦"}.get(currency, f"{currency} ")
    return f"{symbol}{Decimal(amount):,.2f}"

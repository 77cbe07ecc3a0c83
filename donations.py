"""Donation checkout and reconciliation.

A donation goes through three steps:

1. ``open_checkout`` persists an *open* checkout with a fresh provider
   reference and returns the widget configuration for the browser.
2. ``complete_checkout`` hands the widget's callback payload to the chosen
   bridge. A rejection marks the checkout *failed*. A success marks it
   *authorized* before anything else is written.
3. The donation row is inserted and the checkout becomes *completed*.

A failure in step 3 is never rolled back or retried here: the charge has
already happened, so the checkout stays *authorized* and the gap is logged.
Completing the same checkout again records the donation at most once.

Funding a request never changes that request's status.
"""
from decimal import Decimal, InvalidOperation
from typing import Dict, List, Optional, Tuple

from errors import AccessDeniedError, AuthError, NotFoundError, PaymentError, PersistenceError, ValidationError
from logger import get_logger
from models import Checkout, CheckoutStatus, Donation, PaymentProvider, Role, User
from payments import PaymentBridge, PaymentData, PaymentResult, format_amount
from store import DataStore

log = get_logger("donations")

PRESET_AMOUNTS = (1000, 2500, 5000, 10000, 25000)
# UI hints for the free-form amount field, not enforced
MIN_CUSTOM_AMOUNT = 100
AMOUNT_STEP = 100

CENTS = Decimal("0.01")


def parse_amount(value) -> Decimal:
    """Accept a preset or a free-form amount. Only ``amount > 0`` is enforced."""
    try:
        amount = Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        raise ValidationError("Please enter a valid donation amount")
    if not amount.is_finite() or amount <= 0:
        raise ValidationError("Please enter a valid donation amount")
    return amount.quantize(CENTS)


def parse_provider(value) -> PaymentProvider:
    try:
        return PaymentProvider(value)
    except ValueError:
        raise ValidationError(f"Unknown payment method: {value}")


class DonationFlow:
    def __init__(self, store: DataStore, bridges: Dict[PaymentProvider, PaymentBridge]):
        self.store = store
        self.bridges = bridges

    def checkout_options(self) -> dict:
        return {
            "presets": list(PRESET_AMOUNTS),
            "minimum": MIN_CUSTOM_AMOUNT,
            "step": AMOUNT_STEP,
            "currency": "NGN",
            "providers": [p for p, bridge in self.bridges.items() if bridge.available],
        }

    @staticmethod
    def _require_donor(donor: Optional[User]) -> User:
        if donor is None:
            raise AuthError()
        if Role(donor.role) is not Role.donor:
            raise AccessDeniedError("Only donors can make donations")
        return donor

    def _bridge(self, provider) -> PaymentBridge:
        return self.bridges[parse_provider(provider)]

    def _payment_data(self, donor: User, checkout: Checkout) -> PaymentData:
        description = "General Donation"
        if checkout.request_id is not None:
            req = self.store.get_request(checkout.request_id)
            if req is not None:
                description = req.description
        return PaymentData(
            amount=checkout.amount,
            email=donor.email,
            name=donor.name,
            phone=donor.phone or "",
            reference=checkout.reference,
            description=description,
        )

    def _load_checkout(self, donor: User, reference: str) -> Checkout:
        checkout = self.store.get_checkout(reference)
        if checkout is None or checkout.donor_id != donor.id:
            raise NotFoundError("Checkout not found")
        return checkout

    def widget_for(self, donor: User, checkout: Checkout) -> dict:
        return self._bridge(checkout.provider).widget_config(self._payment_data(donor, checkout))

    def _reuse(
        self,
        donor: User,
        existing: Checkout,
        amount: Decimal,
        bridge: PaymentBridge,
        request_id: Optional[int],
    ) -> Tuple[Checkout, dict]:
        if (
            Decimal(existing.amount) != amount
            or existing.provider != bridge.provider.value
            or existing.request_id != request_id
        ):
            raise ValidationError("This donation was already started with different details")
        if existing.status != CheckoutStatus.open.value:
            # a new widget would take a second payment nothing could record
            raise PaymentError("This checkout is no longer active")
        log.info("Reusing checkout %s for key %s", existing.reference, existing.idempotency_key)
        return existing, self.widget_for(donor, existing)

    def open_checkout(
        self,
        donor: Optional[User],
        amount,
        provider,
        request_id: Optional[int] = None,
        idempotency_key: Optional[str] = None,
    ) -> Tuple[Checkout, dict]:
        donor = self._require_donor(donor)
        amount = parse_amount(amount)
        bridge = self._bridge(provider)
        idempotency_key = idempotency_key or None

        if request_id is not None and self.store.get_request(request_id) is None:
            raise NotFoundError("Request not found")

        if idempotency_key:
            existing = self.store.find_checkout(donor.id, idempotency_key)
            if existing is not None:
                return self._reuse(donor, existing, amount, bridge, request_id)

        bridge.ensure_available()

        try:
            checkout = self.store.create_checkout(
                {
                    "reference": bridge.new_reference(),
                    "donor_id": donor.id,
                    "request_id": request_id,
                    "amount": amount,
                    "provider": bridge.provider.value,
                    "idempotency_key": idempotency_key,
                }
            )
        except PersistenceError:
            # a concurrent request with the same key committed first
            existing = self.store.find_checkout(donor.id, idempotency_key) if idempotency_key else None
            if existing is None:
                raise
            return self._reuse(donor, existing, amount, bridge, request_id)

        log.info(
            "Checkout %s opened by %s: %s via %s (request %s)",
            checkout.reference, donor.id, format_amount(amount), bridge.provider.value, request_id,
        )
        return checkout, self.widget_for(donor, checkout)

    def complete_checkout(self, donor: Optional[User], reference: str, response: dict) -> Donation:
        donor = self._require_donor(donor)
        checkout = self._load_checkout(donor, reference)

        existing = self.store.get_donation_by_reference(checkout.reference)
        if existing is not None:
            if checkout.status != CheckoutStatus.completed.value:
                checkout.status = CheckoutStatus.completed.value
                self.store.save_checkout(checkout)
            return existing

        if checkout.status in (CheckoutStatus.failed.value, CheckoutStatus.cancelled.value):
            raise PaymentError("This checkout is no longer active")

        if checkout.status == CheckoutStatus.open.value:
            result = self._authorize(donor, checkout, response or {})
        else:
            # authorized earlier, the donation row is still missing
            result = PaymentResult(
                transaction_id=checkout.transaction_id,
                reference=checkout.reference,
                amount=checkout.amount,
            )
        return self._record(donor, checkout, result)

    def _authorize(self, donor: User, checkout: Checkout, response: dict) -> PaymentResult:
        bridge = self._bridge(checkout.provider)
        try:
            result = bridge.authorize(self._payment_data(donor, checkout), response)
            if not result.transaction_id:
                raise PaymentError("Payment provider returned no transaction id")
        except PaymentError as exc:
            log.warning("Checkout %s rejected: %s", checkout.reference, exc.message)
            checkout.status = CheckoutStatus.failed.value
            self.store.save_checkout(checkout)
            raise

        checkout.status = CheckoutStatus.authorized.value
        checkout.transaction_id = result.transaction_id
        try:
            self.store.save_checkout(checkout)
        except PersistenceError:
            self._log_unrecorded(checkout, result)
            raise
        return result

    def _record(self, donor: User, checkout: Checkout, result: PaymentResult) -> Donation:
        try:
            donation = self.store.create_donation(
                {
                    "donor_id": donor.id,
                    "request_id": checkout.request_id,
                    "donation_type": "general" if checkout.request_id is None else "request",
                    "amount": checkout.amount,
                    "currency": "NGN",
                    "payment_status": "completed",
                    "transaction_id": result.transaction_id,
                    "payment_reference": checkout.reference,
                    "payment_provider": checkout.provider,
                }
            )
        except PersistenceError:
            # a concurrent completion may have inserted this reference first
            donation = self.store.get_donation_by_reference(checkout.reference)
            if donation is None:
                self._log_unrecorded(checkout, result)
                raise
            log.info("Checkout %s was already recorded as donation %s", checkout.reference, donation.id)
        else:
            log.info(
                "Donation %s recorded for checkout %s: %s",
                donation.id, checkout.reference, format_amount(checkout.amount),
            )

        checkout.status = CheckoutStatus.completed.value
        self.store.save_checkout(checkout)
        return donation

    @staticmethod
    def _log_unrecorded(checkout: Checkout, result: PaymentResult) -> None:
        log.error(
            "Payment %s (transaction %s, %s %s) was authorized but no donation was recorded",
            checkout.reference, result.transaction_id, checkout.amount, checkout.provider,
        )

    def cancel_checkout(self, donor: Optional[User], reference: str) -> None:
        donor = self._require_donor(donor)
        checkout = self._load_checkout(donor, reference)
        if checkout.status == CheckoutStatus.open.value:
            checkout.status = CheckoutStatus.cancelled.value
            self.store.save_checkout(checkout)
            log.info("Checkout %s cancelled by %s", reference, donor.id)
        self._bridge(checkout.provider).cancel()

    def donations_by_donor(self, donor_id: str) -> List[dict]:
        return self.store.get_donations_by_donor(donor_id)

    def donations_by_request(self, request_id: int) -> List[dict]:
        if self.store.get_request(request_id) is None:
            raise NotFoundError("Request not found")
        return self.store.get_donations_by_request(request_id)

    def general_donations(self) -> List[dict]:
        return self.store.get_general_donations()

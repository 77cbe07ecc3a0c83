from typing import Annotated, List

from fastapi import APIRouter, Depends, Request

from donations import DonationFlow
from schemas import CheckoutCallback, CheckoutCreate, CheckoutRead, DonationOptions, DonationRead
from store import StoreDep
from .auth import AccountDep

router = APIRouter(tags=["donations"])


def get_donation_flow(request: Request, store: StoreDep) -> DonationFlow:
    return DonationFlow(store, request.app.state.bridges)


DonationFlowDep = Annotated[DonationFlow, Depends(get_donation_flow)]


@router.get("/options", response_model=DonationOptions)
def donation_options(flow: DonationFlowDep):
    return flow.checkout_options()


@router.post("/checkout", response_model=CheckoutRead, status_code=201)
def open_checkout(payload: CheckoutCreate, flow: DonationFlowDep, account: AccountDep):
    """
    Start a donation. Returns the configuration the browser hands to the
    provider's checkout widget. A general donation carries no request id.
    """
    request_id = None if payload.general else payload.request_id
    checkout, widget = flow.open_checkout(
        account,
        payload.amount,
        payload.provider,
        request_id=request_id,
        idempotency_key=payload.idempotency_key,
    )
    return CheckoutRead(
        reference=checkout.reference,
        provider=checkout.provider,
        amount=checkout.amount,
        request_id=checkout.request_id,
        status=checkout.status,
        widget=widget,
    )


@router.post("/checkout/{reference}/complete", response_model=DonationRead, status_code=201)
def complete_checkout(
    reference: str,
    callback: CheckoutCallback,
    flow: DonationFlowDep,
    account: AccountDep,
):
    """
    Called with whatever the widget passed to its success callback.
    Records the donation once the bridge accepts the payment.
    """
    return flow.complete_checkout(account, reference, callback.response)


@router.post("/checkout/{reference}/cancel")
def cancel_checkout(reference: str, flow: DonationFlowDep, account: AccountDep):
    """
    Called when the user closed the widget. Always answers with a payment error.
    """
    flow.cancel_checkout(account, reference)


@router.get("/mine", response_model=List[DonationRead])
def my_donations(flow: DonationFlowDep, account: AccountDep):
    return flow.donations_by_donor(account.id)


@router.get("/general", response_model=List[DonationRead])
def general_donations(flow: DonationFlowDep, account: AccountDep):
    return flow.general_donations()

from typing import Annotated, List, Optional

from fastapi import APIRouter, Depends, Response

from lifecycle import RequestLifecycle
from schemas import DonationRead, RequestCreate, RequestRead, RequestStatusUpdate, RequestUpdate
from store import StoreDep
from .auth import AccountDep
from .donations import DonationFlowDep

router = APIRouter(tags=["requests"])


def get_lifecycle(store: StoreDep) -> RequestLifecycle:
    return RequestLifecycle(store)


LifecycleDep = Annotated[RequestLifecycle, Depends(get_lifecycle)]


@router.post("/", response_model=RequestRead, status_code=201)
def create_request(request_data: RequestCreate, lifecycle: LifecycleDep, account: AccountDep):
    return lifecycle.create(account, request_data.model_dump())


@router.get("/", response_model=List[RequestRead])
def list_requests(
    lifecycle: LifecycleDep,
    account: AccountDep,
    status: Optional[str] = None,
    mine: bool = False,
    ngo_id: Optional[int] = None,
):
    """
    List requests newest-first, optionally filtered by status, by the
    logged-in owner (``mine``) or by assigned NGO.
    """
    owner_id = account.id if mine else None
    return lifecycle.list(status=status, owner_id=owner_id, ngo_id=ngo_id)


@router.get("/{request_id}", response_model=RequestRead)
def get_request(request_id: int, lifecycle: LifecycleDep, account: AccountDep):
    return lifecycle.get(request_id)


@router.patch("/{request_id}", response_model=RequestRead)
def update_request(
    request_id: int,
    update: RequestUpdate,
    lifecycle: LifecycleDep,
    account: AccountDep,
):
    return lifecycle.update(account, request_id, update.model_dump(exclude_unset=True))


@router.post("/{request_id}/status", response_model=RequestRead)
def update_request_status(
    request_id: int,
    update: RequestStatusUpdate,
    lifecycle: LifecycleDep,
    account: AccountDep,
):
    return lifecycle.set_status(account, request_id, update.status, update.ngo_id)


@router.delete("/{request_id}", status_code=204)
def delete_request(request_id: int, lifecycle: LifecycleDep, account: AccountDep):
    lifecycle.delete(account, request_id)
    return Response(status_code=204)


@router.get("/{request_id}/donations", response_model=List[DonationRead])
def list_request_donations(request_id: int, flow: DonationFlowDep, account: AccountDep):
    return flow.donations_by_request(request_id)

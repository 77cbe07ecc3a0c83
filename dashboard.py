"""Role-specific dashboard rollups, recomputed from a fresh fetch every time."""
from decimal import Decimal
from typing import Callable, Dict, List

from errors import AuthError
from models import RequestStatus, Role, User
from store import DataStore

RECENT_LIMIT = 5


def _count(requests: List[dict], status: RequestStatus) -> int:
    return sum(1 for r in requests if r["status"] == status.value)


def _total(amounts) -> Decimal:
    return sum((Decimal(a) for a in amounts), Decimal("0"))


def donor_rollup(store: DataStore, account: User) -> dict:
    donations = store.get_donations_by_donor(account.id)
    requests = store.get_requests()
    pending = [r for r in requests if r["status"] == RequestStatus.pending.value]
    return {
        "stats": {
            "total_donations": len(donations),
            "total_amount": _total(d["amount"] for d in donations),
            "pending_requests": len(pending),
            "fulfilled_requests": _count(requests, RequestStatus.fulfilled),
        },
        "recent_requests": pending[:RECENT_LIMIT],
    }


def ngo_rollup(store: DataStore, account: User) -> dict:
    ngo = store.get_ngo_for_account(account.id)
    requests = store.get_requests(ngo_id=ngo.id) if ngo else []
    return {
        "stats": {
            "total_requests": len(requests),
            "pending_requests": _count(requests, RequestStatus.pending),
            "fulfilled_requests": _count(requests, RequestStatus.fulfilled),
            "total_beneficiaries": len({r["user_id"] for r in requests}),
        },
        "recent_requests": requests[:RECENT_LIMIT],
    }


def beneficiary_rollup(store: DataStore, account: User) -> dict:
    requests = store.get_requests(user_id=account.id)
    received = store.get_donations_for_requests([r["id"] for r in requests])
    return {
        "stats": {
            "total_requests": len(requests),
            "pending_requests": _count(requests, RequestStatus.pending),
            "fulfilled_requests": _count(requests, RequestStatus.fulfilled),
            "total_donations": len(received),
            "total_amount": _total(d.amount for d in received),
        },
        "recent_requests": requests[:RECENT_LIMIT],
    }


ROLLUPS: Dict[Role, Callable[[DataStore, User], dict]] = {
    Role.donor: donor_rollup,
    Role.ngo: ngo_rollup,
    Role.beneficiary: beneficiary_rollup,
}


def build_dashboard(store: DataStore, account: User) -> dict:
    if account is None:
        raise AuthError()
    role = Role(account.role)
    return {"role": role, **ROLLUPS[role](store, account)}

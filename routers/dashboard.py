from fastapi import APIRouter

from dashboard import build_dashboard
from schemas import DashboardRead
from store import StoreDep
from .auth import AccountDep

router = APIRouter(tags=["dashboard"])


@router.get("/dashboard", response_model=DashboardRead)
def read_dashboard(store: StoreDep, account: AccountDep):
    """Role-specific rollup for the logged-in account, computed fresh."""
    return build_dashboard(store, account)

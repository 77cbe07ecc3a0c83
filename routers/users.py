# routers/users.py
from fastapi import APIRouter

from schemas import ProfileUpdate, UserRead
from .auth import AccountDep, SessionContextDep

router = APIRouter(tags=["users"])


@router.get("/me", response_model=UserRead)
def get_own_profile(account: AccountDep):
    return account


@router.patch("/me")
def update_own_profile(
    updates: ProfileUpdate,
    context: SessionContextDep,
    account: AccountDep,
):
    """
    Update profile fields of the logged-in account. Only the fields sent
    are changed; the cached profile is replaced by the stored row.
    """
    profile = context.update_profile(updates.model_dump(exclude_unset=True))
    return {
        "profile": UserRead.model_validate(profile),
        "notices": context.notices,
    }

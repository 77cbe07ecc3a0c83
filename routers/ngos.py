from typing import List

from fastapi import APIRouter

from schemas import NGORead
from store import StoreDep

router = APIRouter(tags=["ngos"])


@router.get("/", response_model=List[NGORead])
def list_ngos(store: StoreDep):
    """
    Verified NGOs only, ordered by name. These are the only NGOs a request
    can be assigned to.
    """
    return store.get_ngos()

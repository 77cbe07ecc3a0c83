"""Beneficiary food requests: create, edit, assign, delete and list.

Status moves pending -> approved -> fulfilled in the intended flow, but
transitions are not checked here: any permitted caller may set any status,
backward moves included. What is enforced is the row data itself:

* a request assigned to an NGO is approved or fulfilled,
* the assigned NGO is a verified one,
* a request's description is never empty.
"""
from typing import Callable, Dict, List, Optional

from errors import AccessDeniedError, AuthError, NotFoundError, ValidationError
from logger import get_logger
from models import Request as RequestModel, RequestStatus, Role, Urgency, User
from store import DataStore

log = get_logger("requests")

DETAIL_FIELDS = ("description", "food_type", "quantity_needed", "urgency_level", "location", "notes")
ASSIGNMENT_FIELDS = ("status", "ngo_id")


def _owner_may(account: User, req: RequestModel, fields: set) -> bool:
    return req.user_id == account.id


def _ngo_may(account: User, req: RequestModel, fields: set) -> bool:
    return fields <= set(ASSIGNMENT_FIELDS)


def _nobody_may(account: User, req: RequestModel, fields: set) -> bool:
    return False


# Who may overwrite which fields of a request, per role.
UPDATE_POLICY: Dict[Role, Callable[[User, RequestModel, set], bool]] = {
    Role.beneficiary: _owner_may,
    Role.ngo: _ngo_may,
    Role.donor: _nobody_may,
}


def parse_status(value) -> str:
    try:
        return RequestStatus(value).value
    except ValueError:
        raise ValidationError(f"Unknown request status: {value}")


def _parse_urgency(value) -> str:
    try:
        return Urgency(value).value
    except ValueError:
        raise ValidationError(f"Unknown urgency level: {value}")


def _clean(fields: dict) -> dict:
    cleaned = {}
    for field, value in fields.items():
        if field not in DETAIL_FIELDS and field not in ASSIGNMENT_FIELDS:
            continue
        if field == "status" and value is not None:
            value = parse_status(value)
        elif field == "urgency_level":
            value = _parse_urgency(value if value is not None else Urgency.medium)
        elif field == "quantity_needed" and value is not None:
            if int(value) <= 0:
                raise ValidationError("Quantity must be a positive number")
            value = int(value)
        elif isinstance(value, str) and field != "description":
            value = value.strip() or None
        cleaned[field] = value
    return cleaned


class RequestLifecycle:
    def __init__(self, store: DataStore):
        self.store = store

    @staticmethod
    def _require(account: Optional[User]) -> User:
        if account is None:
            raise AuthError()
        return account

    def _load(self, request_id: int) -> RequestModel:
        req = self.store.get_request(request_id)
        if req is None:
            raise NotFoundError("Request not found")
        return req

    def _check_assignment(self, status: str, ngo_id: Optional[int]) -> None:
        if ngo_id is None:
            return
        if status == RequestStatus.pending.value:
            raise ValidationError("Only approved or fulfilled requests can be assigned to an NGO")
        ngo = self.store.get_ngo(ngo_id)
        if ngo is None or not ngo.verified:
            raise ValidationError("Requests can only be assigned to a verified NGO")

    def create(self, account: Optional[User], fields: dict) -> dict:
        account = self._require(account)
        description = (fields.get("description") or "").strip()
        if not description:
            raise ValidationError("Please provide a description of the food needed")
        if Role(account.role) is not Role.beneficiary:
            raise AccessDeniedError("Only beneficiaries can create food requests")

        data = _clean({k: v for k, v in fields.items() if k in DETAIL_FIELDS})
        data.update(
            description=description,
            user_id=account.id,
            status=RequestStatus.pending.value,
            ngo_id=None,
        )
        req = self.store.create_request(data)
        log.info("Request %s created by %s", req.id, account.id)
        return self.store.get_joined_request(req.id)

    def update(self, account: Optional[User], request_id: int, fields: dict) -> dict:
        account = self._require(account)
        req = self._load(request_id)
        updates = _clean(fields)
        if not updates:
            return self.store.get_joined_request(req.id)

        if not UPDATE_POLICY[Role(account.role)](account, req, set(updates)):
            raise AccessDeniedError("You can't edit this request")

        if "description" in updates and not (updates["description"] or "").strip():
            raise ValidationError("Please provide a description of the food needed")
        if "description" in updates:
            updates["description"] = updates["description"].strip()

        touches_details = any(field in DETAIL_FIELDS for field in updates)
        if touches_details and req.status == RequestStatus.fulfilled.value:
            raise ValidationError("Fulfilled requests can no longer be edited")

        status = updates.get("status") or req.status
        if "status" in updates and updates["status"] is None:
            updates.pop("status")
        ngo_id = updates["ngo_id"] if "ngo_id" in updates else req.ngo_id
        self._check_assignment(status, ngo_id)

        self.store.update_request(req.id, updates)
        log.info("Request %s updated by %s: %s", req.id, account.id, sorted(updates))
        return self.store.get_joined_request(req.id)

    def set_status(
        self,
        account: Optional[User],
        request_id: int,
        status,
        ngo_id: Optional[int] = None,
    ) -> dict:
        """Move a request to ``status``, claiming it for an NGO on the way.

        An NGO account that approves or fulfils an unassigned request without
        naming an NGO claims it for the NGO it operates.
        """
        account = self._require(account)
        status = parse_status(status)
        updates = {"status": status}
        if ngo_id is not None:
            updates["ngo_id"] = ngo_id
        elif Role(account.role) is Role.ngo and status != RequestStatus.pending.value:
            req = self._load(request_id)
            if req.ngo_id is None:
                own = self.store.get_ngo_for_account(account.id)
                if own is None:
                    raise ValidationError("Your account does not operate an NGO")
                updates["ngo_id"] = own.id
        return self.update(account, request_id, updates)

    def delete(self, account: Optional[User], request_id: int) -> None:
        account = self._require(account)
        req = self._load(request_id)
        if req.user_id != account.id:
            raise AccessDeniedError("You can only delete your own requests.")
        self.store.delete_request(req.id)
        log.info("Request %s deleted by %s", request_id, account.id)

    def get(self, request_id: int) -> dict:
        row = self.store.get_joined_request(request_id)
        if row is None:
            raise NotFoundError("Request not found")
        return row

    def list(
        self,
        status: Optional[str] = None,
        owner_id: Optional[str] = None,
        ngo_id: Optional[int] = None,
    ) -> List[dict]:
        if status is not None:
            status = parse_status(status)
        return self.store.get_requests(status=status, user_id=owner_id, ngo_id=ngo_id)

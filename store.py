"""Row-level access to users, requests, donations, NGOs and checkouts.

Every read orders newest-first by ``created_at``. Any SQLAlchemy failure is
rolled back and re-raised as ``PersistenceError``.
"""
from typing import Annotated, Any, Dict, List, Optional

from fastapi import Depends
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session, SQLModel, select

from db import SessionDep
from errors import NotFoundError, PersistenceError
from logger import get_logger
from models import NGO, Checkout, Donation, Request as RequestModel, User

log = get_logger("store")


def _request_row(req: RequestModel, owner: Optional[User], ngo: Optional[NGO]) -> Dict[str, Any]:
    row = req.model_dump()
    row["user"] = {"name": owner.name, "email": owner.email} if owner else None
    row["ngo"] = {"name": ngo.name, "location": ngo.location} if ngo else None
    return row


class DataStore:
    def __init__(self, session: Session):
        self.session = session

    def _save(self, obj: SQLModel) -> SQLModel:
        try:
            self.session.add(obj)
            self.session.commit()
            self.session.refresh(obj)
        except SQLAlchemyError as exc:
            self.session.rollback()
            log.error("Write to %s failed: %s", obj.__tablename__, exc)
            raise PersistenceError() from exc
        return obj

    def _all(self, stmt) -> list:
        try:
            return list(self.session.exec(stmt).all())
        except SQLAlchemyError as exc:
            self.session.rollback()
            log.error("Read failed: %s", exc)
            raise PersistenceError("Could not load data") from exc

    def _get(self, model, key, fresh: bool = False):
        try:
            return self.session.get(model, key, populate_existing=fresh)
        except SQLAlchemyError as exc:
            self.session.rollback()
            log.error("Read of %s %s failed: %s", model.__tablename__, key, exc)
            raise PersistenceError("Could not load data") from exc

    # Users

    def create_user(self, data: dict) -> User:
        return self._save(User(**data))

    def get_user(self, user_id: str) -> Optional[User]:
        # always re-read: the profile may have changed in another session
        return self._get(User, user_id, fresh=True)

    def update_user(self, user_id: str, updates: dict) -> User:
        user = self.get_user(user_id)
        if user is None:
            raise NotFoundError("Profile not found")
        for field, value in updates.items():
            setattr(user, field, value)
        return self._save(user)

    # Requests

    def _joined_requests(self):
        return (
            select(RequestModel, User, NGO)
            .join(User, User.id == RequestModel.user_id, isouter=True)
            .join(NGO, NGO.id == RequestModel.ngo_id, isouter=True)
        )

    def create_request(self, data: dict) -> RequestModel:
        return self._save(RequestModel(**data))

    def get_request(self, request_id: int) -> Optional[RequestModel]:
        return self._get(RequestModel, request_id)

    def get_joined_request(self, request_id: int) -> Optional[Dict[str, Any]]:
        rows = self._all(self._joined_requests().where(RequestModel.id == request_id))
        if not rows:
            return None
        return _request_row(*rows[0])

    def get_requests(
        self,
        status: Optional[str] = None,
        user_id: Optional[str] = None,
        ngo_id: Optional[int] = None,
        limit: Optional[int] = None,
    ) -> List[Dict[str, Any]]:
        query = self._joined_requests()
        if status is not None:
            query = query.where(RequestModel.status == status)
        if user_id is not None:
            query = query.where(RequestModel.user_id == user_id)
        if ngo_id is not None:
            query = query.where(RequestModel.ngo_id == ngo_id)
        query = query.order_by(RequestModel.created_at.desc(), RequestModel.id.desc())
        if limit is not None:
            query = query.limit(limit)
        return [_request_row(req, owner, ngo) for req, owner, ngo in self._all(query)]

    def update_request(self, request_id: int, updates: dict) -> RequestModel:
        req = self.get_request(request_id)
        if req is None:
            raise NotFoundError("Request not found")
        for field, value in updates.items():
            setattr(req, field, value)
        return self._save(req)

    def delete_request(self, request_id: int) -> bool:
        req = self.get_request(request_id)
        if req is None:
            raise NotFoundError("Request not found")
        try:
            self.session.delete(req)
            self.session.commit()
        except SQLAlchemyError as exc:
            self.session.rollback()
            log.error("Delete of request %s failed: %s", request_id, exc)
            raise PersistenceError("Could not delete the request") from exc
        return True

    # Donations

    def create_donation(self, data: dict) -> Donation:
        return self._save(Donation(**data))

    def get_donation_by_reference(self, reference: str) -> Optional[Donation]:
        rows = self._all(select(Donation).where(Donation.payment_reference == reference))
        return rows[0] if rows else None

    def get_donations_by_request(self, request_id: int) -> List[Dict[str, Any]]:
        query = (
            select(Donation, User)
            .join(User, User.id == Donation.donor_id, isouter=True)
            .where(Donation.request_id == request_id)
            .order_by(Donation.created_at.desc(), Donation.id.desc())
        )
        return [
            {**d.model_dump(), "donor": {"name": u.name, "email": u.email} if u else None}
            for d, u in self._all(query)
        ]

    def get_donations_by_donor(self, donor_id: str) -> List[Dict[str, Any]]:
        query = (
            select(Donation, RequestModel)
            .join(RequestModel, RequestModel.id == Donation.request_id, isouter=True)
            .where(Donation.donor_id == donor_id)
            .order_by(Donation.created_at.desc(), Donation.id.desc())
        )
        return [
            {
                **d.model_dump(),
                "request": {"description": r.description, "status": r.status} if r else None,
            }
            for d, r in self._all(query)
        ]

    def get_donations_for_requests(self, request_ids: List[int]) -> List[Donation]:
        if not request_ids:
            return []
        return self._all(select(Donation).where(Donation.request_id.in_(request_ids)))

    def get_general_donations(self) -> List[Dict[str, Any]]:
        query = (
            select(Donation, User)
            .join(User, User.id == Donation.donor_id, isouter=True)
            .where(Donation.request_id.is_(None))
            .order_by(Donation.created_at.desc(), Donation.id.desc())
        )
        return [
            {**d.model_dump(), "donor": {"name": u.name, "email": u.email} if u else None}
            for d, u in self._all(query)
        ]

    # NGOs

    def get_ngos(self) -> List[NGO]:
        return self._all(select(NGO).where(NGO.verified == True).order_by(NGO.name))  # noqa: E712

    def get_ngo(self, ngo_id: int) -> Optional[NGO]:
        return self._get(NGO, ngo_id)

    def get_ngo_for_account(self, account_id: str) -> Optional[NGO]:
        rows = self._all(select(NGO).where(NGO.account_id == account_id))
        return rows[0] if rows else None

    def create_ngo(self, data: dict) -> NGO:
        return self._save(NGO(**data))

    # Checkouts

    def create_checkout(self, data: dict) -> Checkout:
        return self._save(Checkout(**data))

    def get_checkout(self, reference: str) -> Optional[Checkout]:
        rows = self._all(select(Checkout).where(Checkout.reference == reference))
        return rows[0] if rows else None

    def find_checkout(self, donor_id: str, idempotency_key: str) -> Optional[Checkout]:
        rows = self._all(
            select(Checkout).where(
                Checkout.donor_id == donor_id,
                Checkout.idempotency_key == idempotency_key,
            )
        )
        return rows[0] if rows else None

    def save_checkout(self, checkout: Checkout) -> Checkout:
        return self._save(checkout)


def get_store(session: SessionDep) -> DataStore:
    return DataStore(session)


StoreDep = Annotated[DataStore, Depends(get_store)]

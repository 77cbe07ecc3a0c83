"""Shared fixtures for the API test suites."""
import unittest
from itertools import count

from fastapi.testclient import TestClient
from sqlmodel import Session, SQLModel, select

from db import engine
from main import app
from models import NGO

_emails = count(1)


class APITestCase(unittest.TestCase):
    """Fresh in-memory database and one cookie jar per registered user."""

    def setUp(self):
        SQLModel.metadata.drop_all(engine)
        SQLModel.metadata.create_all(engine)
        self._clients = []
        self._accounts = {}

    def tearDown(self):
        for client in self._clients:
            client.close()

    def client(self) -> TestClient:
        client = TestClient(app)
        self._clients.append(client)
        return client

    def register(self, role: str, name: str = None, **extra) -> TestClient:
        client = self.client()
        n = next(_emails)
        payload = {
            "email": extra.pop("email", f"{role}{n}@example.com"),
            "password": extra.pop("password", "secret123"),
            "name": name or f"{role.title()} {n}",
            "role": role,
        }
        payload.update(extra)
        resp = client.post("/register", json=payload)
        self.assertEqual(resp.status_code, 201, resp.text)
        self._accounts[id(client)] = resp.json()["profile"]
        return client

    def account_of(self, client: TestClient) -> dict:
        return self._accounts[id(client)]

    def add_ngo(self, name: str = "Lagos Food Bank", verified: bool = True, location: str = "Lagos") -> int:
        with Session(engine) as session:
            ngo = NGO(name=name, location=location, verified=verified)
            session.add(ngo)
            session.commit()
            session.refresh(ngo)
            return ngo.id

    def verify_ngo_of(self, client: TestClient) -> int:
        with Session(engine) as session:
            ngo = session.exec(select(NGO).where(NGO.account_id == self.account_of(client)["id"])).one()
            ngo.verified = True
            session.add(ngo)
            session.commit()
            return ngo.id

    def create_request(self, client: TestClient, description: str = "Need rice for family of 4", **fields) -> dict:
        resp = client.post("/requests/", json={"description": description, **fields})
        self.assertEqual(resp.status_code, 201, resp.text)
        return resp.json()

    def donate(self, client: TestClient, amount=5000, provider="flutterwave", request_id=None, **extra) -> dict:
        """Open a checkout and complete it with a successful widget callback."""
        payload = {"amount": amount, "provider": provider, "request_id": request_id, **extra}
        resp = client.post("/donations/checkout", json=payload)
        self.assertEqual(resp.status_code, 201, resp.text)
        reference = resp.json()["reference"]
        resp = client.post(
            f"/donations/checkout/{reference}/complete",
            json={"response": success_callback(provider, reference)},
        )
        self.assertEqual(resp.status_code, 201, resp.text)
        return resp.json()


def success_callback(provider: str, reference: str) -> dict:
    if provider == "flutterwave":
        return {"status": "successful", "transaction_id": 4410291, "tx_ref": reference}
    return {"reference": reference, "status": "success", "trans": "3038201"}

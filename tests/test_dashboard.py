"""
Role dashboard rollup tests.

Run from project root: python -m pytest tests/test_dashboard.py -v
"""
import unittest
from decimal import Decimal

from dashboard import ROLLUPS
from models import Role
from tests.helpers import APITestCase


class TestDashboard(APITestCase):
    def test_requires_login(self):
        self.assertEqual(self.client().get("/dashboard").status_code, 401)

    def test_donor_rollup(self):
        beneficiary = self.register("beneficiary")
        first = self.create_request(beneficiary, "Rice")
        self.create_request(beneficiary, "Beans")
        done = self.create_request(beneficiary, "Garri")
        beneficiary.patch(f"/requests/{done['id']}", json={"status": "fulfilled"})

        donor = self.register("donor")
        other_donor = self.register("donor")
        self.donate(donor, amount=5000, request_id=first["id"])
        self.donate(donor, amount="1000.50", provider="paystack")
        self.donate(other_donor, amount=25000)

        body = donor.get("/dashboard").json()

        self.assertEqual(body["role"], "donor")
        self.assertEqual(body["stats"]["total_donations"], 2)
        self.assertEqual(Decimal(str(body["stats"]["total_amount"])), Decimal("6000.50"))
        self.assertEqual(body["stats"]["pending_requests"], 2)
        self.assertEqual(body["stats"]["fulfilled_requests"], 1)
        self.assertEqual(len(body["recent_requests"]), 2)
        self.assertTrue(all(r["status"] == "pending" for r in body["recent_requests"]))

    def test_donor_recent_requests_are_capped(self):
        beneficiary = self.register("beneficiary")
        for i in range(7):
            self.create_request(beneficiary, f"Request {i}")
        donor = self.register("donor")

        body = donor.get("/dashboard").json()

        self.assertEqual(body["stats"]["pending_requests"], 7)
        self.assertEqual([r["description"] for r in body["recent_requests"]],
                         [f"Request {i}" for i in range(6, 1, -1)])

    def test_ngo_rollup_counts_assigned_requests(self):
        first = self.register("beneficiary")
        second = self.register("beneficiary")
        ngo = self.register("ngo", organization="Feed Lagos")
        ngo_id = self.verify_ngo_of(ngo)

        for client, description in ((first, "Rice"), (first, "Beans"), (second, "Yam")):
            req = self.create_request(client, description)
            ngo.post(f"/requests/{req['id']}/status", json={"status": "approved"})
        self.create_request(second, "Unassigned")
        fulfilled = ngo.get("/requests/", params={"ngo_id": ngo_id}).json()[0]
        ngo.post(f"/requests/{fulfilled['id']}/status", json={"status": "fulfilled"})

        body = ngo.get("/dashboard").json()

        self.assertEqual(body["role"], "ngo")
        self.assertEqual(body["stats"]["total_requests"], 3)
        self.assertEqual(body["stats"]["pending_requests"], 0)
        self.assertEqual(body["stats"]["fulfilled_requests"], 1)
        self.assertEqual(body["stats"]["total_beneficiaries"], 2)

    def test_ngo_without_assignments(self):
        ngo = self.register("ngo")
        body = ngo.get("/dashboard").json()
        self.assertEqual(body["stats"]["total_requests"], 0)
        self.assertEqual(body["recent_requests"], [])

    def test_beneficiary_rollup_counts_received_donations(self):
        beneficiary = self.register("beneficiary")
        rice = self.create_request(beneficiary, "Rice")
        self.create_request(beneficiary, "Beans")
        other = self.create_request(self.register("beneficiary"), "Not mine")

        donor = self.register("donor")
        self.donate(donor, amount=1000, request_id=rice["id"])
        self.donate(donor, amount=2500, request_id=rice["id"])
        self.donate(donor, amount=9999, request_id=other["id"])
        self.donate(donor, amount=500)

        body = beneficiary.get("/dashboard").json()

        self.assertEqual(body["role"], "beneficiary")
        self.assertEqual(body["stats"]["total_requests"], 2)
        self.assertEqual(body["stats"]["pending_requests"], 2)
        self.assertEqual(body["stats"]["total_donations"], 2)
        self.assertEqual(Decimal(str(body["stats"]["total_amount"])), Decimal("3500"))

    def test_every_role_has_a_rollup(self):
        self.assertEqual(set(ROLLUPS), set(Role))


if __name__ == "__main__":
    unittest.main()

"""
Registration, login and profile endpoints.

Run from project root: python -m pytest tests/test_auth_api.py -v
"""
import unittest

from tests.helpers import APITestCase


class TestRegisterAndLogin(APITestCase):
    def test_register_signs_in(self):
        client = self.client()
        resp = client.post(
            "/register",
            json={"email": "Chidi@Example.com", "password": "secret123", "name": "Chidi", "role": "donor"},
        )

        self.assertEqual(resp.status_code, 201, resp.text)
        body = resp.json()
        self.assertEqual(body["identity"]["email"], "chidi@example.com")
        self.assertEqual(body["profile"]["role"], "donor")
        self.assertEqual(body["profile"]["id"], body["identity"]["id"])
        self.assertEqual(body["notices"][-1], {"kind": "success", "text": "Account created successfully!"})
        self.assertIn("session", resp.cookies)

        me = client.get("/me").json()
        self.assertTrue(me["is_donor"])
        self.assertFalse(me["is_ngo"])
        self.assertFalse(me["is_beneficiary"])
        self.assertEqual(me["role"], "donor")

    def test_register_accepts_form_data(self):
        client = self.client()
        resp = client.post(
            "/register",
            data={"email": "bisi@example.com", "password": "secret123", "name": "Bisi", "role": "beneficiary"},
        )
        self.assertEqual(resp.status_code, 201, resp.text)
        self.assertTrue(client.get("/me").json()["is_beneficiary"])

    def test_register_validation(self):
        client = self.client()

        missing = client.post("/register", json={"email": "x@example.com", "password": "secret123"})
        self.assertEqual(missing.status_code, 400)
        self.assertIn("name", missing.json()["detail"])

        bad_role = client.post(
            "/register", json={"email": "x@example.com", "password": "secret123", "name": "X", "role": "admin"}
        )
        self.assertEqual(bad_role.status_code, 400)

        short = client.post(
            "/register", json={"email": "x@example.com", "password": "123", "name": "X", "role": "donor"}
        )
        self.assertEqual(short.status_code, 400)
        self.assertEqual(short.json()["notice"]["kind"], "error")

    def test_duplicate_email(self):
        self.register("donor", email="dup@example.com")
        resp = self.client().post(
            "/register", json={"email": "dup@example.com", "password": "secret123", "name": "Y", "role": "ngo"}
        )
        self.assertEqual(resp.status_code, 400)
        self.assertEqual(resp.json()["detail"], "User already registered")

    def test_login(self):
        self.register("beneficiary", name="Bisi", email="bisi@example.com")
        client = self.client()

        resp = client.post("/login", json={"email": "bisi@example.com", "password": "secret123"})

        self.assertEqual(resp.status_code, 200, resp.text)
        self.assertEqual(resp.json()["profile"]["name"], "Bisi")
        self.assertEqual(resp.json()["notices"][-1]["text"], "Welcome back!")
        self.assertEqual(client.get("/users/me").json()["name"], "Bisi")

    def test_login_with_wrong_password(self):
        self.register("beneficiary", email="bisi@example.com")
        client = self.client()

        resp = client.post("/login", json={"email": "bisi@example.com", "password": "wrong-one"})

        self.assertEqual(resp.status_code, 401)
        self.assertEqual(resp.json()["detail"], "Invalid login credentials")
        self.assertEqual(client.get("/me").status_code, 401)

    def test_logout(self):
        client = self.register("donor")

        resp = client.post("/logout")

        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.json()["notices"][-1]["text"], "Signed out successfully")
        self.assertEqual(client.get("/me").status_code, 401)

    def test_logout_without_session_never_fails(self):
        resp = self.client().post("/logout")
        self.assertEqual(resp.status_code, 200)

    def test_logout_revokes_copied_cookie(self):
        client = self.register("donor")
        token = client.cookies.get("session")
        other = self.client()
        copied = {"Cookie": f"session={token}"}
        self.assertEqual(other.get("/me", headers=copied).status_code, 200)

        client.post("/logout")

        self.assertEqual(other.get("/me", headers=copied).status_code, 401)

    def test_refresh(self):
        client = self.register("donor")
        self.assertEqual(client.post("/refresh").status_code, 200)
        self.assertEqual(client.get("/me").status_code, 200)
        self.assertEqual(self.client().post("/refresh").status_code, 401)

    def test_root_reports_session(self):
        self.assertEqual(self.client().get("/").json(), {"name": "FoodLink", "authenticated": False, "role": None})
        client = self.register("ngo")
        self.assertEqual(client.get("/").json()["role"], "ngo")


class TestProfile(APITestCase):
    def test_patch_profile(self):
        client = self.register("beneficiary", name="Bisi", address="Yaba")

        resp = client.patch("/users/me", json={"phone": "0803", "bio": "Mother of four"})

        self.assertEqual(resp.status_code, 200, resp.text)
        profile = resp.json()["profile"]
        self.assertEqual(profile["phone"], "0803")
        self.assertEqual(profile["bio"], "Mother of four")
        self.assertEqual(profile["address"], "Yaba")
        self.assertEqual(profile["name"], "Bisi")
        self.assertEqual(client.get("/users/me").json()["bio"], "Mother of four")

    def test_patch_profile_blank_name(self):
        client = self.register("beneficiary")
        self.assertEqual(client.patch("/users/me", json={"name": ""}).status_code, 400)

    def test_patch_requires_login(self):
        self.assertEqual(self.client().patch("/users/me", json={"bio": "x"}).status_code, 401)


class TestNGODirectory(APITestCase):
    def test_only_verified_ngos_are_listed_by_name(self):
        self.add_ngo("Zamfara Relief", verified=True)
        self.add_ngo("Abuja Pantry", verified=True)
        self.add_ngo("Unchecked Org", verified=False)
        ngo = self.register("ngo", organization="Feed Lagos")
        viewer = self.client()

        self.assertEqual([n["name"] for n in viewer.get("/ngos/").json()], ["Abuja Pantry", "Zamfara Relief"])

        self.verify_ngo_of(ngo)
        self.assertEqual(
            [n["name"] for n in viewer.get("/ngos/").json()],
            ["Abuja Pantry", "Feed Lagos", "Zamfara Relief"],
        )


if __name__ == "__main__":
    unittest.main()

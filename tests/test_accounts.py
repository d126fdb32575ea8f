import pytest

from healthconnect.domain.accounts.service import AccountService
from healthconnect.errors import DuplicateAccount
from healthconnect.models import Admin

from conftest import PASSWORD


@pytest.fixture
def doctor(api):
    doctor_id = api.create_user("doc@example.com", role="doctor", name="Dr. House")
    return doctor_id, api.login("doc@example.com", "doctor")


@pytest.fixture
def patient(api):
    patient_id = api.create_user("jane@example.com", name="Jane")
    return patient_id, api.login("jane@example.com", "patient")


class TestDoctors:
    def test_public_directory(self, api, doctor):
        api.create_user("derm@example.com", role="doctor", name="Dr. Skin", specialization="Dermatology")

        everyone = api.client.get("/doctors").json()["data"]
        cardiology = api.client.get("/doctors", params={"specialization": "cardiology"}).json()["data"]

        assert len(everyone) == 2
        assert [d["name"] for d in cardiology] == ["Dr. House"]
        assert cardiology[0]["specialization"] == "Cardiology"
        assert "passwordHash" not in cardiology[0]

    def test_get_doctor(self, api, doctor):
        doctor_id, _ = doctor

        response = api.client.get(f"/doctors/{doctor_id}")

        assert response.status_code == 200
        assert response.json()["data"]["qualification"] == "MBBS"
        assert api.client.get("/doctors/9999").json()["error"] == "DoctorNotFound"

    def test_update_own_profile(self, api, doctor):
        _, headers = doctor

        response = api.client.patch(
            "/doctors/me", headers=headers, json={"experience": 50, "about": "Diagnostician"}
        )

        assert response.status_code == 200
        data = response.json()["data"]
        assert data["experience"] == 50
        assert data["about"] == "Diagnostician"
        assert data["specialization"] == "Cardiology"

    def test_experience_bounds(self, api, doctor):
        _, headers = doctor

        assert api.client.patch("/doctors/me", headers=headers, json={"experience": 0}).status_code == 200
        assert api.client.patch("/doctors/me", headers=headers, json={"experience": 71}).status_code == 400
        assert api.client.patch("/doctors/me", headers=headers, json={"experience": -1}).status_code == 400

    def test_protected_fields_ignored(self, api, doctor):
        _, headers = doctor

        response = api.client.patch(
            "/doctors/me", headers=headers, json={"email": "new@example.com", "isActive": False}
        )

        assert response.status_code == 200
        assert response.json()["data"]["email"] == "doc@example.com"

    def test_name_cannot_be_cleared(self, api, doctor):
        _, headers = doctor

        for name in (None, "   "):
            response = api.client.patch("/doctors/me", headers=headers, json={"name": name})
            assert response.status_code == 400
            assert response.json()["error"] == "ValidationError"

        me = api.client.get("/auth/me", headers=headers).json()["data"]
        assert me["name"] == "Dr. House"

    def test_patient_cannot_use_doctor_profile(self, api, patient):
        _, headers = patient

        assert api.client.patch("/doctors/me", headers=headers, json={"about": "x"}).status_code == 403


class TestPatients:
    def test_update_profile(self, api, patient):
        _, headers = patient

        response = api.client.patch(
            "/patients/me",
            headers=headers,
            json={
                "gender": "Female",
                "bloodGroup": "o+",
                "contactNumber": "+1 (555) 010-2030",
                "emergencyContacts": [{"name": "Bob", "phone": "5550102031", "relation": "brother"}],
            },
        )

        assert response.status_code == 200
        data = response.json()["data"]
        assert data["gender"] == "female"
        assert data["bloodGroup"] == "O+"
        assert data["contactNumber"] == "+15550102030"
        assert data["emergencyContacts"] == [
            {"name": "Bob", "phone": "5550102031", "relation": "brother"}
        ]

    def test_null_name_rejected(self, api, patient):
        _, headers = patient

        response = api.client.patch("/patients/me", headers=headers, json={"name": None})

        assert response.status_code == 400
        assert response.json()["error"] == "ValidationError"

    def test_invalid_gender(self, api, patient):
        _, headers = patient

        assert api.client.patch("/patients/me", headers=headers, json={"gender": "robot"}).status_code == 400

    def test_medical_history_merges(self, api, patient):
        _, headers = patient
        api.client.put(
            "/patients/me/medical-history",
            headers=headers,
            json={"conditions": ["Asthma"], "medications": ["Inhaler"]},
        )

        response = api.client.put(
            "/patients/me/medical-history", headers=headers, json={"allergies": ["Peanuts"]}
        )

        assert response.status_code == 200
        assert response.json()["data"]["medicalHistory"] == {
            "conditions": ["Asthma"],
            "allergies": ["Peanuts"],
            "medications": ["Inhaler"],
        }

    def test_patient_list_is_staff_only(self, api, patient, doctor):
        _, patient_headers = patient
        _, doctor_headers = doctor

        assert api.client.get("/patients", headers=patient_headers).status_code == 403
        response = api.client.get("/patients", headers=doctor_headers)
        assert response.status_code == 200
        assert [p["email"] for p in response.json()["data"]] == ["jane@example.com"]

    def test_delete_only_self(self, api, patient, doctor):
        patient_id, patient_headers = patient
        _, doctor_headers = doctor
        api.create_user("john@example.com")
        john = api.login("john@example.com", "patient")

        assert api.client.delete(f"/patients/{patient_id}", headers=john).status_code == 403
        assert api.client.delete(f"/patients/{patient_id}", headers=doctor_headers).status_code == 403

        response = api.client.delete(f"/patients/{patient_id}", headers=patient_headers)
        assert response.status_code == 200
        assert api.client.get("/auth/me", headers=patient_headers).status_code == 401


class TestAdminSeeding:
    def test_create_admin(self, db):
        admin = AccountService(db).create_admin("Root", " Root@Example.com ", PASSWORD, "super_admin")

        assert isinstance(admin, Admin)
        assert admin.email == "root@example.com"
        assert admin.is_email_verified is True
        assert admin.admin_level == "super_admin"

    def test_duplicate_admin(self, db):
        AccountService(db).create_admin("Root", "root@example.com", PASSWORD)

        with pytest.raises(DuplicateAccount):
            AccountService(db).create_admin("Root", "root@example.com", PASSWORD)

    def test_weak_password(self, db):
        with pytest.raises(ValueError):
            AccountService(db).create_admin("Root", "root@example.com", "123")

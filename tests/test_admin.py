from datetime import timedelta

import pytest

from healthconnect.errors import InternalError
from healthconnect.models import WEEKDAYS, AdminActionLog, Appointment
from healthconnect.shared.timeutils import utctoday


@pytest.fixture
def setup(api):
    """An admin, two doctors with open schedules and a patient booked with each"""
    api.create_admin()
    house = api.create_user("house@example.com", role="doctor", name="Dr. House")
    wilson = api.create_user(
        "wilson@example.com", role="doctor", name="Dr. Wilson", specialization="Oncology"
    )
    patient = api.create_user("jane@example.com", name="Jane")

    week = {"schedule": [{"day": day, "slots": [{"slotNumber": 1}]} for day in WEEKDAYS]}
    headers = {}
    for doctor_id, email in ((house, "house@example.com"), (wilson, "wilson@example.com")):
        headers[doctor_id] = api.login(email, "doctor")
        api.client.put(f"/doctors/{doctor_id}/schedule", headers=headers[doctor_id], json=week)

    jane = api.login("jane@example.com", "patient")
    tomorrow = utctoday() + timedelta(days=1)
    appointments = {}
    for doctor_id in (house, wilson):
        response = api.client.post(
            "/appointments",
            headers=jane,
            json={"doctorId": doctor_id, "date": tomorrow.isoformat(), "slotNumber": 1},
        )
        assert response.status_code == 201, response.text
        appointments[doctor_id] = response.json()["data"]["id"]

    return {
        "admin": api.login("admin@example.com", "admin"),
        "house": house,
        "wilson": wilson,
        "patient": patient,
        "jane": jane,
        "doctor_headers": headers,
        "appointments": appointments,
    }


def toggle(api, setup, user_id, action, **extra):
    return api.client.put(
        f"/admin/users/{user_id}/toggle-status",
        headers=setup["admin"],
        json={"action": action, **extra},
    )


class TestAccess:
    def test_non_admin_rejected(self, api, setup):
        response = api.client.get("/admin/dashboard/stats", headers=setup["jane"])

        assert response.status_code == 403
        assert response.json()["error"] == "NotAuthorized"

    def test_anonymous_rejected(self, api, setup):
        assert api.client.get("/admin/users").status_code == 401

    def test_admins_are_not_targets(self, api, setup, db):
        own_id = api.client.get("/auth/me", headers=setup["admin"]).json()["data"]["id"]

        assert toggle(api, setup, own_id, "suspend").status_code == 404
        assert db.query(AdminActionLog).count() == 0


class TestSuspension:
    def test_suspending_doctor_cancels_only_their_appointments(self, api, setup, db):
        response = toggle(api, setup, setup["house"], "suspend", reason="License expired")

        assert response.status_code == 200
        body = response.json()
        assert body["cancelledAppointments"] == 1
        assert body["data"]["isActive"] is False
        assert body["data"]["suspensionReason"] == "License expired"

        db.expire_all()
        house_appt = db.get(Appointment, setup["appointments"][setup["house"]])
        wilson_appt = db.get(Appointment, setup["appointments"][setup["wilson"]])
        assert house_appt.status == "cancelled"
        assert house_appt.cancellation_reason == "Account doctor suspended by admin"
        assert house_appt.cancelled_at is not None
        assert wilson_appt.status == "pending"

    def test_suspension_ends_sessions_and_blocks_login(self, api, setup):
        toggle(api, setup, setup["house"], "suspend", reason="License expired")

        me = api.client.get("/auth/me", headers=setup["doctor_headers"][setup["house"]])
        assert me.status_code == 401

        login = api.client.post(
            "/auth/login",
            json={"email": "house@example.com", "role": "doctor", "password": "secret123"},
        )
        assert login.status_code == 403
        body = login.json()
        assert body["error"] == "AccountSuspended"
        assert body["suspended"] is True
        assert body["suspensionReason"] == "License expired"
        assert body["suspendedAt"] is not None

    def test_suspended_doctor_hidden_from_booking(self, api, setup):
        toggle(api, setup, setup["house"], "suspend")

        day = (utctoday() + timedelta(days=2)).isoformat()
        response = api.client.get(f"/doctors/{setup['house']}/slots", params={"date": day})
        assert response.status_code == 404

        doctors = api.client.get("/doctors").json()["data"]
        assert [d["id"] for d in doctors] == [setup["wilson"]]

    def test_suspending_patient_keeps_appointments(self, api, setup, db):
        response = toggle(api, setup, setup["patient"], "suspend")

        assert response.status_code == 200
        assert response.json()["cancelledAppointments"] == 0
        db.expire_all()
        assert db.query(Appointment).filter_by(status="pending").count() == 2

    def test_reactivate(self, api, setup):
        toggle(api, setup, setup["house"], "suspend")

        response = toggle(api, setup, setup["house"], "activate")

        assert response.status_code == 200
        data = response.json()["data"]
        assert data["isActive"] is True
        assert data["suspensionReason"] is None
        api.login("house@example.com", "doctor")

    def test_user_type_must_match(self, api, setup):
        response = toggle(api, setup, setup["house"], "suspend", userType="patient")

        assert response.status_code == 404

    def test_unknown_action(self, api, setup):
        assert toggle(api, setup, setup["house"], "ban").status_code == 400


class TestVerification:
    def test_verify_doctor(self, api, setup):
        response = api.client.put(
            f"/admin/users/{setup['house']}/verify",
            headers=setup["admin"],
            json={"verificationStatus": "verified"},
        )

        assert response.status_code == 200
        assert response.json()["data"]["verificationStatus"] == "verified"
        assert response.json()["data"]["isActive"] is True

    def test_rejection_deactivates(self, api, setup):
        response = api.client.put(
            f"/admin/users/{setup['wilson']}/verify",
            headers=setup["admin"],
            json={"verificationStatus": "rejected", "reason": "Fake diploma"},
        )

        assert response.status_code == 200
        assert response.json()["data"]["isActive"] is False
        me = api.client.get("/auth/me", headers=setup["doctor_headers"][setup["wilson"]])
        assert me.status_code == 401


class TestAuditLog:
    def test_every_action_is_logged(self, api, setup):
        toggle(api, setup, setup["house"], "suspend", reason="License expired")
        toggle(api, setup, setup["house"], "activate")
        api.client.put(
            f"/admin/users/{setup['patient']}/verify",
            headers=setup["admin"],
            json={"verificationStatus": "verified"},
        )

        response = api.client.get("/admin/logs", headers=setup["admin"])

        assert response.status_code == 200
        page = response.json()["data"]
        assert page["pagination"]["total"] == 3
        # Newest first
        assert [log["actionType"] for log in page["logs"]] == [
            "user_verification",
            "user_activation",
            "user_suspension",
        ]
        suspension = page["logs"][2]
        assert suspension["targetUserId"] == setup["house"]
        assert suspension["targetUserType"] == "doctor"
        assert suspension["previousData"] == {"isActive": True}
        assert suspension["newData"] == {"isActive": False, "cancelledAppointments": 1}
        assert suspension["reason"] == "License expired"
        assert suspension["adminEmail"] == "admin@example.com"

    def test_filter_by_action(self, api, setup):
        toggle(api, setup, setup["house"], "suspend")
        toggle(api, setup, setup["house"], "activate")

        response = api.client.get(
            "/admin/logs", headers=setup["admin"], params={"actionType": "user_activation"}
        )

        logs = response.json()["data"]["logs"]
        assert [log["actionType"] for log in logs] == ["user_activation"]

    def test_logs_are_append_only(self, api, setup, db):
        toggle(api, setup, setup["house"], "suspend")
        log = db.query(AdminActionLog).one()

        log.reason = "rewritten"
        with pytest.raises(InternalError):
            db.commit()
        db.rollback()

        with pytest.raises(InternalError):
            db.delete(log)
            db.commit()
        db.rollback()

        db.expire_all()
        assert db.query(AdminActionLog).one().reason is None


class TestDashboard:
    def test_stats(self, api, setup):
        toggle(api, setup, setup["wilson"], "suspend")

        response = api.client.get("/admin/dashboard/stats", headers=setup["admin"])

        assert response.status_code == 200
        stats = response.json()["data"]
        assert stats["users"]["totalDoctors"] == 1
        assert stats["users"]["totalPatients"] == 1
        assert stats["users"]["suspended"] == 1
        assert stats["users"]["pendingVerification"] == 3
        assert stats["appointments"]["total"] == 2
        assert stats["appointments"]["today"] == 0
        assert stats["recentActivity"] == {"newDoctors": 2, "newPatients": 1}

    def test_list_users_filters(self, api, setup):
        toggle(api, setup, setup["house"], "suspend")

        everyone = api.client.get("/admin/users", headers=setup["admin"]).json()["data"]
        assert everyone["pagination"]["totalUsers"] == 3

        suspended = api.client.get(
            "/admin/users", headers=setup["admin"], params={"status": "suspended"}
        ).json()["data"]
        assert [u["id"] for u in suspended["users"]] == [setup["house"]]

        search = api.client.get(
            "/admin/users", headers=setup["admin"], params={"search": "wilson", "role": "doctor"}
        ).json()["data"]
        assert [u["id"] for u in search["users"]] == [setup["wilson"]]

    def test_pagination(self, api, setup):
        response = api.client.get(
            "/admin/users", headers=setup["admin"], params={"page": 2, "limit": 2}
        )

        data = response.json()["data"]
        assert len(data["users"]) == 1
        assert data["pagination"] == {
            "currentPage": 2,
            "totalPages": 2,
            "totalUsers": 3,
            "hasNext": False,
            "hasPrev": True,
        }

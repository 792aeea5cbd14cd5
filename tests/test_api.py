"""
API REST da agenda: autenticação por headers, mapeamento de erros de
domínio para HTTP e fluxos principais sobre o banco (repositórios Django).
"""
from datetime import timedelta
from decimal import Decimal

from django.utils import timezone
from rest_framework import status
from rest_framework.test import APITestCase

from plugins.django_interface.models import Clinic, Patient, Psychologist

CLINIC_ID = "cl-aurora"
CLINIC_PSY_ID = "ps-clinica"
SOLO_ID = "ps-solo"
PATIENT_ID = "pt-ana"


def _as(role: str, actor_id: str) -> dict[str, str]:
    return {"HTTP_X_ACTOR_ID": actor_id, "HTTP_X_ACTOR_ROLE": role}


CLINIC = _as("clinic", CLINIC_ID)
CLINIC_PSY = _as("psychologist", CLINIC_PSY_ID)
SOLO = _as("psychologist", SOLO_ID)
PATIENT = _as("patient", PATIENT_ID)


class AgendaApiTestCase(APITestCase):
    def setUp(self) -> None:
        clinic = Clinic.objects.create(id=CLINIC_ID, name="Clínica Aurora")
        Psychologist.objects.create(
            id=CLINIC_PSY_ID, name="Dr. Caio Menezes", clinic=clinic,
            clinic_percentage=Decimal("30"), session_value=Decimal("150.00"),
        )
        Psychologist.objects.create(id=SOLO_ID, name="Dra. Helena Prado", session_value=Decimal("200.00"))
        Patient.objects.create(id=PATIENT_ID, name="Ana Ribeiro", clinic=clinic)
        self.base = (timezone.now() + timedelta(days=2)).replace(minute=0, second=0, microsecond=0)

    def _book(self, psychologist_id=CLINIC_PSY_ID, headers=CLINIC_PSY, hours=0):
        return self.client.post(
            "/api/appointments",
            {
                "psychologist_id": psychologist_id,
                "patient_id": PATIENT_ID,
                "scheduled_at": (self.base + timedelta(hours=hours)).isoformat(),
            },
            format="json",
            **headers,
        )

    def _billable_payment(self, hours=0) -> str:
        res = self._book(hours=hours)
        self.assertEqual(res.status_code, status.HTTP_201_CREATED, res.content)
        return res.data["payment_id"]


class AuthenticationTests(AgendaApiTestCase):
    def test_missing_headers_is_unauthorized(self) -> None:
        res = self.client.get("/api/appointments")
        self.assertEqual(res.status_code, status.HTTP_401_UNAUTHORIZED)

    def test_unknown_role_is_unauthorized(self) -> None:
        res = self.client.get("/api/appointments", **_as("admin", "root"))
        self.assertEqual(res.status_code, status.HTTP_401_UNAUTHORIZED)

    def test_role_without_id_is_unauthorized(self) -> None:
        res = self.client.get("/api/appointments", HTTP_X_ACTOR_ROLE="clinic")
        self.assertEqual(res.status_code, status.HTTP_401_UNAUTHORIZED)

    def test_health_and_metrics_are_public(self) -> None:
        self.assertEqual(self.client.get("/api/healthz/").data, {"status": "ok"})
        self.assertEqual(self.client.get("/metrics/").status_code, status.HTTP_200_OK)


class AppointmentApiTests(AgendaApiTestCase):
    def test_create_books_appointment_and_payment(self) -> None:
        res = self._book()
        self.assertEqual(res.status_code, status.HTTP_201_CREATED, res.content)
        self.assertEqual(res.data["status"], "scheduled")
        self.assertEqual(res.data["clinic_id"], CLINIC_ID)
        self.assertEqual(res.data["duration_minutes"], 50)
        self.assertIsNotNone(res.data["payment_id"])

        payment = self.client.get(f"/api/payments/{res.data['payment_id']}", **CLINIC)
        self.assertEqual(payment.status_code, status.HTTP_200_OK)
        self.assertEqual(payment.data["final_value"], "150.00")
        self.assertEqual(payment.data["clinic_amount"], "45.00")
        self.assertEqual(payment.data["psychologist_amount"], "105.00")

    def test_invalid_payload_is_bad_request(self) -> None:
        res = self.client.post(
            "/api/appointments",
            {"psychologist_id": CLINIC_PSY_ID, "patient_id": "  "},
            format="json",
            **CLINIC_PSY,
        )
        self.assertEqual(res.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(res.data["error"]["kind"], "InvalidInput")

    def test_past_time_is_invalid_window(self) -> None:
        res = self.client.post(
            "/api/appointments",
            {
                "psychologist_id": CLINIC_PSY_ID,
                "patient_id": PATIENT_ID,
                "scheduled_at": (timezone.now() - timedelta(hours=1)).isoformat(),
            },
            format="json",
            **CLINIC_PSY,
        )
        self.assertEqual(res.status_code, status.HTTP_422_UNPROCESSABLE_ENTITY)
        self.assertEqual(res.data["error"]["kind"], "InvalidTimeWindow")

    def test_double_booking_is_conflict(self) -> None:
        first = self._book()
        second = self._book()
        self.assertEqual(second.status_code, status.HTTP_409_CONFLICT)
        self.assertEqual(second.data["error"]["kind"], "DoubleBooking")
        self.assertEqual(second.data["error"]["conflicting_appointment_id"], first.data["id"])

    def test_clinic_cannot_cancel_without_delegation(self) -> None:
        appt = self._book().data
        res = self.client.post(f"/api/appointments/{appt['id']}/cancel", {"reason": "x"}, format="json", **CLINIC)
        self.assertEqual(res.status_code, status.HTTP_403_FORBIDDEN)
        error = res.data["error"]
        self.assertEqual(error["kind"], "PermissionDenied")
        self.assertEqual(error["required_actor"], "Dr. Caio Menezes")
        self.assertEqual(error["required_role"], "psychologist")

    def test_unknown_appointment_is_not_found(self) -> None:
        res = self.client.get("/api/appointments/ap-fantasma", **CLINIC)
        self.assertEqual(res.status_code, status.HTTP_404_NOT_FOUND)
        self.assertEqual(res.data["error"]["kind"], "NotFound")

    def test_stale_version_is_conflict(self) -> None:
        appt = self._book().data
        res = self.client.post(
            f"/api/appointments/{appt['id']}/reschedule",
            {"new_time": (self.base + timedelta(hours=3)).isoformat(), "expected_version": appt["version"] + 5},
            format="json",
            **CLINIC_PSY,
        )
        self.assertEqual(res.status_code, status.HTTP_409_CONFLICT)
        self.assertEqual(res.data["error"]["kind"], "Conflict")
        self.assertEqual(res.data["error"]["current_version"], appt["version"])
        self.assertEqual(res.data["error"]["suggestion"], "reload and retry")

    def test_status_transition_and_terminal_state(self) -> None:
        appt = self._book().data
        url = f"/api/appointments/{appt['id']}/status"
        confirmed = self.client.post(url, {"status": "confirmed"}, format="json", **CLINIC_PSY)
        self.assertEqual(confirmed.status_code, status.HTTP_200_OK, confirmed.content)
        self.assertEqual(confirmed.data["status"], "confirmed")

        done = self.client.post(url, {"status": "completed"}, format="json", **CLINIC_PSY)
        self.assertEqual(done.data["status"], "completed")

        again = self.client.post(url, {"status": "cancelled"}, format="json", **CLINIC_PSY)
        self.assertEqual(again.status_code, status.HTTP_409_CONFLICT)
        self.assertEqual(again.data["error"]["kind"], "InvalidState")
        self.assertEqual(again.data["error"]["from_status"], "completed")

    def test_list_is_scoped_to_actor(self) -> None:
        self._book()
        self._book(psychologist_id=SOLO_ID, headers=SOLO)
        mine = self.client.get("/api/appointments", **SOLO)
        self.assertEqual(mine.data["total_items"], 1)
        self.assertEqual(mine.data["results"][0]["psychologist_id"], SOLO_ID)
        patient = self.client.get("/api/appointments", **PATIENT)
        self.assertEqual(patient.data["total_items"], 2)

    def test_available_slots(self) -> None:
        day = timezone.localdate() + timedelta(days=3)
        res = self.client.get(
            "/api/appointments/available-slots",
            {"psychologist_id": SOLO_ID, "day": day.isoformat()},
            **SOLO,
        )
        self.assertEqual(res.status_code, status.HTTP_200_OK)
        self.assertEqual(len(res.data["results"]), 23)
        self.assertTrue(all(slot["available"] for slot in res.data["results"]))


class PaymentApiTests(AgendaApiTestCase):
    def test_method_then_clinic_confirmation(self) -> None:
        payment_id = self._billable_payment()
        registered = self.client.post(
            f"/api/payments/{payment_id}/register-method", {"method": "pix"}, format="json", **CLINIC_PSY,
        )
        self.assertEqual(registered.status_code, status.HTTP_200_OK, registered.content)
        self.assertEqual(registered.data["status"], "awaiting_confirmation")
        self.assertIsNotNone(registered.data["paid_at"])

        denied = self.client.post(f"/api/payments/{payment_id}/confirm", {}, format="json", **CLINIC_PSY)
        self.assertEqual(denied.status_code, status.HTTP_403_FORBIDDEN)
        self.assertEqual(denied.data["error"]["required_actor"], "Clínica Aurora")

        confirmed = self.client.post(f"/api/payments/{payment_id}/confirm", {}, format="json", **CLINIC)
        self.assertEqual(confirmed.status_code, status.HTTP_200_OK)
        self.assertEqual(confirmed.data["status"], "confirmed")
        self.assertEqual(confirmed.data["confirmed_by"], CLINIC_ID)

    def test_invalid_method_is_bad_request(self) -> None:
        payment_id = self._billable_payment()
        res = self.client.post(
            f"/api/payments/{payment_id}/register-method", {"method": "cheque"}, format="json", **CLINIC_PSY,
        )
        self.assertEqual(res.status_code, status.HTTP_400_BAD_REQUEST)

    def test_batch_confirm_reports_partial_result(self) -> None:
        ready = self._billable_payment(hours=0)
        still_pending = self._billable_payment(hours=2)
        self.client.post(f"/api/payments/{ready}/register-method", {"method": "cash"}, format="json", **CLINIC_PSY)

        res = self.client.post(
            "/api/payments/batch-confirm",
            {"payment_ids": [ready, still_pending, "pg-fantasma", ready]},
            format="json",
            **CLINIC,
        )
        self.assertEqual(res.status_code, status.HTTP_200_OK, res.content)
        self.assertEqual(res.data["confirmed"], [ready])
        self.assertTrue(res.data["is_partial"])
        reasons = {(f["id"], f["reason"]) for f in res.data["failed"]}
        self.assertEqual(reasons, {
            (still_pending, "InvalidState"),
            ("pg-fantasma", "NotFound"),
            (ready, "Duplicate"),
        })

    def test_empty_batch_is_rejected(self) -> None:
        res = self.client.post("/api/payments/batch-confirm", {"payment_ids": []}, format="json", **CLINIC)
        self.assertEqual(res.status_code, status.HTTP_400_BAD_REQUEST)

    def test_financial_summary_for_clinic(self) -> None:
        payment_id = self._billable_payment()
        self._billable_payment(hours=2)
        self.client.post(f"/api/payments/{payment_id}/register-method", {"method": "pix"}, format="json", **CLINIC_PSY)
        self.client.post(f"/api/payments/{payment_id}/confirm", {}, format="json", **CLINIC)

        today = timezone.localdate().isoformat()
        res = self.client.get(
            f"/api/financial-summary/clinic/{CLINIC_ID}", {"start": today, "end": today}, **CLINIC,
        )
        self.assertEqual(res.status_code, status.HTTP_200_OK, res.content)
        self.assertEqual(res.data["total_sessions"], 2)
        self.assertEqual(res.data["confirmed"]["count"], 1)
        self.assertEqual(res.data["expected_earnings"], "90.00")
        self.assertEqual(res.data["confirmed_earnings"], "45.00")
        self.assertEqual(res.data["by_psychologist"][0]["name"], "Dr. Caio Menezes")

        other = self.client.get(
            f"/api/financial-summary/clinic/{CLINIC_ID}", {"start": today, "end": today}, **SOLO,
        )
        self.assertEqual(other.status_code, status.HTTP_403_FORBIDDEN)

    def test_financial_summary_rejects_unknown_scope(self) -> None:
        today = timezone.localdate().isoformat()
        res = self.client.get("/api/financial-summary/universe/x", {"start": today, "end": today}, **CLINIC)
        self.assertEqual(res.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(res.data["error"]["kind"], "InvalidInput")

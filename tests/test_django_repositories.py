"""
Repositórios Django: compare-and-set da versão da agenda e da versão das
entidades sobre o banco, e a disputa entre duas marcações via handlers.
"""
from dataclasses import replace
from datetime import timedelta
from decimal import Decimal
from unittest.mock import patch

from django.conf import settings
from django.test import TestCase
from django.utils import timezone

from clinica_core.adapters.config import composition_root
from clinica_core.adapters.repositories.appointment_repo_impl import AppointmentRepoImpl
from clinica_core.adapters.repositories.payment_repo_impl import PaymentRepoImpl
from clinica_core.core.domain.entities.actor_entity import Actor
from clinica_core.core.domain.entities.appointment_entity import AppointmentEntity
from clinica_core.core.domain.entities.enums import ActorRole, AppointmentStatus, PaymentStatus
from clinica_core.core.domain.entities.payment_entity import PaymentEntity
from clinica_core.core.domain.events.exceptions import ConflictError
from plugins.django_interface.models import Appointment, Patient, Payment, Psychologist, PsychologistSchedule

SOLO_ID = "ps-solo"
PATIENT_ID = "pt-ana"


class DjangoRepoTestCase(TestCase):
    def setUp(self) -> None:
        Psychologist.objects.create(id=SOLO_ID, name="Dra. Helena Prado", session_value=Decimal("200.00"))
        Patient.objects.create(id=PATIENT_ID, name="Ana Ribeiro")
        self.base = (timezone.now() + timedelta(days=2)).replace(minute=0, second=0, microsecond=0)
        self.appointments = AppointmentRepoImpl()
        self.payments = PaymentRepoImpl()

    def _appointment(self, appointment_id: str, hours: int = 0) -> AppointmentEntity:
        now = timezone.now()
        return AppointmentEntity(
            id=appointment_id,
            psychologist_id=SOLO_ID,
            patient_id=PATIENT_ID,
            scheduled_at=self.base + timedelta(hours=hours),
            status=AppointmentStatus.SCHEDULED,
            created_at=now,
            updated_at=now,
        )

    def _schedule_version(self) -> int:
        return PsychologistSchedule.objects.get(psychologist_id=SOLO_ID).version


class AppointmentRepoTests(DjangoRepoTestCase):
    def test_first_booking_creates_the_schedule(self) -> None:
        self.assertEqual(self.appointments.get_schedule_version(SOLO_ID), 0)
        self.assertTrue(self.appointments.add(self._appointment("ap-1"), schedule_version=0))
        self.assertEqual(self.appointments.get_schedule_version(SOLO_ID), 1)

        self.assertTrue(self.appointments.add(self._appointment("ap-2", hours=2), schedule_version=1))
        self.assertEqual(self.appointments.get_schedule_version(SOLO_ID), 2)

    def test_two_first_bookings_only_one_wins(self) -> None:
        self.assertTrue(self.appointments.add(self._appointment("ap-1"), schedule_version=0))
        self.assertFalse(self.appointments.add(self._appointment("ap-2", hours=2), schedule_version=0))

        self.assertFalse(Appointment.objects.filter(id="ap-2").exists())
        self.assertEqual(self._schedule_version(), 1)

    def test_stale_schedule_version_rejects_insert(self) -> None:
        self.appointments.add(self._appointment("ap-1"), schedule_version=0)
        self.appointments.add(self._appointment("ap-2", hours=2), schedule_version=1)

        self.assertFalse(self.appointments.add(self._appointment("ap-3", hours=4), schedule_version=1))
        self.assertFalse(Appointment.objects.filter(id="ap-3").exists())
        self.assertEqual(self._schedule_version(), 2)

    def test_stale_entity_version_leaves_row_untouched(self) -> None:
        appt = self._appointment("ap-1")
        self.appointments.add(appt, schedule_version=0)
        first = replace(appt, notes="primeira", version=2)
        self.assertTrue(self.appointments.save(first, expected_version=1))

        late = replace(appt, notes="atrasada", version=2)
        self.assertFalse(self.appointments.save(late, expected_version=1))

        row = Appointment.objects.get(id="ap-1")
        self.assertEqual((row.notes, row.version), ("primeira", 2))

    def test_stale_schedule_version_rejects_move(self) -> None:
        appt = self._appointment("ap-1")
        self.appointments.add(appt, schedule_version=0)
        self.appointments.add(self._appointment("ap-2", hours=4), schedule_version=1)

        moved = replace(appt, scheduled_at=appt.scheduled_at + timedelta(hours=2), version=2)
        self.assertFalse(self.appointments.save(moved, expected_version=1, schedule_version=1))

        row = Appointment.objects.get(id="ap-1")
        self.assertEqual((row.scheduled_at, row.version), (appt.scheduled_at, 1))
        self.assertEqual(self._schedule_version(), 2)

        self.assertTrue(self.appointments.save(moved, expected_version=1, schedule_version=2))
        self.assertEqual(Appointment.objects.get(id="ap-1").scheduled_at, moved.scheduled_at)
        self.assertEqual(self._schedule_version(), 3)


class PaymentRepoTests(DjangoRepoTestCase):
    def _payment(self) -> PaymentEntity:
        self.appointments.add(self._appointment("ap-1"), schedule_version=0)
        now = timezone.now()
        payment = PaymentEntity(
            id="pg-1",
            appointment_id="ap-1",
            patient_id=PATIENT_ID,
            psychologist_id=SOLO_ID,
            session_value=Decimal("200.00"),
            final_value=Decimal("200.00"),
            clinic_amount=Decimal("0.00"),
            psychologist_amount=Decimal("200.00"),
            created_at=now,
            updated_at=now,
        )
        self.payments.add(payment)
        return payment

    def test_stale_version_leaves_row_untouched(self) -> None:
        payment = self._payment()
        awaiting = replace(payment, status=PaymentStatus.AWAITING_CONFIRMATION, method="pix", version=2)
        self.assertTrue(self.payments.save(awaiting, expected_version=1))

        cancelled = replace(payment, status=PaymentStatus.CANCELLED, cancel_reason="desistiu", version=2)
        self.assertFalse(self.payments.save(cancelled, expected_version=1))

        row = Payment.objects.get(id="pg-1")
        self.assertEqual((row.status, row.method, row.version), ("awaiting_confirmation", "pix", 2))
        self.assertIsNone(row.cancel_reason)


class ScheduleRaceTests(DjangoRepoTestCase):
    """Leitura da versão da agenda anterior a uma marcação concorrente."""

    def setUp(self) -> None:
        super().setUp()
        if composition_root.container is None:
            composition_root.setup_di_container_from_settings(settings)
        self.container = composition_root.container
        self.service = self.container.agenda_service()
        self.repo = self.container.appointment_repo()
        self.actor = Actor(id=SOLO_ID, role=ActorRole.PSYCHOLOGIST)

    def _book(self, hours: int):
        return self.service.create_appointment(self.actor, SOLO_ID, PATIENT_ID, self.base + timedelta(hours=hours))

    def _assert_lost(self, read_version: int, hours: int, winners: list) -> None:
        with patch.object(self.repo, "get_schedule_version", return_value=read_version):
            with self.assertRaises(ConflictError) as ctx:
                self._book(hours)

        self.assertEqual(ctx.exception.kind, "Conflict")
        self.assertEqual(ctx.exception.message, "A agenda do psicólogo foi alterada por outra operação")
        booked = Appointment.objects.filter(psychologist_id=SOLO_ID).order_by("scheduled_at")
        self.assertEqual([a.id for a in booked], [w.id for w in winners])
        self.assertEqual(Payment.objects.count(), len(winners))

    def test_both_saw_an_empty_schedule(self) -> None:
        winner = self._book(hours=0)
        self._assert_lost(read_version=0, hours=2, winners=[winner])
        self.assertEqual(self._schedule_version(), 1)

    def test_both_saw_the_same_schedule_version(self) -> None:
        first = self._book(hours=0)
        second = self._book(hours=4)
        self._assert_lost(read_version=1, hours=2, winners=[first, second])
        self.assertEqual(self._schedule_version(), 2)

        third = self._book(hours=2)
        self.assertEqual(third.status, AppointmentStatus.SCHEDULED)

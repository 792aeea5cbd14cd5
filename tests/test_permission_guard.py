"""Matriz de capacidades: avaliação pura e conversão em erro."""
from datetime import datetime
from decimal import Decimal
from zoneinfo import ZoneInfo

from django.test import SimpleTestCase

from clinica_core.core.domain.entities.actor_entity import Actor
from clinica_core.core.domain.entities.appointment_entity import AppointmentEntity
from clinica_core.core.domain.entities.enums import ActorRole, AppointmentStatus, PaymentStatus
from clinica_core.core.domain.entities.payment_entity import PaymentEntity
from clinica_core.core.domain.entities.psychologist_entity import PsychologistEntity
from clinica_core.core.domain.events.exceptions import PermissionDeniedError
from clinica_core.core.domain.services.permission_guard import (
    Allow,
    Deny,
    EntityKind,
    Operation,
    PermissionGuard,
    PermissionSubject,
    evaluate,
)

CLINIC = Actor(id="cl-1", role=ActorRole.CLINIC)
OTHER_CLINIC = Actor(id="cl-2", role=ActorRole.CLINIC)
PSYCHOLOGIST = Actor(id="ps-1", role=ActorRole.PSYCHOLOGIST)
OTHER_PSYCHOLOGIST = Actor(id="ps-2", role=ActorRole.PSYCHOLOGIST)
PATIENT = Actor(id="pt-1", role="patient")


def _appointment(status=AppointmentStatus.SCHEDULED, clinic_id="cl-1") -> AppointmentEntity:
    return AppointmentEntity(
        id="ap-1",
        psychologist_id="ps-1",
        patient_id="pt-1",
        clinic_id=clinic_id,
        scheduled_at=datetime(2026, 3, 3, 14, 0, tzinfo=ZoneInfo("America/Sao_Paulo")),
        status=status,
    )


def _psychologist(delegates: bool = False) -> PsychologistEntity:
    return PsychologistEntity(id="ps-1", name="Dra. Helena Prado", clinic_id="cl-1", delegates_to_clinic=delegates)


def _appointment_subject(status=AppointmentStatus.SCHEDULED, delegates: bool = False) -> PermissionSubject:
    return PermissionSubject.for_appointment(_appointment(status), _psychologist(delegates), "Clínica Aurora")


def _payment_subject(clinic_id="cl-1", status=PaymentStatus.AWAITING_CONFIRMATION) -> PermissionSubject:
    payment = PaymentEntity(
        id="pg-1",
        appointment_id="ap-1",
        patient_id="pt-1",
        psychologist_id="ps-1",
        clinic_id=clinic_id,
        session_value=Decimal("150.00"),
        final_value=Decimal("150.00"),
        clinic_amount=Decimal("45.00"),
        psychologist_amount=Decimal("105.00"),
        status=status,
    )
    return PermissionSubject.for_payment(payment, psychologist_name="Dra. Helena Prado", clinic_name="Clínica Aurora")


class AppointmentRulesTests(SimpleTestCase):
    def test_psychologist_manages_own_appointments(self) -> None:
        subject = _appointment_subject()
        for op in (Operation.READ, Operation.RESCHEDULE, Operation.CANCEL, Operation.COMPLETE, Operation.REASSIGN):
            with self.subTest(op=op):
                self.assertIsInstance(evaluate(PSYCHOLOGIST, op, subject), Allow)
        self.assertIsInstance(evaluate(OTHER_PSYCHOLOGIST, Operation.READ, subject), Deny)

    def test_clinic_cannot_mutate_non_delegated_appointment(self) -> None:
        subject = _appointment_subject()
        for op in (Operation.CANCEL, Operation.RESCHEDULE, Operation.CONFIRM):
            with self.subTest(op=op):
                decision = evaluate(CLINIC, op, subject)
                self.assertIsInstance(decision, Deny)
                self.assertEqual(decision.required_actor, "Dra. Helena Prado")
                self.assertEqual(decision.required_role, ActorRole.PSYCHOLOGIST)
                self.assertIn("Dra. Helena Prado", decision.hint)

    def test_clinic_reads_and_reassigns_within_its_clinic(self) -> None:
        subject = _appointment_subject()
        self.assertIsInstance(evaluate(CLINIC, Operation.READ, subject), Allow)
        self.assertIsInstance(evaluate(CLINIC, Operation.REASSIGN, subject), Allow)
        self.assertIsInstance(evaluate(OTHER_CLINIC, Operation.READ, subject), Deny)

    def test_clinic_mutates_when_psychologist_delegated(self) -> None:
        subject = _appointment_subject(delegates=True)
        self.assertIsInstance(evaluate(CLINIC, Operation.CANCEL, subject), Allow)
        self.assertIsInstance(evaluate(CLINIC, Operation.RESCHEDULE, subject), Allow)

    def test_confirmation_from_awaiting_requires_awaited_party(self) -> None:
        awaiting_patient = _appointment_subject(AppointmentStatus.AWAITING_PATIENT, delegates=True)
        self.assertIsInstance(evaluate(PATIENT, Operation.CONFIRM, awaiting_patient), Allow)

        denied = evaluate(PSYCHOLOGIST, Operation.CONFIRM, awaiting_patient)
        self.assertIsInstance(denied, Deny)
        self.assertEqual(denied.required_role, ActorRole.PATIENT)
        self.assertEqual(denied.required_actor, "pt-1")

        denied = evaluate(CLINIC, Operation.CONFIRM, awaiting_patient)
        self.assertEqual(denied.required_role, ActorRole.PATIENT)

        awaiting_psychologist = _appointment_subject(AppointmentStatus.AWAITING_PSYCHOLOGIST)
        self.assertIsInstance(evaluate(PSYCHOLOGIST, Operation.CONFIRM, awaiting_psychologist), Allow)
        denied = evaluate(PATIENT, Operation.CONFIRM, awaiting_psychologist)
        self.assertEqual(denied.required_role, ActorRole.PSYCHOLOGIST)

    def test_patient_only_reads_creates_and_responds(self) -> None:
        subject = _appointment_subject(AppointmentStatus.AWAITING_PATIENT)
        for op in (Operation.READ, Operation.CREATE, Operation.RESPOND):
            with self.subTest(op=op):
                self.assertIsInstance(evaluate(PATIENT, op, subject), Allow)
        for op in (Operation.CANCEL, Operation.RESCHEDULE, Operation.UPDATE_FIELDS):
            with self.subTest(op=op):
                decision = evaluate(PATIENT, op, subject)
                self.assertIsInstance(decision, Deny)
                self.assertEqual(decision.required_role, ActorRole.PSYCHOLOGIST)

    def test_only_patient_responds(self) -> None:
        subject = _appointment_subject(AppointmentStatus.AWAITING_PATIENT, delegates=True)
        for actor in (PSYCHOLOGIST, CLINIC):
            with self.subTest(role=actor.role):
                decision = evaluate(actor, Operation.RESPOND, subject)
                self.assertEqual(decision.required_role, ActorRole.PATIENT)


class PaymentRulesTests(SimpleTestCase):
    def test_clinic_affiliated_payment_is_confirmed_by_clinic(self) -> None:
        subject = _payment_subject()
        denied = evaluate(PSYCHOLOGIST, Operation.CONFIRM, subject)
        self.assertIsInstance(denied, Deny)
        self.assertEqual(denied.required_role, ActorRole.CLINIC)
        self.assertEqual(denied.required_actor, "Clínica Aurora")
        self.assertIsInstance(evaluate(CLINIC, Operation.CONFIRM, subject), Allow)
        self.assertIsInstance(evaluate(OTHER_CLINIC, Operation.CONFIRM, subject), Deny)

    def test_independent_payment_is_confirmed_by_psychologist(self) -> None:
        subject = _payment_subject(clinic_id=None)
        self.assertIsInstance(evaluate(PSYCHOLOGIST, Operation.CONFIRM, subject), Allow)
        self.assertIsInstance(evaluate(PSYCHOLOGIST, Operation.REFUND, subject), Allow)
        self.assertIsInstance(evaluate(CLINIC, Operation.CONFIRM, subject), Deny)

    def test_psychologist_registers_method_and_cancels_pending(self) -> None:
        pending = _payment_subject(status=PaymentStatus.PENDING)
        self.assertIsInstance(evaluate(PSYCHOLOGIST, Operation.REGISTER_METHOD, pending), Allow)
        self.assertIsInstance(evaluate(PSYCHOLOGIST, Operation.CANCEL, pending), Allow)

        awaiting = _payment_subject(status=PaymentStatus.AWAITING_CONFIRMATION)
        decision = evaluate(PSYCHOLOGIST, Operation.CANCEL, awaiting)
        self.assertEqual(decision.required_role, ActorRole.CLINIC)

    def test_patient_never_moves_payments(self) -> None:
        for clinic_id, role in (("cl-1", ActorRole.CLINIC), (None, ActorRole.PSYCHOLOGIST)):
            subject = _payment_subject(clinic_id=clinic_id)
            self.assertIsInstance(evaluate(PATIENT, Operation.READ, subject), Allow)
            for op in (Operation.CONFIRM, Operation.CANCEL, Operation.REGISTER_METHOD):
                with self.subTest(op=op, clinic_id=clinic_id):
                    self.assertEqual(evaluate(PATIENT, op, subject).required_role, role)


class SummaryRulesTests(SimpleTestCase):
    def test_scope_owner_reads_summary(self) -> None:
        clinic_scope = PermissionSubject(kind=EntityKind.SUMMARY, clinic_id="cl-1")
        self.assertIsInstance(evaluate(CLINIC, Operation.READ, clinic_scope), Allow)
        self.assertIsInstance(evaluate(PSYCHOLOGIST, Operation.READ, clinic_scope), Deny)

        own = PermissionSubject(kind=EntityKind.SUMMARY, psychologist_id="ps-1", clinic_id="cl-1")
        self.assertIsInstance(evaluate(PSYCHOLOGIST, Operation.READ, own), Allow)
        self.assertIsInstance(evaluate(OTHER_PSYCHOLOGIST, Operation.READ, own), Deny)

    def test_unknown_combination_is_denied(self) -> None:
        subject = PermissionSubject(kind=EntityKind.SUMMARY, clinic_id="cl-1")
        decision = evaluate(CLINIC, Operation.CONFIRM, subject)
        self.assertIsInstance(decision, Deny)
        self.assertIn("confirm", decision.reason)


class PermissionGuardTests(SimpleTestCase):
    def test_ensure_raises_structured_denial(self) -> None:
        guard = PermissionGuard()
        with self.assertRaises(PermissionDeniedError) as ctx:
            guard.ensure(CLINIC, Operation.CANCEL, _appointment_subject())
        err = ctx.exception
        self.assertEqual(err.kind, "PermissionDenied")
        self.assertEqual(err.required_actor, "Dra. Helena Prado")
        payload = err.to_dict()
        self.assertEqual(payload["required_role"], "psychologist")
        self.assertEqual(payload["operation"], "cancel")

    def test_ensure_passes_silently_when_allowed(self) -> None:
        self.assertIsNone(PermissionGuard().ensure(PSYCHOLOGIST, Operation.CANCEL, _appointment_subject()))

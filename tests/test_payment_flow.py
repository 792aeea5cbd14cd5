"""
Conciliação de pagamentos: criação com repasse, transições, regras de
quem confirma e a confirmação em lote com falha parcial.
"""
from __future__ import annotations

import random
from decimal import Decimal

from django.test import SimpleTestCase

from clinica_core.core.domain.entities.enums import PaymentMethod, PaymentStatus
from clinica_core.core.domain.events.events import (
    PaymentBatchConfirmed,
    PaymentConfirmed,
    PaymentMethodRegistered,
    PaymentRefunded,
    PaymentValueUpdated,
)
from clinica_core.core.domain.events.exceptions import (
    ConflictError,
    InvalidInputError,
    InvalidStateError,
    NotFoundError,
    PermissionDeniedError,
)
from tests.helpers.agenda_world import (
    CLINIC_ID,
    CLINIC_PSY_ID,
    DELEGATED_ID,
    NOW,
    PATIENT_ID,
    SOLO_ID,
    at,
    build_world,
)

P = PaymentStatus


def _book(world, psychologist_id, day=1, hour=10, **kwargs):
    appt = world.service.create_appointment(
        world.psychologist(psychologist_id), psychologist_id, PATIENT_ID, at(day, hour), **kwargs,
    )
    return world.payments.find_by_id(appt.payment_id)


class PaymentCreationTests(SimpleTestCase):
    def setUp(self) -> None:
        self.world = build_world()

    def test_clinic_affiliated_split(self) -> None:
        payment = _book(self.world, CLINIC_PSY_ID)
        self.assertEqual(payment.clinic_id, CLINIC_ID)
        self.assertEqual(payment.final_value, Decimal("150.00"))
        self.assertEqual(payment.clinic_percentage, Decimal("30"))
        self.assertEqual(payment.clinic_amount, Decimal("45.00"))
        self.assertEqual(payment.psychologist_amount, Decimal("105.00"))
        self.assertEqual(payment.created_at, NOW)

    def test_custom_value_and_discount(self) -> None:
        payment = _book(self.world, CLINIC_PSY_ID, session_value=Decimal("200"), discount=Decimal("20"))
        self.assertEqual(payment.session_value, Decimal("200.00"))
        self.assertEqual(payment.discount, Decimal("20.00"))
        self.assertEqual(payment.final_value, Decimal("180.00"))
        self.assertEqual(payment.clinic_amount, Decimal("54.00"))
        self.assertEqual(payment.psychologist_amount, Decimal("126.00"))

    def test_discount_above_value_is_rejected(self) -> None:
        with self.assertRaises(InvalidInputError):
            _book(self.world, SOLO_ID, session_value=Decimal("100"), discount=Decimal("150"))
        self.assertEqual(self.world.appointments.list({}, 1, 10).total, 0)


class PaymentLifecycleTests(SimpleTestCase):
    def setUp(self) -> None:
        self.world = build_world()
        self.svc = self.world.service
        self.solo = self.world.psychologist(SOLO_ID)
        self.payment = _book(self.world, SOLO_ID)

    def test_register_method_then_confirm_independent(self) -> None:
        registered = self.svc.register_payment_method(self.solo, self.payment.id, "pix")
        self.assertIs(registered.status, P.AWAITING_CONFIRMATION)
        self.assertIs(registered.method, PaymentMethod.PIX)
        self.assertEqual(registered.paid_at, NOW)
        self.assertEqual(self.world.events_of(PaymentMethodRegistered)[0].method, "pix")

        confirmed = self.svc.confirm_payment(self.solo, self.payment.id, internal_notes="recibo 12")
        self.assertIs(confirmed.status, P.CONFIRMED)
        self.assertEqual(confirmed.confirmed_by, SOLO_ID)
        self.assertEqual(confirmed.internal_notes, "recibo 12")

    def test_register_method_is_not_repeatable(self) -> None:
        self.svc.register_payment_method(self.solo, self.payment.id, "cash")
        with self.assertRaises(InvalidStateError):
            self.svc.register_payment_method(self.solo, self.payment.id, "pix")

    def test_unknown_method_is_invalid_input(self) -> None:
        with self.assertRaises(InvalidInputError):
            self.svc.register_payment_method(self.solo, self.payment.id, "cheque")

    def test_confirm_requires_awaiting_confirmation(self) -> None:
        with self.assertRaises(InvalidStateError) as ctx:
            self.svc.confirm_payment(self.solo, self.payment.id)
        self.assertEqual(ctx.exception.to_dict()["from_status"], "pending")

    def test_confirm_is_idempotent(self) -> None:
        self.svc.register_payment_method(self.solo, self.payment.id, "pix")
        first = self.svc.confirm_payment(self.solo, self.payment.id)
        again = self.svc.confirm_payment(self.solo, self.payment.id)
        self.assertEqual(again.version, first.version)
        self.assertEqual(again.confirmed_at, first.confirmed_at)
        self.assertEqual(len(self.world.events_of(PaymentConfirmed)), 1)

    def test_patient_never_confirms(self) -> None:
        self.svc.register_payment_method(self.solo, self.payment.id, "pix")
        with self.assertRaises(PermissionDeniedError) as ctx:
            self.svc.confirm_payment(self.world.patient(), self.payment.id)
        self.assertEqual(ctx.exception.required_actor, "Dra. Helena Prado")

    def test_cancel_is_idempotent(self) -> None:
        cancelled = self.svc.cancel_payment(self.solo, self.payment.id, reason="cortesia")
        self.assertIs(cancelled.status, P.CANCELLED)
        self.assertEqual(cancelled.cancel_reason, "cortesia")
        again = self.svc.cancel_payment(self.solo, self.payment.id)
        self.assertEqual(again.version, cancelled.version)

    def test_refund_confirmed(self) -> None:
        self.svc.register_payment_method(self.solo, self.payment.id, "pix")
        self.svc.confirm_payment(self.solo, self.payment.id)
        refunded = self.svc.refund_payment(self.solo, self.payment.id, reason="sessão não realizada")
        self.assertIs(refunded.status, P.REFUNDED)
        self.assertEqual(refunded.refunded_at, NOW)
        again = self.svc.refund_payment(self.solo, self.payment.id)
        self.assertEqual(again.version, refunded.version)
        self.assertEqual(len(self.world.events_of(PaymentRefunded)), 1)

    def test_refund_requires_confirmed(self) -> None:
        with self.assertRaises(InvalidStateError):
            self.svc.refund_payment(self.solo, self.payment.id)

    def test_terminal_payments_stay_terminal(self) -> None:
        self.svc.register_payment_method(self.solo, self.payment.id, "pix")
        self.svc.confirm_payment(self.solo, self.payment.id)
        self.svc.refund_payment(self.solo, self.payment.id)
        with self.assertRaises(InvalidStateError):
            self.svc.cancel_payment(self.solo, self.payment.id)
        with self.assertRaises(InvalidStateError):
            self.svc.register_payment_method(self.solo, self.payment.id, "pix")
        self.assertIs(self.world.payments.find_by_id(self.payment.id).status, P.REFUNDED)

        other = _book(self.world, SOLO_ID, hour=15)
        self.svc.cancel_payment(self.solo, other.id)
        with self.assertRaises(InvalidStateError):
            self.svc.register_payment_method(self.solo, other.id, "pix")

    def test_update_value_reprices_with_stored_percentage(self) -> None:
        clinic_payment = _book(self.world, CLINIC_PSY_ID, hour=16)
        updated = self.svc.update_payment_value(
            self.world.psychologist(CLINIC_PSY_ID), clinic_payment.id, Decimal("99.99"), Decimal("0"),
        )
        self.assertEqual(updated.final_value, Decimal("99.99"))
        self.assertEqual(updated.clinic_amount, Decimal("30.00"))
        self.assertEqual(updated.psychologist_amount, Decimal("69.99"))
        event = self.world.events_of(PaymentValueUpdated)[0]
        self.assertEqual(event.previous_value, Decimal("150.00"))

    def test_update_value_only_while_pending(self) -> None:
        self.svc.register_payment_method(self.solo, self.payment.id, "pix")
        with self.assertRaises(InvalidStateError):
            self.svc.update_payment_value(self.solo, self.payment.id, Decimal("10"))

    def test_stale_version_is_conflict(self) -> None:
        self.svc.register_payment_method(self.solo, self.payment.id, "pix", expected_version=1)
        with self.assertRaises(ConflictError) as ctx:
            self.svc.cancel_payment(self.solo, self.payment.id, expected_version=1)
        self.assertIs(ctx.exception.current_state, P.AWAITING_CONFIRMATION)
        self.assertEqual(ctx.exception.current_version, 2)

    def test_missing_payment(self) -> None:
        with self.assertRaises(NotFoundError):
            self.svc.confirm_payment(self.solo, "pg-ghost")


class ClinicAffiliatedPaymentTests(SimpleTestCase):
    def setUp(self) -> None:
        self.world = build_world()
        self.svc = self.world.service
        self.psy = self.world.psychologist(CLINIC_PSY_ID)
        self.payment = _book(self.world, CLINIC_PSY_ID)
        self.svc.register_payment_method(self.psy, self.payment.id, "credit_card")

    def test_psychologist_cannot_confirm_clinic_payment(self) -> None:
        with self.assertRaises(PermissionDeniedError) as ctx:
            self.svc.confirm_payment(self.psy, self.payment.id)
        self.assertEqual(ctx.exception.required_actor, "Clínica Aurora")
        self.assertEqual(ctx.exception.required_role.value, "clinic")
        self.assertIs(self.world.payments.find_by_id(self.payment.id).status, P.AWAITING_CONFIRMATION)

    def test_clinic_confirms(self) -> None:
        confirmed = self.svc.confirm_payment(self.world.clinic(), self.payment.id)
        self.assertIs(confirmed.status, P.CONFIRMED)
        self.assertEqual(confirmed.confirmed_by, CLINIC_ID)

    def test_other_clinic_is_out_of_scope(self) -> None:
        with self.assertRaises(PermissionDeniedError):
            self.svc.confirm_payment(self.world.clinic("cl-boreal"), self.payment.id)

    def test_psychologist_cannot_cancel_once_in_reconciliation(self) -> None:
        with self.assertRaises(PermissionDeniedError):
            self.svc.cancel_payment(self.psy, self.payment.id)
        cancelled = self.svc.cancel_payment(self.world.clinic(), self.payment.id)
        self.assertIs(cancelled.status, P.CANCELLED)


class BatchConfirmTests(SimpleTestCase):
    def _awaiting_clinic_payments(self, world, count):
        ids = []
        for i in range(count):
            psychologist_id = CLINIC_PSY_ID if i % 2 == 0 else DELEGATED_ID
            payment = _book(world, psychologist_id, day=1 + i // 2, hour=10)
            world.service.register_payment_method(world.psychologist(psychologist_id), payment.id, "pix")
            ids.append(payment.id)
        return ids

    def test_partial_failure_reports_each_item(self) -> None:
        world = build_world()
        clinic = world.clinic()
        a, b, c = self._awaiting_clinic_payments(world, 3)
        world.service.cancel_payment(clinic, b)

        result = world.service.confirm_payments_batch(clinic, [a, b, c])
        self.assertEqual(result.confirmed, [a, c])
        self.assertEqual(len(result.failed), 1)
        self.assertEqual(result.failed[0].id, b)
        self.assertEqual(result.failed[0].reason, "InvalidState")
        self.assertEqual(result.failed[0].details["from_status"], "cancelled")
        self.assertTrue(result.is_partial)

        for pid in (a, c):
            self.assertIs(world.payments.find_by_id(pid).status, P.CONFIRMED)
        summary = world.events_of(PaymentBatchConfirmed)[0]
        self.assertEqual((summary.requested, summary.confirmed, summary.failed), (3, 2, 1))
        self.assertEqual(len(world.events_of(PaymentConfirmed)), 2)

    def test_duplicates_and_unresolvable_references(self) -> None:
        world = build_world()
        (a,) = self._awaiting_clinic_payments(world, 1)
        result = world.service.confirm_payments_batch(world.clinic(), [{"_id": a}, a, {"bogus": 1}, "pg-ghost"])
        self.assertEqual(result.confirmed, [a])
        self.assertEqual(
            [(f.id, f.reason) for f in result.failed],
            [(a, "Duplicate"), (None, "InvalidInput"), ("pg-ghost", "NotFound")],
        )

    def test_already_confirmed_counts_as_confirmed(self) -> None:
        world = build_world()
        a, b = self._awaiting_clinic_payments(world, 2)
        world.service.confirm_payment(world.clinic(), a)
        result = world.service.confirm_payments_batch(world.clinic(), [a, b])
        self.assertEqual(result.confirmed, [a, b])
        self.assertFalse(result.is_partial)

    def test_denied_items_fail_individually(self) -> None:
        world = build_world()
        a, b = self._awaiting_clinic_payments(world, 2)
        result = world.service.confirm_payments_batch(world.psychologist(CLINIC_PSY_ID), [a, b])
        self.assertEqual(result.confirmed, [])
        self.assertEqual({f.reason for f in result.failed}, {"PermissionDenied"})

    def test_batch_size_limit(self) -> None:
        world = build_world(batch_max_size=2)
        with self.assertRaises(InvalidInputError):
            world.service.confirm_payments_batch(world.clinic(), ["a", "b", "c"])

    def test_unexpected_error_on_one_item_keeps_the_rest(self) -> None:
        for workers in (1, 4):
            world = build_world(batch_max_workers=workers)
            a, b, c = self._awaiting_clinic_payments(world, 3)
            original = world.payments.find_by_id

            def flaky_find(payment_id):
                if payment_id == b:
                    raise RuntimeError("conexão com o banco perdida")
                return original(payment_id)

            world.payments.find_by_id = flaky_find
            try:
                result = world.service.confirm_payments_batch(world.clinic(), [a, b, c])
            finally:
                world.payments.find_by_id = original

            with self.subTest(workers=workers):
                self.assertEqual(result.confirmed, [a, c])
                self.assertEqual([(f.id, f.reason) for f in result.failed], [(b, "Unexpected")])
                self.assertEqual(result.failed[0].details["error"], "RuntimeError")
                self.assertTrue(result.is_partial)
                self.assertIs(world.payments.find_by_id(b).status, P.AWAITING_CONFIRMATION)

    def test_partial_failure_law_over_random_orderings(self) -> None:
        rng = random.Random(99)
        for workers in (1, 4):
            world = build_world(batch_max_workers=workers)
            ids = self._awaiting_clinic_payments(world, 8)
            invalid = set(rng.sample(ids, 3))
            for pid in invalid:
                world.service.cancel_payment(world.clinic(), pid)
            rng.shuffle(ids)

            result = world.service.confirm_payments_batch(world.clinic(), ids)
            with self.subTest(workers=workers):
                self.assertEqual(len(result.confirmed), 5)
                self.assertEqual(len(result.failed), 3)
                self.assertEqual(set(result.failed_ids), invalid)
                self.assertEqual(result.confirmed, [pid for pid in ids if pid not in invalid])
                for pid in result.confirmed:
                    self.assertIs(world.payments.find_by_id(pid).status, P.CONFIRMED)


class PaymentReadTests(SimpleTestCase):
    def test_listing_and_get_are_scoped(self) -> None:
        world = build_world()
        solo = _book(world, SOLO_ID)
        _book(world, CLINIC_PSY_ID, hour=11)

        self.assertEqual(world.service.list_payments(world.clinic()).total, 1)
        self.assertEqual(world.service.list_payments(world.patient()).total, 2)
        pending = world.service.list_payments(world.psychologist(SOLO_ID), {"status": "pending"})
        self.assertEqual([p.id for p in pending.items], [solo.id])

        self.assertEqual(world.service.get_payment(world.patient(), solo.id).id, solo.id)
        with self.assertRaises(PermissionDeniedError):
            world.service.get_payment(world.clinic(), solo.id)

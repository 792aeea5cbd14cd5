"""Repasse clínica/psicólogo e conversão monetária."""
import random
from decimal import Decimal

from django.test import SimpleTestCase

from clinica_core.core.domain.entities.enums import SummaryScope
from clinica_core.core.domain.entities.payment_entity import PaymentEntity
from clinica_core.core.domain.events.exceptions import InvalidInputError
from clinica_core.core.domain.services.payment_state_machine import compute_split, to_money


class ComputeSplitTests(SimpleTestCase):
    def test_thirty_percent_of_150(self) -> None:
        split = compute_split(Decimal("150.00"), 30)
        self.assertEqual(split.clinic_amount, Decimal("45.00"))
        self.assertEqual(split.psychologist_amount, Decimal("105.00"))

    def test_independent_psychologist_keeps_everything(self) -> None:
        split = compute_split("200", 0)
        self.assertEqual(split.clinic_amount, Decimal("0.00"))
        self.assertEqual(split.psychologist_amount, Decimal("200.00"))

    def test_clinic_share_is_rounded_half_up_and_psychologist_gets_remainder(self) -> None:
        split = compute_split("100.01", "33.33")
        self.assertEqual(split.clinic_amount, Decimal("33.33"))
        self.assertEqual(split.psychologist_amount, Decimal("66.68"))

        split = compute_split("0.01", 50)
        self.assertEqual(split.clinic_amount, Decimal("0.01"))
        self.assertEqual(split.psychologist_amount, Decimal("0.00"))

    def test_sum_always_equals_final_value(self) -> None:
        rng = random.Random(20260302)
        for _ in range(2000):
            final = Decimal(rng.randint(0, 5_000_00)) / 100
            pct = Decimal(rng.randint(0, 10000)) / 100
            split = compute_split(final, pct)
            with self.subTest(final=final, pct=pct):
                self.assertEqual(split.clinic_amount + split.psychologist_amount, final)
                self.assertGreaterEqual(split.psychologist_amount, 0)
                self.assertEqual(split.clinic_amount, split.clinic_amount.quantize(Decimal("0.01")))

    def test_rejects_out_of_range_percentage(self) -> None:
        for pct in (-1, "100.01", "abc"):
            with self.subTest(pct=pct), self.assertRaises(InvalidInputError):
                compute_split("100", pct)

    def test_rejects_negative_value(self) -> None:
        with self.assertRaises(InvalidInputError):
            compute_split("-10", 10)


class ToMoneyTests(SimpleTestCase):
    def test_quantizes_half_up(self) -> None:
        self.assertEqual(to_money("10.005"), Decimal("10.01"))
        self.assertEqual(to_money(3), Decimal("3.00"))

    def test_rejects_garbage(self) -> None:
        for value in ("dez", None, "NaN", "Infinity"):
            with self.subTest(value=value), self.assertRaises(InvalidInputError):
                to_money(value)


class PaymentShareTests(SimpleTestCase):
    def test_share_by_scope(self) -> None:
        split = compute_split(Decimal("150.00"), 30)
        payment = PaymentEntity(
            id="pg-1",
            appointment_id="ap-1",
            patient_id="pt-1",
            psychologist_id="ps-1",
            clinic_id="cl-1",
            session_value=Decimal("150.00"),
            final_value=Decimal("150.00"),
            clinic_amount=split.clinic_amount,
            psychologist_amount=split.psychologist_amount,
        )
        self.assertEqual(payment.share_for(SummaryScope.CLINIC), Decimal("45.00"))
        self.assertEqual(payment.share_for("psychologist"), Decimal("105.00"))
        self.assertEqual(payment.share_for(SummaryScope.PATIENT), Decimal("150.00"))
        with self.assertRaises(ValueError):
            payment.share_for("recepcao")

"""
Domínio → ORM da agenda clínica.

⚑ IDs opacos (string) gerados no domínio
⚑ Versão otimista em atendimentos, pagamentos e agenda do psicólogo
⚑ Repasse clínica/psicólogo gravado na criação do pagamento
"""

from __future__ import annotations

import uuid

from django.db import models
from django.db.models import CheckConstraint, Index, Q
from django.utils import timezone


def new_entity_id() -> str:
    return uuid.uuid4().hex


# ╭──────────────────────────────────────────────╮
# │ 1. Diretório                                │
# ╰──────────────────────────────────────────────╯
class Clinic(models.Model):
    id = models.CharField(primary_key=True, max_length=64, default=new_entity_id, editable=False)
    name = models.CharField(max_length=255)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = "clinics"
        ordering = ["name"]

    def __str__(self) -> str:
        return self.name


class Psychologist(models.Model):
    id = models.CharField(primary_key=True, max_length=64, default=new_entity_id, editable=False)
    name = models.CharField(max_length=255)
    email = models.EmailField(max_length=255, blank=True, null=True)
    clinic = models.ForeignKey(
        Clinic, on_delete=models.SET_NULL, null=True, blank=True, related_name="psychologists"
    )
    clinic_percentage = models.DecimalField(max_digits=5, decimal_places=2, default=0)
    session_value = models.DecimalField(max_digits=12, decimal_places=2, default=0)
    delegates_to_clinic = models.BooleanField(default=False)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = "psychologists"
        ordering = ["name"]
        constraints = [
            CheckConstraint(
                condition=Q(clinic_percentage__gte=0) & Q(clinic_percentage__lte=100),
                name="ck_psychologist_clinic_percentage",
            ),
        ]

    def __str__(self) -> str:
        return self.name


class Patient(models.Model):
    id = models.CharField(primary_key=True, max_length=64, default=new_entity_id, editable=False)
    name = models.CharField(max_length=255)
    email = models.EmailField(max_length=255, blank=True, null=True)
    phone = models.CharField(max_length=32, blank=True, null=True)
    clinic = models.ForeignKey(
        Clinic, on_delete=models.SET_NULL, null=True, blank=True, related_name="patients"
    )
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = "patients"
        ordering = ["name"]

    def __str__(self) -> str:
        return self.name


class PsychologistSchedule(models.Model):
    """
    Versão da agenda do psicólogo: toda reserva/remarcação faz
    compare-and-set aqui, serializando gravações concorrentes.
    """
    psychologist = models.OneToOneField(
        Psychologist, on_delete=models.CASCADE, primary_key=True, related_name="schedule"
    )
    version = models.PositiveIntegerField(default=0)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = "psychologist_schedules"


# ╭──────────────────────────────────────────────╮
# │ 2. Atendimentos                             │
# ╰──────────────────────────────────────────────╯
class Appointment(models.Model):
    class Status(models.TextChoices):
        PENDING = "pending", "Pendente"
        SCHEDULED = "scheduled", "Agendado"
        AWAITING_PATIENT = "awaiting_patient", "Aguardando paciente"
        AWAITING_PSYCHOLOGIST = "awaiting_psychologist", "Aguardando psicólogo"
        CONFIRMED = "confirmed", "Confirmado"
        COMPLETED = "completed", "Realizado"
        CANCELLED = "cancelled", "Cancelado"
        NO_SHOW = "no_show", "Falta"

    class Modality(models.TextChoices):
        ONLINE = "online", "Online"
        IN_PERSON = "in_person", "Presencial"

    id = models.CharField(primary_key=True, max_length=64, default=new_entity_id, editable=False)
    psychologist = models.ForeignKey(Psychologist, on_delete=models.PROTECT, related_name="appointments")
    patient = models.ForeignKey(Patient, on_delete=models.PROTECT, related_name="appointments")
    clinic = models.ForeignKey(
        Clinic, on_delete=models.SET_NULL, null=True, blank=True, related_name="appointments"
    )
    scheduled_at = models.DateTimeField()
    ends_at = models.DateTimeField()
    duration_minutes = models.PositiveIntegerField(default=50)
    modality = models.CharField(max_length=20, choices=Modality.choices, default=Modality.ONLINE)
    status = models.CharField(max_length=32, choices=Status.choices, default=Status.PENDING, db_index=True)
    notes = models.TextField(blank=True, null=True)
    payment_id = models.CharField(max_length=64, blank=True, null=True)
    cancel_reason = models.TextField(blank=True, null=True)
    cancelled_by = models.CharField(max_length=20, blank=True, null=True)
    patient_declined_at = models.DateTimeField(blank=True, null=True)
    version = models.PositiveIntegerField(default=1)
    created_at = models.DateTimeField(default=timezone.now)
    updated_at = models.DateTimeField(default=timezone.now)

    class Meta:
        db_table = "appointments"
        ordering = ["scheduled_at"]
        indexes = [
            Index(fields=["psychologist", "scheduled_at"], name="appt_psych_start_idx"),
            Index(fields=["clinic", "status"], name="appt_clinic_status_idx"),
            Index(fields=["patient", "scheduled_at"], name="appt_patient_start_idx"),
        ]
        constraints = [
            CheckConstraint(condition=Q(duration_minutes__gt=0), name="ck_appointment_duration_positive"),
        ]

    def __str__(self) -> str:
        return f"{self.id} @ {self.scheduled_at:%Y-%m-%d %H:%M} ({self.status})"


# ╭──────────────────────────────────────────────╮
# │ 3. Pagamentos                               │
# ╰──────────────────────────────────────────────╯
class Payment(models.Model):
    class Status(models.TextChoices):
        PENDING = "pending", "Pendente"
        AWAITING_CONFIRMATION = "awaiting_confirmation", "Aguardando confirmação"
        CONFIRMED = "confirmed", "Confirmado"
        CANCELLED = "cancelled", "Cancelado"
        REFUNDED = "refunded", "Estornado"

    class Method(models.TextChoices):
        PIX = "pix", "Pix"
        CASH = "cash", "Dinheiro"
        CREDIT_CARD = "credit_card", "Cartão de crédito"
        DEBIT_CARD = "debit_card", "Cartão de débito"
        BANK_TRANSFER = "bank_transfer", "Transferência"
        OTHER = "other", "Outro"

    id = models.CharField(primary_key=True, max_length=64, default=new_entity_id, editable=False)
    appointment = models.OneToOneField(Appointment, on_delete=models.PROTECT, related_name="payment_record")
    patient = models.ForeignKey(Patient, on_delete=models.PROTECT, related_name="payments")
    psychologist = models.ForeignKey(Psychologist, on_delete=models.PROTECT, related_name="payments")
    clinic = models.ForeignKey(
        Clinic, on_delete=models.SET_NULL, null=True, blank=True, related_name="payments"
    )
    session_value = models.DecimalField(max_digits=12, decimal_places=2)
    discount = models.DecimalField(max_digits=12, decimal_places=2, default=0)
    final_value = models.DecimalField(max_digits=12, decimal_places=2)
    clinic_percentage = models.DecimalField(max_digits=5, decimal_places=2, default=0)
    clinic_amount = models.DecimalField(max_digits=12, decimal_places=2)
    psychologist_amount = models.DecimalField(max_digits=12, decimal_places=2)
    status = models.CharField(max_length=32, choices=Status.choices, default=Status.PENDING, db_index=True)
    method = models.CharField(max_length=20, choices=Method.choices, blank=True, null=True)
    paid_at = models.DateTimeField(blank=True, null=True)
    confirmed_at = models.DateTimeField(blank=True, null=True)
    confirmed_by = models.CharField(max_length=64, blank=True, null=True)
    cancelled_at = models.DateTimeField(blank=True, null=True)
    cancel_reason = models.TextField(blank=True, null=True)
    refunded_at = models.DateTimeField(blank=True, null=True)
    refund_reason = models.TextField(blank=True, null=True)
    internal_notes = models.TextField(blank=True, null=True)
    version = models.PositiveIntegerField(default=1)
    created_at = models.DateTimeField(default=timezone.now, db_index=True)
    updated_at = models.DateTimeField(default=timezone.now)

    class Meta:
        db_table = "payments"
        ordering = ["-created_at"]
        indexes = [
            Index(fields=["clinic", "status"], name="pay_clinic_status_idx"),
            Index(fields=["psychologist", "status"], name="pay_psych_status_idx"),
        ]
        constraints = [
            CheckConstraint(
                condition=Q(clinic_amount__gte=0) & Q(psychologist_amount__gte=0),
                name="ck_payment_shares_non_negative",
            ),
        ]

    def __str__(self) -> str:
        return f"{self.id} {self.final_value} ({self.status})"

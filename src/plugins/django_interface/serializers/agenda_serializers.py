# =========================================================
# Serializers de saída: recebem ``entity.to_dict()`` (enums já
# convertidos para o valor) ou os DTOs de leitura.
# =========================================================
from rest_framework import serializers

MONEY = {"max_digits": 12, "decimal_places": 2}


# ───────────────────────────────────────────────
# Atendimentos
# ───────────────────────────────────────────────
class AppointmentSerializer(serializers.Serializer):
    id                  = serializers.CharField()
    psychologist_id     = serializers.CharField()
    patient_id          = serializers.CharField()
    clinic_id           = serializers.CharField(allow_null=True)
    scheduled_at        = serializers.DateTimeField()
    ends_at             = serializers.DateTimeField()
    duration_minutes    = serializers.IntegerField()
    modality            = serializers.CharField()
    status              = serializers.CharField()
    notes               = serializers.CharField(allow_null=True, allow_blank=True)
    payment_id          = serializers.CharField(allow_null=True)
    cancel_reason       = serializers.CharField(allow_null=True, allow_blank=True)
    cancelled_by        = serializers.CharField(allow_null=True)
    patient_declined_at = serializers.DateTimeField(allow_null=True)
    version             = serializers.IntegerField()
    created_at          = serializers.DateTimeField(allow_null=True)
    updated_at          = serializers.DateTimeField(allow_null=True)


class SlotSerializer(serializers.Serializer):
    start     = serializers.DateTimeField()
    end       = serializers.DateTimeField()
    available = serializers.BooleanField()


# ───────────────────────────────────────────────
# Pagamentos
# ───────────────────────────────────────────────
class PaymentSerializer(serializers.Serializer):
    id                  = serializers.CharField()
    appointment_id      = serializers.CharField()
    patient_id          = serializers.CharField()
    psychologist_id     = serializers.CharField()
    clinic_id           = serializers.CharField(allow_null=True)
    session_value       = serializers.DecimalField(**MONEY)
    discount            = serializers.DecimalField(**MONEY)
    final_value         = serializers.DecimalField(**MONEY)
    clinic_percentage   = serializers.DecimalField(max_digits=5, decimal_places=2)
    clinic_amount       = serializers.DecimalField(**MONEY)
    psychologist_amount = serializers.DecimalField(**MONEY)
    status              = serializers.CharField()
    method              = serializers.CharField(allow_null=True)
    paid_at             = serializers.DateTimeField(allow_null=True)
    confirmed_at        = serializers.DateTimeField(allow_null=True)
    confirmed_by        = serializers.CharField(allow_null=True)
    cancelled_at        = serializers.DateTimeField(allow_null=True)
    cancel_reason       = serializers.CharField(allow_null=True, allow_blank=True)
    refunded_at         = serializers.DateTimeField(allow_null=True)
    refund_reason       = serializers.CharField(allow_null=True, allow_blank=True)
    internal_notes      = serializers.CharField(allow_null=True, allow_blank=True)
    version             = serializers.IntegerField()
    created_at          = serializers.DateTimeField(allow_null=True)
    updated_at          = serializers.DateTimeField(allow_null=True)


class BatchFailureSerializer(serializers.Serializer):
    id      = serializers.CharField(allow_null=True)
    reason  = serializers.CharField()
    message = serializers.CharField()
    details = serializers.DictField()


class BatchConfirmResultSerializer(serializers.Serializer):
    confirmed  = serializers.ListField(child=serializers.CharField())
    failed     = BatchFailureSerializer(many=True)
    is_partial = serializers.BooleanField()


# ───────────────────────────────────────────────
# Financeiro
# ───────────────────────────────────────────────
class StatusBucketSerializer(serializers.Serializer):
    count              = serializers.IntegerField()
    total_value        = serializers.DecimalField(**MONEY)
    clinic_value       = serializers.DecimalField(**MONEY)
    psychologist_value = serializers.DecimalField(**MONEY)


class PsychologistBreakdownSerializer(serializers.Serializer):
    psychologist_id             = serializers.CharField()
    name                        = serializers.CharField()
    session_count               = serializers.IntegerField()
    confirmed_value             = serializers.DecimalField(**MONEY)
    pending_value               = serializers.DecimalField(**MONEY)
    awaiting_confirmation_value = serializers.DecimalField(**MONEY)
    cancelled_value             = serializers.DecimalField(**MONEY)


class FinancialSummarySerializer(serializers.Serializer):
    scope                 = serializers.CharField()
    scope_id              = serializers.CharField()
    start                 = serializers.DateField()
    end                   = serializers.DateField()
    total_sessions        = serializers.IntegerField()
    pending               = StatusBucketSerializer()
    awaiting_confirmation = StatusBucketSerializer()
    confirmed             = StatusBucketSerializer()
    cancelled             = StatusBucketSerializer()
    refunded              = StatusBucketSerializer()
    expected_earnings     = serializers.DecimalField(**MONEY)
    expected_total        = serializers.DecimalField(**MONEY)
    confirmed_earnings    = serializers.DecimalField(**MONEY)
    pending_earnings      = serializers.DecimalField(**MONEY)
    by_psychologist       = PsychologistBreakdownSerializer(many=True)

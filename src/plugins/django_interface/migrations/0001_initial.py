import django.db.models.deletion
import django.utils.timezone
from django.db import migrations, models

import plugins.django_interface.models


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name="Clinic",
            fields=[
                ("id", models.CharField(default=plugins.django_interface.models.new_entity_id, editable=False, max_length=64, primary_key=True, serialize=False)),
                ("name", models.CharField(max_length=255)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
            ],
            options={
                "db_table": "clinics",
                "ordering": ["name"],
            },
        ),
        migrations.CreateModel(
            name="Psychologist",
            fields=[
                ("id", models.CharField(default=plugins.django_interface.models.new_entity_id, editable=False, max_length=64, primary_key=True, serialize=False)),
                ("name", models.CharField(max_length=255)),
                ("email", models.EmailField(blank=True, max_length=255, null=True)),
                ("clinic_percentage", models.DecimalField(decimal_places=2, default=0, max_digits=5)),
                ("session_value", models.DecimalField(decimal_places=2, default=0, max_digits=12)),
                ("delegates_to_clinic", models.BooleanField(default=False)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("clinic", models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name="psychologists", to="django_interface.clinic")),
            ],
            options={
                "db_table": "psychologists",
                "ordering": ["name"],
                "constraints": [
                    models.CheckConstraint(
                        condition=models.Q(("clinic_percentage__gte", 0), ("clinic_percentage__lte", 100)),
                        name="ck_psychologist_clinic_percentage",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="Patient",
            fields=[
                ("id", models.CharField(default=plugins.django_interface.models.new_entity_id, editable=False, max_length=64, primary_key=True, serialize=False)),
                ("name", models.CharField(max_length=255)),
                ("email", models.EmailField(blank=True, max_length=255, null=True)),
                ("phone", models.CharField(blank=True, max_length=32, null=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("clinic", models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name="patients", to="django_interface.clinic")),
            ],
            options={
                "db_table": "patients",
                "ordering": ["name"],
            },
        ),
        migrations.CreateModel(
            name="PsychologistSchedule",
            fields=[
                ("psychologist", models.OneToOneField(on_delete=django.db.models.deletion.CASCADE, primary_key=True, related_name="schedule", serialize=False, to="django_interface.psychologist")),
                ("version", models.PositiveIntegerField(default=0)),
                ("updated_at", models.DateTimeField(auto_now=True)),
            ],
            options={
                "db_table": "psychologist_schedules",
            },
        ),
        migrations.CreateModel(
            name="Appointment",
            fields=[
                ("id", models.CharField(default=plugins.django_interface.models.new_entity_id, editable=False, max_length=64, primary_key=True, serialize=False)),
                ("scheduled_at", models.DateTimeField()),
                ("ends_at", models.DateTimeField()),
                ("duration_minutes", models.PositiveIntegerField(default=50)),
                ("modality", models.CharField(choices=[("online", "Online"), ("in_person", "Presencial")], default="online", max_length=20)),
                ("status", models.CharField(choices=[("pending", "Pendente"), ("scheduled", "Agendado"), ("awaiting_patient", "Aguardando paciente"), ("awaiting_psychologist", "Aguardando psicólogo"), ("confirmed", "Confirmado"), ("completed", "Realizado"), ("cancelled", "Cancelado"), ("no_show", "Falta")], db_index=True, default="pending", max_length=32)),
                ("notes", models.TextField(blank=True, null=True)),
                ("payment_id", models.CharField(blank=True, max_length=64, null=True)),
                ("cancel_reason", models.TextField(blank=True, null=True)),
                ("cancelled_by", models.CharField(blank=True, max_length=20, null=True)),
                ("patient_declined_at", models.DateTimeField(blank=True, null=True)),
                ("version", models.PositiveIntegerField(default=1)),
                ("created_at", models.DateTimeField(default=django.utils.timezone.now)),
                ("updated_at", models.DateTimeField(default=django.utils.timezone.now)),
                ("clinic", models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name="appointments", to="django_interface.clinic")),
                ("patient", models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name="appointments", to="django_interface.patient")),
                ("psychologist", models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name="appointments", to="django_interface.psychologist")),
            ],
            options={
                "db_table": "appointments",
                "ordering": ["scheduled_at"],
                "indexes": [
                    models.Index(fields=["psychologist", "scheduled_at"], name="appt_psych_start_idx"),
                    models.Index(fields=["clinic", "status"], name="appt_clinic_status_idx"),
                    models.Index(fields=["patient", "scheduled_at"], name="appt_patient_start_idx"),
                ],
                "constraints": [
                    models.CheckConstraint(
                        condition=models.Q(("duration_minutes__gt", 0)),
                        name="ck_appointment_duration_positive",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="Payment",
            fields=[
                ("id", models.CharField(default=plugins.django_interface.models.new_entity_id, editable=False, max_length=64, primary_key=True, serialize=False)),
                ("session_value", models.DecimalField(decimal_places=2, max_digits=12)),
                ("discount", models.DecimalField(decimal_places=2, default=0, max_digits=12)),
                ("final_value", models.DecimalField(decimal_places=2, max_digits=12)),
                ("clinic_percentage", models.DecimalField(decimal_places=2, default=0, max_digits=5)),
                ("clinic_amount", models.DecimalField(decimal_places=2, max_digits=12)),
                ("psychologist_amount", models.DecimalField(decimal_places=2, max_digits=12)),
                ("status", models.CharField(choices=[("pending", "Pendente"), ("awaiting_confirmation", "Aguardando confirmação"), ("confirmed", "Confirmado"), ("cancelled", "Cancelado"), ("refunded", "Estornado")], db_index=True, default="pending", max_length=32)),
                ("method", models.CharField(blank=True, choices=[("pix", "Pix"), ("cash", "Dinheiro"), ("credit_card", "Cartão de crédito"), ("debit_card", "Cartão de débito"), ("bank_transfer", "Transferência"), ("other", "Outro")], max_length=20, null=True)),
                ("paid_at", models.DateTimeField(blank=True, null=True)),
                ("confirmed_at", models.DateTimeField(blank=True, null=True)),
                ("confirmed_by", models.CharField(blank=True, max_length=64, null=True)),
                ("cancelled_at", models.DateTimeField(blank=True, null=True)),
                ("cancel_reason", models.TextField(blank=True, null=True)),
                ("refunded_at", models.DateTimeField(blank=True, null=True)),
                ("refund_reason", models.TextField(blank=True, null=True)),
                ("internal_notes", models.TextField(blank=True, null=True)),
                ("version", models.PositiveIntegerField(default=1)),
                ("created_at", models.DateTimeField(db_index=True, default=django.utils.timezone.now)),
                ("updated_at", models.DateTimeField(default=django.utils.timezone.now)),
                ("appointment", models.OneToOneField(on_delete=django.db.models.deletion.PROTECT, related_name="payment_record", to="django_interface.appointment")),
                ("clinic", models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name="payments", to="django_interface.clinic")),
                ("patient", models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name="payments", to="django_interface.patient")),
                ("psychologist", models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name="payments", to="django_interface.psychologist")),
            ],
            options={
                "db_table": "payments",
                "ordering": ["-created_at"],
                "indexes": [
                    models.Index(fields=["clinic", "status"], name="pay_clinic_status_idx"),
                    models.Index(fields=["psychologist", "status"], name="pay_psych_status_idx"),
                ],
                "constraints": [
                    models.CheckConstraint(
                        condition=models.Q(("clinic_amount__gte", 0), ("psychologist_amount__gte", 0)),
                        name="ck_payment_shares_non_negative",
                    ),
                ],
            },
        ),
    ]

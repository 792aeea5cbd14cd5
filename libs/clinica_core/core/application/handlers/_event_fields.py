from typing import Any

from clinica_core.core.domain.entities.actor_entity import Actor
from clinica_core.core.domain.entities.appointment_entity import AppointmentEntity
from clinica_core.core.domain.entities.payment_entity import PaymentEntity


def appointment_fields(appt: AppointmentEntity, actor: Actor | None) -> dict[str, Any]:
    return {
        "appointment_id": appt.id,
        "psychologist_id": appt.psychologist_id,
        "patient_id": appt.patient_id,
        "clinic_id": appt.clinic_id,
        "actor_id": actor.id if actor else None,
        "actor_role": actor.role.value if actor else None,
    }


def payment_fields(payment: PaymentEntity, actor: Actor | None) -> dict[str, Any]:
    return {
        "payment_id": payment.id,
        "appointment_id": payment.appointment_id,
        "psychologist_id": payment.psychologist_id,
        "patient_id": payment.patient_id,
        "clinic_id": payment.clinic_id,
        "actor_id": actor.id if actor else None,
        "actor_role": actor.role.value if actor else None,
    }

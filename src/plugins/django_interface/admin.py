"""
Admin site registry
-------------------
Registra os modelos da agenda de forma dinâmica.
"""

import structlog
from django.contrib import admin as django_admin

from . import models

logger = structlog.get_logger(__name__)

# ╭──────────────────────────────────────────────╮
# │ Configuração de cada ModelAdmin             │
# ╰──────────────────────────────────────────────╯
MODEL_ADMIN_REGISTRY: dict[type[models.models.Model], dict] = {
    # 1. Diretório
    models.Clinic: dict(
        list_display=("name", "created_at"),
        search_fields=("name",),
    ),
    models.Psychologist: dict(
        list_display=("name", "clinic", "clinic_percentage", "session_value", "delegates_to_clinic"),
        list_filter=("clinic", "delegates_to_clinic"),
        search_fields=("name", "email"),
    ),
    models.Patient: dict(
        list_display=("name", "email", "phone", "clinic"),
        search_fields=("name", "email"),
    ),
    # 2. Atendimentos
    models.Appointment: dict(
        list_display=("scheduled_at", "psychologist", "patient", "status", "modality", "version"),
        list_filter=("status", "modality", "clinic"),
        readonly_fields=("version", "ends_at"),
    ),
    # 3. Pagamentos
    models.Payment: dict(
        list_display=("appointment", "final_value", "clinic_amount", "psychologist_amount", "status", "method"),
        list_filter=("status", "method", "clinic"),
        readonly_fields=("version", "clinic_amount", "psychologist_amount"),
    ),
}

# ╭──────────────────────────────────────────────╮
# │ Registro dinâmico                           │
# ╰──────────────────────────────────────────────╯
for model, opts in MODEL_ADMIN_REGISTRY.items():
    admin_class = type(f"{model.__name__}Admin", (django_admin.ModelAdmin,), opts)
    django_admin.site.register(model, admin_class)
    logger.debug("admin.model_registered", model=model.__name__)

from django.apps import AppConfig


class AgendaConfig(AppConfig):
    name = "agenda_clinica_api"
    verbose_name = "Agenda Clínica API"

    def ready(self):
        from django.conf import settings

        # ─── DI container ───────────────────────────────────────────
        from clinica_core.adapters.config.composition_root import (
            setup_di_container_from_settings,
        )

        setup_di_container_from_settings(settings)

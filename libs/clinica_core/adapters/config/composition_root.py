from __future__ import annotations

import structlog
from dependency_injector import containers, providers

from clinica_core.core.application.commands.appointment_commands import (
    CancelAppointmentCommand,
    CreateAppointmentCommand,
    RescheduleAppointmentCommand,
    RespondAppointmentCommand,
    TransitionAppointmentStatusCommand,
    UpdateAppointmentFieldsCommand,
)
from clinica_core.core.application.commands.payment_commands import (
    CancelPaymentCommand,
    ConfirmPaymentCommand,
    ConfirmPaymentsBatchCommand,
    RefundPaymentCommand,
    RegisterPaymentMethodCommand,
    UpdatePaymentValueCommand,
)
from clinica_core.core.application.cqrs import CommandBusImpl, QueryBusImpl
from clinica_core.core.application.handlers.appointment_handlers import (
    CancelAppointmentHandler,
    CreateAppointmentHandler,
    RescheduleAppointmentHandler,
    RespondAppointmentHandler,
    TransitionAppointmentStatusHandler,
    UpdateAppointmentFieldsHandler,
)
from clinica_core.core.application.handlers.payment_handlers import (
    CancelPaymentHandler,
    ConfirmPaymentHandler,
    ConfirmPaymentsBatchHandler,
    RefundPaymentHandler,
    RegisterPaymentMethodHandler,
    UpdatePaymentValueHandler,
)
from clinica_core.core.application.handlers.query_handlers import (
    AvailableSlotsHandler,
    GetAppointmentHandler,
    GetFinancialSummaryHandler,
    GetPaymentHandler,
    ListAppointmentsHandler,
    ListPaymentsHandler,
)
from clinica_core.core.application.queries.appointment_queries import (
    AvailableSlotsQuery,
    GetAppointmentQuery,
    ListAppointmentsQuery,
)
from clinica_core.core.application.queries.financial_queries import GetFinancialSummaryQuery
from clinica_core.core.application.queries.payment_queries import GetPaymentQuery, ListPaymentsQuery
from clinica_core.core.application.services.agenda_service import AgendaService
from clinica_core.core.application.services.availability_service import AvailabilityService
from clinica_core.core.application.services.conflict_coordinator import ConflictCoordinator
from clinica_core.core.application.services.financial_aggregator import FinancialAggregator
from clinica_core.core.domain.entities.agenda_settings_entity import AgendaSettings
from clinica_core.core.domain.services.appointment_state_machine import AppointmentStateMachine
from clinica_core.core.domain.services.clock import SystemClock
from clinica_core.core.domain.services.event_dispatcher import EventDispatcher
from clinica_core.core.domain.services.payment_state_machine import PaymentStateMachine
from clinica_core.core.domain.services.permission_guard import PermissionGuard

container = None


class Container(containers.DeclarativeContainer):
    config = providers.Configuration()

    # Infra (sobrescrita conforme o ambiente: Django ou memória)
    clock = providers.Singleton(SystemClock)
    uow = providers.Dependency()
    appointment_repo = providers.Dependency()
    payment_repo = providers.Dependency()
    clinic_repo = providers.Dependency()
    psychologist_repo = providers.Dependency()
    patient_repo = providers.Dependency()

    agenda_settings = providers.Singleton(AgendaSettings.from_mapping, config.agenda)

    # Domínio
    guard = providers.Singleton(PermissionGuard)
    appointment_machine = providers.Singleton(AppointmentStateMachine, clock=clock)
    payment_machine = providers.Singleton(PaymentStateMachine, clock=clock)
    coordinator = providers.Singleton(ConflictCoordinator, uow=uow, clock=clock)
    event_dispatcher = providers.Singleton(EventDispatcher)

    # CQRS
    command_bus = providers.Singleton(CommandBusImpl, dispatcher=event_dispatcher)
    query_bus = providers.Singleton(QueryBusImpl)

    # Serviços de leitura
    availability_service = providers.Singleton(
        AvailabilityService,
        appointment_repo=appointment_repo,
        psychologist_repo=psychologist_repo,
        settings=agenda_settings,
        clock=clock,
    )
    financial_aggregator = providers.Singleton(
        FinancialAggregator,
        payment_repo=payment_repo,
        clinic_repo=clinic_repo,
        psychologist_repo=psychologist_repo,
        patient_repo=patient_repo,
        guard=guard,
        timezone=agenda_settings.provided.timezone,
    )

    # Handlers de atendimento
    _appointment_deps = dict(
        appointment_repo=appointment_repo,
        payment_repo=payment_repo,
        psychologist_repo=psychologist_repo,
        patient_repo=patient_repo,
        clinic_repo=clinic_repo,
        guard=guard,
        coordinator=coordinator,
        machine=appointment_machine,
        payment_machine=payment_machine,
        settings=agenda_settings,
    )
    create_appointment_handler = providers.Factory(CreateAppointmentHandler, **_appointment_deps)
    reschedule_appointment_handler = providers.Factory(RescheduleAppointmentHandler, **_appointment_deps)
    update_appointment_fields_handler = providers.Factory(UpdateAppointmentFieldsHandler, **_appointment_deps)
    transition_appointment_handler = providers.Factory(TransitionAppointmentStatusHandler, **_appointment_deps)
    cancel_appointment_handler = providers.Factory(CancelAppointmentHandler, **_appointment_deps)
    respond_appointment_handler = providers.Factory(RespondAppointmentHandler, **_appointment_deps)

    # Handlers de pagamento
    _payment_deps = dict(
        payment_repo=payment_repo,
        psychologist_repo=psychologist_repo,
        clinic_repo=clinic_repo,
        guard=guard,
        coordinator=coordinator,
        machine=payment_machine,
    )
    register_payment_method_handler = providers.Factory(RegisterPaymentMethodHandler, **_payment_deps)
    confirm_payment_handler = providers.Factory(ConfirmPaymentHandler, **_payment_deps)
    cancel_payment_handler = providers.Factory(CancelPaymentHandler, **_payment_deps)
    refund_payment_handler = providers.Factory(RefundPaymentHandler, **_payment_deps)
    update_payment_value_handler = providers.Factory(UpdatePaymentValueHandler, **_payment_deps)
    confirm_payments_batch_handler = providers.Factory(
        ConfirmPaymentsBatchHandler,
        confirm_handler=confirm_payment_handler,
        uow=uow,
        settings=agenda_settings,
    )

    # Handlers de queries
    get_appointment_handler = providers.Factory(GetAppointmentHandler, repo=appointment_repo, guard=guard)
    list_appointments_handler = providers.Factory(ListAppointmentsHandler, repo=appointment_repo)
    available_slots_handler = providers.Factory(AvailableSlotsHandler, service=availability_service)
    get_payment_handler = providers.Factory(GetPaymentHandler, repo=payment_repo, guard=guard)
    list_payments_handler = providers.Factory(ListPaymentsHandler, repo=payment_repo)
    financial_summary_handler = providers.Factory(GetFinancialSummaryHandler, aggregator=financial_aggregator)

    # Fachada
    agenda_service = providers.Singleton(AgendaService, command_bus=command_bus, query_bus=query_bus)


def register_handlers(c: Container) -> Container:
    """Registra todos os handlers nos buses do container."""
    cmd_bus = c.command_bus()
    cmd_bus.register(CreateAppointmentCommand, c.create_appointment_handler())
    cmd_bus.register(RescheduleAppointmentCommand, c.reschedule_appointment_handler())
    cmd_bus.register(UpdateAppointmentFieldsCommand, c.update_appointment_fields_handler())
    cmd_bus.register(TransitionAppointmentStatusCommand, c.transition_appointment_handler())
    cmd_bus.register(CancelAppointmentCommand, c.cancel_appointment_handler())
    cmd_bus.register(RespondAppointmentCommand, c.respond_appointment_handler())

    cmd_bus.register(RegisterPaymentMethodCommand, c.register_payment_method_handler())
    cmd_bus.register(ConfirmPaymentCommand, c.confirm_payment_handler())
    cmd_bus.register(CancelPaymentCommand, c.cancel_payment_handler())
    cmd_bus.register(RefundPaymentCommand, c.refund_payment_handler())
    cmd_bus.register(UpdatePaymentValueCommand, c.update_payment_value_handler())
    cmd_bus.register(ConfirmPaymentsBatchCommand, c.confirm_payments_batch_handler())

    qry_bus = c.query_bus()
    qry_bus.register(GetAppointmentQuery, c.get_appointment_handler())
    qry_bus.register(ListAppointmentsQuery, c.list_appointments_handler())
    qry_bus.register(AvailableSlotsQuery, c.available_slots_handler())
    qry_bus.register(GetPaymentQuery, c.get_payment_handler())
    qry_bus.register(ListPaymentsQuery, c.list_payments_handler())
    qry_bus.register(GetFinancialSummaryQuery, c.financial_summary_handler())
    return c


def _agenda_config(settings) -> dict:
    return {
        "default_duration_minutes": settings.AGENDA_DEFAULT_DURATION_MINUTES,
        "patient_decline_auto_cancel": settings.AGENDA_PATIENT_DECLINE_AUTO_CANCEL,
        "batch_max_workers": settings.AGENDA_BATCH_MAX_WORKERS,
        "batch_max_size": settings.AGENDA_BATCH_MAX_SIZE,
        "workday_start": settings.AGENDA_WORKDAY_START,
        "workday_end": settings.AGENDA_WORKDAY_END,
        "slot_step_minutes": settings.AGENDA_SLOT_STEP_MINUTES,
        "timezone": settings.TIME_ZONE,
    }


def setup_di_container_from_settings(settings):
    """Inicializa o DI container após o Django já estar com settings carregados."""
    global container  # noqa: PLW0603
    if container is not None:
        structlog.get_logger(__name__).debug("di.already_initialized")
        return container

    # ------- IMPORTS QUE USAM DJANGO MODELS -------
    from django.db import transaction

    from clinica_core.adapters.message_broker.event_publisher import NotificationEventPublisher
    from clinica_core.adapters.message_broker.rabbitmq import MessagingService, build_events_exchange
    from clinica_core.adapters.observability.metrics import subscribe_metrics
    from clinica_core.adapters.repositories.appointment_repo_impl import AppointmentRepoImpl
    from clinica_core.adapters.repositories.directory_repo_impl import (
        ClinicRepoImpl,
        PatientRepoImpl,
        PsychologistRepoImpl,
    )
    from clinica_core.adapters.repositories.django_unit_of_work import DjangoUnitOfWork
    from clinica_core.adapters.repositories.payment_repo_impl import PaymentRepoImpl
    from clinica_core.core.domain.events.events import DomainEvent

    c = Container()
    c.config.agenda.from_value(_agenda_config(settings))
    c.uow.override(providers.Singleton(DjangoUnitOfWork))
    c.appointment_repo.override(providers.Singleton(AppointmentRepoImpl))
    c.payment_repo.override(providers.Singleton(PaymentRepoImpl))
    c.clinic_repo.override(providers.Singleton(ClinicRepoImpl))
    c.psychologist_repo.override(providers.Singleton(PsychologistRepoImpl))
    c.patient_repo.override(providers.Singleton(PatientRepoImpl))
    register_handlers(c)

    dispatcher = c.event_dispatcher()
    subscribe_metrics(dispatcher)
    rabbitmq_url = getattr(settings, "RABBITMQ_URL", "")
    if rabbitmq_url:
        publisher = NotificationEventPublisher(
            MessagingService(rabbitmq_url),
            build_events_exchange(settings.AGENDA_EVENTS_EXCHANGE),
            max_workers=settings.AGENDA_PUBLISH_WORKERS,
            defer=transaction.on_commit,
        )
        dispatcher.subscribe(DomainEvent, publisher)
    else:
        structlog.get_logger(__name__).info("notification.publisher_disabled")

    container = c
    return container


def build_in_memory_container(agenda_settings: AgendaSettings | None = None, clock=None) -> Container:
    """Container com repositórios em memória: uso standalone e testes."""
    from clinica_core.adapters.repositories.memory_repo_impl import (
        InMemoryAppointmentRepo,
        InMemoryClinicRepo,
        InMemoryPatientRepo,
        InMemoryPaymentRepo,
        InMemoryPsychologistRepo,
        InMemoryUnitOfWork,
    )

    c = Container()
    if agenda_settings is not None:
        c.agenda_settings.override(providers.Object(agenda_settings))
    else:
        c.config.agenda.from_value({})
    if clock is not None:
        c.clock.override(providers.Object(clock))
    c.uow.override(providers.Singleton(InMemoryUnitOfWork))
    c.appointment_repo.override(providers.Singleton(InMemoryAppointmentRepo))
    c.payment_repo.override(providers.Singleton(InMemoryPaymentRepo))
    c.clinic_repo.override(providers.Singleton(InMemoryClinicRepo))
    c.psychologist_repo.override(providers.Singleton(InMemoryPsychologistRepo))
    c.patient_repo.override(providers.Singleton(InMemoryPatientRepo))
    return register_handlers(c)

from enum import Enum


class AppointmentStatus(str, Enum):
    PENDING = "pending"
    SCHEDULED = "scheduled"
    AWAITING_PATIENT = "awaiting_patient"
    AWAITING_PSYCHOLOGIST = "awaiting_psychologist"
    CONFIRMED = "confirmed"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    NO_SHOW = "no_show"


class Modality(str, Enum):
    ONLINE = "online"
    IN_PERSON = "in_person"


class PaymentStatus(str, Enum):
    PENDING = "pending"
    AWAITING_CONFIRMATION = "awaiting_confirmation"
    CONFIRMED = "confirmed"
    CANCELLED = "cancelled"
    REFUNDED = "refunded"


class PaymentMethod(str, Enum):
    PIX = "pix"
    CASH = "cash"
    CREDIT_CARD = "credit_card"
    DEBIT_CARD = "debit_card"
    BANK_TRANSFER = "bank_transfer"
    OTHER = "other"


class ActorRole(str, Enum):
    CLINIC = "clinic"
    PSYCHOLOGIST = "psychologist"
    PATIENT = "patient"


class SummaryScope(str, Enum):
    CLINIC = "clinic"
    PSYCHOLOGIST = "psychologist"
    PATIENT = "patient"

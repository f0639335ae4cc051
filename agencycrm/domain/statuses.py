# agencycrm/domain/statuses.py
"""Closed vocabularies stored as plain strings in the database."""
from __future__ import annotations

from enum import Enum


class PropertyType(str, Enum):
    APARTMENT = "APARTMENT"
    HOUSE = "HOUSE"
    LAND = "LAND"
    COMMERCIAL = "COMMERCIAL"
    OFFICE = "OFFICE"
    VILLA = "VILLA"
    STUDIO = "STUDIO"


PROPERTY_TYPE_LABELS = {
    PropertyType.APARTMENT: "Appartements",
    PropertyType.HOUSE: "Maisons",
    PropertyType.LAND: "Terrains",
    PropertyType.COMMERCIAL: "Commerces",
    PropertyType.OFFICE: "Bureaux",
    PropertyType.VILLA: "Villas",
    PropertyType.STUDIO: "Studios",
}


class PropertyStatus(str, Enum):
    AVAILABLE = "AVAILABLE"
    PENDING = "PENDING"
    SOLD = "SOLD"
    RENTED = "RENTED"
    WITHDRAWN = "WITHDRAWN"


class ClientType(str, Enum):
    BUYER = "BUYER"
    SELLER = "SELLER"
    TENANT = "TENANT"
    LANDLORD = "LANDLORD"
    PROSPECT = "PROSPECT"


class ContractType(str, Enum):
    SALE = "SALE"
    RENTAL = "RENTAL"


class ContractStatus(str, Enum):
    DRAFT = "DRAFT"
    ACTIVE = "ACTIVE"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"


class MandateType(str, Enum):
    EXCLUSIVE = "EXCLUSIVE"
    NON_EXCLUSIVE = "NON_EXCLUSIVE"
    SEMI_EXCLUSIVE = "SEMI_EXCLUSIVE"


class MandateStatus(str, Enum):
    ACTIVE = "ACTIVE"
    EXPIRED = "EXPIRED"
    RENEWED = "RENEWED"
    CANCELLED = "CANCELLED"
    COMPLETED = "COMPLETED"


class OfferStatus(str, Enum):
    PENDING = "PENDING"
    ACCEPTED = "ACCEPTED"
    REJECTED = "REJECTED"
    COUNTER_OFFER = "COUNTER_OFFER"
    WITHDRAWN = "WITHDRAWN"


OFFER_RESPONSE_STATUSES = (OfferStatus.ACCEPTED, OfferStatus.REJECTED, OfferStatus.COUNTER_OFFER)


class PaymentType(str, Enum):
    COMMISSION = "COMMISSION"
    RENT = "RENT"
    DEPOSIT = "DEPOSIT"
    FEE = "FEE"
    OTHER = "OTHER"


class PaymentStatus(str, Enum):
    PENDING = "PENDING"
    PAID = "PAID"
    OVERDUE = "OVERDUE"
    CANCELLED = "CANCELLED"


class TaskStatus(str, Enum):
    PENDING = "PENDING"
    IN_PROGRESS = "IN_PROGRESS"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"


OPEN_TASK_STATUSES = (TaskStatus.PENDING, TaskStatus.IN_PROGRESS)


class TaskPriority(str, Enum):
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"
    URGENT = "URGENT"


PRIORITY_RANK = {
    TaskPriority.LOW: 1,
    TaskPriority.MEDIUM: 2,
    TaskPriority.HIGH: 3,
    TaskPriority.URGENT: 4,
}


class TaskKind(str, Enum):
    CALL = "call"
    VISIT = "visit"
    ADMIN = "admin"


class AppointmentStatus(str, Enum):
    SCHEDULED = "SCHEDULED"
    CONFIRMED = "CONFIRMED"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"
    NO_SHOW = "NO_SHOW"


UPCOMING_APPOINTMENT_STATUSES = (AppointmentStatus.SCHEDULED, AppointmentStatus.CONFIRMED)


class AppointmentKind(str, Enum):
    VISITE = "visite"
    SIGNATURE = "signature"
    ESTIMATION = "estimation"


class CommunicationType(str, Enum):
    EMAIL = "EMAIL"
    SMS = "SMS"
    CALL = "CALL"
    LETTER = "LETTER"
    OTHER = "OTHER"


class CommunicationStatus(str, Enum):
    SENT = "SENT"
    DELIVERED = "DELIVERED"
    READ = "READ"
    FAILED = "FAILED"


UNREAD_COMMUNICATION_STATUSES = (CommunicationStatus.SENT, CommunicationStatus.DELIVERED)


class DocumentType(str, Enum):
    CONTRACT = "CONTRACT"
    INVOICE = "INVOICE"
    PHOTO = "PHOTO"
    IDENTITY = "IDENTITY"
    PROPERTY_DOC = "PROPERTY_DOC"
    OTHER = "OTHER"

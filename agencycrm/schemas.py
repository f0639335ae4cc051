# agencycrm/schemas.py
from __future__ import annotations

import json
from datetime import date, datetime
from typing import Annotated, Any, Generic, List, Optional, TypeVar

from pydantic import AfterValidator, BaseModel, ConfigDict, EmailStr, Field, model_validator
from pydantic.alias_generators import to_camel

from .domain.roles import Role
from .domain.statuses import (
    AppointmentKind,
    AppointmentStatus,
    ClientType,
    CommunicationStatus,
    CommunicationType,
    ContractStatus,
    ContractType,
    DocumentType,
    MandateStatus,
    MandateType,
    OfferStatus,
    PaymentStatus,
    PaymentType,
    PropertyStatus,
    PropertyType,
    TaskKind,
    TaskPriority,
    TaskStatus,
)


def _to_local_naive(dt: datetime) -> datetime:
    # timestamps are stored naive in server-local time
    if dt.tzinfo is not None:
        return dt.astimezone().replace(tzinfo=None)
    return dt


LocalDatetime = Annotated[datetime, AfterValidator(_to_local_naive)]

T = TypeVar("T")


class ApiModel(BaseModel):
    """camelCase on the wire, snake_case in Python; both accepted on input."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
        use_enum_values=True,
        validate_default=True,
    )


# -------------------- Pagination --------------------

class Pagination(ApiModel):
    page: int
    limit: int
    total: int
    pages: int


class Page(ApiModel, Generic[T]):
    items: List[T]
    pagination: Pagination


# -------------------- Briefs (nested references) --------------------

class AgencyBrief(ApiModel):
    id: int
    code: str
    name: str


class UserBrief(ApiModel):
    id: int
    first_name: str
    last_name: str
    email: Optional[str] = None


class ClientBrief(ApiModel):
    id: int
    first_name: str
    last_name: str


class PropertyBrief(ApiModel):
    id: int
    title: str
    reference: Optional[str] = None


# -------------------- Auth --------------------

class VerifyAgencyIn(ApiModel):
    code: str = Field(min_length=1)


class VerifyAgencyOut(ApiModel):
    agency: AgencyBrief


class LoginIn(ApiModel):
    email: str = Field(min_length=1)
    password: str = Field(min_length=1)
    agency_code: str = Field(min_length=1)


class UserOut(ApiModel):
    id: int
    email: str
    first_name: str
    last_name: str
    phone: Optional[str] = None
    avatar: Optional[str] = None
    role: str
    agency_id: Optional[int] = None
    is_active: bool
    last_login_at: Optional[datetime] = None
    created_at: datetime


class LoginOut(ApiModel):
    token: str
    user: UserOut
    agency: Optional[AgencyBrief] = None


class MeOut(ApiModel):
    user: UserOut
    agency: Optional[AgencyBrief] = None


# -------------------- Agencies --------------------

class AgencyFields(ApiModel):
    email: Optional[EmailStr] = None
    phone: Optional[str] = None
    address: Optional[str] = None
    city: Optional[str] = None
    postal_code: Optional[str] = None
    country: Optional[str] = None
    website: Optional[str] = None
    siret: Optional[str] = None
    description: Optional[str] = None


class AgencyCreate(AgencyFields):
    code: str = Field(min_length=1, max_length=40)
    name: str = Field(min_length=1, max_length=160)


class AgencyUpdate(AgencyFields):
    code: Optional[str] = Field(default=None, min_length=1, max_length=40)
    name: Optional[str] = Field(default=None, min_length=1, max_length=160)
    is_active: Optional[bool] = None


class AgencySettingsUpdate(AgencyFields):
    name: Optional[str] = Field(default=None, min_length=1, max_length=160)


class AgencyOut(AgencyFields):
    id: int
    code: str
    name: str
    email: Optional[str] = None
    is_active: bool
    created_at: datetime


class AgencyCounts(ApiModel):
    total_properties: int
    available_properties: int
    sold_properties: int
    total_contracts: int
    active_contracts: int
    total_clients: int
    total_appointments: int
    upcoming_appointments: int


# -------------------- Users --------------------

class UserCreate(ApiModel):
    email: EmailStr
    password: str = Field(min_length=6)
    first_name: str = Field(min_length=1)
    last_name: str = Field(min_length=1)
    phone: Optional[str] = None
    role: Role = Role.AGENT
    agency_id: Optional[int] = None
    is_active: bool = True


class UserUpdate(ApiModel):
    email: Optional[EmailStr] = None
    password: Optional[str] = Field(default=None, min_length=6)
    first_name: Optional[str] = Field(default=None, min_length=1)
    last_name: Optional[str] = Field(default=None, min_length=1)
    phone: Optional[str] = None
    avatar: Optional[str] = None
    role: Optional[Role] = None
    is_active: Optional[bool] = None
    # required when a super admin is moved into an agency role
    agency_id: Optional[int] = None


# -------------------- Clients --------------------

class ClientBase(ApiModel):
    first_name: str = Field(min_length=1)
    last_name: str = Field(min_length=1)
    email: Optional[EmailStr] = None
    phone: str = Field(min_length=1)
    address: Optional[str] = None
    city: Optional[str] = None
    postal_code: Optional[str] = None
    country: Optional[str] = None
    client_type: ClientType = ClientType.PROSPECT
    notes: Optional[str] = None


class ClientCreate(ClientBase):
    user_id: Optional[int] = None
    agency_id: Optional[int] = None


class ClientUpdate(ApiModel):
    first_name: Optional[str] = Field(default=None, min_length=1)
    last_name: Optional[str] = Field(default=None, min_length=1)
    email: Optional[EmailStr] = None
    phone: Optional[str] = Field(default=None, min_length=1)
    address: Optional[str] = None
    city: Optional[str] = None
    postal_code: Optional[str] = None
    country: Optional[str] = None
    client_type: Optional[ClientType] = None
    notes: Optional[str] = None
    user_id: Optional[int] = None


class ClientOut(ClientBase):
    id: int
    agency_id: int
    user_id: Optional[int] = None
    email: Optional[str] = None
    user: Optional[UserBrief] = None
    created_at: datetime
    updated_at: datetime


# -------------------- Properties --------------------

class PropertyBase(ApiModel):
    title: str = Field(min_length=1)
    description: Optional[str] = None
    type: PropertyType
    status: PropertyStatus = PropertyStatus.AVAILABLE
    address: str = Field(min_length=1)
    city: str = Field(min_length=1)
    postal_code: Optional[str] = None
    country: Optional[str] = "France"
    price: float = Field(ge=0)
    surface: float = Field(ge=0)
    rooms: Optional[int] = Field(default=None, ge=0)
    bedrooms: Optional[int] = Field(default=None, ge=0)
    bathrooms: Optional[int] = Field(default=None, ge=0)
    floor: Optional[int] = None
    has_elevator: bool = False
    has_parking: bool = False
    has_balcony: bool = False
    has_garden: bool = False
    year_built: Optional[int] = None
    energy_class: Optional[str] = Field(default=None, max_length=2)


class PropertyCreate(PropertyBase):
    client_id: Optional[int] = None
    user_id: Optional[int] = None
    agency_id: Optional[int] = None


class PropertyUpdate(ApiModel):
    title: Optional[str] = Field(default=None, min_length=1)
    description: Optional[str] = None
    type: Optional[PropertyType] = None
    status: Optional[PropertyStatus] = None
    address: Optional[str] = Field(default=None, min_length=1)
    city: Optional[str] = Field(default=None, min_length=1)
    postal_code: Optional[str] = None
    country: Optional[str] = None
    price: Optional[float] = Field(default=None, ge=0)
    surface: Optional[float] = Field(default=None, ge=0)
    rooms: Optional[int] = Field(default=None, ge=0)
    bedrooms: Optional[int] = Field(default=None, ge=0)
    bathrooms: Optional[int] = Field(default=None, ge=0)
    floor: Optional[int] = None
    has_elevator: Optional[bool] = None
    has_parking: Optional[bool] = None
    has_balcony: Optional[bool] = None
    has_garden: Optional[bool] = None
    year_built: Optional[int] = None
    energy_class: Optional[str] = Field(default=None, max_length=2)
    client_id: Optional[int] = None
    user_id: Optional[int] = None


class PhotoOut(ApiModel):
    id: int
    property_id: int
    filename: str
    url: str
    is_main: bool
    sort_order: int
    created_at: datetime


class PropertyOut(PropertyBase):
    id: int
    agency_id: int
    reference: str
    client_id: Optional[int] = None
    user_id: Optional[int] = None
    user: Optional[UserBrief] = None
    client: Optional[ClientBrief] = None
    photos: List[PhotoOut] = Field(default_factory=list)
    created_at: datetime
    updated_at: datetime


# -------------------- Contracts --------------------

class ContractCreate(ApiModel):
    property_id: int
    client_id: int
    type: ContractType
    status: ContractStatus = ContractStatus.DRAFT
    start_date: LocalDatetime
    end_date: Optional[LocalDatetime] = None
    signed_date: Optional[LocalDatetime] = None
    price: float = Field(ge=0)
    commission: Optional[float] = Field(default=None, ge=0)
    commission_rate: Optional[float] = Field(default=None, ge=0, le=100)
    notes: Optional[str] = None
    user_id: Optional[int] = None
    agency_id: Optional[int] = None


class ContractUpdate(ApiModel):
    type: Optional[ContractType] = None
    status: Optional[ContractStatus] = None
    start_date: Optional[LocalDatetime] = None
    end_date: Optional[LocalDatetime] = None
    signed_date: Optional[LocalDatetime] = None
    price: Optional[float] = Field(default=None, ge=0)
    commission: Optional[float] = Field(default=None, ge=0)
    commission_rate: Optional[float] = Field(default=None, ge=0, le=100)
    notes: Optional[str] = None
    user_id: Optional[int] = None


class ContractOut(ApiModel):
    id: int
    agency_id: int
    contract_number: str
    type: str
    status: str
    property_id: int
    client_id: int
    user_id: Optional[int] = None
    start_date: datetime
    end_date: Optional[datetime] = None
    signed_date: Optional[datetime] = None
    price: float
    commission: Optional[float] = None
    commission_rate: Optional[float] = None
    notes: Optional[str] = None
    property: Optional[PropertyBrief] = None
    client: Optional[ClientBrief] = None
    user: Optional[UserBrief] = None
    created_at: datetime
    updated_at: datetime


# -------------------- Mandates --------------------

class MandateCreate(ApiModel):
    property_id: int
    client_id: int
    type: MandateType
    status: MandateStatus = MandateStatus.ACTIVE
    start_date: LocalDatetime
    end_date: Optional[LocalDatetime] = None
    price: Optional[float] = Field(default=None, ge=0)
    commission_rate: Optional[float] = Field(default=None, ge=0, le=100)
    notes: Optional[str] = None
    user_id: Optional[int] = None
    agency_id: Optional[int] = None


class MandateUpdate(ApiModel):
    type: Optional[MandateType] = None
    status: Optional[MandateStatus] = None
    start_date: Optional[LocalDatetime] = None
    end_date: Optional[LocalDatetime] = None
    price: Optional[float] = Field(default=None, ge=0)
    commission_rate: Optional[float] = Field(default=None, ge=0, le=100)
    notes: Optional[str] = None
    user_id: Optional[int] = None


class MandateOut(ApiModel):
    id: int
    agency_id: int
    mandate_number: str
    type: str
    status: str
    property_id: int
    client_id: int
    user_id: Optional[int] = None
    start_date: datetime
    end_date: Optional[datetime] = None
    price: Optional[float] = None
    commission_rate: Optional[float] = None
    notes: Optional[str] = None
    property: Optional[PropertyBrief] = None
    client: Optional[ClientBrief] = None
    user: Optional[UserBrief] = None
    created_at: datetime


# -------------------- Offers --------------------

class OfferCreate(ApiModel):
    property_id: int
    client_id: int
    amount: float = Field(gt=0)
    conditions: Optional[str] = None
    notes: Optional[str] = None
    submitted_date: Optional[LocalDatetime] = None
    user_id: Optional[int] = None
    agency_id: Optional[int] = None


class OfferUpdate(ApiModel):
    amount: Optional[float] = Field(default=None, gt=0)
    status: Optional[OfferStatus] = None
    conditions: Optional[str] = None
    notes: Optional[str] = None


class OfferOut(ApiModel):
    id: int
    agency_id: int
    offer_number: str
    amount: float
    status: str
    conditions: Optional[str] = None
    notes: Optional[str] = None
    property_id: int
    client_id: int
    user_id: Optional[int] = None
    submitted_date: datetime
    response_date: Optional[datetime] = None
    property: Optional[PropertyBrief] = None
    client: Optional[ClientBrief] = None
    created_at: datetime


# -------------------- Payments --------------------

class PaymentCreate(ApiModel):
    amount: float = Field(gt=0)
    type: PaymentType
    status: PaymentStatus = PaymentStatus.PENDING
    due_date: Optional[LocalDatetime] = None
    method: Optional[str] = None
    reference: Optional[str] = None
    notes: Optional[str] = None
    contract_id: Optional[int] = None
    client_id: Optional[int] = None
    user_id: Optional[int] = None
    agency_id: Optional[int] = None


class PaymentUpdate(ApiModel):
    amount: Optional[float] = Field(default=None, gt=0)
    type: Optional[PaymentType] = None
    status: Optional[PaymentStatus] = None
    due_date: Optional[LocalDatetime] = None
    method: Optional[str] = None
    reference: Optional[str] = None
    notes: Optional[str] = None


class PaymentOut(ApiModel):
    id: int
    agency_id: int
    payment_number: str
    amount: float
    status: str
    type: str
    due_date: Optional[datetime] = None
    paid_date: Optional[datetime] = None
    method: Optional[str] = None
    reference: Optional[str] = None
    notes: Optional[str] = None
    contract_id: Optional[int] = None
    client_id: Optional[int] = None
    user_id: Optional[int] = None
    client: Optional[ClientBrief] = None
    created_at: datetime


# -------------------- Tasks --------------------

class TaskCreate(ApiModel):
    title: str = Field(min_length=1)
    description: Optional[str] = None
    status: TaskStatus = TaskStatus.PENDING
    priority: TaskPriority = TaskPriority.MEDIUM
    kind: Optional[TaskKind] = None
    due_date: Optional[LocalDatetime] = None
    user_id: Optional[int] = None
    property_id: Optional[int] = None
    client_id: Optional[int] = None
    contract_id: Optional[int] = None
    agency_id: Optional[int] = None


class TaskUpdate(ApiModel):
    title: Optional[str] = Field(default=None, min_length=1)
    description: Optional[str] = None
    status: Optional[TaskStatus] = None
    priority: Optional[TaskPriority] = None
    kind: Optional[TaskKind] = None
    due_date: Optional[LocalDatetime] = None
    user_id: Optional[int] = None


class TaskOut(ApiModel):
    id: int
    agency_id: int
    title: str
    description: Optional[str] = None
    status: str
    priority: str
    kind: Optional[str] = None
    due_date: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    user_id: Optional[int] = None
    property_id: Optional[int] = None
    client_id: Optional[int] = None
    contract_id: Optional[int] = None
    user: Optional[UserBrief] = None
    created_at: datetime


# -------------------- Appointments --------------------

class AppointmentCreate(ApiModel):
    title: str = Field(min_length=1)
    description: Optional[str] = None
    start_date: LocalDatetime
    end_date: LocalDatetime
    location: Optional[str] = None
    status: AppointmentStatus = AppointmentStatus.SCHEDULED
    kind: Optional[AppointmentKind] = None
    user_id: Optional[int] = None
    client_id: Optional[int] = None
    property_id: Optional[int] = None
    agency_id: Optional[int] = None

    @model_validator(mode="after")
    def _end_after_start(self):
        if self.end_date < self.start_date:
            raise ValueError("endDate must not be before startDate")
        return self


class AppointmentUpdate(ApiModel):
    title: Optional[str] = Field(default=None, min_length=1)
    description: Optional[str] = None
    start_date: Optional[LocalDatetime] = None
    end_date: Optional[LocalDatetime] = None
    location: Optional[str] = None
    status: Optional[AppointmentStatus] = None
    kind: Optional[AppointmentKind] = None
    user_id: Optional[int] = None


class AppointmentOut(ApiModel):
    id: int
    agency_id: int
    title: str
    description: Optional[str] = None
    start_date: datetime
    end_date: datetime
    location: Optional[str] = None
    status: str
    kind: Optional[str] = None
    user_id: Optional[int] = None
    client_id: Optional[int] = None
    property_id: Optional[int] = None
    user: Optional[UserBrief] = None
    client: Optional[ClientBrief] = None
    property: Optional[PropertyBrief] = None
    created_at: datetime


# -------------------- Communications --------------------

class CommunicationCreate(ApiModel):
    type: CommunicationType
    subject: Optional[str] = None
    content: Optional[str] = None
    recipient: str = Field(min_length=1)
    status: CommunicationStatus = CommunicationStatus.SENT
    client_id: Optional[int] = None
    property_id: Optional[int] = None
    agency_id: Optional[int] = None


class CommunicationUpdate(ApiModel):
    status: CommunicationStatus


class CommunicationOut(ApiModel):
    id: int
    agency_id: int
    type: str
    subject: Optional[str] = None
    content: Optional[str] = None
    recipient: str
    status: str
    sent_at: datetime
    user_id: Optional[int] = None
    client_id: Optional[int] = None
    property_id: Optional[int] = None
    user: Optional[UserBrief] = None
    client: Optional[ClientBrief] = None


# -------------------- Documents --------------------

class DocumentOut(ApiModel):
    id: int
    agency_id: int
    filename: str
    original_name: str
    mime_type: Optional[str] = None
    size: int
    type: str
    description: Optional[str] = None
    user_id: Optional[int] = None
    property_id: Optional[int] = None
    contract_id: Optional[int] = None
    client_id: Optional[int] = None
    url: str = ""
    created_at: datetime

    @model_validator(mode="after")
    def _fill_url(self):
        if not self.url:
            self.url = f"/uploads/{self.filename}"
        return self


# -------------------- Saved searches --------------------

class SavedSearchCreate(ApiModel):
    name: str = Field(min_length=1, max_length=160)
    filters: dict[str, Any] = Field(default_factory=dict)
    is_active: bool = True
    agency_id: Optional[int] = None


class SavedSearchUpdate(ApiModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=160)
    filters: Optional[dict[str, Any]] = None
    is_active: Optional[bool] = None


class SavedSearchOut(ApiModel):
    id: int
    agency_id: int
    user_id: int
    name: str
    filters: dict[str, Any] = Field(default_factory=dict)
    is_active: bool
    created_at: datetime

    @model_validator(mode="before")
    @classmethod
    def _parse_filters(cls, data: Any) -> Any:
        if isinstance(data, dict):
            return data
        raw = getattr(data, "filters_json", None) or "{}"
        try:
            parsed = json.loads(raw)
        except ValueError:
            parsed = {}
        return {
            "id": data.id,
            "agency_id": data.agency_id,
            "user_id": data.user_id,
            "name": data.name,
            "filters": parsed if isinstance(parsed, dict) else {},
            "is_active": data.is_active,
            "created_at": data.created_at,
        }


# -------------------- Analytics --------------------

class RevenueReportOut(ApiModel):
    contracts: List[ContractOut]
    total_commission: float
    start_date: Optional[date] = None
    end_date: Optional[date] = None


class AgencyStatsOut(ApiModel):
    stats: AgencyCounts
    recent_properties: List[PropertyOut]
    upcoming_appointments: List[AppointmentOut]

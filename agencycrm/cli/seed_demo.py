# agencycrm/cli/seed_demo.py
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from ..db import SessionLocal
from ..domain.statuses import ContractStatus, ContractType, TaskPriority
from ..models import Agency, Appointment, Client, Contract, Property, Task, User
from ..services.auth_service import hash_password, normalize_email
from ..services.numbering import next_number

DEMO_AGENCY_CODE = "6165"
DEMO_AGENCY_NAME = "Mon Agence Immobilière"
SUPER_ADMIN_EMAIL = "superadmin@crm.local"
ADMIN_EMAIL = "admin@example.com"

DEMO_AGENTS = (
    ("marie.martin@example.com", "Marie", "Martin"),
    ("jean.dupont@example.com", "Jean", "Dupont"),
)

DEMO_CLIENTS = (
    ("Alain", "Moreau", "alain.moreau@email.com", "+33 6 11 22 33 44", "Paris", "BUYER"),
    ("Catherine", "Lefebvre", "catherine.lefebvre@email.com", "+33 6 22 33 44 55", "Lyon", "SELLER"),
    ("Isabelle", "Petit", "isabelle.petit@email.com", "+33 6 44 55 66 77", "Marseille", "TENANT"),
)


@dataclass(frozen=True)
class SeedResult:
    agency_code: str
    super_admin_email: str
    admin_email: str
    agent_emails: list[str] = field(default_factory=list)
    property_id: Optional[int] = None


def _get_or_create_agency(db: Session, code: str, name: str) -> Agency:
    row = db.scalar(select(Agency).where(Agency.code == code))
    if row:
        return row
    row = Agency(code=code, name=name, email="contact@agence.com", city="Paris", country="France")
    db.add(row)
    db.commit()
    db.refresh(row)
    return row


def _get_or_create_user(
    db: Session,
    email: str,
    *,
    first_name: str,
    last_name: str,
    role: str,
    password: str,
    agency_id: Optional[int],
) -> User:
    email = normalize_email(email)
    row = db.scalar(select(User).where(User.email == email))
    if row:
        return row
    row = User(
        email=email,
        password_hash=hash_password(password),
        first_name=first_name,
        last_name=last_name,
        role=role,
        agency_id=agency_id,
    )
    db.add(row)
    db.commit()
    db.refresh(row)
    return row


def _seed_records(db: Session, agency: Agency, agents: list[User]) -> int:
    """Sample portfolio for an empty agency. Returns the first property id."""
    existing = db.scalar(select(Property).where(Property.agency_id == agency.id).limit(1))
    if existing:
        return int(existing.id)

    now = datetime.now()
    owner = agents[0]

    clients = []
    for first, last, email, phone, city, client_type in DEMO_CLIENTS:
        c = Client(
            agency_id=agency.id,
            user_id=owner.id,
            first_name=first,
            last_name=last,
            email=email,
            phone=phone,
            city=city,
            client_type=client_type,
        )
        db.add(c)
        clients.append(c)
    db.flush()

    flat = Property(
        agency_id=agency.id,
        user_id=owner.id,
        client_id=clients[1].id,
        reference=next_number(db, "PROP", agency.id),
        title="Appartement 3 pièces centre-ville",
        description="Bel appartement lumineux avec balcon, proche des transports.",
        type="APARTMENT",
        address="15 Rue de la République",
        city="Lyon",
        postal_code="69002",
        price=285000,
        surface=75,
        rooms=3,
        bedrooms=2,
        bathrooms=1,
        has_balcony=True,
    )
    house = Property(
        agency_id=agency.id,
        user_id=agents[-1].id,
        reference=next_number(db, "PROP", agency.id),
        title="Maison familiale avec jardin",
        type="HOUSE",
        address="8 Chemin des Vignes",
        city="Toulouse",
        postal_code="31000",
        price=420000,
        surface=140,
        rooms=6,
        bedrooms=4,
        bathrooms=2,
        has_garden=True,
        has_parking=True,
    )
    db.add_all([flat, house])
    db.flush()

    db.add(
        Contract(
            agency_id=agency.id,
            user_id=owner.id,
            property_id=flat.id,
            client_id=clients[0].id,
            contract_number=next_number(db, "CTR", agency.id),
            type=ContractType.SALE.value,
            status=ContractStatus.COMPLETED.value,
            start_date=now - timedelta(days=20),
            signed_date=now - timedelta(days=3),
            price=285000,
            commission=8550,
            commission_rate=3,
        )
    )
    db.add(
        Task(
            agency_id=agency.id,
            user_id=owner.id,
            client_id=clients[0].id,
            title="Appeler M. Moreau pour le compromis",
            priority=TaskPriority.HIGH.value,
            due_date=now + timedelta(days=1),
        )
    )
    db.add(
        Appointment(
            agency_id=agency.id,
            user_id=agents[-1].id,
            property_id=house.id,
            client_id=clients[2].id,
            title="Visite maison Toulouse",
            start_date=now + timedelta(days=2),
            end_date=now + timedelta(days=2, hours=1),
            location=house.address,
        )
    )
    db.commit()
    return int(flat.id)


def seed_demo(
    *,
    agency_code: str = DEMO_AGENCY_CODE,
    agency_name: str = DEMO_AGENCY_NAME,
    admin_password: str = "admin123",
    agent_password: str = "agent123",
    create_sample_records: bool = True,
) -> SeedResult:
    db = SessionLocal()
    try:
        _get_or_create_user(
            db,
            SUPER_ADMIN_EMAIL,
            first_name="Super",
            last_name="Admin",
            role="SUPER_ADMIN",
            password=admin_password,
            agency_id=None,
        )

        agency = _get_or_create_agency(db, agency_code, agency_name)
        admin = _get_or_create_user(
            db,
            ADMIN_EMAIL,
            first_name="Admin",
            last_name="Agence",
            role="ADMIN",
            password=admin_password,
            agency_id=agency.id,
        )

        agents = [
            _get_or_create_user(
                db,
                email,
                first_name=first,
                last_name=last,
                role="AGENT",
                password=agent_password,
                agency_id=agency.id,
            )
            for email, first, last in DEMO_AGENTS
        ]

        property_id: Optional[int] = None
        if create_sample_records:
            property_id = _seed_records(db, agency, agents)

        return SeedResult(
            agency_code=agency.code,
            super_admin_email=SUPER_ADMIN_EMAIL,
            admin_email=admin.email,
            agent_emails=[a.email for a in agents],
            property_id=property_id,
        )
    finally:
        db.close()

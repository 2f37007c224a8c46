"""Fixtures partagées: base SQLite en mémoire, client API et faux Lengo Pay."""

import json
import os
import uuid
from datetime import datetime, timedelta
from decimal import Decimal
from typing import Any, Callable, Dict, Generator, List

# Variables d'environnement de test, avant tout import de l'application
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["DEBUG"] = "false"
os.environ["ENVIRONMENT"] = "test"
os.environ["LOG_FILE"] = "logs/tests.log"
os.environ["LENGO_API_KEY"] = "dGVzdC1sZW5nby1rZXk="
os.environ["LENGO_SITE_ID"] = "site-test"
os.environ["LENGO_WEBHOOK_SECRET"] = "whsec_test_secret"

import httpx
import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from dashboard_partenaire.api.deps import get_lengo_client
from dashboard_partenaire.core.security import compute_webhook_signature, create_access_token, get_password_hash
from dashboard_partenaire.database import Base, get_db
from dashboard_partenaire.main import app
from dashboard_partenaire.models import AdminUser, Employee, Partner, Remboursement
from dashboard_partenaire.services.lengo_client import LengoPayClient


engine = create_engine(
    "sqlite://",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

WEBHOOK_SECRET = os.environ["LENGO_WEBHOOK_SECRET"]
ADMIN_PASSWORD = "MotDePasse123"


class FakeLengo:
    """Faux endpoint de statut Lengo Pay branché via httpx.MockTransport."""

    def __init__(self):
        self.entries: Dict[str, Any] = {}
        self.requests: List[httpx.Request] = []

    def respond(self, pay_id: str, status: str = "SUCCESS", status_code: int = 200, **fields) -> None:
        body = {"status": status, "pay_id": pay_id, "date": None, "amount": 150000}
        body.update(fields)
        self.entries[pay_id] = (status_code, body)

    def respond_raw(self, pay_id: str, status_code: int, text: str) -> None:
        self.entries[pay_id] = (status_code, text)

    def raise_for(self, pay_id: str, factory: Callable[[httpx.Request], Exception]) -> None:
        self.entries[pay_id] = factory

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        pay_id = json.loads(request.content)["pay_id"]
        entry = self.entries.get(pay_id)
        if entry is None:
            return httpx.Response(404, text="Transaction introuvable")
        if callable(entry):
            raise entry(request)
        status_code, body = entry
        if isinstance(body, str):
            return httpx.Response(status_code, text=body)
        return httpx.Response(status_code, json=body)

    def client(self) -> LengoPayClient:
        return LengoPayClient(
            api_url="https://lengo.test/api/v1/transaction/status",
            site_id="site-test",
            api_key="dGVzdC1sZW5nby1rZXk=",
            timeout=1.0,
            transport=httpx.MockTransport(self.handler),
        )


def timeout_error(request: httpx.Request) -> Exception:
    return httpx.ReadTimeout("Délai dépassé", request=request)


def signed_headers(body: bytes) -> Dict[str, str]:
    return {
        "Content-Type": "application/json",
        "X-Lengopay-Signature": compute_webhook_signature(body, WEBHOOK_SECRET),
    }


@pytest.fixture
def db() -> Generator[Session, None, None]:
    """Base de test recréée pour chaque test."""
    Base.metadata.create_all(bind=engine)
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def fake_lengo() -> FakeLengo:
    return FakeLengo()


@pytest.fixture
def client(db: Session, fake_lengo: FakeLengo) -> Generator[TestClient, None, None]:
    """Client FastAPI branché sur la base de test et le faux Lengo Pay."""

    def override_get_db():
        yield db

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_lengo_client] = fake_lengo.client
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def partner(db: Session) -> Partner:
    p = Partner(company_name="Entreprise Test", hr_email="rh@entreprise.gn", status="approved")
    db.add(p)
    db.commit()
    db.refresh(p)
    return p


@pytest.fixture
def other_partner(db: Session) -> Partner:
    p = Partner(company_name="Autre Entreprise", hr_email="rh@autre.gn", status="approved")
    db.add(p)
    db.commit()
    db.refresh(p)
    return p


@pytest.fixture
def employee(db: Session, partner: Partner) -> Employee:
    e = Employee(
        partner_id=partner.id,
        nom="Diallo",
        prenom="Mamadou",
        telephone="+224620000001",
        poste="Comptable",
        salaire_net=Decimal("2500000"),
    )
    db.add(e)
    db.commit()
    db.refresh(e)
    return e


@pytest.fixture
def admin_user(db: Session, partner: Partner) -> AdminUser:
    admin = AdminUser(
        email="responsable@entreprise.gn",
        display_name="Responsable Test",
        hashed_password=get_password_hash(ADMIN_PASSWORD),
        role="responsable",
        partenaire_id=partner.id,
    )
    db.add(admin)
    db.commit()
    db.refresh(admin)
    return admin


def _headers_for(admin: AdminUser) -> Dict[str, str]:
    token = create_access_token(admin.id, admin.role, admin.partenaire_id)
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def auth_headers(admin_user: AdminUser) -> Dict[str, str]:
    return _headers_for(admin_user)


@pytest.fixture
def rh_headers(db: Session, partner: Partner) -> Dict[str, str]:
    """Administrateur RH: pas de droit d'annulation."""
    admin = AdminUser(
        email="rh@entreprise.gn",
        display_name="RH Test",
        hashed_password="non-utilise",
        role="rh",
        partenaire_id=partner.id,
    )
    db.add(admin)
    db.commit()
    db.refresh(admin)
    return _headers_for(admin)


@pytest.fixture
def make_remboursement(db: Session, partner: Partner, employee: Employee):
    """Fabrique de remboursements EN_ATTENTE, surchargeables champ par champ."""

    def _make(**overrides) -> Remboursement:
        data = {
            "pay_id": f"PAY-{uuid.uuid4().hex[:10]}",
            "employe_id": employee.id,
            "partenaire_id": partner.id,
            "montant_total_remboursement": Decimal("150000"),
            "frais_service": Decimal("9750"),
            "statut": "EN_ATTENTE",
            "date_limite_remboursement": datetime.utcnow() + timedelta(days=10),
        }
        data.update(overrides)
        remboursement = Remboursement(**data)
        db.add(remboursement)
        db.commit()
        db.refresh(remboursement)
        return remboursement

    return _make


@pytest.fixture
def sign() -> Callable[[bytes], Dict[str, str]]:
    """En-têtes d'un webhook correctement signé."""
    return signed_headers


@pytest.fixture
def lengo_timeout() -> Callable[[httpx.Request], Exception]:
    return timeout_error

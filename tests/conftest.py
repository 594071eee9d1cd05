import pytest
from typing import Generator, Dict, Any
from datetime import date
from decimal import Decimal
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from fastapi.testclient import TestClient
import redis
from unittest.mock import Mock

from app.main import app
from app.db.base import Base
from app.db.session import get_db
from app.core.config import get_settings
from app.core.exceptions import PaymentSessionFailed, NotificationFailed
from app.core.redis import get_redis_client
from app.models import (
    Application, AgencyApplication, ApplicationType, Sex
)
from app.services.notifications import get_notification_service
from app.services.payment_gateway import get_payment_gateway
from app.services.storage import StorageService, get_storage_service
from app.services.submission import SubmissionService

# Test database
SQLALCHEMY_DATABASE_URL = "sqlite:///./test.db"

engine = create_engine(
    SQLALCHEMY_DATABASE_URL, connect_args={"check_same_thread": False}
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


class FakeStorage:
    """In-memory stand-in for the S3 document store"""

    build_document_key = staticmethod(StorageService.build_document_key)

    def __init__(self):
        self.objects: Dict[str, bytes] = {}
        self.fail = False

    async def upload_file(self, file_data: bytes, object_key: str, content_type: str) -> str:
        if self.fail:
            raise OSError("storage unavailable")
        self.objects[object_key] = file_data
        return object_key


class FakePaymentGateway:
    """Records payment session requests and returns a checkout URL"""

    def __init__(self):
        self.requests = []
        self.fail = False

    async def create_session(self, amount, reference, description, return_url, cancel_url) -> str:
        self.requests.append({
            "amount": amount,
            "reference": reference,
            "description": description,
            "return_url": return_url,
            "cancel_url": cancel_url,
        })
        if self.fail:
            raise PaymentSessionFailed("gateway unavailable", reference=reference)
        return f"https://pay.sisp.cv/checkout?reference={reference}"


class FakeNotifier:
    """Collects outgoing emails"""

    def __init__(self):
        self.sent = []
        self.fail = False

    async def send_email(self, email: Dict[str, Any]) -> bool:
        if self.fail:
            raise NotificationFailed("email service unavailable")
        self.sent.append(email)
        return True


@pytest.fixture(scope="function")
def db() -> Generator:
    """Create a fresh database for each test"""
    Base.metadata.create_all(bind=engine)
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def storage() -> FakeStorage:
    return FakeStorage()


@pytest.fixture
def payments() -> FakePaymentGateway:
    return FakePaymentGateway()


@pytest.fixture
def notifier() -> FakeNotifier:
    return FakeNotifier()


@pytest.fixture
def submission_service(db, storage, payments, notifier) -> SubmissionService:
    return SubmissionService(db, storage, payments, notifier)


@pytest.fixture
def mock_redis():
    """Mock Redis client"""
    mock = Mock(spec=redis.Redis)
    mock.get.return_value = None
    mock.incr.return_value = 1
    mock.expire.return_value = True
    mock.ping.return_value = True
    return mock


@pytest.fixture(scope="function")
def client(db, storage, payments, notifier, mock_redis) -> Generator:
    """Create a test client with overridden dependencies"""
    def override_get_db():
        try:
            yield db
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_redis_client] = lambda: mock_redis
    app.dependency_overrides[get_storage_service] = lambda: storage
    app.dependency_overrides[get_payment_gateway] = lambda: payments
    app.dependency_overrides[get_notification_service] = lambda: notifier

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()


@pytest.fixture
def settings():
    """Get test settings"""
    return get_settings()


@pytest.fixture
def tourist_payload() -> Dict[str, Any]:
    return {
        "givenNames": "Maria Fernanda",
        "lastNames": "Silva Costa",
        "sex": "F",
        "birthDate": "1988-04-12",
        "birthPlace": "Lisboa",
        "residenceCountry": "Portugal",
        "nationality": "Portuguese",
        "passportNumber": "cb123456",
        "passportValidity": "2031-06-30",
        "passportIssuer": "SEF Portugal",
        "flightNumber": "TP1551",
        "arrivalDate": "2026-12-20",
        "departureDate": "2027-01-03",
        "arrivalCity": "Praia",
        "hasExistingVisa": False,
        "accommodationName": "Hotel Praia Mar",
        "accommodationAddress": "Avenida Marginal 12",
        "accommodationCity": "Praia",
        "email": "maria.silva@correio.pt",
        "acceptedTerms": True,
    }


@pytest.fixture
def agency_payload(tourist_payload) -> Dict[str, Any]:
    payload = dict(tourist_payload)
    payload.pop("email")
    payload.update({
        "agencyName": "Morabeza Viagens",
        "agencyContact": "Joana Tavares",
        "agencyEmail": "reservas@morabeza-viagens.cv",
        "agencyPhone": "+238 260 1234",
        "agencyAddress": "Rua Serpa Pinto 45, Plateau",
    })
    return payload


@pytest.fixture
def application(db) -> Application:
    """A stored agency application waiting for payment"""
    application = Application(
        type=ApplicationType.AGENCY,
        language="pt",
        given_names="João",
        last_names="Monteiro",
        sex=Sex.MALE,
        birth_date=date(1979, 9, 2),
        birth_place="Porto",
        residence_country="Portugal",
        nationality="Portuguese",
        passport_number="P9876543",
        passport_validity=date(2030, 1, 15),
        passport_issuer="SEF Portugal",
        flight_number="VR602",
        arrival_date=date(2026, 11, 5),
        departure_date=date(2026, 11, 19),
        arrival_city="Sal",
        has_existing_visa=False,
        accommodation_name="Hotel Morabeza",
        accommodation_address="Avenida 5 de Julho",
        accommodation_city="Santa Maria",
        payment_amount=Decimal("63.55"),
    )
    application.agency = AgencyApplication(
        agency_name="Morabeza Viagens",
        agency_contact="Joana Tavares",
        agency_email="reservas@morabeza-viagens.cv",
        agency_phone="+238 260 1234",
        agency_address="Rua Serpa Pinto 45, Plateau",
    )
    db.add(application)
    db.commit()
    db.refresh(application)
    return application

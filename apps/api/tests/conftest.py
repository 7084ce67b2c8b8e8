"""
Test configuration and fixtures.

Provides:
- SQLite in-memory database with a fresh schema per test
- Account fixtures (NGO, admins, volunteer)
- HTTPX AsyncClient with the get_db dependency overridden
"""
import os
from typing import AsyncGenerator, Generator

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.orm import Session

# Must be set before kindworld.core.config is imported
os.environ.setdefault("DATABASE_URL", "sqlite+pysqlite:///:memory:")
os.environ.setdefault("ENV", "test")
os.environ.setdefault("RESEND_API_KEY", "")

from kindworld.core.deps import get_db
from kindworld.db.base import Base
from kindworld.db.enums import DocumentType, Role
from kindworld.db.models import Account
from kindworld.db.session import SessionLocal, engine
from kindworld.main import app
from kindworld.schemas.verification import AddressData, DocumentData, VerificationFormData


# =============================================================================
# Database Fixtures
# =============================================================================

@pytest.fixture(scope="function")
def db_engine():
    return engine


@pytest.fixture(scope="function")
def db(db_engine) -> Generator[Session, None, None]:
    """
    Fresh schema per test.

    App code commits freely; the tables are dropped afterwards.
    """
    Base.metadata.create_all(bind=db_engine)
    session = SessionLocal()

    yield session

    session.close()
    Base.metadata.drop_all(bind=db_engine)


# =============================================================================
# Account Fixtures
# =============================================================================

def make_account(
    db: Session,
    account_id: str,
    role: Role,
    email: str | None = None,
    organization_name: str | None = None,
) -> Account:
    account = Account(
        id=account_id,
        role=role.value,
        email=email,
        display_name=account_id,
        organization_name=organization_name,
    )
    db.add(account)
    db.commit()
    return account


@pytest.fixture(scope="function")
def ngo(db: Session) -> Account:
    """NGO account that submits verification requests."""
    return make_account(
        db, "ngo-ocean-guard", Role.NGO, "team@oceanguard.org", "Ocean Guard"
    )


@pytest.fixture(scope="function")
def admins(db: Session) -> list[Account]:
    """Two platform admins, A1 and A2."""
    return [
        make_account(db, "A1", Role.ADMIN, "a1@kindworld.org"),
        make_account(db, "A2", Role.ADMIN, "a2@kindworld.org"),
    ]


@pytest.fixture(scope="function")
def volunteer(db: Session) -> Account:
    return make_account(db, "vol-1", Role.USER, "vol@example.com")


# =============================================================================
# Form Fixtures
# =============================================================================

def make_form(**overrides) -> VerificationFormData:
    data = {
        "organization_name": "Ocean Guard",
        "organization_type": "environmental",
        "contact_email": "team@oceanguard.org",
        "contact_phone": "+1 555 0100",
        "website": "https://oceanguard.org",
        "address": AddressData(
            street="1 Harbor Way",
            city="Portland",
            state="ME",
            zip_code="04101",
            country="US",
        ),
        "mission_statement": (
            "We protect coastal ecosystems through beach clean-ups, "
            "reef monitoring and community education."
        ),
    }
    data.update(overrides)
    return VerificationFormData(**data)


def make_documents(count: int = 1) -> list[DocumentData]:
    return [
        DocumentData(
            type=DocumentType.REGISTRATION,
            file_name=f"registration-{i}.pdf",
            file_url=f"blob://verification/ngo-ocean-guard/registration-{i}.pdf",
            file_size=2048,
            mime_type="application/pdf",
        )
        for i in range(count)
    ]


@pytest.fixture(scope="function")
def form() -> VerificationFormData:
    return make_form()


@pytest.fixture(scope="function")
def documents() -> list[DocumentData]:
    return make_documents()


# =============================================================================
# Client Fixtures
# =============================================================================

@pytest.fixture(scope="function")
async def client(db: Session) -> AsyncGenerator[AsyncClient, None]:
    """AsyncClient bound to the test database session."""
    def override_get_db():
        yield db

    app.dependency_overrides[get_db] = override_get_db

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test"
    ) as c:
        yield c

    app.dependency_overrides.clear()

import os

os.environ.setdefault("PROJECT_NAME", "Partner App Test")
os.environ.setdefault("SECRET_KEY", "test-secret-key")
os.environ.setdefault("SQLALCHEMY_DATABASE_URI", "sqlite://")
os.environ.setdefault("MAIL_SUPPRESS_SEND", "true")
os.environ.setdefault("MAIL_FROM", "noreply@example.com")

import pytest
from fastapi.testclient import TestClient
from sqlmodel import Session, SQLModel, create_engine
from sqlmodel.pool import StaticPool

from partner_app.api import deps
from partner_app.core.rate_limit import rate_limiter
from partner_app.core.security import create_access_token, hash_password
from partner_app.main import app
from partner_app.models.user import User
from partner_app.services.mail import MailResult


class FakeMail:
    """Records what would have been mailed; set ``fail`` to simulate an SMTP outage."""

    def __init__(self):
        self.sent = []
        self.fail = False

    def _result(self):
        if self.fail:
            return MailResult(success=False, message="Failed to send email: connection refused")
        return MailResult(success=True, message="Email sent successfully", message_id="fake-ref")

    async def send_otp(self, email, code, name=None):
        self.sent.append({"kind": "otp", "email": email, "code": code, "name": name})
        return self._result()

    async def send_welcome(self, email, name):
        self.sent.append({"kind": "welcome", "email": email, "name": name})
        return self._result()

    def codes_for(self, email):
        return [m["code"] for m in self.sent if m["kind"] == "otp" and m["email"] == email]


@pytest.fixture(name="session")
def session_fixture():
    engine = create_engine(
        "sqlite://", connect_args={"check_same_thread": False}, poolclass=StaticPool
    )
    SQLModel.metadata.create_all(engine)
    with Session(engine) as session:
        yield session


@pytest.fixture(name="mail")
def mail_fixture():
    return FakeMail()


@pytest.fixture(name="client")
def client_fixture(session: Session, mail: FakeMail):
    def get_session_override():
        return session

    app.dependency_overrides[deps.get_session] = get_session_override
    app.dependency_overrides[deps.get_mail_gateway] = lambda: mail
    client = TestClient(app)
    yield client
    app.dependency_overrides.clear()


@pytest.fixture(autouse=True)
def reset_rate_limiter():
    rate_limiter.reset()
    yield
    rate_limiter.reset()


@pytest.fixture(name="make_user")
def make_user_fixture(session: Session):
    def make_user(email="test@example.com", name=None, verified=True, password="secret123", **fields):
        user = User(
            email=email,
            name=name or email.split("@")[0].title(),
            hashed_password=hash_password(password),
            email_verified=verified,
            **fields,
        )
        session.add(user)
        session.commit()
        session.refresh(user)
        return user

    return make_user


def auth_headers(user):
    return {"Authorization": f"Bearer {create_access_token(user.id)}"}


@pytest.fixture(name="auth_headers")
def auth_headers_fixture():
    return auth_headers

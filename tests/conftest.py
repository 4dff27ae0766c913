import os
import shutil
import tempfile

_TMP_DIR = tempfile.mkdtemp(prefix="sap_awards_test_")

os.environ.update(
    {
        "ENVIRONMENT": "test",
        "SECRET_KEY": "test-secret-key",
        "DATABASE_URL": f"sqlite:///{os.path.join(_TMP_DIR, 'test.db')}",
        "UPLOAD_DIR": os.path.join(_TMP_DIR, "uploads"),
        "CERTIFICATES_DIR": os.path.join(_TMP_DIR, "uploads", "certificates"),
        "CACHE_BACKEND": "memory",
        "OUTBOX_DISPATCH": "inline",
        "OUTBOX_SWEEPER_ENABLED": "false",
        "RATE_LIMIT_ENABLED": "false",
        "STORAGE_BACKEND": "local",
        "FRONTEND_URL": "https://awards.example.com",
        "PUBLIC_API_URL": "https://api.example.com",
        "EMAIL_PROVIDER": "auto",
        "DB_LOG_SLOW_QUERIES": "false",
    }
)
for _var in (
    "REDIS_URL",
    "REDIS_HOST",
    "RESEND_API_KEY",
    "SENDGRID_API_KEY",
    "SMTP_HOST",
    "SMTP_USER",
    "SMTP_PASSWORD",
    "NOTIFY_EMAIL",
):
    os.environ.pop(_var, None)

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402

from sap_awards import config, email_service  # noqa: E402
from sap_awards.auth import hash_password  # noqa: E402
from sap_awards.cache import get_cache  # noqa: E402
from sap_awards.database import Base, SessionLocal, engine  # noqa: E402
from sap_awards.main import app  # noqa: E402
from sap_awards.models import AwardCategory, Nomination, NominationVote, User  # noqa: E402
from sap_awards.rate_limiter import reset_rate_limits  # noqa: E402

ADMIN_EMAIL = "admin@saphaniox.com"
ADMIN_PASSWORD = "correct-horse-battery"


def pytest_sessionfinish(session, exitstatus):
    shutil.rmtree(_TMP_DIR, ignore_errors=True)


@pytest.fixture(autouse=True)
def fresh_state():
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    shutil.rmtree(config.UPLOAD_DIR, ignore_errors=True)
    os.makedirs(config.UPLOAD_DIR, exist_ok=True)
    get_cache().clear()
    reset_rate_limits()
    yield


@pytest.fixture
def db():
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def sent_emails(monkeypatch):
    """Capture outgoing email instead of talking to a provider"""
    sent = []

    async def fake_send_email(to, subject, mjml_content, from_address=None, reply_to=None, attachments=None):
        sent.append(
            {
                "to": to,
                "subject": subject,
                "body": mjml_content,
                "reply_to": reply_to,
                "attachments": attachments or [],
            }
        )
        return {"id": f"test-{len(sent)}", "provider": "test"}

    monkeypatch.setattr(email_service, "send_email", fake_send_email)
    monkeypatch.setattr(config, "NOTIFY_EMAIL", "inbox@saphaniox.com")
    return sent


@pytest.fixture
def client():
    return TestClient(app)


@pytest.fixture
def admin_user(db):
    user = User(
        name="Awards Admin",
        email=ADMIN_EMAIL,
        password_hash=hash_password(ADMIN_PASSWORD),
        role="admin",
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


@pytest.fixture
def admin_client(admin_user):
    c = TestClient(app)
    response = c.post("/api/auth/login", json={"email": ADMIN_EMAIL, "password": ADMIN_PASSWORD})
    assert response.status_code == 200
    return c


@pytest.fixture
def category(db):
    cat = AwardCategory(
        name="Innovation Excellence",
        description="Recognising breakthrough products and ideas",
        icon="💡",
        icon_name="lightbulb",
    )
    db.add(cat)
    db.commit()
    db.refresh(cat)
    return cat


@pytest.fixture
def make_nomination(db, category):
    counter = {"n": 0}

    def _make(status="approved", votes=0, **fields):
        counter["n"] += 1
        n = counter["n"]
        values = {
            "slug": f"nominee-{n}-{1700000000000 + n}",
            "nominee_name": f"Nominee {n}",
            "nominee_country": "Uganda",
            "category_id": category.id,
            "nominator_name": "Jane Nominator",
            "nominator_email": f"nominator{n}@example.com",
            "status": status,
        }
        values.update(fields)
        nomination = Nomination(**values)
        db.add(nomination)
        db.flush()
        for i in range(votes):
            db.add(NominationVote(nomination_id=nomination.id, voter_email=f"fan{i}@example.com"))
        db.commit()
        db.refresh(nomination)
        return nomination

    return _make

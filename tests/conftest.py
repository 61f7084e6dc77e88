import base64

import pytest
from fastapi.testclient import TestClient

from espacestage.core.config import Settings
from espacestage.core.errors import NotFound
from espacestage.db.init import create_admin
from espacestage.db.mongodb import FileStore, StoredFile
from espacestage.db.postgres import Database
from espacestage.main import create_app
from espacestage.services.notification_service import Notifier

PASSWORD = "password123"
ADMIN_EMAIL = "admin@espacestage.app"
ADMIN_PASSWORD = "adminpass123"

CV_DATA_URL = "data:application/pdf;base64," + base64.b64encode(b"%PDF-1.4 curriculum vitae").decode()
PNG_DATA_URL = "data:image/png;base64," + base64.b64encode(b"\x89PNG\r\n\x1a\nfake-logo").decode()


class MemoryFileStore(FileStore):
    """File store kept in a dict; set `fail` to simulate an unreachable backend."""

    def __init__(self):
        self.files = {}
        self.fail = False

    def save(self, data, filename, content_type, folder):
        if self.fail:
            raise ConnectionError("file store unavailable")
        file_id = f"{len(self.files) + 1:024x}"
        self.files[file_id] = StoredFile(file_id, filename, content_type, folder, data)
        return file_id

    def load(self, file_id):
        if file_id not in self.files:
            raise NotFound("File not found")
        return self.files[file_id]


class RecordingNotifier(Notifier):
    """Keeps sent notifications; set `fail` to make every send raise."""

    def __init__(self):
        self.sent = []
        self.fail = False

    def _record(self, event, payload):
        if self.fail:
            raise RuntimeError("email provider down")
        self.sent.append((event, payload))

    def application_received(self, **payload):
        self._record("application_received", payload)

    def application_status_changed(self, **payload):
        self._record("application_status_changed", payload)


@pytest.fixture
def settings(tmp_path):
    return Settings(
        _env_file=None,
        app_env="test",
        database_url=f"sqlite:///{tmp_path / 'espacestage.db'}",
        db_health_check_interval=0,
        jwt_secret_key="test-secret",
        resend_api_key="",
    )


@pytest.fixture
def database(settings):
    db = Database(settings)
    yield db
    db.dispose()


@pytest.fixture
def file_store():
    return MemoryFileStore()


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
def app(settings, database, file_store, notifier):
    return create_app(settings=settings, database=database, file_store=file_store, notifier=notifier)


@pytest.fixture
def client(app):
    # Context manager runs the lifespan, which creates the schema
    with TestClient(app) as test_client:
        yield test_client


def _auth(token):
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def register(client):
    def _register(email, role="student", password=PASSWORD, **fields):
        resp = client.post(
            "/api/auth/register",
            json={"email": email, "password": password, "role": role, **fields},
        )
        assert resp.status_code == 201, resp.text
        data = resp.json()["data"]
        return {"id": data["user"]["id"], "email": email, "headers": _auth(data["token"])}

    return _register


@pytest.fixture
def make_student(client, register):
    """Register a student; by default with names and a CV so they can apply."""

    def _make(email="alice@univ.dz", first_name="Alice", last_name="Martin", cv=True, **profile):
        student = register(email, "student")
        body = {"first_name": first_name, "last_name": last_name, **profile}
        if cv:
            body["cv_url"] = CV_DATA_URL
        resp = client.post("/api/student/profile", json=body, headers=student["headers"])
        assert resp.status_code in (200, 201), resp.text
        return student

    return _make


@pytest.fixture
def make_company(client, register):
    def _make(email="contact@acme.dz", company_name="Acme", sector="Software"):
        return register(email, "company", company_name=company_name, sector=sector)

    return _make


@pytest.fixture
def make_offer(client):
    def _make(company, **overrides):
        body = {
            "title": "Backend intern",
            "description": "Build REST APIs",
            "domain": "Informatique",
            "capacity": 2,
            "location": "Alger",
            "internship_type": "PFE",
            **overrides,
        }
        resp = client.post("/api/offres", json=body, headers=company["headers"])
        assert resp.status_code == 201, resp.text
        return resp.json()["data"]

    return _make


@pytest.fixture
def admin(client, database):
    account_id = create_admin(database, ADMIN_EMAIL, ADMIN_PASSWORD)
    resp = client.post("/api/auth/login", json={"email": ADMIN_EMAIL, "password": ADMIN_PASSWORD})
    assert resp.status_code == 200, resp.text
    return {"id": account_id, "email": ADMIN_EMAIL, "headers": _auth(resp.json()["data"]["token"])}

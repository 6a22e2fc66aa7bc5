import os
from pathlib import Path

# Must be set before anything under portfolio reads its configuration
os.environ["PORTFOLIO_CONFIG"] = str(Path(__file__).parent / "config.toml")

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlmodel import SQLModel  # noqa: E402

from portfolio.core.mail import Mailer, MailError, get_mailer  # noqa: E402
from portfolio.core.media import (  # noqa: E402
    MediaError,
    MediaObject,
    MediaStore,
    get_media_store,
    read_upload,
)
from portfolio.main import app  # noqa: E402
from portfolio.shared.db import engine  # noqa: E402

PASSWORD = "s3cret-pass"
OWNER_EMAIL = "owner@example.com"


class FakeMediaStore(MediaStore):
    """In-memory media host; set ``fail_on`` to a folder name to make uploads there fail."""

    def __init__(self):
        self.objects: dict[str, bytes] = {}
        self.destroyed: list[str] = []
        self.fail_on: str | None = None
        self.fail_with: type[Exception] = MediaError
        self._counter = 0

    async def upload(self, file, folder):
        if self.fail_on == folder:
            raise self.fail_with(f"upload to {folder} refused")
        content = await read_upload(file)
        self._counter += 1
        public_id = f"{folder}/{self._counter}-{file.filename}"
        self.objects[public_id] = content
        return MediaObject(public_id=public_id, url=f"https://media.test/{public_id}")

    async def destroy(self, media):
        self.destroyed.append(media.public_id)
        self.objects.pop(media.public_id, None)


class FakeMailer(Mailer):
    def __init__(self):
        self.outbox: list[dict] = []
        self.fail = False
        self.fail_with: type[Exception] = MailError

    def send(self, email, subject, message):
        if self.fail:
            raise self.fail_with(f"Could not send email to {email}")
        self.outbox.append({"email": email, "subject": subject, "message": message})


@pytest.fixture(autouse=True)
def reset_database():
    SQLModel.metadata.drop_all(engine)
    SQLModel.metadata.create_all(engine)
    yield


@pytest.fixture
def media_store():
    return FakeMediaStore()


@pytest.fixture
def mailer():
    return FakeMailer()


@pytest.fixture
def client(media_store, mailer):
    app.dependency_overrides[get_media_store] = lambda: media_store
    app.dependency_overrides[get_mailer] = lambda: mailer
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


def profile_form(email=OWNER_EMAIL, password=PASSWORD, **extra):
    form = {
        "fullName": "Ada Lovelace",
        "email": email,
        "phone": "+44 20 7946 0000",
        "aboutMe": "Analytical engines enthusiast.",
        "password": password,
        "githubURL": "https://github.com/ada",
    }
    form.update(extra)
    return form


def upload_files(avatar=True, resume=True):
    files = {}
    if avatar:
        files["avatar"] = ("avatar.png", b"\x89PNG fake avatar", "image/png")
    if resume:
        files["resume"] = ("resume.pdf", b"%PDF-1.4 fake resume", "application/pdf")
    return files


def register(client, email=OWNER_EMAIL, password=PASSWORD, **extra):
    return client.post(
        "/api/v1/user/register",
        data=profile_form(email=email, password=password, **extra),
        files=upload_files(),
    )


@pytest.fixture
def registered(client):
    """A client holding the session cookie of a freshly registered owner."""
    response = register(client)
    assert response.status_code == 201, response.text
    return client

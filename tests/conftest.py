"""
Shared fixtures: settings, a controllable clock, in-memory stores and a
TestClient around the real middleware, routes and services.
"""

import os

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from app import configure_app, install_services
from config import AppSettings, DatabaseSettings, SessionSettings
from tests.fakes import (
    TEST_JWT_SECRET,
    FrozenClock,
    InMemoryOtpRepository,
    InMemoryStore,
    InMemoryUserRepository,
    RecordingEmailProvider,
)

# Ensure AppSettings can be instantiated wherever a test builds its own
os.environ.setdefault("MONGODB_URI", "mongodb://localhost:27017/")


@pytest.fixture
def settings() -> AppSettings:
    return AppSettings(
        env="test",
        db=DatabaseSettings(mongodb_uri="mongodb://localhost:27017/"),
        session=SessionSettings(jwt_secret=TEST_JWT_SECRET),
    )


@pytest.fixture
def clock() -> FrozenClock:
    return FrozenClock()


@pytest.fixture
def store() -> InMemoryStore:
    return InMemoryStore()


@pytest.fixture
def users(store) -> InMemoryUserRepository:
    return InMemoryUserRepository(store)


@pytest.fixture
def otps(store) -> InMemoryOtpRepository:
    return InMemoryOtpRepository(store)


@pytest.fixture
def mailer() -> RecordingEmailProvider:
    return RecordingEmailProvider()


@pytest.fixture
def app(settings, users, otps, mailer, clock) -> FastAPI:
    app = FastAPI()
    configure_app(app, settings)
    install_services(
        app, settings, users=users, otps=otps, email_provider=mailer, now=clock
    )
    return app


@pytest.fixture
def client(app):
    with TestClient(app) as client:
        yield client

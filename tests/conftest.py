"""Shared fixtures: isolated settings, seeded stores and a fake mail transport."""

import pytest
from fastapi.testclient import TestClient

from loan_manager.infrastructure.repositories.json_repository import JsonFileUserRepository
from loan_manager.infrastructure.repositories.memory_repository import InMemoryUserRepository
from loan_manager.main import create_app

from tests.factories import FakeMailer, legacy_user, make_settings


@pytest.fixture
def settings(tmp_path):
    return make_settings(DB_PATH=str(tmp_path / "db.json"))


@pytest.fixture
def legacy_repo():
    return InMemoryUserRepository([legacy_user()])


@pytest.fixture
def json_repo(tmp_path):
    return JsonFileUserRepository(tmp_path / "db.json")


@pytest.fixture
def mailer():
    return FakeMailer()


@pytest.fixture
def client(settings, json_repo, mailer):
    app = create_app(settings, user_repository=json_repo, mailer=mailer)
    with TestClient(app) as test_client:
        yield test_client

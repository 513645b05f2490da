"""Credential verifier and registration tests, independent of HTTP."""

import asyncio
import json
import re
from unittest.mock import patch

import pytest

from loan_manager.application.services.auth_service import (
    AuthService,
    AuthState,
    hash_password,
    is_password_hash,
    make_password_context,
    verify_password,
)
from loan_manager.core.exceptions import EmailTakenError, IncorrectPasswordError, UserNotFoundError
from loan_manager.domain.models.user import User
from loan_manager.infrastructure.repositories.json_repository import JsonFileUserRepository
from loan_manager.infrastructure.repositories.memory_repository import InMemoryUserRepository

from tests.factories import LEGACY_EMAIL, LEGACY_PASSWORD, legacy_user

FAST = make_password_context(4)


@pytest.fixture
def service(legacy_repo):
    return AuthService(legacy_repo, bcrypt_rounds=4)


class TestPasswordHelpers:
    def test_hash_is_tagged_and_salted(self):
        first = hash_password("s3cret", FAST)
        second = hash_password("s3cret", FAST)

        assert is_password_hash(first)
        assert first != second
        assert verify_password("s3cret", first, FAST)
        assert not verify_password("wrong", first, FAST)

    @pytest.mark.parametrize("value", ["hunter2", "", "2$b$", None])
    def test_plaintext_is_not_a_hash(self, value):
        assert not is_password_hash(value)

    def test_malformed_hash_never_verifies(self):
        assert not verify_password("anything", "$2-not-really-a-hash", FAST)


class TestAuthenticate:
    @pytest.mark.asyncio
    async def test_unknown_email(self, service, legacy_repo):
        with pytest.raises(UserNotFoundError):
            await service.authenticate("nobody@example.com", "x")
        assert legacy_repo.persist_count == 0

    @pytest.mark.asyncio
    async def test_legacy_password_is_upgraded(self, service, legacy_repo):
        result = await service.authenticate(LEGACY_EMAIL.lower(), LEGACY_PASSWORD)

        assert result.state is AuthState.UPGRADED
        assert result.upgraded
        assert result.user.id == 1

        stored = legacy_repo.find_by_id(1)
        assert is_password_hash(stored.password)
        assert stored.password != LEGACY_PASSWORD
        assert verify_password(LEGACY_PASSWORD, stored.password, FAST)
        assert legacy_repo.persist_count == 1

    @pytest.mark.asyncio
    async def test_second_login_uses_hash_branch(self, service, legacy_repo):
        await service.authenticate(LEGACY_EMAIL, LEGACY_PASSWORD)
        upgraded_hash = legacy_repo.find_by_id(1).password

        result = await service.authenticate(LEGACY_EMAIL, LEGACY_PASSWORD)

        assert result.state is AuthState.AUTHENTICATED
        assert legacy_repo.find_by_id(1).password == upgraded_hash
        assert legacy_repo.persist_count == 1

    @pytest.mark.asyncio
    async def test_wrong_legacy_password_leaves_store_alone(self, service, legacy_repo):
        with pytest.raises(IncorrectPasswordError):
            await service.authenticate(LEGACY_EMAIL, "not-it")

        assert legacy_repo.find_by_id(1).password == LEGACY_PASSWORD
        assert legacy_repo.persist_count == 0

    @pytest.mark.asyncio
    async def test_wrong_password_against_hash(self):
        repo = InMemoryUserRepository([legacy_user(password=hash_password("right", FAST))])
        service = AuthService(repo, bcrypt_rounds=4)

        with pytest.raises(IncorrectPasswordError):
            await service.authenticate(LEGACY_EMAIL, "wrong")
        assert repo.persist_count == 0

        result = await service.authenticate(LEGACY_EMAIL, "right")
        assert result.state is AuthState.AUTHENTICATED

    @pytest.mark.asyncio
    async def test_concurrent_legacy_logins_both_succeed(self, service, legacy_repo):
        first, second = await asyncio.gather(
            service.authenticate(LEGACY_EMAIL, LEGACY_PASSWORD),
            service.authenticate(LEGACY_EMAIL, LEGACY_PASSWORD),
        )

        assert first.user.id == second.user.id == 1
        assert {first.state, second.state} == {AuthState.UPGRADED, AuthState.AUTHENTICATED}

        stored = legacy_repo.find_by_id(1)
        assert is_password_hash(stored.password)
        assert verify_password(LEGACY_PASSWORD, stored.password, FAST)
        assert legacy_repo.persist_count == 1

    @pytest.mark.asyncio
    async def test_store_access_runs_off_the_event_loop(self, service, legacy_repo):
        with patch.object(asyncio, "to_thread", wraps=asyncio.to_thread) as to_thread:
            await service.authenticate(LEGACY_EMAIL, LEGACY_PASSWORD)

        offloaded = [c.args[0] for c in to_thread.call_args_list]
        assert legacy_repo.find_by_email in offloaded
        assert legacy_repo.load in offloaded
        assert legacy_repo.persist in offloaded

    @pytest.mark.parametrize("stored", [None, 1234, ["pw"]])
    @pytest.mark.asyncio
    async def test_record_without_string_password_never_authenticates(self, stored):
        repo = InMemoryUserRepository([legacy_user(password=stored)])
        service = AuthService(repo, bcrypt_rounds=4)

        for attempt in ("", "1234", "None"):
            with pytest.raises(IncorrectPasswordError):
                await service.authenticate(LEGACY_EMAIL, attempt)

        assert repo.find_by_id(1).password == stored
        assert repo.persist_count == 0

    @pytest.mark.asyncio
    async def test_record_missing_password_key_never_authenticates(self):
        repo = InMemoryUserRepository([User.model_validate({"id": 1, "email": LEGACY_EMAIL})])
        service = AuthService(repo, bcrypt_rounds=4)

        with pytest.raises(IncorrectPasswordError):
            await service.authenticate(LEGACY_EMAIL, "")

        assert "password" not in repo.find_by_id(1).to_record()
        assert repo.persist_count == 0

    @pytest.mark.asyncio
    async def test_upgrade_rewrites_only_that_records_password(self, tmp_path):
        records = [
            {"id": 1, "name": "Legacy", "email": LEGACY_EMAIL, "password": LEGACY_PASSWORD,
             "phone": 5550100, "createdAt": "2023-05-01T10:00:00.000Z", "role": "borrower"},
            {"id": 2, "name": 99, "email": "other@x.com", "password": "other-plain",
             "phone": 5550101, "createdAt": "2023-05-02T08:30:00.000Z"},
            {"id": "9", "email": "stringly@x.com"},
        ]
        path = tmp_path / "db.json"
        path.write_text(json.dumps({"users": records}))
        service = AuthService(JsonFileUserRepository(path), bcrypt_rounds=4)

        result = await service.authenticate(LEGACY_EMAIL, LEGACY_PASSWORD)

        assert result.upgraded
        first, second, third = json.loads(path.read_text())["users"]
        assert is_password_hash(first.pop("password"))
        assert first == {k: v for k, v in records[0].items() if k != "password"}
        assert second == records[1]
        assert third == records[2]


class TestRegister:
    @pytest.mark.asyncio
    async def test_never_stores_plaintext(self):
        repo = InMemoryUserRepository()
        service = AuthService(repo, bcrypt_rounds=4)

        user = await service.register("A", "a@x.com", "p1", "0")

        stored = repo.find_by_id(user.id)
        assert user.id == 1
        assert stored.password != "p1"
        assert is_password_hash(stored.password)
        assert stored.created_at is not None

    @pytest.mark.asyncio
    async def test_ids_follow_the_highest_existing_id(self):
        repo = InMemoryUserRepository([legacy_user(id=5)])
        service = AuthService(repo, bcrypt_rounds=4)

        user = await service.register("B", "b@x.com", "p2")

        assert user.id == 6

    @pytest.mark.asyncio
    async def test_email_taken_ignores_case(self):
        repo = InMemoryUserRepository()
        service = AuthService(repo, bcrypt_rounds=4)
        await service.register("A", "A@x.com", "p1")

        with pytest.raises(EmailTakenError):
            await service.register("A again", "a@X.com", "p2")
        assert len(repo.load()) == 1

    @pytest.mark.asyncio
    async def test_concurrent_registrations_get_distinct_ids(self):
        repo = InMemoryUserRepository()
        service = AuthService(repo, bcrypt_rounds=4)

        users = await asyncio.gather(*(service.register(f"U{i}", f"u{i}@x.com", "pw") for i in range(5)))

        assert sorted(u.id for u in users) == [1, 2, 3, 4, 5]
        assert len(repo.load()) == 5

    @pytest.mark.asyncio
    async def test_ids_that_are_not_integers_are_ignored(self):
        repo = InMemoryUserRepository([legacy_user(id="7")])
        service = AuthService(repo, bcrypt_rounds=4)

        user = await service.register("B", "b@x.com", "p2")

        assert user.id == 1
        assert [u.id for u in repo.load()] == ["7", 1]

    @pytest.mark.asyncio
    async def test_created_at_has_millisecond_precision(self):
        repo = InMemoryUserRepository()
        service = AuthService(repo, bcrypt_rounds=4)

        await service.register("A", "a@x.com", "p1")

        created_at = repo.find_by_id(1).to_record()["createdAt"]
        assert re.fullmatch(r"\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2}\.\d{3}Z", created_at)

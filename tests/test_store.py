"""Unit tests for auth/store.py -- SQLCredentialStore.

Covers:
- save_user() assigns increasing ids and rejects duplicate emails
- get_user_by_email() is exact-match and raises UserNotFoundError
- get_admin_flag() defaults to False, follows set_admin(), raises on unknown id
- get_app() returns the provisioned app and raises AppNotFoundError
- every contract method refuses to run on an expired context
"""

import pytest

from auth.errors import AppNotFoundError, DuplicateUserError, UserNotFoundError
from core.context import DeadlineExceededError, RequestContext


class TestUsers:
    def test_save_user_returns_increasing_ids(self, store, ctx):
        first = store.save_user(ctx, "a@example.com", b"hash-a")
        second = store.save_user(ctx, "b@example.com", b"hash-b")
        assert first > 0
        assert second > first

    def test_duplicate_email_raises_and_keeps_one_row(self, store, ctx):
        store.save_user(ctx, "dup@example.com", b"hash")
        with pytest.raises(DuplicateUserError):
            store.save_user(ctx, "dup@example.com", b"other-hash")
        assert store.count_users("dup@example.com") == 1

    def test_count_users(self, store, ctx):
        assert store.count_users() == 0
        store.save_user(ctx, "one@example.com", b"hash")
        store.save_user(ctx, "two@example.com", b"hash")
        assert store.count_users() == 2
        assert store.count_users("one@example.com") == 1
        assert store.count_users("' OR 1=1 --") == 0

    def test_get_user_by_email(self, store, ctx):
        user_id = store.save_user(ctx, "alice@example.com", b"the-hash")
        user = store.get_user_by_email(ctx, "alice@example.com")
        assert user.id == user_id
        assert user.email == "alice@example.com"
        assert user.pass_hash == b"the-hash"
        assert user.is_admin is False

    def test_email_lookup_is_case_sensitive(self, store, ctx):
        store.save_user(ctx, "Alice@example.com", b"hash")
        with pytest.raises(UserNotFoundError):
            store.get_user_by_email(ctx, "alice@example.com")

    def test_unknown_email_raises(self, store, ctx):
        with pytest.raises(UserNotFoundError):
            store.get_user_by_email(ctx, "nobody@example.com")


class TestAdminFlag:
    def test_new_user_is_not_admin(self, store, ctx):
        user_id = store.save_user(ctx, "plain@example.com", b"hash")
        assert store.get_admin_flag(ctx, user_id) is False

    def test_set_admin_round_trip(self, store, ctx):
        user_id = store.save_user(ctx, "boss@example.com", b"hash")
        assert store.set_admin(user_id) is True
        assert store.get_admin_flag(ctx, user_id) is True
        store.set_admin(user_id, False)
        assert store.get_admin_flag(ctx, user_id) is False

    def test_set_admin_unknown_user(self, store):
        assert store.set_admin(9999) is False

    def test_unknown_user_raises(self, store, ctx):
        with pytest.raises(UserNotFoundError):
            store.get_admin_flag(ctx, 9999)


class TestApps:
    def test_get_provisioned_app(self, store, ctx):
        app = store.get_app(ctx, 1)
        assert app.id == 1
        assert app.name == "test-app"
        assert app.secret == "test-secret"

    def test_unknown_app_raises(self, store, ctx):
        with pytest.raises(AppNotFoundError):
            store.get_app(ctx, 42)

    def test_create_app_rejects_empty_secret(self, store):
        with pytest.raises(ValueError):
            store.create_app("no-secret", "")


class TestContext:
    @pytest.fixture
    def expired(self) -> RequestContext:
        return RequestContext.with_timeout(-1)

    def test_save_user_does_not_write_on_expired_context(self, store, expired):
        with pytest.raises(DeadlineExceededError):
            store.save_user(expired, "late@example.com", b"hash")
        assert store.count_users("late@example.com") == 0

    def test_reads_refuse_expired_context(self, store, expired):
        with pytest.raises(DeadlineExceededError):
            store.get_user_by_email(expired, "x@example.com")
        with pytest.raises(DeadlineExceededError):
            store.get_admin_flag(expired, 1)
        with pytest.raises(DeadlineExceededError):
            store.get_app(expired, 1)

    def test_ping(self, store):
        assert store.ping() is True

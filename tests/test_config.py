"""Unit tests for core/config.py and core/context.py.

Covers:
- Settings defaults and env var mapping (TOKEN_TTL as seconds and ISO 8601)
- validator rejects non-positive TTL, out-of-range bcrypt rounds, bad timeout
- load_settings() reads an explicit env file and refuses a missing one
- RequestContext deadline, cancel and child-context sharing
"""

from datetime import timedelta

import pytest
from pydantic import ValidationError

from core.config import Settings, load_settings
from core.context import DeadlineExceededError, RequestContext


class TestSettings:
    def test_defaults(self, monkeypatch):
        for var in ("ENV", "TOKEN_TTL", "BCRYPT_ROUNDS", "DATABASE_URL"):
            monkeypatch.delenv(var, raising=False)
        settings = Settings(_env_file=None)
        assert settings.env == "local"
        assert settings.token_ttl == timedelta(hours=1)
        assert settings.bcrypt_rounds == 10

    def test_token_ttl_seconds(self, monkeypatch):
        monkeypatch.setenv("TOKEN_TTL", "900")
        assert Settings(_env_file=None).token_ttl == timedelta(minutes=15)

    @pytest.mark.parametrize("raw, expected", [("15m", timedelta(minutes=15)), ("1h", timedelta(hours=1)), ("7d", timedelta(days=7))])
    def test_token_ttl_unit_suffix(self, monkeypatch, raw, expected):
        monkeypatch.setenv("TOKEN_TTL", raw)
        assert Settings(_env_file=None).token_ttl == expected

    def test_token_ttl_iso_duration(self, monkeypatch):
        monkeypatch.setenv("TOKEN_TTL", "PT2H")
        assert Settings(_env_file=None).token_ttl == timedelta(hours=2)

    @pytest.mark.parametrize(
        "overrides",
        [
            {"token_ttl": timedelta(0)},
            {"token_ttl": timedelta(seconds=-5)},
            {"bcrypt_rounds": 3},
            {"bcrypt_rounds": 32},
            {"request_timeout_seconds": 0},
        ],
    )
    def test_invalid_settings_rejected(self, overrides):
        with pytest.raises(ValidationError):
            Settings(_env_file=None, **overrides)

    def test_unknown_env_rejected(self):
        with pytest.raises(ValidationError):
            Settings(_env_file=None, env="staging")

    def test_load_settings_from_file(self, tmp_path, monkeypatch):
        monkeypatch.delenv("BCRYPT_ROUNDS", raising=False)
        path = tmp_path / "sso.env"
        path.write_text("BCRYPT_ROUNDS=12\nENV=prod\n")
        settings = load_settings(str(path))
        assert settings.bcrypt_rounds == 12
        assert settings.env == "prod"

    def test_load_settings_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_settings(str(tmp_path / "nope.env"))


class TestRequestContext:
    def test_background_never_expires(self):
        ctx = RequestContext.background()
        ctx.check()
        assert ctx.remaining() is None

    def test_expired_deadline(self):
        with pytest.raises(DeadlineExceededError):
            RequestContext.with_timeout(-0.1).check()

    def test_remaining_counts_down(self):
        ctx = RequestContext.with_timeout(30)
        assert 0 < ctx.remaining() <= 30

    def test_cancel_propagates_to_children(self):
        parent = RequestContext.background()
        child = parent.with_fields(op="auth.login")
        parent.cancel()
        assert child.cancelled
        with pytest.raises(DeadlineExceededError):
            child.check()

    def test_child_log_fields(self):
        ctx = RequestContext(request_id="req-1")
        child = ctx.with_fields(op="auth.register", user_id=3)
        assert child.log.extra == {"request_id": "req-1", "op": "auth.register", "user_id": 3}
        assert child.request_id == "req-1"

"""
auth/service.py -- Authentication core: register, login, privilege lookup.

Sits between the HTTP gateway (api/routes/v1/auth.py) and the Credential
Store. Owns three decisions:

  Hashing policy: bcrypt at Settings.bcrypt_rounds. The hash runs
      synchronously on the request's worker thread; throughput under load is
      bounded by worker count x (1 / hash latency).

  Non-disclosure: an unknown email, a wrong password and an unknown app id
      all become INVALID_CREDENTIALS. A caller cannot tell which one failed.

  Error translation: storage errors become AuthError kinds; anything else a
      dependency raises becomes INTERNAL, logged with its traceback, and the
      underlying exception is chained for debugging but never shown to clients.

AuthService holds no mutable state. All logging goes through ctx.log, the
request-scoped sink from core/context.py.

Layer rule: no imports from api/.
"""

from __future__ import annotations

from datetime import timedelta

from auth.errors import (
    AppNotFoundError,
    AuthError,
    DuplicateUserError,
    ErrorKind,
    TokenSigningError,
    UserNotFoundError,
)
from auth.store import CredentialStore
from auth.tokens import hash_password, issue_token, verify_password
from core.context import DeadlineExceededError, RequestContext


class AuthService:
    """Registration, login and admin lookup against a CredentialStore."""

    def __init__(self, store: CredentialStore, token_ttl: timedelta, bcrypt_rounds: int = 10) -> None:
        self.store = store
        self.token_ttl = token_ttl
        self.bcrypt_rounds = bcrypt_rounds
        # Checked on the unknown-email path; built at the same cost as real
        # hashes so both failures take the same time.
        self.dummy_hash = hash_password("sso_timing_dummy", bcrypt_rounds)

    def register(self, ctx: RequestContext, email: str, password: str) -> int:
        """Create a user and return the new id.

        Raises AuthError USER_EXISTS if the email is taken, DEADLINE_EXCEEDED
        if the context expires before the write, INTERNAL otherwise.
        """
        op = "auth.register"
        ctx = ctx.with_fields(op=op)
        log = ctx.log
        log.info("registering user")

        try:
            ctx.check()
            pass_hash = hash_password(password, self.bcrypt_rounds)
            # Hashing is slow; do not start a write for a request nobody is waiting on.
            ctx.check()
            user_id = self.store.save_user(ctx, email, pass_hash)
        except DeadlineExceededError as exc:
            log.warning("register aborted: %s", exc)
            raise AuthError(ErrorKind.DEADLINE_EXCEEDED, op, str(exc)) from exc
        except DuplicateUserError as exc:
            log.warning("user already exists")
            raise AuthError(ErrorKind.USER_EXISTS, op) from exc
        except Exception as exc:
            log.exception("failed to register user")
            raise AuthError(ErrorKind.INTERNAL, op, str(exc)) from exc

        log.info("user registered", extra={"user_id": user_id})
        return user_id

    def login(self, ctx: RequestContext, email: str, password: str, app_id: int) -> str:
        """Verify credentials and return a token signed for `app_id`.

        Raises AuthError INVALID_CREDENTIALS for an unknown email, a wrong
        password, or an unknown app; DEADLINE_EXCEEDED or INTERNAL otherwise.
        """
        op = "auth.login"
        ctx = ctx.with_fields(op=op, app_id=app_id)
        log = ctx.log
        log.info("login attempt")

        try:
            try:
                user = self.store.get_user_by_email(ctx, email)
            except UserNotFoundError as exc:
                verify_password(password, self.dummy_hash)
                log.warning("login failed: user not found")
                raise AuthError(ErrorKind.INVALID_CREDENTIALS, op) from exc

            if not verify_password(password, user.pass_hash):
                log.warning("login failed: password mismatch", extra={"user_id": user.id})
                raise AuthError(ErrorKind.INVALID_CREDENTIALS, op)

            try:
                app = self.store.get_app(ctx, app_id)
            except AppNotFoundError as exc:
                log.warning("login failed: app not found", extra={"user_id": user.id})
                raise AuthError(ErrorKind.INVALID_CREDENTIALS, op) from exc

            token = issue_token(user, app, self.token_ttl)
        except AuthError:
            raise
        except DeadlineExceededError as exc:
            log.warning("login aborted: %s", exc)
            raise AuthError(ErrorKind.DEADLINE_EXCEEDED, op, str(exc)) from exc
        except TokenSigningError as exc:
            log.error("failed to sign token: %s", exc)
            raise AuthError(ErrorKind.INTERNAL, op, str(exc)) from exc
        except Exception as exc:
            log.exception("login failed with an internal error")
            raise AuthError(ErrorKind.INTERNAL, op, str(exc)) from exc

        log.info("user logged in", extra={"user_id": user.id})
        return token

    def is_admin(self, ctx: RequestContext, user_id: int) -> bool:
        """Return the user's admin flag.

        Raises AuthError USER_NOT_FOUND for an unknown id.
        """
        op = "auth.is_admin"
        ctx = ctx.with_fields(op=op, user_id=user_id)
        log = ctx.log
        log.info("checking admin flag")

        try:
            is_admin = self.store.get_admin_flag(ctx, user_id)
        except DeadlineExceededError as exc:
            log.warning("is_admin aborted: %s", exc)
            raise AuthError(ErrorKind.DEADLINE_EXCEEDED, op, str(exc)) from exc
        except UserNotFoundError as exc:
            log.warning("user not found")
            raise AuthError(ErrorKind.USER_NOT_FOUND, op) from exc
        except Exception as exc:
            log.exception("failed to read admin flag")
            raise AuthError(ErrorKind.INTERNAL, op, str(exc)) from exc

        log.info("checked admin flag", extra={"is_admin": is_admin})
        return is_admin

"""
auth/models.py -- Domain dataclasses for authentication entities.

Pattern: Data class (pure data container, zero logic). Stores and the
service do the work; these only own the shape.

Layer rule: no imports from api/.
"""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass
class User:
    """A registered identity.

    email is unique across the store and compared case-sensitively, exactly
    as it was stored. pass_hash is the bcrypt output; the plaintext password
    is never persisted. is_admin is granted out of band (see main.py
    grant-admin); registration always creates non-admin users.
    """

    email: str
    pass_hash: bytes = field(repr=False)
    id: int | None = None
    is_admin: bool = False


@dataclass
class App:
    """A relying application (tenant) with its own token signing secret.

    Provisioned out of band (main.py create-app). Tokens for this app are
    signed with `secret`, and only holders of the same secret can verify
    them, so one app's tokens are useless to another.
    """

    name: str
    secret: str = field(repr=False)
    id: int | None = None

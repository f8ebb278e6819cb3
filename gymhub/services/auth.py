"""
Admin authentication and the explicit admin session.

Passwords are stored as bcrypt hashes. Rows created by the old dashboard
hold an unsalted SHA-256 hex digest; those still verify and are upgraded
to bcrypt on the next successful login.
"""

from __future__ import annotations

import hashlib
import hmac
import logging
from datetime import datetime, timedelta

import bcrypt
from pydantic import BaseModel, ConfigDict

from gymhub.core.validation import normalize_email
from gymhub.db.stores import AdminStore, AuditLog

logger = logging.getLogger(__name__)

SESSION_DURATION = timedelta(hours=8)
MIN_PASSWORD_LENGTH = 6

# bcrypt only uses the first 72 bytes of the password
_BCRYPT_MAX_BYTES = 72


class AuthError(Exception):
    pass


class InvalidCredentialsError(AuthError):
    def __init__(self) -> None:
        super().__init__("Invalid email or password")


class SessionExpiredError(AuthError):
    def __init__(self) -> None:
        super().__init__("Admin session has expired, please log in again")


class AdminSession(BaseModel):
    model_config = ConfigDict(frozen=True)

    admin_id: str
    email: str
    name: str
    issued_at: datetime

    @property
    def expires_at(self) -> datetime:
        return self.issued_at + SESSION_DURATION

    def is_expired(self, now: datetime) -> bool:
        return now - self.issued_at > SESSION_DURATION

    def ensure_active(self, now: datetime) -> None:
        if self.is_expired(now):
            raise SessionExpiredError()


def _to_bcrypt_secret(password: str) -> bytes:
    return password.encode("utf-8")[:_BCRYPT_MAX_BYTES]


def _is_legacy_digest(stored: str) -> bool:
    return len(stored) == 64 and all(ch in "0123456789abcdef" for ch in stored.lower())


def hash_password(password: str) -> str:
    hashed = bcrypt.hashpw(_to_bcrypt_secret(password), bcrypt.gensalt(rounds=12))
    return hashed.decode("utf-8")


def verify_password(password: str, stored: str) -> bool:
    if _is_legacy_digest(stored):
        digest = hashlib.sha256(password.encode("utf-8")).hexdigest()
        return hmac.compare_digest(digest, stored.lower())
    try:
        return bcrypt.checkpw(_to_bcrypt_secret(password), stored.encode("utf-8"))
    except ValueError:
        # Not a bcrypt hash at all
        return False


class AuthService:
    def __init__(self, admins: AdminStore, audit: AuditLog) -> None:
        self._admins = admins
        self._audit = audit

    async def login(self, email: str, password: str, now: datetime) -> AdminSession:
        normalized = normalize_email(email or "")
        if normalized is None or not password:
            raise InvalidCredentialsError()

        admin = await self._admins.get_admin_by_email(normalized)
        if admin is None or not verify_password(password, admin.password):
            logger.info("Failed login attempt for %s", normalized)
            raise InvalidCredentialsError()

        if _is_legacy_digest(admin.password):
            try:
                await self._admins.update_admin(admin.id, {"password": hash_password(password)})
            except Exception as exc:  # noqa: BLE001
                logger.warning("Could not upgrade password hash for %s: %s", admin.email, exc)

        logger.info("Admin %s logged in", admin.email)
        return AdminSession(
            admin_id=admin.id,
            email=admin.email,
            name=admin.name,
            issued_at=now,
        )

    async def change_password(
        self,
        session: AdminSession,
        current_password: str,
        new_password: str,
        now: datetime,
    ) -> None:
        session.ensure_active(now)

        if len(new_password) < MIN_PASSWORD_LENGTH:
            raise ValueError(f"Password must be at least {MIN_PASSWORD_LENGTH} characters")

        admin = await self._admins.get_admin_by_email(session.email)
        if admin is None or not verify_password(current_password, admin.password):
            raise InvalidCredentialsError()

        await self._admins.update_admin(admin.id, {"password": hash_password(new_password)})
        logger.info("Admin %s changed password", session.email)

    async def update_profile(
        self,
        session: AdminSession,
        now: datetime,
        *,
        name: str | None = None,
        email: str | None = None,
    ) -> AdminSession:
        """
        Update the admin's display name and/or email.

        The admin row is written first. Past activity-log entries are then
        re-attributed to the new email; a failure there is logged and leaves
        the old attribution. Returns a session carrying the new identity and
        the same issue time.
        """

        session.ensure_active(now)

        changes: dict[str, str] = {}
        if name is not None and name.strip():
            changes["name"] = name.strip()
        if email is not None:
            normalized = normalize_email(email)
            if normalized is None:
                raise ValueError("Invalid email address")
            if normalized != session.email:
                changes["email"] = normalized

        if not changes:
            return session

        admin = await self._admins.update_admin(session.admin_id, changes)

        if "email" in changes:
            # Only once the admin row owns the new address
            try:
                await self._audit.reassign_activity_logs(session.email, admin.email)
            except Exception:  # noqa: BLE001
                logger.exception(
                    "Could not move activity logs from %s to %s",
                    session.email,
                    admin.email,
                )

        return session.model_copy(update={"email": admin.email, "name": admin.name})

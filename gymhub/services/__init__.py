"""
Back-office flows built on the lifecycle engine and the Supabase stores.

Every admin-facing call takes an explicit `AdminSession`.
"""

from gymhub.core import get_settings
from gymhub.db import get_supabase_client

from .auth import (
    SESSION_DURATION,
    AdminSession,
    AuthError,
    AuthService,
    InvalidCredentialsError,
    SessionExpiredError,
)
from .contacts import ContactService
from .mailer import MemberMailer
from .members import MemberDetail, MemberForm, MembershipService, MemberUpdate, RenewalForm
from .reports import ReportService


def get_membership_service() -> MembershipService:
    client = get_supabase_client()
    mailer = MemberMailer(client) if get_settings().member_emails_enabled else None
    return MembershipService(client, client, client, mailer)


def get_report_service() -> ReportService:
    client = get_supabase_client()
    return ReportService(client, client, client)


def get_auth_service() -> AuthService:
    client = get_supabase_client()
    return AuthService(client, client)


def get_contact_service() -> ContactService:
    return ContactService(get_supabase_client())


__all__ = [
    "SESSION_DURATION",
    "AdminSession",
    "AuthError",
    "AuthService",
    "ContactService",
    "InvalidCredentialsError",
    "MemberDetail",
    "MemberForm",
    "MemberMailer",
    "MemberUpdate",
    "MembershipService",
    "RenewalForm",
    "ReportService",
    "SessionExpiredError",
    "get_auth_service",
    "get_contact_service",
    "get_membership_service",
    "get_report_service",
]

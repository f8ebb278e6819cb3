from __future__ import annotations

import logging
from datetime import datetime

from gymhub.core.validation import normalize_email, normalize_phone
from gymhub.db.models import ContactSubmission
from gymhub.db.stores import ContactStore
from gymhub.db.supabase import NotFoundError
from gymhub.domain.errors import InvalidFormError
from gymhub.services.auth import AdminSession

logger = logging.getLogger(__name__)


class ContactService:
    """
    Contact and package-inquiry submissions from the public site.
    """

    def __init__(self, contacts: ContactStore) -> None:
        self._contacts = contacts

    async def submit_inquiry(
        self,
        name: str,
        email: str,
        phone: str | None = None,
        message: str | None = None,
        package_name: str | None = None,
    ) -> ContactSubmission:
        """
        Store a submission. Anonymous, no session required.

        A package inquiry without a message gets the standard
        "I'm interested in the <package> plan." text.
        """

        errors: list[str] = []
        name = (name or "").strip()
        if not name:
            errors.append("Name is required.")
        normalized_email = normalize_email(email or "")
        if normalized_email is None:
            errors.append("A valid email is required.")
        normalized_phone = None
        if phone and phone.strip():
            normalized_phone = normalize_phone(phone)
            if normalized_phone is None:
                errors.append("Phone number looks invalid.")

        text = (message or "").strip()
        if not text and package_name:
            text = f"I'm interested in the {package_name} plan."
        if not text:
            errors.append("Message is required.")

        if errors:
            raise InvalidFormError(errors)

        submission = await self._contacts.insert_contact(
            name=name,
            email=normalized_email,
            phone=normalized_phone,
            message=text,
        )
        logger.info("Contact submission %s received", submission.id)
        return submission

    async def list_submissions(self, session: AdminSession, now: datetime) -> list[ContactSubmission]:
        session.ensure_active(now)
        return await self._contacts.list_contacts()

    async def toggle_contacted(
        self,
        session: AdminSession,
        contact_id: str,
        now: datetime,
    ) -> ContactSubmission:
        session.ensure_active(now)
        contact = await self._contacts.get_contact(contact_id)
        if contact is None:
            raise NotFoundError(f"Contact submission {contact_id} not found")
        return await self._contacts.set_contact_contacted(contact_id, not contact.contacted)

    async def delete_submission(self, session: AdminSession, contact_id: str, now: datetime) -> None:
        session.ensure_active(now)
        await self._contacts.delete_contact(contact_id)
        logger.info("Contact submission %s deleted by %s", contact_id, session.email)

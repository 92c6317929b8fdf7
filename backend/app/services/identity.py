"""Identity step: sign in or create the subject the wizard works on.

Existing subject (looked up by normalized email): the password must match
the stored hash; the confirmation field is ignored. New subject: the
confirmation must match, then a row is inserted at step 1. The email
unique index settles racing signups; the loser gets DuplicateAccountError,
which the client handles by offering sign-in.
"""

import logging
from dataclasses import dataclass

from app.auth.password import hash_password, verify_password
from app.config import settings
from app.middleware.exceptions import InvalidCredentialError, StepValidationError
from app.models.subject import Subject
from app.services.components import IDENTITY_STEP
from app.services.record_store import RecordStore

logger = logging.getLogger(__name__)


@dataclass
class IdentityResult:
    subject: Subject
    created: bool


def normalize_email(email: str) -> str:
    return email.strip().lower()


def _check_input(email: str, password: str) -> None:
    errors: dict[str, str] = {}
    if not email or "@" not in email:
        errors["email"] = "Please enter a valid email address"
    if len(password) < settings.min_password_length:
        errors["password"] = (
            f"Password must be at least {settings.min_password_length} characters"
        )
    if errors:
        raise StepValidationError(errors)


class IdentityStep:

    def __init__(self, store: RecordStore):
        self.store = store

    async def email_exists(self, email: str) -> bool:
        return await self.store.find_subject_by_email(normalize_email(email)) is not None

    async def submit(
        self,
        email: str,
        password: str,
        confirm_password: str | None = None,
    ) -> IdentityResult:
        email = normalize_email(email)
        _check_input(email, password)

        existing = await self.store.find_subject_by_email(email)
        if existing:
            if not verify_password(password, existing.password_hash):
                logger.info("Rejected sign-in for subject %s", existing.id)
                raise InvalidCredentialError()
            logger.info("Subject %s signed in at step %d", existing.id, existing.current_step)
            return IdentityResult(existing, created=False)

        if confirm_password != password:
            raise StepValidationError({"confirm_password": "Passwords don't match"})

        subject = await self.store.insert_subject(
            email, hash_password(password), current_step=IDENTITY_STEP
        )
        logger.info("Created subject %s", subject.id)
        return IdentityResult(subject, created=True)

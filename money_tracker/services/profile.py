"""
Profile Service

Keeps the `profile` sub-document of each identity's document current:
created once on first sign-in, refreshed on every sign-in after that.

Profile writes are merge-writes of the `profile` field only, so they
never touch the ledger's `transactions` field.
"""

from collections.abc import Callable
from datetime import datetime
from typing import Optional

import structlog
from pydantic import ValidationError as PydanticValidationError

from money_tracker.models.ledger import Identity, UserProfile
from money_tracker.services.storage import DocumentStorageInterface


logger = structlog.get_logger(__name__)

PROFILE_FIELD = "profile"


class ProfileService:
    """Reads and merge-writes user profiles."""

    def __init__(
        self,
        documents: DocumentStorageInterface,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self._documents = documents
        self._clock = clock or datetime.utcnow

    async def _read_profile(self, uid: str) -> Optional[UserProfile]:
        """Fetch a stored profile. Storage failures propagate."""
        document = await self._documents.get_document(uid)
        if not document or not isinstance(document.get(PROFILE_FIELD), dict):
            return None
        try:
            return UserProfile.model_validate(document[PROFILE_FIELD])
        except PydanticValidationError as e:
            logger.warning("profile_malformed", uid=uid, error=str(e))
            return None

    async def get_profile(self, uid: str) -> Optional[UserProfile]:
        """Fetch a stored profile, or None if absent or unreadable."""
        try:
            return await self._read_profile(uid)
        except Exception as e:
            logger.warning("profile_read_failed", uid=uid, error=str(e))
            return None

    async def record_sign_in(self, identity: Identity) -> Optional[UserProfile]:
        """
        Create or refresh the profile for a signed-in identity.

        Contact fields are only overwritten when the identity carries
        them, so a phone sign-in does not erase a stored email. If the
        stored profile cannot be read nothing is written, since a blind
        write would reset created_at.

        Returns:
            The profile as written, or None if nothing was written
        """
        now = self._clock()
        try:
            existing = await self._read_profile(identity.uid)
        except Exception as e:
            logger.warning("profile_refresh_skipped", uid=identity.uid, error=str(e))
            return None

        profile = UserProfile(
            display_name=identity.display_name or (existing.display_name if existing else None),
            email=identity.email or (existing.email if existing else None),
            phone_number=identity.phone_number or (existing.phone_number if existing else None),
            created_at=existing.created_at if existing else now,
            last_login_at=now,
        )

        try:
            await self._documents.set_document(
                identity.uid,
                {PROFILE_FIELD: profile.model_dump(mode="json")},
                merge=True,
            )
        except Exception as e:
            logger.error("profile_write_failed", uid=identity.uid, error=str(e))
            return None

        logger.info("profile_recorded", uid=identity.uid, first_sign_in=existing is None)
        return profile

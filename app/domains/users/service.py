"""
App user service for the push token directory.
"""
import logging
from typing import Optional

from app.core.errors import NotFoundError
from app.domains.users.repository import AppUserRepository

logger = logging.getLogger(__name__)


class AppUserService:
    """
    Service for maintaining the device push tokens of app users.
    """

    def __init__(self, user_repo: Optional[AppUserRepository] = None):
        """
        Initialize with app user repository.

        Args:
            user_repo: Optional app user repository instance
        """
        self.user_repo = user_repo or AppUserRepository()

    async def update_push_token(self, user_id: str, fcm_token: str, user_device: str = "",
                                app_version: str = "") -> None:
        """
        Store the token a device registered after login.

        Raises:
            NotFoundError: If no app user has this userId
        """
        updated = await self.user_repo.set_push_token(user_id, fcm_token, user_device, app_version)
        if not updated:
            raise NotFoundError(f"User {user_id} not found")
        logger.info(f"Updated push token for {user_id}")

    async def logout(self, user_id: str, fcm_token: str) -> bool:
        """
        Forget the push token of a device that logs out.

        Only the token the device itself holds is cleared, so logging out an
        old device leaves a newer login's token in place. Unknown users are
        not an error.

        Returns:
            True if a token was cleared
        """
        cleared = await self.user_repo.clear_push_token(user_id, fcm_token)
        if not cleared:
            logger.info(f"Logout for {user_id} left push token unchanged")
        return cleared


# Create global instance
app_user_service = AppUserService()

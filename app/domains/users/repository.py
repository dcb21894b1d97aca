"""
App user repository for database operations.
"""
from typing import Optional

from app.db.base_repository import BaseRepository
from app.db.mongodb import APP_USERS
from app.models.kitchen import AppUserModel


class AppUserRepository(BaseRepository):
    """
    Repository for mobile app users.
    Holds the push token each kitchen or agent login registered last.
    """

    def __init__(self, collection=None):
        """Initialize with app users collection."""
        super().__init__(APP_USERS, collection)

    async def find_by_user_id(self, user_id: str) -> Optional[AppUserModel]:
        """
        Find an app user by userId.

        Args:
            user_id: Login userId of a kitchen or agent

        Returns:
            App user model or None if not found
        """
        document = await self.find_one({"userId": user_id})
        return AppUserModel.model_validate(document) if document else None

    async def set_push_token(self, user_id: str, fcm_token: str, user_device: str, app_version: str) -> bool:
        """
        Store the device push token for a user.

        Returns:
            True if the user exists
        """
        return await self.patch(
            {"userId": user_id},
            {"fcmToken": fcm_token, "userDevice": user_device, "appVersion": app_version},
        )

    async def clear_push_token(self, user_id: str, fcm_token: str) -> bool:
        """
        Remove the push token only if it is still the one the device holds.

        Returns:
            True if a token was cleared
        """
        return await self.patch(
            {"userId": user_id, "fcmToken": fcm_token},
            {"fcmToken": "", "userDevice": "", "appVersion": ""},
        )

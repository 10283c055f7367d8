# backend/marketplace/services/user_service.py
"""User Service: the authenticated user's own contact details."""

import logging
from typing import Optional

from sqlalchemy.orm import Session

from ..core.exceptions import ConflictException
from ..models.user import User
from ..repositories.factory import RepositoryFactory
from ..repositories.user_repository import UserRepository
from ..schemas.user import UserProfileUpdate
from .base import BaseService

logger = logging.getLogger(__name__)


class UserService(BaseService):
    def __init__(self, db: Session, user_repository: Optional[UserRepository] = None):
        super().__init__(db)
        self.user_repository = user_repository or RepositoryFactory.create_user_repository(db)

    @BaseService.measure_operation("update_profile")
    def update_profile(self, user: User, data: UserProfileUpdate) -> User:
        """
        Apply the non-empty fields of ``data``.

        Email and phone must stay unique across users; a value already held by
        someone else raises ConflictException and nothing is written.
        """
        changed = []
        with self.transaction():
            if data.full_name:
                user.full_name = data.full_name
                changed.append("full_name")

            if data.email and data.email.lower() != user.email.lower():
                email = data.email.lower()
                if self.user_repository.get_by_email(email) is not None:
                    raise ConflictException("Email is already taken.", code="EMAIL_TAKEN")
                user.email = email
                changed.append("email")

            if data.phone and data.phone != user.phone:
                if self.user_repository.get_by_phone(data.phone) is not None:
                    raise ConflictException("Phone number is already taken.", code="PHONE_TAKEN")
                user.phone = data.phone
                changed.append("phone")

            self.user_repository.flush()

        self.log_operation("update_profile", user_id=user.id, fields=",".join(changed) or "none")
        return user

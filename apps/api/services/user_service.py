"""
User Service

User directory: create, lookup by email, update profile and notification
preferences, list users opted in to weekly reports.
"""

import logging
from dataclasses import dataclass
from typing import List, Optional
from uuid import UUID

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from models import User

logger = logging.getLogger(__name__)


@dataclass
class CreateUserData:
    email: str
    first_name: str
    last_name: str
    avatar_url: Optional[str] = None
    timezone: Optional[str] = None


@dataclass
class UpdateUserData:
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    avatar_url: Optional[str] = None
    timezone: Optional[str] = None
    email_notifications: Optional[bool] = None
    weekly_reports: Optional[bool] = None


class UserService:

    def __init__(self, db: Session):
        self.db = db

    def create_user(self, data: CreateUserData) -> Optional[User]:
        logger.info(f"UserService: Creating user {data.email}")
        user = User(
            email=data.email.strip().lower(),
            first_name=data.first_name,
            last_name=data.last_name,
            avatar_url=data.avatar_url,
            timezone=data.timezone,
        )
        try:
            self.db.add(user)
            self.db.commit()
            self.db.refresh(user)
            return user
        except IntegrityError:
            self.db.rollback()
            logger.warning(f"UserService: User already exists: {data.email}")
            return None
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"UserService: Error creating user: {e}")
            return None

    def get_user(self, user_id: UUID) -> Optional[User]:
        try:
            return self.db.query(User).filter(User.id == user_id).first()
        except SQLAlchemyError as e:
            logger.error(f"UserService: Error fetching user {user_id}: {e}")
            return None

    def get_user_by_email(self, email: str) -> Optional[User]:
        try:
            return self.db.query(User).filter(User.email == email.strip().lower()).first()
        except SQLAlchemyError as e:
            logger.error(f"UserService: Error fetching user by email: {e}")
            return None

    def update_user(self, user_id: UUID, data: UpdateUserData) -> Optional[User]:
        user = self.get_user(user_id)
        if user is None:
            return None

        # Empty strings do not overwrite names; booleans are applied whenever given.
        if data.first_name:
            user.first_name = data.first_name
        if data.last_name:
            user.last_name = data.last_name
        if data.avatar_url:
            user.avatar_url = data.avatar_url
        if data.timezone:
            user.timezone = data.timezone
        if data.email_notifications is not None:
            user.email_notifications = data.email_notifications
        if data.weekly_reports is not None:
            user.weekly_reports = data.weekly_reports

        try:
            self.db.commit()
            self.db.refresh(user)
            return user
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"UserService: Error updating user: {e}")
            return None

    def get_all_users_with_weekly_reports(self) -> List[User]:
        try:
            return (
                self.db.query(User)
                .filter(User.weekly_reports.is_(True))
                .order_by(User.created_at.asc())
                .all()
            )
        except SQLAlchemyError as e:
            logger.error(f"UserService: Error fetching users for weekly reports: {e}")
            return []

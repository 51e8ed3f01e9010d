"""
Shared FastAPI dependencies.
"""
from uuid import UUID

from fastapi import Depends
from sqlalchemy.orm import Session

from core.database import get_db
from core.exceptions import NotFoundError
from models import User


def get_user_or_404(user_id: UUID, db: Session = Depends(get_db)) -> User:
    """Resolve the ``user_id`` path parameter to a User."""
    user = db.query(User).filter(User.id == user_id).first()
    if user is None:
        raise NotFoundError("User", str(user_id))
    return user

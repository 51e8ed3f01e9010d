"""
Users API Router

Profile, notification preferences (email_notifications / weekly_reports gate
the weekly report dispatcher) and all-time stats.
"""

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from core.database import get_db
from core.dependencies import get_user_or_404
from core.exceptions import ConflictError, NotFoundError, ServiceUnavailableError
from models import User
from schemas import UserCreate, UserResponse, UserStatsResponse, UserUpdate
from services.activity_service import ActivityService
from services.user_service import CreateUserData, UpdateUserData, UserService

router = APIRouter(prefix="/v1/users", tags=["Users"])


@router.post("", response_model=UserResponse, status_code=status.HTTP_201_CREATED)
def create_user(request: UserCreate, db: Session = Depends(get_db)):
    service = UserService(db)
    if service.get_user_by_email(request.email):
        raise ConflictError(f"User already exists: {request.email}")

    user = service.create_user(CreateUserData(**request.model_dump()))
    if user is None:
        raise ServiceUnavailableError("Could not create user")
    return user


@router.get("/by-email", response_model=UserResponse)
def get_user_by_email(email: str = Query(..., min_length=3), db: Session = Depends(get_db)):
    user = UserService(db).get_user_by_email(email)
    if user is None:
        raise NotFoundError("User", email)
    return user


@router.get("/{user_id}", response_model=UserResponse)
def get_user(user: User = Depends(get_user_or_404)):
    return user


@router.patch("/{user_id}", response_model=UserResponse)
def update_user(
    request: UserUpdate,
    user: User = Depends(get_user_or_404),
    db: Session = Depends(get_db),
):
    updated = UserService(db).update_user(user.id, UpdateUserData(**request.model_dump()))
    if updated is None:
        raise ServiceUnavailableError("Could not update user")
    return updated


@router.get("/{user_id}/stats", response_model=UserStatsResponse)
def get_user_stats(user: User = Depends(get_user_or_404), db: Session = Depends(get_db)):
    return UserStatsResponse(**ActivityService(db).get_user_stats(user.id))

"""
Reminders API Router

Manage activity reminder rules (time of day + weekdays).
"""

from typing import List
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from core.database import get_db
from core.dependencies import get_user_or_404
from core.exceptions import NotFoundError, ValidationError
from models import ReminderRule, User
from schemas import ReminderCreate, ReminderResponse
from services.reminder_checker import format_days, format_time
from services.reminder_service import (
    ReminderData,
    ReminderValidationError,
    create_reminder,
    delete_reminder,
    list_reminders,
    toggle_reminder,
    update_reminder,
)

router = APIRouter(prefix="/v1/users/{user_id}/reminders", tags=["Reminders"])


def _to_response(rule: ReminderRule) -> ReminderResponse:
    response = ReminderResponse.model_validate(rule)
    response.display_time = format_time(rule.time)
    response.display_days = format_days(rule.days)
    return response


@router.get("", response_model=List[ReminderResponse])
def get_reminders(
    user: User = Depends(get_user_or_404),
    db: Session = Depends(get_db),
    active_only: bool = Query(False),
):
    return [_to_response(r) for r in list_reminders(db, user.id, active_only=active_only)]


@router.post("", response_model=ReminderResponse, status_code=status.HTTP_201_CREATED)
def add_reminder(
    request: ReminderCreate,
    user: User = Depends(get_user_or_404),
    db: Session = Depends(get_db),
):
    try:
        rule = create_reminder(db, user.id, ReminderData(**request.model_dump()))
    except ReminderValidationError as e:
        raise ValidationError(str(e), field=e.field)
    return _to_response(rule)


@router.put("/{reminder_id}", response_model=ReminderResponse)
def edit_reminder(
    reminder_id: UUID,
    request: ReminderCreate,
    user: User = Depends(get_user_or_404),
    db: Session = Depends(get_db),
):
    try:
        rule = update_reminder(db, user.id, reminder_id, ReminderData(**request.model_dump()))
    except ReminderValidationError as e:
        raise ValidationError(str(e), field=e.field)
    if rule is None:
        raise NotFoundError("Reminder", str(reminder_id))
    return _to_response(rule)


@router.post("/{reminder_id}/toggle", response_model=ReminderResponse)
def toggle(
    reminder_id: UUID,
    user: User = Depends(get_user_or_404),
    db: Session = Depends(get_db),
):
    rule = toggle_reminder(db, user.id, reminder_id)
    if rule is None:
        raise NotFoundError("Reminder", str(reminder_id))
    return _to_response(rule)


@router.delete("/{reminder_id}", status_code=status.HTTP_204_NO_CONTENT)
def remove_reminder(
    reminder_id: UUID,
    user: User = Depends(get_user_or_404),
    db: Session = Depends(get_db),
):
    if not delete_reminder(db, user.id, reminder_id):
        raise NotFoundError("Reminder", str(reminder_id))

"""Pydantic schemas for Users."""
from datetime import datetime

from pydantic import BaseModel

from eventhub.models.user import User


class UserOut(BaseModel):
    """What any visitor may see about a user."""

    user_id: str
    name: str
    description: str
    profile_image: str


class PrivateUserOut(UserOut):
    """The logged-in user's own view of their account."""

    email: str
    timezone: str
    email_reminders: bool
    created_at: datetime


def user_to_out(user: User) -> UserOut:
    return UserOut(
        user_id=user.user_id,
        name=user.name,
        description=user.description,
        profile_image=user.profile_image,
    )


def user_to_private_out(user: User) -> PrivateUserOut:
    return PrivateUserOut(
        user_id=user.user_id,
        name=user.name,
        description=user.description,
        profile_image=user.profile_image,
        email=user.email,
        timezone=user.timezone,
        email_reminders=user.email_reminders,
        created_at=user.created_at,
    )

"""Server -> client messages.

One response type per request kind, tagged with ``type`` and echoing the
subject id (user, group or event) so the client can correlate it. Responses
that can fail in a user-recoverable way carry an ``error`` code, None on
success.
"""
from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel

from eventhub.models.group import GroupVisibility
from eventhub.schemas.event import EventOut
from eventhub.schemas.group import GroupOut
from eventhub.schemas.log import LogOut
from eventhub.schemas.user import PrivateUserOut, UserOut


class CheckLoginResponse(BaseModel):
    type: Literal["check_login"] = "check_login"
    logged_in: bool
    user: Optional[PrivateUserOut] = None
    is_admin: bool = False


class GetGroupResponse(BaseModel):
    type: Literal["get_group"] = "get_group"
    group_id: str
    group: Optional[GroupOut] = None
    owner: Optional[UserOut] = None


class GetUserResponse(BaseModel):
    type: Literal["get_user"] = "get_user"
    user_id: str
    user: Optional[UserOut] = None


class LoginWithTokenResponse(BaseModel):
    type: Literal["login_with_token"] = "login_with_token"
    ok: bool
    user: Optional[PrivateUserOut] = None
    is_admin: bool = False


class LogoutResponse(BaseModel):
    type: Literal["logout"] = "logout"


class CreateGroupResponse(BaseModel):
    type: Literal["create_group"] = "create_group"
    group: Optional[GroupOut] = None
    error: Optional[str] = None


class ChangeNameResponse(BaseModel):
    type: Literal["change_name"] = "change_name"
    user_id: str
    name: str


class ChangeDescriptionResponse(BaseModel):
    type: Literal["change_description"] = "change_description"
    user_id: str
    description: str


class ChangeEmailResponse(BaseModel):
    type: Literal["change_email"] = "change_email"
    user_id: str
    email: str


class ChangeProfileImageResponse(BaseModel):
    type: Literal["change_profile_image"] = "change_profile_image"
    user_id: str
    profile_image: str


class ChangeTimezoneResponse(BaseModel):
    type: Literal["change_timezone"] = "change_timezone"
    user_id: str
    timezone: str


class ChangeEmailRemindersResponse(BaseModel):
    type: Literal["change_email_reminders"] = "change_email_reminders"
    user_id: str
    enabled: bool


class DeleteUserResponse(BaseModel):
    type: Literal["delete_user"] = "delete_user"
    ok: bool


class GetMyGroupsResponse(BaseModel):
    type: Literal["get_my_groups"] = "get_my_groups"
    groups: list[GroupOut] = []


class SearchGroupsResponse(BaseModel):
    type: Literal["search_groups"] = "search_groups"
    query: str
    groups: list[GroupOut] = []


class ChangeGroupNameResponse(BaseModel):
    type: Literal["change_group_name"] = "change_group_name"
    group_id: str
    name: Optional[str] = None
    error: Optional[str] = None


class ChangeGroupDescriptionResponse(BaseModel):
    type: Literal["change_group_description"] = "change_group_description"
    group_id: str
    description: str


class ChangeGroupVisibilityResponse(BaseModel):
    type: Literal["change_group_visibility"] = "change_group_visibility"
    group_id: str
    visibility: GroupVisibility


class CreateEventResponse(BaseModel):
    type: Literal["create_event"] = "create_event"
    group_id: str
    event: Optional[EventOut] = None
    error: Optional[str] = None
    conflicting_events: list[EventOut] = []


class EditEventResponse(BaseModel):
    type: Literal["edit_event"] = "edit_event"
    group_id: str
    event_id: int
    event: Optional[EventOut] = None
    error: Optional[str] = None
    conflicting_events: list[EventOut] = []
    backend_time: datetime


class JoinEventResponse(BaseModel):
    type: Literal["join_event"] = "join_event"
    group_id: str
    event_id: int
    event: Optional[EventOut] = None
    error: Optional[str] = None


class LeaveEventResponse(BaseModel):
    type: Literal["leave_event"] = "leave_event"
    group_id: str
    event_id: int
    event: Optional[EventOut] = None


class ChangeEventCancellationStatusResponse(BaseModel):
    type: Literal["change_event_cancellation_status"] = "change_event_cancellation_status"
    group_id: str
    event_id: int
    event: Optional[EventOut] = None
    error: Optional[str] = None
    backend_time: datetime


class AdminDeleteGroupResponse(BaseModel):
    type: Literal["admin_delete_group"] = "admin_delete_group"
    group_id: str
    error: Optional[str] = None


class AdminFetchLogsResponse(BaseModel):
    type: Literal["admin_fetch_logs"] = "admin_fetch_logs"
    logs: list[LogOut] = []

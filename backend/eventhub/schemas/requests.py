"""Client -> server messages.

Every request carries a ``type`` tag and the set of variants is closed:
``ClientRequest`` is a discriminated union parsed by ``parse_request``.
Fields hold raw client primitives; the router runs them through
``eventhub.services.validation`` before use.
"""
from datetime import datetime
from typing import Annotated, Any, Literal, Optional, Union, get_args

from pydantic import BaseModel, Field, TypeAdapter


class EventRefIn(BaseModel):
    group_id: str
    event_id: int


class CheckLoginRequest(BaseModel):
    type: Literal["check_login"] = "check_login"


class GetGroupRequest(BaseModel):
    type: Literal["get_group"] = "get_group"
    group_id: str


class GetUserRequest(BaseModel):
    type: Literal["get_user"] = "get_user"
    user_id: str


class GetLoginTokenRequest(BaseModel):
    type: Literal["get_login_token"] = "get_login_token"
    email: str
    join_event: Optional[EventRefIn] = None


class LoginWithTokenRequest(BaseModel):
    type: Literal["login_with_token"] = "login_with_token"
    token: str
    join_event: Optional[EventRefIn] = None


class LogoutRequest(BaseModel):
    type: Literal["logout"] = "logout"


class CreateGroupRequest(BaseModel):
    type: Literal["create_group"] = "create_group"
    name: str
    description: str = ""
    visibility: str = "public"


class ChangeNameRequest(BaseModel):
    type: Literal["change_name"] = "change_name"
    name: str


class ChangeDescriptionRequest(BaseModel):
    type: Literal["change_description"] = "change_description"
    description: str


class ChangeEmailRequest(BaseModel):
    type: Literal["change_email"] = "change_email"
    email: str


class ChangeProfileImageRequest(BaseModel):
    type: Literal["change_profile_image"] = "change_profile_image"
    profile_image: str


class ChangeTimezoneRequest(BaseModel):
    type: Literal["change_timezone"] = "change_timezone"
    timezone: str


class ChangeEmailRemindersRequest(BaseModel):
    type: Literal["change_email_reminders"] = "change_email_reminders"
    enabled: bool


class GetDeleteUserTokenRequest(BaseModel):
    type: Literal["get_delete_user_token"] = "get_delete_user_token"


class DeleteUserRequest(BaseModel):
    type: Literal["delete_user"] = "delete_user"
    token: str


class GetMyGroupsRequest(BaseModel):
    type: Literal["get_my_groups"] = "get_my_groups"


class SearchGroupsRequest(BaseModel):
    type: Literal["search_groups"] = "search_groups"
    query: str


class ChangeGroupNameRequest(BaseModel):
    type: Literal["change_group_name"] = "change_group_name"
    group_id: str
    name: str


class ChangeGroupDescriptionRequest(BaseModel):
    type: Literal["change_group_description"] = "change_group_description"
    group_id: str
    description: str


class ChangeGroupVisibilityRequest(BaseModel):
    type: Literal["change_group_visibility"] = "change_group_visibility"
    group_id: str
    visibility: str


class _EventFields(BaseModel):
    group_id: str
    name: str
    description: str = ""
    event_type: str
    link: Optional[str] = None
    address: Optional[str] = None
    start_time: datetime
    duration_minutes: int
    max_attendees: Optional[int] = None


class CreateEventRequest(_EventFields):
    type: Literal["create_event"] = "create_event"


class EditEventRequest(_EventFields):
    type: Literal["edit_event"] = "edit_event"
    event_id: int


class JoinEventRequest(BaseModel):
    type: Literal["join_event"] = "join_event"
    group_id: str
    event_id: int


class LeaveEventRequest(BaseModel):
    type: Literal["leave_event"] = "leave_event"
    group_id: str
    event_id: int


class ChangeEventCancellationStatusRequest(BaseModel):
    type: Literal["change_event_cancellation_status"] = "change_event_cancellation_status"
    group_id: str
    event_id: int
    status: str
    reason: Optional[str] = None


class AdminDeleteGroupRequest(BaseModel):
    type: Literal["admin_delete_group"] = "admin_delete_group"
    group_id: str


class AdminFetchLogsRequest(BaseModel):
    type: Literal["admin_fetch_logs"] = "admin_fetch_logs"


ClientRequest = Annotated[
    Union[
        CheckLoginRequest,
        GetGroupRequest,
        GetUserRequest,
        GetLoginTokenRequest,
        LoginWithTokenRequest,
        LogoutRequest,
        CreateGroupRequest,
        ChangeNameRequest,
        ChangeDescriptionRequest,
        ChangeEmailRequest,
        ChangeProfileImageRequest,
        ChangeTimezoneRequest,
        ChangeEmailRemindersRequest,
        GetDeleteUserTokenRequest,
        DeleteUserRequest,
        GetMyGroupsRequest,
        SearchGroupsRequest,
        ChangeGroupNameRequest,
        ChangeGroupDescriptionRequest,
        ChangeGroupVisibilityRequest,
        CreateEventRequest,
        EditEventRequest,
        JoinEventRequest,
        LeaveEventRequest,
        ChangeEventCancellationStatusRequest,
        AdminDeleteGroupRequest,
        AdminFetchLogsRequest,
    ],
    Field(discriminator="type"),
]

REQUEST_TYPES: tuple[type[BaseModel], ...] = get_args(get_args(ClientRequest)[0])

_request_adapter = TypeAdapter(ClientRequest)


def parse_request(payload: Any) -> BaseModel:
    """Parse an untrusted JSON payload; raises pydantic.ValidationError."""
    return _request_adapter.validate_python(payload)

"""Request router — owns the authoritative backend state.

``Backend.handle`` is the only entry point. Each message is handled to
completion and the resulting effects (pushes to connections, emails) are
returned for the hub to run; nothing here performs I/O.

Every request handler has the same shape:
1. resolve the requester through the session registry and gate on it
   (anyone, logged-in user, group owner or admin, admin)
2. validate the untrusted payload fields
3. apply the domain operation and swap the changed table entry
4. emit responses to the requesting connection, the session, or every
   connection of the affected user

Authorization and validation failures only produce an admin log entry:
the requester gets no response at all.
"""
import logging
from dataclasses import dataclass, replace
from datetime import datetime, timedelta
from typing import Callable, Iterable, Optional

from pydantic import BaseModel, ValidationError

from eventhub.config import Settings
from eventhub.models.event import Event, EventType
from eventhub.models.group import Group, GroupVisibility
from eventhub.models.log import LogEntry, LogKind
from eventhub.models.tokens import EventRef, PendingDelete, PendingLogin
from eventhub.models.user import User
from eventhub.schemas import requests as rq
from eventhub.schemas import responses as rs
from eventhub.schemas.event import event_to_out
from eventhub.schemas.group import group_to_out
from eventhub.schemas.log import LogOut
from eventhub.schemas.user import user_to_out, user_to_private_out
from eventhub.services import event_service, mailer, validation
from eventhub.services.errors import (
    DomainError,
    EventOverlapError,
    GroupNameTakenError,
    GroupNotFoundError,
    NotAuthorizedError,
    UntrustedInputError,
)
from eventhub.services.ids import IdGenerator
from eventhub.services.messages import (
    ClientConnected,
    ClientDisconnected,
    ClientRequest,
    Effect,
    EmailKind,
    EmailSent,
    Message,
    SendEmail,
    SendToConnection,
    Tick,
)
from eventhub.services.rate_limit import RateLimiter
from eventhub.services.reminders import REMINDER_WINDOW, due_reminders
from eventhub.services.session_registry import SessionRegistry
from eventhub.services.tokens import PendingTokenTable

logger = logging.getLogger(__name__)

DEFAULT_USER_NAME = "Anonymous"

_EMAIL_LOG_KINDS = {
    EmailKind.login: LogKind.login_email,
    EmailKind.delete_account: LogKind.delete_account_email,
    EmailKind.event_reminder: LogKind.event_reminder_email,
}


@dataclass(frozen=True)
class _Ctx:
    """Who sent the request being handled, and when."""

    session_id: str
    connection_id: str
    user_id: Optional[str]
    now: datetime


class Backend:
    def __init__(
        self,
        *,
        now: datetime,
        public_url: str = "http://localhost:8000",
        admin_emails: Iterable[str] = (),
        login_token_ttl: timedelta = timedelta(hours=1),
        delete_token_ttl: timedelta = timedelta(hours=1),
        edit_lock: timedelta = timedelta(0),
        reminder_window: timedelta = REMINDER_WINDOW,
        ids: Optional[IdGenerator] = None,
    ):
        self.public_url = public_url
        self.admin_emails = {email.lower() for email in admin_emails}
        self.login_token_ttl = login_token_ttl
        self.delete_token_ttl = delete_token_ttl
        self.edit_lock = edit_lock
        self.reminder_window = reminder_window
        self.ids = ids or IdGenerator()

        self.users: dict[str, User] = {}
        self.groups: dict[str, Group] = {}
        self.deleted_groups: dict[str, Group] = {}
        self.sessions = SessionRegistry()
        self.rate_limiter = RateLimiter()
        self.pending_logins: PendingTokenTable[PendingLogin] = PendingTokenTable()
        self.pending_deletes: PendingTokenTable[PendingDelete] = PendingTokenTable()
        self.logs: list[LogEntry] = []
        self.last_reminder_check = now

    @classmethod
    def from_settings(cls, settings: Settings, now: datetime) -> "Backend":
        return cls(
            now=now,
            public_url=settings.PUBLIC_URL,
            admin_emails=settings.admin_emails(),
            login_token_ttl=timedelta(minutes=settings.LOGIN_TOKEN_TTL_MINUTES),
            delete_token_ttl=timedelta(minutes=settings.DELETE_TOKEN_TTL_MINUTES),
            edit_lock=timedelta(minutes=settings.EVENT_EDIT_LOCK_MINUTES),
            reminder_window=timedelta(hours=settings.REMINDER_WINDOW_HOURS),
        )

    # ── Entry point ────────────────────────────────────────────────
    def handle(self, message: Message, now: datetime) -> list[Effect]:
        if isinstance(message, ClientRequest):
            return self._handle_request(message, now)
        if isinstance(message, ClientConnected):
            self.sessions.add_connection(message.session_id, message.connection_id)
            return []
        if isinstance(message, ClientDisconnected):
            self.sessions.remove_connection(message.session_id, message.connection_id)
            return []
        if isinstance(message, Tick):
            return self._tick(now)
        if isinstance(message, EmailSent):
            self._record_email(message, now)
            return []
        raise TypeError(f"Unknown backend message: {message!r}")

    def _handle_request(self, message: ClientRequest, now: datetime) -> list[Effect]:
        try:
            request = rq.parse_request(message.payload)
        except ValidationError as exc:
            self._log(
                now,
                LogKind.untrusted_check_failed,
                f"Malformed request ({exc.error_count()} error(s))",
                session_id=message.session_id,
            )
            return []

        ctx = _Ctx(
            session_id=message.session_id,
            connection_id=message.connection_id,
            user_id=self.sessions.lookup_user(message.session_id),
            now=now,
        )
        handler = _HANDLERS[type(request)]
        try:
            return handler(self, ctx, request)
        except UntrustedInputError as exc:
            self._log(
                now,
                LogKind.untrusted_check_failed,
                f"{request.type}: {exc}",
                session_id=ctx.session_id,
                user_id=ctx.user_id,
            )
        except NotAuthorizedError as exc:
            self._log(
                now,
                LogKind.unauthorized_request,
                f"{request.type}: {exc}",
                session_id=ctx.session_id,
                user_id=ctx.user_id,
            )
        return []

    # ── Helpers ────────────────────────────────────────────────────
    def _log(self, now: datetime, kind: LogKind, message: str, **fields) -> None:
        self.logs.append(LogEntry(time=now, kind=kind, message=message, **fields))
        logger.warning("%s: %s %s", kind.value, message, fields)

    def is_admin(self, user: Optional[User]) -> bool:
        return user is not None and user.email.lower() in self.admin_emails

    def _require_user(self, ctx: _Ctx) -> User:
        user = self.users.get(ctx.user_id) if ctx.user_id else None
        if user is None:
            raise NotAuthorizedError("not logged in")
        return user

    def _require_admin(self, ctx: _Ctx) -> User:
        user = self._require_user(ctx)
        if not self.is_admin(user):
            raise NotAuthorizedError(f"user {user.user_id} is not an admin")
        return user

    def _require_group_editor(self, ctx: _Ctx, group_id: str) -> tuple[User, Group]:
        user = self._require_user(ctx)
        group = self.groups.get(group_id)
        if group is None:
            raise NotAuthorizedError(f"group {group_id} does not exist")
        if group.owner_id != user.user_id and not self.is_admin(user):
            raise NotAuthorizedError(f"user {user.user_id} does not own group {group_id}")
        return user, group

    def _reply(self, ctx: _Ctx, response: BaseModel) -> list[Effect]:
        return [SendToConnection(ctx.connection_id, response)]

    def _to_session(self, session_id: str, response: BaseModel) -> list[Effect]:
        return [SendToConnection(conn, response) for conn in sorted(self.sessions.session_connections(session_id))]

    def _to_user(self, user_id: str, response: BaseModel) -> list[Effect]:
        return [SendToConnection(conn, response) for conn in sorted(self.sessions.connections_for(user_id))]

    def _user_by_email(self, email: str) -> Optional[User]:
        for user in self.users.values():
            if user.email == email:
                return user
        return None

    def _group_name_taken(self, name: str, exclude_group_id: Optional[str] = None) -> bool:
        wanted = name.casefold()
        return any(
            group.name.casefold() == wanted
            for group in self.groups.values()
            if group.group_id != exclude_group_id
        )

    def _update_user(self, user: User, **changes) -> User:
        updated = replace(user, **changes)
        self.users[user.user_id] = updated
        return updated

    def _soft_delete_group(self, group_id: str) -> Optional[Group]:
        group = self.groups.pop(group_id, None)
        if group is not None:
            self.deleted_groups[group_id] = group
            logger.info("Group %s ('%s') moved to deleted groups", group_id, group.name)
        return group

    # ── Session and login ──────────────────────────────────────────
    def _check_login(self, ctx: _Ctx, request: rq.CheckLoginRequest) -> list[Effect]:
        user = self.users.get(ctx.user_id) if ctx.user_id else None
        if user is None:
            return self._reply(ctx, rs.CheckLoginResponse(logged_in=False))
        return self._reply(
            ctx,
            rs.CheckLoginResponse(logged_in=True, user=user_to_private_out(user), is_admin=self.is_admin(user)),
        )

    def _get_login_token(self, ctx: _Ctx, request: rq.GetLoginTokenRequest) -> list[Effect]:
        if ctx.user_id is not None:
            raise NotAuthorizedError("session is already logged in")
        email = validation.email_address(request.email)
        join_event = (
            EventRef(request.join_event.group_id, request.join_event.event_id)
            if request.join_event is not None
            else None
        )

        if self.rate_limiter.login_rate_limited(ctx.session_id, email, self.pending_logins, ctx.now):
            self._log(
                ctx.now,
                LogKind.login_email_rate_limited,
                "Login email request rate limited",
                session_id=ctx.session_id,
                email=email,
            )
            return []

        self.rate_limiter.record_login_attempt(ctx.session_id, ctx.now)
        token = self.ids.unique_token(ctx.now, lambda t: t in self.pending_logins)
        self.pending_logins.issue(token, PendingLogin(email=email, created_at=ctx.now, join_event=join_event))
        subject, body = mailer.login_email(self.public_url, token, join_event)
        return [SendEmail(kind=EmailKind.login, to_email=email, subject=subject, body_html=body)]

    def _login_with_token(self, ctx: _Ctx, request: rq.LoginWithTokenRequest) -> list[Effect]:
        pending = self.pending_logins.consume(request.token)
        if pending is None or ctx.now - pending.created_at > self.login_token_ttl:
            logger.info("Login with unknown or expired token from session %s", ctx.session_id)
            return self._reply(ctx, rs.LoginWithTokenResponse(ok=False))

        user = self._user_by_email(pending.email)
        if user is None:
            user_id = self.ids.short_id(ctx.now, lambda i: i in self.users)
            user = User(user_id=user_id, name=DEFAULT_USER_NAME, email=pending.email, created_at=ctx.now)
            self.users[user_id] = user
            logger.info("Created user %s on first login", user_id)

        self.sessions.bind_session(ctx.session_id, user.user_id)
        effects = self._to_session(
            ctx.session_id,
            rs.LoginWithTokenResponse(ok=True, user=user_to_private_out(user), is_admin=self.is_admin(user)),
        )

        join_event = request.join_event or pending.join_event
        if join_event is not None:
            effects += self._join(user.user_id, join_event.group_id, join_event.event_id, ctx.now)
        return effects

    def _logout(self, ctx: _Ctx, request: rq.LogoutRequest) -> list[Effect]:
        self.sessions.unbind_session(ctx.session_id)
        return self._to_session(ctx.session_id, rs.LogoutResponse())

    # ── Reads ──────────────────────────────────────────────────────
    def _get_group(self, ctx: _Ctx, request: rq.GetGroupRequest) -> list[Effect]:
        group = self.groups.get(request.group_id)
        if group is None:
            return self._reply(ctx, rs.GetGroupResponse(group_id=request.group_id))
        owner = self.users.get(group.owner_id)
        return self._reply(
            ctx,
            rs.GetGroupResponse(
                group_id=group.group_id,
                group=group_to_out(group),
                owner=user_to_out(owner) if owner else None,
            ),
        )

    def _get_user(self, ctx: _Ctx, request: rq.GetUserRequest) -> list[Effect]:
        user = self.users.get(request.user_id)
        return self._reply(
            ctx,
            rs.GetUserResponse(user_id=request.user_id, user=user_to_out(user) if user else None),
        )

    def _get_my_groups(self, ctx: _Ctx, request: rq.GetMyGroupsRequest) -> list[Effect]:
        user = self._require_user(ctx)
        mine = [
            group for group in self.groups.values()
            if group.owner_id == user.user_id
            or any(user.user_id in ev.attendees for ev in group.events.values())
        ]
        mine.sort(key=lambda g: g.name.casefold())
        return self._reply(ctx, rs.GetMyGroupsResponse(groups=[group_to_out(g) for g in mine]))

    def search_groups(self, query: str) -> list[Group]:
        """Public, non-deleted groups whose name or description contains ``query``."""
        needle = query.casefold()
        found = [
            group for group in self.groups.values()
            if group.visibility == GroupVisibility.public
            and (needle in group.name.casefold() or needle in group.description.casefold())
        ]
        found.sort(key=lambda g: g.name.casefold())
        return found

    def _search_groups(self, ctx: _Ctx, request: rq.SearchGroupsRequest) -> list[Effect]:
        query = validation.search_text(request.query)
        groups = self.search_groups(query)
        return self._reply(
            ctx,
            rs.SearchGroupsResponse(query=request.query, groups=[group_to_out(g) for g in groups]),
        )

    # ── Profile ────────────────────────────────────────────────────
    def _change_name(self, ctx: _Ctx, request: rq.ChangeNameRequest) -> list[Effect]:
        user = self._update_user(self._require_user(ctx), name=validation.user_name(request.name))
        return self._to_user(user.user_id, rs.ChangeNameResponse(user_id=user.user_id, name=user.name))

    def _change_description(self, ctx: _Ctx, request: rq.ChangeDescriptionRequest) -> list[Effect]:
        user = self._update_user(self._require_user(ctx), description=validation.description(request.description))
        return self._to_user(
            user.user_id,
            rs.ChangeDescriptionResponse(user_id=user.user_id, description=user.description),
        )

    def _change_email(self, ctx: _Ctx, request: rq.ChangeEmailRequest) -> list[Effect]:
        user = self._require_user(ctx)
        email = validation.email_address(request.email)
        owner = self._user_by_email(email)
        if owner is not None and owner.user_id != user.user_id:
            raise UntrustedInputError("EmailAlreadyInUse")
        # Admin addresses can only be claimed through the login email
        if email in self.admin_emails and email != user.email:
            raise UntrustedInputError("EmailReserved", email)
        user = self._update_user(user, email=email)
        return self._to_user(user.user_id, rs.ChangeEmailResponse(user_id=user.user_id, email=user.email))

    def _change_profile_image(self, ctx: _Ctx, request: rq.ChangeProfileImageRequest) -> list[Effect]:
        image = validation.profile_image(request.profile_image)
        user = self._update_user(self._require_user(ctx), profile_image=image)
        return self._to_user(
            user.user_id,
            rs.ChangeProfileImageResponse(user_id=user.user_id, profile_image=user.profile_image),
        )

    def _change_timezone(self, ctx: _Ctx, request: rq.ChangeTimezoneRequest) -> list[Effect]:
        tz = validation.timezone_name(request.timezone)
        user = self._update_user(self._require_user(ctx), timezone=tz)
        return self._to_user(user.user_id, rs.ChangeTimezoneResponse(user_id=user.user_id, timezone=user.timezone))

    def _change_email_reminders(self, ctx: _Ctx, request: rq.ChangeEmailRemindersRequest) -> list[Effect]:
        user = self._update_user(self._require_user(ctx), email_reminders=request.enabled)
        return self._to_user(
            user.user_id,
            rs.ChangeEmailRemindersResponse(user_id=user.user_id, enabled=user.email_reminders),
        )

    # ── Account deletion ───────────────────────────────────────────
    def _get_delete_user_token(self, ctx: _Ctx, request: rq.GetDeleteUserTokenRequest) -> list[Effect]:
        user = self._require_user(ctx)
        if self.rate_limiter.delete_rate_limited(user.user_id, self.pending_deletes, ctx.now):
            self._log(
                ctx.now,
                LogKind.delete_account_email_rate_limited,
                "Delete account email request rate limited",
                session_id=ctx.session_id,
                user_id=user.user_id,
            )
            return []

        token = self.ids.unique_token(ctx.now, lambda t: t in self.pending_deletes)
        self.pending_deletes.issue(token, PendingDelete(user_id=user.user_id, created_at=ctx.now))
        subject, body = mailer.delete_account_email(self.public_url, token)
        return [
            SendEmail(
                kind=EmailKind.delete_account,
                to_email=user.email,
                subject=subject,
                body_html=body,
                user_id=user.user_id,
            )
        ]

    def _delete_user(self, ctx: _Ctx, request: rq.DeleteUserRequest) -> list[Effect]:
        pending = self.pending_deletes.consume(request.token)
        if pending is None or ctx.now - pending.created_at > self.delete_token_ttl:
            return self._reply(ctx, rs.DeleteUserResponse(ok=False))
        user = self.users.get(pending.user_id)
        if user is None:
            return self._reply(ctx, rs.DeleteUserResponse(ok=False))

        # Resolve connections before the sessions are scrubbed
        effects = self._to_user(user.user_id, rs.DeleteUserResponse(ok=True))
        if ctx.connection_id not in {effect.connection_id for effect in effects}:
            effects += self._reply(ctx, rs.DeleteUserResponse(ok=True))

        for group_id in [g.group_id for g in self.groups.values() if g.owner_id == user.user_id]:
            self._soft_delete_group(group_id)
        del self.users[user.user_id]
        self.sessions.unbind_user(user.user_id)
        logger.info("Deleted user %s", user.user_id)
        return effects

    # ── Groups ─────────────────────────────────────────────────────
    def _create_group(self, ctx: _Ctx, request: rq.CreateGroupRequest) -> list[Effect]:
        user = self._require_user(ctx)
        name = validation.group_name(request.name)
        description = validation.description(request.description)
        visibility = validation.visibility(request.visibility)

        if self._group_name_taken(name):
            return self._to_user(user.user_id, rs.CreateGroupResponse(error=GroupNameTakenError.code))

        group_id = self.ids.short_id(ctx.now, lambda i: i in self.groups or i in self.deleted_groups)
        group = Group(
            group_id=group_id,
            owner_id=user.user_id,
            name=name,
            description=description,
            visibility=visibility,
            created_at=ctx.now,
        )
        self.groups[group_id] = group
        logger.info("Created group '%s' (%s) by user %s", name, group_id, user.user_id)
        return self._to_user(user.user_id, rs.CreateGroupResponse(group=group_to_out(group)))

    def _change_group_name(self, ctx: _Ctx, request: rq.ChangeGroupNameRequest) -> list[Effect]:
        user, group = self._require_group_editor(ctx, request.group_id)
        name = validation.group_name(request.name)
        if self._group_name_taken(name, exclude_group_id=group.group_id):
            return self._to_user(
                user.user_id,
                rs.ChangeGroupNameResponse(group_id=group.group_id, error=GroupNameTakenError.code),
            )
        self.groups[group.group_id] = replace(group, name=name)
        return self._to_user(user.user_id, rs.ChangeGroupNameResponse(group_id=group.group_id, name=name))

    def _change_group_description(self, ctx: _Ctx, request: rq.ChangeGroupDescriptionRequest) -> list[Effect]:
        user, group = self._require_group_editor(ctx, request.group_id)
        description = validation.description(request.description)
        self.groups[group.group_id] = replace(group, description=description)
        return self._to_user(
            user.user_id,
            rs.ChangeGroupDescriptionResponse(group_id=group.group_id, description=description),
        )

    def _change_group_visibility(self, ctx: _Ctx, request: rq.ChangeGroupVisibilityRequest) -> list[Effect]:
        user, group = self._require_group_editor(ctx, request.group_id)
        visibility = validation.visibility(request.visibility)
        self.groups[group.group_id] = replace(group, visibility=visibility)
        return self._to_user(
            user.user_id,
            rs.ChangeGroupVisibilityResponse(group_id=group.group_id, visibility=visibility),
        )

    # ── Events ─────────────────────────────────────────────────────
    def _validated_event_fields(self, request: rq.CreateEventRequest | rq.EditEventRequest) -> dict:
        return {
            "name": validation.event_name(request.name),
            "description": validation.description(request.description),
            "event_type": validation.event_type(request.event_type),
            "link": validation.meeting_link(request.link),
            "address": validation.address(request.address),
            "start_time": validation.start_time(request.start_time),
            "duration_minutes": validation.duration_minutes(request.duration_minutes),
            "max_attendees": validation.max_attendees(request.max_attendees),
        }

    def _create_event(self, ctx: _Ctx, request: rq.CreateEventRequest) -> list[Effect]:
        user, group = self._require_group_editor(ctx, request.group_id)
        fields = self._validated_event_fields(request)
        try:
            event, updated = event_service.create_event(ctx.now, group, **fields)
        except DomainError as exc:
            return self._to_user(
                user.user_id,
                rs.CreateEventResponse(group_id=group.group_id, error=exc.code, conflicting_events=_conflicts(exc)),
            )
        self.groups[group.group_id] = updated
        return self._to_user(
            user.user_id,
            rs.CreateEventResponse(group_id=group.group_id, event=event_to_out(event)),
        )

    def _edit_event(self, ctx: _Ctx, request: rq.EditEventRequest) -> list[Effect]:
        user, group = self._require_group_editor(ctx, request.group_id)
        fields = self._validated_event_fields(request)

        def editor(event: Event) -> Event:
            edited = replace(event, **fields)
            # A type switch drops the location of the other type
            if edited.event_type == EventType.online:
                return replace(edited, address=None)
            return replace(edited, link=None)

        try:
            event, updated = event_service.edit_event(ctx.now, request.event_id, editor, group, self.edit_lock)
        except DomainError as exc:
            return self._to_user(
                user.user_id,
                rs.EditEventResponse(
                    group_id=group.group_id,
                    event_id=request.event_id,
                    error=exc.code,
                    conflicting_events=_conflicts(exc),
                    backend_time=ctx.now,
                ),
            )
        self.groups[group.group_id] = updated
        return self._to_user(
            user.user_id,
            rs.EditEventResponse(
                group_id=group.group_id,
                event_id=event.event_id,
                event=event_to_out(event),
                backend_time=ctx.now,
            ),
        )

    def _join(self, user_id: str, group_id: str, event_id: int, now: datetime) -> list[Effect]:
        group = self.groups.get(group_id)
        if group is None:
            return self._to_user(
                user_id,
                rs.JoinEventResponse(group_id=group_id, event_id=event_id, error=GroupNotFoundError.code),
            )
        try:
            updated = event_service.join_event(now, user_id, event_id, group)
        except DomainError as exc:
            current = group.get_event(event_id)
            return self._to_user(
                user_id,
                rs.JoinEventResponse(
                    group_id=group_id,
                    event_id=event_id,
                    event=event_to_out(current) if current else None,
                    error=exc.code,
                ),
            )
        self.groups[group_id] = updated
        return self._to_user(
            user_id,
            rs.JoinEventResponse(group_id=group_id, event_id=event_id, event=event_to_out(updated.events[event_id])),
        )

    def _join_event(self, ctx: _Ctx, request: rq.JoinEventRequest) -> list[Effect]:
        user = self._require_user(ctx)
        return self._join(user.user_id, request.group_id, request.event_id, ctx.now)

    def _leave_event(self, ctx: _Ctx, request: rq.LeaveEventRequest) -> list[Effect]:
        user = self._require_user(ctx)
        group = self.groups.get(request.group_id)
        if group is None:
            return self._to_user(
                user.user_id,
                rs.LeaveEventResponse(group_id=request.group_id, event_id=request.event_id),
            )
        updated = event_service.leave_event(user.user_id, request.event_id, group)
        self.groups[group.group_id] = updated
        event = updated.get_event(request.event_id)
        return self._to_user(
            user.user_id,
            rs.LeaveEventResponse(
                group_id=group.group_id,
                event_id=request.event_id,
                event=event_to_out(event) if event else None,
            ),
        )

    def _change_event_cancellation_status(
        self, ctx: _Ctx, request: rq.ChangeEventCancellationStatusRequest
    ) -> list[Effect]:
        user, group = self._require_group_editor(ctx, request.group_id)
        status = validation.cancellation_status(request.status)
        reason = validation.cancel_reason(request.reason)
        try:
            updated = event_service.edit_cancellation_status(ctx.now, request.event_id, status, group, reason)
        except DomainError as exc:
            return self._to_user(
                user.user_id,
                rs.ChangeEventCancellationStatusResponse(
                    group_id=group.group_id,
                    event_id=request.event_id,
                    error=exc.code,
                    backend_time=ctx.now,
                ),
            )
        self.groups[group.group_id] = updated
        return self._to_user(
            user.user_id,
            rs.ChangeEventCancellationStatusResponse(
                group_id=group.group_id,
                event_id=request.event_id,
                event=event_to_out(updated.events[request.event_id]),
                backend_time=ctx.now,
            ),
        )

    # ── Admin ──────────────────────────────────────────────────────
    def _admin_delete_group(self, ctx: _Ctx, request: rq.AdminDeleteGroupRequest) -> list[Effect]:
        admin = self._require_admin(ctx)
        if self._soft_delete_group(request.group_id) is None:
            return self._to_user(
                admin.user_id,
                rs.AdminDeleteGroupResponse(group_id=request.group_id, error=GroupNotFoundError.code),
            )
        return self._to_user(admin.user_id, rs.AdminDeleteGroupResponse(group_id=request.group_id))

    def _admin_fetch_logs(self, ctx: _Ctx, request: rq.AdminFetchLogsRequest) -> list[Effect]:
        self._require_admin(ctx)
        return self._reply(ctx, rs.AdminFetchLogsResponse(logs=[LogOut.model_validate(e) for e in self.logs]))

    # ── Timer and email completions ────────────────────────────────
    def _tick(self, now: datetime) -> list[Effect]:
        self.rate_limiter.prune(now)
        self.pending_logins.prune(now, self.login_token_ttl)
        self.pending_deletes.prune(now, self.delete_token_ttl)

        effects: list[Effect] = []
        for group, event in due_reminders(self.groups.values(), self.last_reminder_check, now, self.reminder_window):
            for user_id in sorted(event.attendees):
                user = self.users.get(user_id)
                if user is None or not user.email_reminders:
                    continue
                subject, body = mailer.event_reminder_email(user, group, event)
                effects.append(
                    SendEmail(
                        kind=EmailKind.event_reminder,
                        to_email=user.email,
                        subject=subject,
                        body_html=body,
                        user_id=user.user_id,
                        group_id=group.group_id,
                        event_id=event.event_id,
                    )
                )
        self.last_reminder_check = now
        return effects

    def _record_email(self, message: EmailSent, now: datetime) -> None:
        email = message.email
        entry = LogEntry(
            time=now,
            kind=_EMAIL_LOG_KINDS[email.kind],
            message=message.error or "sent",
            email=email.to_email,
            user_id=email.user_id,
            group_id=email.group_id,
            event_id=email.event_id,
            success=message.error is None,
        )
        self.logs.append(entry)
        if message.error is None:
            logger.info("%s email delivered to %s", email.kind.value, mailer.mask_email(email.to_email))
        else:
            logger.error(
                "%s email to %s failed: %s", email.kind.value, mailer.mask_email(email.to_email), message.error
            )


def _conflicts(exc: DomainError) -> list:
    if isinstance(exc, EventOverlapError):
        return [event_to_out(ev) for ev in exc.conflicts]
    return []


Handler = Callable[[Backend, _Ctx, BaseModel], list[Effect]]

_HANDLERS: dict[type, Handler] = {
    rq.CheckLoginRequest: Backend._check_login,
    rq.GetGroupRequest: Backend._get_group,
    rq.GetUserRequest: Backend._get_user,
    rq.GetLoginTokenRequest: Backend._get_login_token,
    rq.LoginWithTokenRequest: Backend._login_with_token,
    rq.LogoutRequest: Backend._logout,
    rq.CreateGroupRequest: Backend._create_group,
    rq.ChangeNameRequest: Backend._change_name,
    rq.ChangeDescriptionRequest: Backend._change_description,
    rq.ChangeEmailRequest: Backend._change_email,
    rq.ChangeProfileImageRequest: Backend._change_profile_image,
    rq.ChangeTimezoneRequest: Backend._change_timezone,
    rq.ChangeEmailRemindersRequest: Backend._change_email_reminders,
    rq.GetDeleteUserTokenRequest: Backend._get_delete_user_token,
    rq.DeleteUserRequest: Backend._delete_user,
    rq.GetMyGroupsRequest: Backend._get_my_groups,
    rq.SearchGroupsRequest: Backend._search_groups,
    rq.ChangeGroupNameRequest: Backend._change_group_name,
    rq.ChangeGroupDescriptionRequest: Backend._change_group_description,
    rq.ChangeGroupVisibilityRequest: Backend._change_group_visibility,
    rq.CreateEventRequest: Backend._create_event,
    rq.EditEventRequest: Backend._edit_event,
    rq.JoinEventRequest: Backend._join_event,
    rq.LeaveEventRequest: Backend._leave_event,
    rq.ChangeEventCancellationStatusRequest: Backend._change_event_cancellation_status,
    rq.AdminDeleteGroupRequest: Backend._admin_delete_group,
    rq.AdminFetchLogsRequest: Backend._admin_fetch_logs,
}

# Adding a request variant without a handler fails at import time
_missing = set(rq.REQUEST_TYPES) - set(_HANDLERS)
if _missing:
    raise RuntimeError(f"No handler for request types: {sorted(t.__name__ for t in _missing)}")

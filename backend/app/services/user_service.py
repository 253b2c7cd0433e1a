"""
Register, update and delete users across the directory, the picture store
and the mailer.

Every operation is a Pipeline of named steps. A stored picture is only ever
removed after the database write that stops referencing it has committed;
a picture stored for a write that then fails is removed as compensation.

Directory calls and password hashing run in the threadpool; the directory
hands its connection back after each call, so no step awaits the network
or the disk while holding a pooled connection.
"""
import logging
import secrets
from typing import Any, Optional
from fastapi import UploadFile
from pydantic import ValidationError
from starlette.concurrency import run_in_threadpool
from app.core.errors import (
    Conflict,
    DuplicateEmail,
    NotFound,
    Unauthorized,
    UserNotFound,
    ValidationFailed,
)
from app.core.security import get_password_hash, verify_password
from app.models.user import User
from app.schemas.user import ProfileFields, RegistrationForm, UserForm, UserResponse, validation_errors
from app.services.email_service import EmailService
from app.services.pipeline import CONTINUE, OperationContext, Pipeline, StepOutcome, halt
from app.services.user_directory import UserDirectory
from app.storage.local_storage import LocalStorage

logger = logging.getLogger(__name__)

EMAIL_TAKEN = "Email is already taken by another user"


class UserService:
    def __init__(self, directory: UserDirectory, media: LocalStorage, notifier: EmailService):
        self.directory = directory
        self.media = media
        self.notifier = notifier

        self._register = Pipeline("register", [
            ("validate", self._validate_registration),
            ("accept_media", self._accept_media),
            ("insert", self._insert_user),
            ("notify", self._notify_registration),
        ])
        self._update = Pipeline("update", [
            ("load_existing", self._load_existing),
            ("validate", self._validate_form),
            ("check_email", self._check_email_available),
            ("accept_media", self._accept_media),
            ("update", self._update_user),
        ])
        self._update_profile = Pipeline("update_profile", [
            ("load_existing", self._load_existing),
            ("update", self._update_profile_fields),
        ])
        self._delete = Pipeline("delete", [
            ("load_existing", self._load_existing),
            ("delete", self._delete_user),
        ])
        self._request_verification = Pipeline("request_verification", [
            ("load_existing", self._load_existing),
            ("issue_token", self._issue_verification_token),
            ("notify", self._notify_verification),
        ])

    # Operations

    async def register(self, raw: dict[str, Any], upload: Optional[UploadFile] = None) -> User:
        ctx = OperationContext("register", {"raw": raw, "upload": upload})
        await self._register.run(ctx)
        return ctx["user"]

    async def update(self, user_id: int, raw: dict[str, Any], upload: Optional[UploadFile] = None) -> User:
        ctx = OperationContext("update", {"user_id": user_id, "raw": raw, "upload": upload})
        await self._update.run(ctx)
        return ctx["user"]

    async def update_profile(self, user_id: int, profile: ProfileFields) -> User:
        """Self-service edit; email and picture are left untouched"""
        ctx = OperationContext("update_profile", {"user_id": user_id, "profile": profile})
        await self._update_profile.run(ctx)
        return ctx["user"]

    async def delete(self, user_id: int) -> None:
        ctx = OperationContext("delete", {"user_id": user_id})
        await self._delete.run(ctx)

    async def request_verification(self, user_id: int) -> User:
        ctx = OperationContext("request_verification", {"user_id": user_id})
        await self._request_verification.run(ctx)
        return ctx["existing"]

    async def get(self, user_id: int) -> User:
        user = await run_in_threadpool(self.directory.find_by_id, user_id)
        if user is None:
            raise NotFound()
        return user

    async def list(self, page: int, limit: int, search: Optional[str] = None) -> tuple[list[User], int]:
        return await run_in_threadpool(self.directory.list, page=page, page_size=limit, search=search or None)

    async def authenticate(self, email: str, password: str) -> User:
        user = await run_in_threadpool(self.directory.find_by_email, email)
        # Same answer for unknown email and wrong password
        if user is None or not await run_in_threadpool(verify_password, password, user.hashed_password):
            raise Unauthorized("Invalid email or password")
        return user

    def to_response(self, user: User) -> UserResponse:
        return UserResponse.from_user(user, self.media.url_for)

    # Steps

    async def _validate_registration(self, ctx: OperationContext) -> StepOutcome:
        return self._parse_form(ctx, RegistrationForm)

    async def _validate_form(self, ctx: OperationContext) -> StepOutcome:
        # Update-by-id never touches the credential; a password field is ignored
        return self._parse_form(ctx, UserForm)

    @staticmethod
    def _parse_form(ctx: OperationContext, model: type[UserForm]) -> StepOutcome:
        try:
            ctx["form"] = model.model_validate(ctx["raw"])
        except ValidationError as e:
            return halt(ValidationFailed(validation_errors(e)))
        return CONTINUE

    async def _load_existing(self, ctx: OperationContext) -> StepOutcome:
        user = await run_in_threadpool(self.directory.find_by_id, ctx["user_id"])
        if user is None:
            return halt(NotFound())
        ctx["existing"] = user
        ctx["previous_picture"] = user.profile_picture
        return CONTINUE

    async def _check_email_available(self, ctx: OperationContext) -> StepOutcome:
        form: UserForm = ctx["form"]
        existing: User = ctx["existing"]
        if form.email != existing.email and await run_in_threadpool(
            self.directory.email_taken, form.email, exclude_id=existing.id
        ):
            return halt(Conflict(EMAIL_TAKEN))
        return CONTINUE

    async def _accept_media(self, ctx: OperationContext) -> StepOutcome:
        upload: Optional[UploadFile] = ctx.get("upload")
        if upload is None or not upload.filename:
            return CONTINUE

        stored_name = await self.media.save_upload(upload)
        ctx["stored_name"] = stored_name
        ctx.compensate_with(f"remove {stored_name}", lambda: self.media.remove(stored_name))
        return CONTINUE

    async def _insert_user(self, ctx: OperationContext) -> StepOutcome:
        form: RegistrationForm = ctx["form"]
        # Early probe for a clear answer; the unique constraint still decides races
        if await run_in_threadpool(self.directory.email_taken, form.email):
            return halt(Conflict())

        fields = form.model_dump(exclude={"password"})
        fields["profile_picture"] = ctx.get("stored_name")
        if form.password:
            fields["hashed_password"] = await run_in_threadpool(get_password_hash, form.password)

        try:
            user = await run_in_threadpool(self.directory.insert, fields)
        except DuplicateEmail:
            return halt(Conflict())

        ctx.mark_committed()
        ctx["user"] = user
        logger.info(f"Registered user {user.id} ({user.email})")
        return CONTINUE

    async def _update_user(self, ctx: OperationContext) -> StepOutcome:
        form: UserForm = ctx["form"]
        user_id = ctx["user_id"]
        previous = ctx["previous_picture"]
        stored_name = ctx.get("stored_name")

        fields = form.model_dump()
        fields["profile_picture"] = stored_name or previous

        try:
            user = await run_in_threadpool(self.directory.update, user_id, fields)
        except DuplicateEmail:
            return halt(Conflict(EMAIL_TAKEN))
        except UserNotFound:
            return halt(NotFound())

        ctx.mark_committed()
        ctx["user"] = user
        if stored_name and previous and previous != stored_name:
            ctx.after_commit(f"remove previous {previous}", lambda: self.media.remove(previous))
        return CONTINUE

    async def _update_profile_fields(self, ctx: OperationContext) -> StepOutcome:
        profile: ProfileFields = ctx["profile"]
        try:
            user = await run_in_threadpool(self.directory.update, ctx["user_id"], profile.model_dump())
        except UserNotFound:
            return halt(NotFound())

        ctx.mark_committed()
        ctx["user"] = user
        return CONTINUE

    async def _delete_user(self, ctx: OperationContext) -> StepOutcome:
        user_id = ctx["user_id"]
        picture = ctx["previous_picture"]
        try:
            await run_in_threadpool(self.directory.delete, user_id)
        except UserNotFound:
            return halt(NotFound())

        ctx.mark_committed()
        logger.info(f"Deleted user {user_id}")
        if picture:
            ctx.after_commit(f"remove {picture}", lambda: self.media.remove(picture))
        return CONTINUE

    async def _issue_verification_token(self, ctx: OperationContext) -> StepOutcome:
        token = secrets.token_urlsafe(32)
        try:
            ctx["existing"] = await run_in_threadpool(
                self.directory.update, ctx["user_id"], {"verification_token": token}
            )
        except UserNotFound:
            return halt(NotFound())
        ctx.mark_committed()
        ctx["verification_token"] = token
        return CONTINUE

    async def _notify_registration(self, ctx: OperationContext) -> StepOutcome:
        user: User = ctx["user"]
        await self._best_effort(self.notifier.send_registration_notice(user.email, user.name), "registration")
        return CONTINUE

    async def _notify_verification(self, ctx: OperationContext) -> StepOutcome:
        user: User = ctx["existing"]
        await self._best_effort(
            self.notifier.send_verification_notice(user.email, user.name, ctx["verification_token"]),
            "verification",
        )
        return CONTINUE

    @staticmethod
    async def _best_effort(send, kind: str) -> None:
        # A notification never changes the outcome of the operation
        try:
            result = await send
        except Exception:
            logger.exception(f"{kind} email raised; continuing")
            return
        if not result.success:
            logger.warning(f"{kind} email not delivered: {result.error}")

"""One user's editing session over a single portfolio document.

The session owns the current document and is the only place that dispatches
reducer actions. Persistence runs through an injected gateway on a worker
thread; at most one save per document is ever in flight.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Sequence

from pydantic import ValidationError

from config.settings import BuilderSettings, get_settings
from services.errors import PortfolioServiceError, ReorderError, ServiceUnavailableError, user_message

from . import sections as section_ops
from .models import SECTION_CLASSES, Document, new_document
from .reducer import Action, SET_PROFILE, load_document, portfolio_reducer, set_sections
from .sync import SectionSnapshot
from .validation import validate_for_publish

logger = logging.getLogger(__name__)

STATUS_IDLE = "idle"
STATUS_SAVING = "saving"
STATUS_SAVED = "saved"
STATUS_ERROR = "error"

SIGN_IN_TO_SAVE = "Sign in to save your portfolio."
SIGN_IN_TO_PUBLISH = "Sign in to publish your portfolio."
INCOMPLETE_PROFILE = "Please complete all required profile fields before publishing."


@dataclass
class SaveOutcome:
    status: str
    message: Optional[str] = None
    retryable: bool = False
    error_code: Optional[str] = None


@dataclass
class PublishOutcome:
    published: bool
    document: Optional[Document] = None
    field_errors: Dict[str, str] = field(default_factory=dict)
    message: Optional[str] = None
    retryable: bool = False
    requires_auth: bool = False


class BuilderSession:
    """Edit, save and publish a portfolio on behalf of the signed-in user.

    ``auth`` needs ``current_user()`` and ``on_auth_change(handler)``;
    ``gateway`` is a ``PortfolioService`` or anything with the same methods.
    Without a signed-in user the session runs in preview mode: edits work,
    nothing is persisted.
    """

    def __init__(
        self,
        auth: Any,
        gateway: Any,
        *,
        settings: Optional[BuilderSettings] = None,
        allocator: Optional[section_ops.SectionIdAllocator] = None,
    ) -> None:
        self._auth = auth
        self._gateway = gateway
        self.settings = settings or get_settings()
        self.allocator = allocator or section_ops.SectionIdAllocator()

        self.document: Document = new_document()
        self._revision = 0
        self._saved_revision = 0
        self._snapshot = SectionSnapshot()
        self._save_lock = asyncio.Lock()

        self.save_status = STATUS_IDLE
        self.save_message: Optional[str] = None
        self.last_saved: Optional[datetime] = None
        self.load_error: Optional[str] = None
        self.field_errors: Dict[str, str] = {}
        self.section_errors: Dict[str, List[str]] = {}

        self.user_profile: Optional[Dict[str, Any]] = None
        self.profile_task: Optional[asyncio.Task[Any]] = None
        self._autosave_task: Optional[asyncio.Task[Any]] = None
        self._unsubscribe = auth.on_auth_change(self._handle_auth_change)

    # --- State -------------------------------------------------------------

    @property
    def user(self):
        return self._auth.current_user()

    @property
    def preview_mode(self) -> bool:
        return self.user is None

    @property
    def is_dirty(self) -> bool:
        return self._revision != self._saved_revision

    def dispatch(self, action: Action) -> Document:
        updated = portfolio_reducer(self.document, action)
        if updated is not self.document:
            self.document = updated
            self._revision += 1
            if action.type == SET_PROFILE:
                self._clear_resolved_errors()
        return self.document

    def _clear_resolved_errors(self) -> None:
        profile = self.document.profile
        for name in ("name", "title", "bio"):
            if name in self.field_errors and getattr(profile, name).strip():
                del self.field_errors[name]

    # --- Section editing -----------------------------------------------------

    def _set_sections(self, updated: Sequence) -> Document:
        if updated is self.document.sections:
            return self.document
        return self.dispatch(set_sections(updated))

    def add_section(self, section_type: str) -> Document:
        return self._set_sections(
            section_ops.add_section(self.document.sections, section_type, allocator=self.allocator)
        )

    def remove_section(self, section_id: str) -> Document:
        return self._set_sections(section_ops.remove_section(self.document.sections, section_id))

    def toggle_section(self, section_id: str) -> Document:
        return self._set_sections(section_ops.toggle_visibility(self.document.sections, section_id))

    def move_section(self, from_index: int, to_index: int) -> Document:
        return self._set_sections(section_ops.reorder(self.document.sections, from_index, to_index))

    def update_section_content(self, section_id: str, content: Any) -> Document:
        """Replace a section's content once it matches the section's type.

        Content of the wrong shape leaves the document untouched and is
        reported in ``section_errors``.
        """
        current = next((section for section in self.document.sections if section.id == section_id), None)
        if current is None:
            return self.document
        try:
            updated = SECTION_CLASSES[current.type].model_validate({**current.model_dump(), "content": content})
        except ValidationError as exc:
            logger.warning(f"Rejected content for {current.type} section {section_id}: {exc.error_count()} error(s)")
            self.section_errors[section_id] = [error["msg"] for error in exc.errors()]
            return self.document
        self.section_errors.pop(section_id, None)
        if updated == current:
            return self.document
        return self._set_sections(section_ops.update_content(self.document.sections, section_id, updated.content))

    def update_section_title(self, section_id: str, title: str) -> Document:
        return self._set_sections(section_ops.update_title(self.document.sections, section_id, title))

    def change_section_type(self, section_id: str, section_type: str) -> Document:
        return self._set_sections(section_ops.change_type(self.document.sections, section_id, section_type))

    # --- Loading -------------------------------------------------------------

    async def start(self) -> Document:
        """Load the user's latest portfolio, creating one on first visit."""
        user = self.user
        if user is None:
            return self.document

        try:
            summaries = await asyncio.to_thread(self._gateway.list_for_owner, user.user_id)
            if summaries:
                document = await asyncio.to_thread(self._gateway.load, summaries[0].id)
            else:
                title = f"{getattr(user, 'full_name', None) or 'My'} Portfolio"
                document = await asyncio.to_thread(
                    self._gateway.create, user.user_id, new_document(), title=title
                )
        except PortfolioServiceError as exc:
            logger.error(f"Error loading portfolio for user {user.user_id}: {exc}")
            self.load_error = user_message(exc)
            return self.document

        self.load_error = None
        self._adopt(document)
        return self.document

    def _adopt(self, document: Document) -> None:
        self.dispatch(load_document(document))
        self._snapshot = SectionSnapshot.from_document(document)
        self._saved_revision = self._revision
        self.last_saved = document.updated_at or datetime.now(timezone.utc)
        self.save_status = STATUS_IDLE

    # --- Saving --------------------------------------------------------------

    async def save(self, *, autosave: bool = False) -> SaveOutcome:
        """Persist the current document.

        A request made while another save is running waits for it, then only
        writes if the document changed again in the meantime.
        """
        if self.user is None:
            return SaveOutcome(self.save_status, SIGN_IN_TO_SAVE)
        if self.document.id is None:
            return SaveOutcome(self.save_status, "This portfolio has not been created yet.")

        async with self._save_lock:
            if not self.is_dirty:
                return SaveOutcome(self.save_status if self.save_status != STATUS_IDLE else STATUS_SAVED)

            revision = self._revision
            document = self.document
            self.save_status = STATUS_SAVING
            try:
                await asyncio.to_thread(self._write, document)
            except PortfolioServiceError as exc:
                self.save_status = STATUS_ERROR
                retryable = isinstance(exc, (ServiceUnavailableError, ReorderError))
                if autosave:
                    logger.warning(f"Autosave of portfolio {document.id} failed: {exc}")
                    return SaveOutcome(STATUS_ERROR, retryable=retryable, error_code=exc.code)
                logger.error(f"Error saving portfolio {document.id}: {exc}")
                self.save_message = user_message(exc)
                return SaveOutcome(STATUS_ERROR, self.save_message, retryable, exc.code)
            except Exception:
                self.save_status = STATUS_ERROR
                raise

            self._saved_revision = revision
            self.save_status = STATUS_SAVED
            self.save_message = None
            self.last_saved = datetime.now(timezone.utc)
            logger.info(f"Saved portfolio {document.id} ({'autosave' if autosave else 'manual'})")
            return SaveOutcome(STATUS_SAVED)

    def _write(self, document: Document) -> None:
        self._gateway.update(
            document.id,
            {"profile": document.profile, "design": document.design, "template": document.template},
        )

        plan = self._snapshot.plan(document.sections)
        for local_id in plan.deletes:
            self._gateway.delete_section(self._snapshot.remote_id(local_id))
            self._snapshot.record_deleted(local_id)
        for section, position in plan.creates:
            remote_id = self._gateway.create_section(document.id, section, position)
            self._snapshot.record_created(section, remote_id, position)
        for section in plan.updates:
            self._gateway.update_section(self._snapshot.remote_id(section.id), section)
            self._snapshot.record_updated(section)
        if plan.order:
            self._gateway.reorder_sections(
                [(self._snapshot.remote_id(local_id), position) for local_id, position in plan.order]
            )
            self._snapshot.record_order(plan.order)

    # --- Publishing ----------------------------------------------------------

    async def publish(self) -> PublishOutcome:
        if self.user is None:
            return PublishOutcome(False, message=SIGN_IN_TO_PUBLISH, requires_auth=True)

        validation = validate_for_publish(self.document)
        self.field_errors = dict(validation.field_errors)
        if not validation.valid:
            return PublishOutcome(False, field_errors=dict(validation.field_errors), message=INCOMPLETE_PROFILE)
        if self.document.id is None:
            return PublishOutcome(False, message="This portfolio has not been created yet.")

        outcome = await self.save()
        if outcome.status == STATUS_ERROR:
            return PublishOutcome(False, message=outcome.message, retryable=outcome.retryable)

        try:
            published = await asyncio.to_thread(self._gateway.publish, self.document.id)
        except PortfolioServiceError as exc:
            logger.error(f"Error publishing portfolio {self.document.id}: {exc}")
            return PublishOutcome(
                False,
                message=user_message(exc),
                retryable=isinstance(exc, ServiceUnavailableError),
            )

        was_clean = not self.is_dirty
        self.dispatch(
            load_document(
                self.document.model_copy(
                    update={
                        "status": "published",
                        "published_at": published.published_at,
                        "slug": published.slug,
                    }
                )
            )
        )
        if was_clean:
            self._saved_revision = self._revision
        logger.info(f"Portfolio {self.document.id} is live at {self.document.slug}")
        return PublishOutcome(True, document=self.document)

    # --- Background tasks ----------------------------------------------------

    def start_autosave(self, interval: Optional[float] = None) -> Optional[asyncio.Task[Any]]:
        interval = self.settings.autosave_seconds if interval is None else interval
        if interval <= 0:
            return None
        if self._autosave_task is not None and not self._autosave_task.done():
            return self._autosave_task
        self._autosave_task = asyncio.get_running_loop().create_task(self._autosave_loop(interval))
        return self._autosave_task

    async def _autosave_loop(self, interval: float) -> None:
        while True:
            await asyncio.sleep(interval)
            if self.user is None or self.document.id is None or not self.is_dirty:
                continue
            try:
                await self.save(autosave=True)
            except Exception:
                logger.exception(f"Unexpected autosave failure for portfolio {self.document.id}")

    def _handle_auth_change(self, session) -> None:
        if self.profile_task is not None and not self.profile_task.done():
            self.profile_task.cancel()
        self.profile_task = None

        if session is None:
            self.user_profile = None
            return

        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.debug("No running event loop; skipping profile prefetch")
            return
        self.profile_task = loop.create_task(self._prefetch_profile(session.user_id))

    async def _prefetch_profile(self, user_id: str) -> None:
        try:
            self.user_profile = await asyncio.to_thread(self._gateway.get_user_profile, user_id)
        except Exception as exc:
            # Best effort: the profile panel simply stays empty.
            logger.warning(f"Could not load profile for user {user_id}: {exc}")
            self.user_profile = None

    async def stop(self) -> None:
        self._unsubscribe()
        for task in (self._autosave_task, self.profile_task):
            if task is not None and not task.done():
                task.cancel()
                with contextlib.suppress(asyncio.CancelledError):
                    await task
        self._autosave_task = None
        self.profile_task = None

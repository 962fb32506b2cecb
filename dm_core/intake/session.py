# backend/dm_core/intake/session.py
from __future__ import annotations

import enum
import logging
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Callable, Optional

from dm_core.intake.client import SubmissionError
from dm_core.intake.constants import (
    ASSESSMENT_LIST_PATH,
    AUTO_SAVE_INTERVAL_SECONDS,
    GPS_TIMEOUT_SECONDS,
    SUBMIT_REDIRECT_DELAY_SECONDS,
)
from dm_core.intake.drafts import Draft, DraftStore
from dm_core.intake.gps import Coordinates, capture_location

logger = logging.getLogger(__name__)

# Form keys that live on the assessment itself; everything else is the type specific body.
COMMON_FIELDS = frozenset({
    "rapidAssessmentDate",
    "entityId",
    "assessorName",
    "location",
    "priority",
    "mediaAttachments",
})

PAYLOAD_KEYS = {
    "HEALTH": "healthData",
    "POPULATION": "populationData",
    "FOOD": "foodData",
    "WASH": "washData",
    "SHELTER": "shelterData",
    "SECURITY": "securityData",
}

_EMPTY = (None, "", 0, False)


class SessionState(str, enum.Enum):
    EDITING = "editing"
    DRAFT_SAVED = "draft-saved"
    VALIDATING = "validating"
    SUBMITTING = "submitting"
    SUBMITTED = "submitted"
    ERROR = "error"


@dataclass(frozen=True)
class Redirect:
    target: str
    delay_seconds: float


class IntakeSession:
    """
    One assessor filling in one assessment form on a device.

    editing -> draft-saved <-> editing -> validating -> submitting -> {submitted | error}

    A failed submit keeps every entered value so the assessor can retry.

    With a `location_provider` the device fix is requested as soon as the
    session opens; a slow or failing provider leaves a MANUAL location
    (`location_fallback`, or 0,0) for the assessor to correct.
    """

    def __init__(
        self,
        *,
        assessment_type: str,
        store: DraftStore,
        submitter: Callable[[dict[str, Any]], dict[str, Any]],
        user: Any = None,
        on_submitted: Callable[[], None] | None = None,
        draft: Draft | None = None,
        clock: Callable[[], float] = time.monotonic,
        autosave_interval: float = AUTO_SAVE_INTERVAL_SECONDS,
        location_provider: Callable[[], Any] | None = None,
        location_fallback: Coordinates | None = None,
        gps_timeout: float = GPS_TIMEOUT_SECONDS,
    ):
        if assessment_type not in PAYLOAD_KEYS:
            raise ValueError(f"Unknown assessment type: {assessment_type}")

        self.assessment_type = assessment_type
        self.store = store
        self.submitter = submitter
        self.user = user
        self.on_submitted = on_submitted
        self.clock = clock
        self.autosave_interval = autosave_interval

        self.data: dict[str, Any] = {}
        self.location: Optional[Coordinates] = None
        self.state = SessionState.EDITING
        self.dirty = False
        self.error: str | None = None
        self.field_errors: list[dict[str, str]] = []
        self.draft_error: str | None = None
        self.redirect: Redirect | None = None
        self.result: dict[str, Any] | None = None

        self.active_draft_id: str | None = None
        self.last_saved_at = clock()

        if draft is not None:
            self.active_draft_id = draft.id
            self.data = dict(draft.data)
            self.state = SessionState.DRAFT_SAVED

        if location_provider is not None:
            self.locate(location_provider, fallback=location_fallback, timeout=gps_timeout)

    # -------------------------
    # Editing
    # -------------------------
    def update(self, **fields: Any) -> None:
        if self.state in (SessionState.SUBMITTING, SessionState.SUBMITTED):
            raise RuntimeError(f"Cannot edit a form in state {self.state.value}")
        self.data.update(fields)
        self.dirty = True
        self.state = SessionState.EDITING

    def set_location(self, coordinates: Coordinates) -> None:
        self.location = coordinates
        self.data["coordinates"] = coordinates.as_payload()
        self.dirty = True

    def locate(
        self,
        provider: Callable[[], Any],
        *,
        fallback: Coordinates | None = None,
        timeout: float = GPS_TIMEOUT_SECONDS,
    ) -> Coordinates:
        coordinates = capture_location(provider, timeout=timeout, fallback=fallback)
        self.set_location(coordinates)
        return coordinates

    def has_meaningful_input(self) -> bool:
        for key, value in self.data.items():
            if key == "coordinates":
                continue
            if value in _EMPTY or value == [] or value == {}:
                continue
            return True
        return False

    # -------------------------
    # Drafts
    # -------------------------
    def save_draft(self, *, auto_saved: bool = False) -> Draft:
        draft = self.store.save(
            self.assessment_type,
            dict(self.data),
            draft_id=self.active_draft_id,
            auto_saved=auto_saved,
        )
        self.active_draft_id = draft.id
        self.dirty = False
        self.draft_error = None
        self.last_saved_at = self.clock()
        if self.state == SessionState.EDITING:
            self.state = SessionState.DRAFT_SAVED
        return draft

    def autosave(self, now: float | None = None, *, force: bool = False) -> Draft | None:
        """
        Saves a draft when the form is dirty, not submitting, has real input
        and the interval has elapsed since the last save. Returns the draft
        or None when skipped (or when the write failed; see `draft_error`).

        `force` skips the elapsed-time check; the interval timer already
        paces its own calls.
        """
        now = self.clock() if now is None else now

        if not self.dirty:
            return None
        if self.state in (SessionState.SUBMITTING, SessionState.SUBMITTED):
            return None
        if not self.has_meaningful_input():
            return None
        if not force and now - self.last_saved_at < self.autosave_interval:
            return None

        try:
            return self.save_draft(auto_saved=True)
        except OSError as exc:
            logger.warning("auto-save failed for %s draft: %s", self.assessment_type, exc)
            self.draft_error = f"Draft could not be saved: {exc}"
            return None

    def discard_draft(self) -> bool:
        if not self.active_draft_id:
            return False
        deleted = self.store.delete(self.assessment_type, self.active_draft_id)
        self.active_draft_id = None
        return deleted

    # -------------------------
    # Submission
    # -------------------------
    def build_request(self) -> dict[str, Any]:
        body: dict[str, Any] = {"type": self.assessment_type}
        for key in COMMON_FIELDS:
            if key in self.data:
                body[key] = self.data[key]
        body.setdefault("rapidAssessmentDate", datetime.now(timezone.utc).isoformat())
        if isinstance(body["rapidAssessmentDate"], datetime):
            body["rapidAssessmentDate"] = body["rapidAssessmentDate"].isoformat()
        if self.location is not None:
            body["coordinates"] = self.location.as_payload()

        payload = {k: v for k, v in self.data.items() if k not in COMMON_FIELDS and k != "coordinates"}
        body[PAYLOAD_KEYS[self.assessment_type]] = payload
        return body

    def validate(self) -> list[dict[str, str]]:
        """
        Client side gate before anything goes over the wire. Uses the same
        payload serializers as the API (requires Django to be configured).
        """
        from rest_framework.exceptions import ValidationError

        from dm_core.assessments.payloads import validate_payload
        from dm_core.common.api.exceptions import flatten_validation_errors

        errors: list[dict[str, str]] = []
        if self.user is None:
            errors.append({"field": "user", "message": "You must be signed in to submit an assessment."})
        if self.location is None:
            errors.append({"field": "coordinates", "message": "Location is required."})
        if not self.data.get("entityId"):
            errors.append({"field": "entityId", "message": "Entity is required"})

        body = self.build_request()
        try:
            validate_payload(self.assessment_type, body[PAYLOAD_KEYS[self.assessment_type]])
        except ValidationError as exc:
            errors.extend(flatten_validation_errors(exc.detail))
        return errors

    def submit(self) -> dict[str, Any] | None:
        if self.state in (SessionState.SUBMITTING, SessionState.SUBMITTED):
            return self.result

        self.state = SessionState.VALIDATING
        self.error = None
        self.field_errors = self.validate()
        if self.field_errors:
            self.state = SessionState.ERROR
            self.error = "Please fix the highlighted fields."
            return None

        self.state = SessionState.SUBMITTING
        try:
            self.result = self.submitter(self.build_request())
        except SubmissionError as exc:
            logger.warning("submission of %s assessment failed: %s", self.assessment_type, exc)
            self.state = SessionState.ERROR
            self.error = str(exc)
            self.field_errors = exc.field_errors
            return None
        except Exception as exc:
            logger.exception("submission of %s assessment crashed", self.assessment_type)
            self.state = SessionState.ERROR
            self.error = str(exc) or "Submission failed. Please try again."
            self.field_errors = []
            return None

        if self.active_draft_id:
            self.store.delete(self.assessment_type, self.active_draft_id)
            self.active_draft_id = None

        self.dirty = False
        self.state = SessionState.SUBMITTED
        self.redirect = Redirect(target=ASSESSMENT_LIST_PATH, delay_seconds=SUBMIT_REDIRECT_DELAY_SECONDS)

        if self.on_submitted is not None:
            self.on_submitted()
        return self.result

# backend/dm_core/intake/tests/test_session.py
import threading
import time
import uuid

import pytest
import requests

from dm_core.intake.client import AssessmentClient, SubmissionError
from dm_core.intake.constants import ASSESSMENT_LIST_PATH, SUBMIT_REDIRECT_DELAY_SECONDS
from dm_core.intake.drafts import DraftStore
from dm_core.intake.gps import CAPTURE_GPS, CAPTURE_MANUAL, manual_coordinates
from dm_core.intake.session import IntakeSession, SessionState
from dm_core.intake.timer import AutoSaveTimer


class FakeClock:
    def __init__(self):
        self.now = 1000.0

    def __call__(self):
        return self.now


@pytest.fixture
def store(tmp_path):
    return DraftStore(tmp_path)


@pytest.fixture
def clock():
    return FakeClock()


def _session(store, clock, submitter=None, **kw):
    return IntakeSession(
        assessment_type="HEALTH",
        store=store,
        submitter=submitter or (lambda body: {"id": "new-id", **body}),
        user=object(),
        clock=clock,
        **kw,
    )


def _fill(session, health_data):
    session.update(entityId=str(uuid.uuid4()), assessorName="Musa Ibrahim", priority="HIGH", **health_data)
    session.set_location(manual_coordinates(11.8, 13.1))


# -------------------------
# Auto-save
# -------------------------
def test_autosave_waits_for_interval_and_real_input(store, clock):
    s = _session(store, clock)

    s.update(numberHealthFacilities=0, healthFacilityType="")
    clock.now += 31
    assert s.autosave() is None  # nothing meaningful yet

    s.update(healthFacilityType="Clinic")
    assert s.autosave() is not None
    assert s.state == SessionState.DRAFT_SAVED
    assert store.get("HEALTH", s.active_draft_id).auto_saved is True

    s.update(hasTrainedStaff=True)
    clock.now += 10
    assert s.autosave() is None  # interval not elapsed
    clock.now += 25
    draft = s.autosave()
    assert draft.id == s.active_draft_id
    assert len(store.list("HEALTH")) == 1


def test_autosave_failure_keeps_editing(store, clock, monkeypatch):
    s = _session(store, clock)
    s.update(healthFacilityType="Clinic")
    clock.now += 31

    def disk_full(*args, **kwargs):
        raise OSError("No space left on device")

    monkeypatch.setattr(store, "save", disk_full)
    assert s.autosave() is None
    assert "No space left" in s.draft_error
    assert s.dirty is True


def test_resume_from_draft(store, clock):
    draft = store.save("HEALTH", {"healthFacilityType": "Clinic"})
    s = _session(store, clock, draft=draft)
    assert s.state == SessionState.DRAFT_SAVED
    assert s.data["healthFacilityType"] == "Clinic"
    assert s.discard_draft() is True
    assert store.list("HEALTH") == []


# -------------------------
# Submission
# -------------------------
def test_submit_success_clears_draft_and_redirects(store, clock, health_data):
    submitted = []
    s = _session(store, clock, on_submitted=lambda: submitted.append(True))
    _fill(s, health_data)
    s.save_draft()

    result = s.submit()

    assert result["id"] == "new-id"
    assert result["type"] == "HEALTH"
    assert result["healthData"]["healthFacilityType"] == "Primary Health Centre"
    assert "entityId" not in result["healthData"]
    assert result["coordinates"]["captureMethod"] == "MANUAL"
    assert s.state == SessionState.SUBMITTED
    assert s.redirect.target == ASSESSMENT_LIST_PATH
    assert s.redirect.delay_seconds == SUBMIT_REDIRECT_DELAY_SECONDS
    assert store.list("HEALTH") == []
    assert submitted == [True]


def test_submit_validation_errors_keep_data(store, clock):
    s = IntakeSession(assessment_type="HEALTH", store=store, submitter=lambda body: body, clock=clock)
    s.update(healthFacilityType="Clinic")

    assert s.submit() is None
    assert s.state == SessionState.ERROR
    fields = {e["field"] for e in s.field_errors}
    assert {"user", "coordinates", "entityId"} <= fields
    assert "healthData.hasFunctionalClinic" in fields
    assert s.data["healthFacilityType"] == "Clinic"


def test_submit_server_error_keeps_data_for_retry(store, clock, health_data):
    def rejected(body):
        raise SubmissionError(
            "Validation failed",
            status_code=400,
            envelope={"success": False, "errors": [{"field": "entityId", "message": "Entity not found or inactive."}]},
        )

    s = _session(store, clock, submitter=rejected)
    _fill(s, health_data)

    assert s.submit() is None
    assert s.state == SessionState.ERROR
    assert s.error == "Validation failed"
    assert s.field_errors == [{"field": "entityId", "message": "Entity not found or inactive."}]
    assert s.data["assessorName"] == "Musa Ibrahim"

    s.submitter = lambda body: {"id": "retried"}
    assert s.submit() == {"id": "retried"}
    assert s.state == SessionState.SUBMITTED


def test_no_edits_after_submit(store, clock, health_data):
    s = _session(store, clock)
    _fill(s, health_data)
    s.submit()
    with pytest.raises(RuntimeError):
        s.update(healthFacilityType="Other")


def test_unknown_type_is_rejected(store):
    with pytest.raises(ValueError):
        IntakeSession(assessment_type="LOGISTICS", store=store, submitter=lambda body: body)


def test_unexpected_submit_failure_allows_retry(store, clock, health_data):
    def broken(body):
        raise AttributeError("'list' object has no attribute 'get'")

    s = _session(store, clock, submitter=broken)
    _fill(s, health_data)

    assert s.submit() is None
    assert s.state == SessionState.ERROR
    assert "no attribute" in s.error

    s.update(assessorName="Musa I.")
    s.submitter = lambda body: {"id": "retried"}
    assert s.submit() == {"id": "retried"}


# -------------------------
# Location
# -------------------------
def test_gps_fix_requested_when_session_opens(store, clock):
    s = _session(store, clock, location_provider=lambda: {"latitude": 11.85, "longitude": 13.16, "accuracy": 8})

    assert s.location.capture_method == CAPTURE_GPS
    assert s.data["coordinates"]["latitude"] == 11.85
    assert s.data["coordinates"]["accuracy"] == 8.0
    assert s.has_meaningful_input() is False


def test_gps_failure_falls_back_to_manual_location(store, clock):
    def no_signal():
        raise RuntimeError("location services disabled")

    s = _session(store, clock, location_provider=no_signal, location_fallback=manual_coordinates(11.8, 13.1))

    assert s.location.capture_method == CAPTURE_MANUAL
    assert (s.location.latitude, s.location.longitude) == (11.8, 13.1)
    assert s.build_request()["coordinates"]["captureMethod"] == CAPTURE_MANUAL


def test_slow_gps_times_out_to_manual(store, clock):
    release = threading.Event()

    def hanging():
        release.wait(5)
        return {"latitude": 1, "longitude": 1}

    try:
        s = _session(store, clock, location_provider=hanging, gps_timeout=0.05)
    finally:
        release.set()

    assert s.location.capture_method == CAPTURE_MANUAL
    assert (s.location.latitude, s.location.longitude) == (0.0, 0.0)


# -------------------------
# Timer
# -------------------------
def test_timer_ticks_until_stopped():
    ticked = threading.Event()

    class Session:
        calls = []

        def autosave(self, force=False):
            Session.calls.append(force)
            ticked.set()

    timer = AutoSaveTimer(Session(), interval=0.01)
    timer.start()
    assert ticked.wait(2)
    timer.stop()
    assert timer.running is False
    assert Session.calls and all(Session.calls)


class SlowDraftStore(DraftStore):
    def __init__(self, directory):
        super().__init__(directory)
        self.saves = 0

    def save(self, *args, **kwargs):
        time.sleep(0.01)
        self.saves += 1
        return super().save(*args, **kwargs)


def test_timer_saves_once_per_interval_while_editing(tmp_path):
    store = SlowDraftStore(tmp_path)
    s = IntakeSession(assessment_type="HEALTH", store=store, submitter=lambda body: body, autosave_interval=0.1)
    timer = AutoSaveTimer(s, interval=0.1)

    timer.start()
    deadline = time.monotonic() + 1.05
    try:
        while time.monotonic() < deadline:
            s.update(healthFacilityType=f"Clinic {time.monotonic():.3f}")
            time.sleep(0.005)
    finally:
        timer.stop()

    # ten ticks fit in the window; a skipped tick would halve the count
    assert store.saves >= 8


# -------------------------
# HTTP client
# -------------------------
class FakeResponse:
    def __init__(self, status_code, body):
        self.status_code = status_code
        self._body = body

    @property
    def ok(self):
        return self.status_code < 400

    def json(self):
        if self._body is None:
            raise ValueError("no json")
        return self._body


class FakeSession:
    def __init__(self, *responses):
        self.headers = {}
        self.calls = []
        self._responses = list(responses)

    def request(self, method, url, **kwargs):
        self.calls.append((method, url, kwargs))
        nxt = self._responses.pop(0)
        if isinstance(nxt, Exception):
            raise nxt
        return nxt


def test_client_login_then_submit():
    session = FakeSession(
        FakeResponse(200, {"detail": "login ok", "access": "tok"}),
        FakeResponse(201, {"success": True, "data": {"id": "a-1"}}),
    )
    client = AssessmentClient("https://dm.example.org/", session=session)

    client.login("assessor", "pw")
    assert session.headers["Authorization"] == "Bearer tok"

    assert client.submit_assessment({"type": "HEALTH"}) == {"id": "a-1"}
    method, url, kwargs = session.calls[1]
    assert (method, url) == ("POST", "https://dm.example.org/api/v1/rapid-assessments")
    assert kwargs["json"] == {"type": "HEALTH"}


def test_client_error_envelope_becomes_submission_error():
    envelope = {"success": False, "error": "Validation failed", "errors": [{"field": "type", "message": "x"}]}
    client = AssessmentClient("https://dm.example.org", token="tok", session=FakeSession(FakeResponse(400, envelope)))

    with pytest.raises(SubmissionError) as exc:
        client.submit_assessment({})
    assert exc.value.status_code == 400
    assert str(exc.value) == "Validation failed"
    assert exc.value.field_errors == [{"field": "type", "message": "x"}]


def test_client_network_error():
    session = FakeSession(requests.ConnectionError("connection refused"), FakeResponse(502, None))
    client = AssessmentClient("https://dm.example.org", session=session)

    with pytest.raises(SubmissionError, match="Network error"):
        client.my_assessments()
    with pytest.raises(SubmissionError, match="HTTP 502"):
        client.my_assessments()


def test_client_rejects_non_object_bodies():
    session = FakeSession(FakeResponse(201, ["a-1"]), FakeResponse(500, ["boom"]))
    client = AssessmentClient("https://dm.example.org", token="tok", session=session)

    with pytest.raises(SubmissionError, match="Unexpected response body"):
        client.submit_assessment({"type": "HEALTH"})
    with pytest.raises(SubmissionError, match="HTTP 500") as exc:
        client.submit_assessment({"type": "HEALTH"})
    assert exc.value.field_errors == []

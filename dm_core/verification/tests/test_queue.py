# backend/dm_core/verification/tests/test_queue.py
from datetime import timedelta

import pytest
from django.utils import timezone

from dm_core.assessments.models import RapidAssessment
from dm_core.verification import selectors
from dm_core.verification.selectors import QueueFilters, assessment_queue

pytestmark = pytest.mark.django_db

URL = "/api/v1/verification/rapid-assessments"


@pytest.fixture
def queue(make_assessment, camp, clinic):
    now = timezone.now()
    return {
        "camp_critical": make_assessment(camp, priority="CRITICAL", assessment_date=now - timedelta(days=2)),
        "camp_low_food": make_assessment(camp, priority="LOW", assessment_type="FOOD", assessment_date=now),
        "clinic_high": make_assessment(clinic, priority="HIGH", assessment_date=now - timedelta(days=1)),
        "camp_verified": make_assessment(camp, priority="CRITICAL", verification_status="VERIFIED"),
    }


def test_default_queue_is_submitted_newest_first(coordinator_client, queue):
    res = coordinator_client.get(URL)

    assert res.status_code == 200, res.data
    ids = [row["id"] for row in res.data["data"]]
    assert ids == [
        str(queue["camp_low_food"].id),
        str(queue["clinic_high"].id),
        str(queue["camp_critical"].id),
    ]
    assert res.data["data"][0]["entityName"] == "Bakassi IDP Camp"
    assert res.data["pagination"] == {"page": 1, "limit": 20, "total": 3, "totalPages": 1}
    assert res.data["queueDepth"] == {"total": 3, "critical": 1, "high": 1, "medium": 0, "low": 1}
    assert set(res.data["metrics"]) == {"averageWaitTime", "verificationRate", "oldestPending"}
    # 1 of the 4 rows created in the window is verified
    assert res.data["metrics"]["verificationRate"] == 0.25


def test_filters_combine_with_and(coordinator_client, queue, camp):
    res = coordinator_client.get(URL, {"entityId": str(camp.id), "assessmentType": "HEALTH"})
    assert [row["id"] for row in res.data["data"]] == [str(queue["camp_critical"].id)]

    res = coordinator_client.get(URL, {"search": "gwange", "priority": "CRITICAL"})
    assert res.data["data"] == []


def test_priority_filter_does_not_shrink_queue_depth(coordinator_client, queue):
    res = coordinator_client.get(URL, {"priority": "CRITICAL,HIGH", "sortBy": "priority", "sortOrder": "desc"})

    assert [row["priority"] for row in res.data["data"]] == ["CRITICAL", "HIGH"]
    assert res.data["pagination"]["total"] == 2
    assert res.data["queueDepth"]["total"] == 3


def test_status_list_and_limit(coordinator_client, queue):
    res = coordinator_client.get(URL, {"status": "SUBMITTED,VERIFIED", "limit": 2, "page": 2})
    assert res.data["pagination"] == {"page": 2, "limit": 2, "total": 4, "totalPages": 2}
    assert len(res.data["data"]) == 2
    assert res.data["queueDepth"]["critical"] == 2


def test_invalid_query_is_400(coordinator_client):
    res = coordinator_client.get(URL, {"priority": "URGENT"})
    assert res.status_code == 400

    res = coordinator_client.get(URL, {"dateFrom": "2024-05-02", "dateTo": "2024-05-01"})
    assert res.status_code == 400
    assert res.data["errors"][0]["field"] == "dateTo"


def test_metric_failure_degrades_to_default(monkeypatch, queue):
    def boom(now):
        raise RuntimeError("stats database unavailable")

    monkeypatch.setattr(selectors, "_verification_rate", boom)

    result = assessment_queue(filters=QueueFilters())
    assert result.total == 3
    assert result.metrics["verificationRate"] == 0
    assert result.metrics["oldestPending"] is not None


def test_queue_requires_coordinator(assessor_client):
    res = assessor_client.get(URL)
    assert res.status_code == 403
    assert res.data["code"] == "permission_denied"


def test_submitted_critical_filter_matches_queue_depth(coordinator_client, queue, make_assessment, clinic):
    make_assessment(clinic, priority="CRITICAL", verification_status="REJECTED")

    res = coordinator_client.get(URL, {"status": "SUBMITTED", "priority": "CRITICAL"})

    assert res.status_code == 200, res.data
    rows = res.data["data"]
    assert [row["id"] for row in rows] == [str(queue["camp_critical"].id)]
    assert all(r["verificationStatus"] == "SUBMITTED" and r["priority"] == "CRITICAL" for r in rows)
    assert res.data["queueDepth"]["critical"] == len(rows)


def test_wait_time_and_oldest_pending(make_assessment, camp):
    now = timezone.now()
    recent = make_assessment(camp)
    older = make_assessment(camp, verification_status="DRAFT")
    make_assessment(camp, verification_status="VERIFIED")

    RapidAssessment.objects.filter(pk=recent.pk).update(created_at=now - timedelta(minutes=30))
    RapidAssessment.objects.filter(pk=older.pk).update(created_at=now - timedelta(minutes=90))

    result = assessment_queue(filters=QueueFilters())

    assert result.metrics["averageWaitTime"] == 60
    assert result.metrics["oldestPending"] == (now - timedelta(minutes=90)).isoformat()


def test_empty_queue_metrics(coordinator_client):
    res = coordinator_client.get(URL)

    assert res.status_code == 200
    assert res.data["data"] == []
    assert res.data["metrics"] == {"averageWaitTime": 0, "verificationRate": 0, "oldestPending": None}
    assert res.data["queueDepth"]["total"] == 0

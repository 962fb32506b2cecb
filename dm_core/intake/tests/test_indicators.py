# backend/dm_core/intake/tests/test_indicators.py
import pytest

from dm_core.assessments import payloads
from dm_core.intake import indicators
from dm_core.intake.indicators import (
    CRITICAL,
    MEDIUM,
    STABLE,
    food_assistance_required,
    food_security_status,
    health_gaps,
    population_checks,
    security_risk_level,
    security_status,
    shelter_risks,
    wash_needs,
)


@pytest.mark.parametrize(
    "days, status, gap",
    [
        (0, CRITICAL, True),
        (2, CRITICAL, True),
        (3, MEDIUM, False),
        (6, MEDIUM, False),
        (10, STABLE, False),
    ],
)
def test_food_security_status(days, status, gap):
    indicator = food_security_status(days)
    assert indicator.status == status
    assert indicator.gap_identified is gap


def test_food_security_text():
    assert food_security_status(0).text == "Critical - No Food Available"
    assert food_security_status(10).text == "Stable - More than 1 week"


def test_food_assistance_required():
    assert food_assistance_required({"availableFoodDurationDays": 10, "additionalFoodRequiredPersons": 5})
    assert food_assistance_required({"availableFoodDurationDays": 1})
    assert not food_assistance_required({"availableFoodDurationDays": 10})


def test_health_gaps_list_missing_services():
    gaps = health_gaps({"hasFunctionalClinic": True, "hasTrainedStaff": True, "hasMedicineSupply": False})
    assert [g.label for g in gaps] == [
        "Emergency Services",
        "Medicine Supply",
        "Medical Supplies",
        "Maternal/Child Services",
    ]


def test_wash_and_shelter_flags():
    needs = wash_needs({"isWaterSufficient": True, "hasCleanWaterAccess": True, "functionalLatrinesAvailable": 0})
    assert needs == {"water": False, "sanitation": True, "hygiene": True, "openDefecation": False}
    assert shelter_risks({"areOvercrowded": True, "numberSheltersRequired": 0}) == {
        "overcrowding": True,
        "urgentNeed": False,
    }


def test_security_status_ladder():
    assert security_status({"gbvCasesReported": True}).status == "critical"
    assert security_status({"gbvCasesReported": True, "hasProtectionReportingMechanism": True}).status == "high"
    assert security_status({"vulnerableGroupsHaveAccess": True}).status == "medium"
    assert security_status({"hasProtectionReportingMechanism": True}).status == "concerning"

    safe = {"hasProtectionReportingMechanism": True, "vulnerableGroupsHaveAccess": True}
    assert security_status(safe).status == "adequate"
    assert security_status(safe).gap_identified is False
    assert security_risk_level(safe) == "low"
    assert security_risk_level({"gbvCasesReported": True}) == "high"


def test_population_checks(population_data):
    checks = population_checks(population_data)
    assert checks["genderExceedsTotal"] is False
    assert checks["vulnerablePercentage"] == 33
    assert checks["criticalImpact"] is True

    population_data["populationMale"] = 900
    assert population_checks(population_data)["genderExceedsTotal"] is True
    assert population_checks({})["vulnerablePercentage"] == 0


def test_vulnerable_groups_match_server_validation():
    assert indicators.VULNERABLE_GROUP_FIELDS == payloads.VULNERABLE_GROUP_FIELDS

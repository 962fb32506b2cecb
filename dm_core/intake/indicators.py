# backend/dm_core/intake/indicators.py
"""
Gap / risk indicators shown next to the intake forms.

Pure functions of the form values: nothing here is persisted, callers
recompute on every change.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping

CRITICAL = "critical"
HIGH = "high"
MEDIUM = "medium"
CONCERNING = "concerning"
STABLE = "stable"
ADEQUATE = "adequate"

FOOD_GAP_THRESHOLD_DAYS = 3

# Same set PopulationPayloadSerializer sums; kept local so this module stays Django free.
VULNERABLE_GROUP_FIELDS = (
    "populationUnder5",
    "pregnantWomen",
    "lactatingMothers",
    "personWithDisability",
    "elderlyPersons",
    "separatedChildren",
)


@dataclass(frozen=True)
class StatusIndicator:
    status: str
    text: str
    description: str
    gap_identified: bool = False


@dataclass(frozen=True)
class Gap:
    key: str
    label: str


def _missing(data: Mapping[str, Any], fields: tuple[tuple[str, str], ...]) -> list[Gap]:
    return [Gap(key, label) for key, label in fields if not data.get(key)]


# -------------------------
# Food
# -------------------------
def food_security_status(days: int) -> StatusIndicator:
    gap = days < FOOD_GAP_THRESHOLD_DAYS

    if days == 0:
        return StatusIndicator(CRITICAL, "Critical - No Food Available", "Immediate food assistance required", gap)
    if days < FOOD_GAP_THRESHOLD_DAYS:
        return StatusIndicator(CRITICAL, "Critical - Less than 3 days", "Urgent food assistance needed", gap)
    if days < 7:
        return StatusIndicator(MEDIUM, "Medium Risk - Less than 1 week", "Food assistance recommended", gap)
    return StatusIndicator(STABLE, "Stable - More than 1 week", "Food situation relatively stable", gap)


def food_assistance_required(data: Mapping[str, Any]) -> bool:
    return (
        int(data.get("additionalFoodRequiredPersons") or 0) > 0
        or int(data.get("availableFoodDurationDays") or 0) < FOOD_GAP_THRESHOLD_DAYS
    )


# -------------------------
# Health
# -------------------------
HEALTH_GAP_FIELDS = (
    ("hasFunctionalClinic", "Functional Clinic"),
    ("hasEmergencyServices", "Emergency Services"),
    ("hasTrainedStaff", "Trained Staff"),
    ("hasMedicineSupply", "Medicine Supply"),
    ("hasMedicalSupplies", "Medical Supplies"),
    ("hasMaternalChildServices", "Maternal/Child Services"),
)


def health_gaps(data: Mapping[str, Any]) -> list[Gap]:
    return _missing(data, HEALTH_GAP_FIELDS)


# -------------------------
# WASH
# -------------------------
WASH_GAP_FIELDS = (
    ("isWaterSufficient", "Water Sufficiency"),
    ("hasCleanWaterAccess", "Clean Water Access"),
    ("areLatrinesSufficient", "Latrine Sufficiency"),
    ("hasHandwashingFacilities", "Handwashing Facilities"),
)


def wash_gaps(data: Mapping[str, Any]) -> list[Gap]:
    return _missing(data, WASH_GAP_FIELDS)


def wash_needs(data: Mapping[str, Any]) -> dict[str, bool]:
    return {
        "water": not data.get("isWaterSufficient") or not data.get("hasCleanWaterAccess"),
        "sanitation": not data.get("areLatrinesSufficient") or int(data.get("functionalLatrinesAvailable") or 0) == 0,
        "hygiene": not data.get("hasHandwashingFacilities"),
        "openDefecation": bool(data.get("hasOpenDefecationConcerns")),
    }


# -------------------------
# Shelter
# -------------------------
SHELTER_GAP_FIELDS = (
    ("areSheltersSufficient", "Shelter Sufficiency"),
    ("hasSafeStructures", "Safe Structures"),
    ("provideWeatherProtection", "Weather Protection"),
)


def shelter_gaps(data: Mapping[str, Any]) -> list[Gap]:
    return _missing(data, SHELTER_GAP_FIELDS)


def shelter_risks(data: Mapping[str, Any]) -> dict[str, bool]:
    return {
        "overcrowding": bool(data.get("areOvercrowded")),
        "urgentNeed": int(data.get("numberSheltersRequired") or 0) > 0,
    }


# -------------------------
# Security / protection
# -------------------------
def security_status(data: Mapping[str, Any]) -> StatusIndicator:
    gbv = bool(data.get("gbvCasesReported"))
    reporting = bool(data.get("hasProtectionReportingMechanism"))
    access = bool(data.get("vulnerableGroupsHaveAccess"))

    if gbv and not reporting:
        return StatusIndicator(
            CRITICAL, "Critical Protection Gap", "GBV cases reported but no reporting mechanism", True
        )
    if gbv:
        return StatusIndicator(HIGH, "High Protection Risk", "GBV cases reported - urgent response needed", True)
    if not reporting:
        return StatusIndicator(MEDIUM, "Protection Mechanism Missing", "No GBV reporting mechanism available", True)
    if not access:
        return StatusIndicator(CONCERNING, "Access Concerns", "Vulnerable groups lack access to services", True)
    return StatusIndicator(ADEQUATE, "Protection Status Adequate", "Protection mechanisms in place and accessible")


def security_risk_level(data: Mapping[str, Any]) -> str:
    score = 0
    if data.get("gbvCasesReported"):
        score += 3
    if not data.get("hasProtectionReportingMechanism"):
        score += 2
    if not data.get("vulnerableGroupsHaveAccess"):
        score += 1

    if score >= 4:
        return HIGH
    if score >= 2:
        return MEDIUM
    return "low"


# -------------------------
# Population
# -------------------------
def percentage(value: int, total: int) -> int:
    if not total:
        return 0
    return round(value / total * 100)


def population_checks(data: Mapping[str, Any]) -> dict[str, Any]:
    """
    Consistency flags mirrored by PopulationPayloadSerializer.validate, plus
    the vulnerable share used for the "over 80%" warning.
    """
    n = lambda key: int(data.get(key) or 0)  # noqa: E731

    total = n("totalPopulation")
    vulnerable = sum(n(k) for k in VULNERABLE_GROUP_FIELDS)
    casualties = n("numberLivesLost") + n("numberInjured")

    vulnerable_exceeds = vulnerable > total
    return {
        "genderExceedsTotal": n("populationMale") + n("populationFemale") > total,
        "vulnerableExceedsTotal": vulnerable_exceeds,
        "casualtyExceedsTotal": casualties > total,
        "vulnerablePercentage": percentage(vulnerable, total),
        "highVulnerableShare": total > 0 and not vulnerable_exceeds and percentage(vulnerable, total) > 80,
        "criticalImpact": casualties > 0 and casualties <= total,
    }

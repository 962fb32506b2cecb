# backend/dm_core/assessments/payloads.py
"""
Type specific assessment bodies.

Server side these validate the `<type>Data` object of a create request; the
intake package reuses them to validate a form before it is submitted, so a
draft that passes here will not bounce off the API.
"""
from __future__ import annotations

from typing import Any

from rest_framework import serializers

from dm_core.assessments.models import AssessmentType

CAPTURE_GPS = "GPS"
CAPTURE_MANUAL = "MANUAL"

VULNERABLE_GROUP_FIELDS = (
    "populationUnder5",
    "pregnantWomen",
    "lactatingMothers",
    "personWithDisability",
    "elderlyPersons",
    "separatedChildren",
)


class CoordinatesSerializer(serializers.Serializer):
    latitude = serializers.FloatField(min_value=-90, max_value=90)
    longitude = serializers.FloatField(min_value=-180, max_value=180)
    accuracy = serializers.FloatField(required=False, allow_null=True, min_value=0)
    timestamp = serializers.DateTimeField()
    captureMethod = serializers.ChoiceField(choices=[CAPTURE_GPS, CAPTURE_MANUAL])

    def validate_accuracy(self, value):
        if value is not None and value <= 0:
            raise serializers.ValidationError("Accuracy must be positive.")
        return value


def _count():
    return serializers.IntegerField(min_value=0)


def _notes():
    return serializers.CharField(required=False, allow_blank=True, default="")


def _tags():
    return serializers.ListField(child=serializers.CharField(), required=False, default=list)


class HealthPayloadSerializer(serializers.Serializer):
    hasFunctionalClinic = serializers.BooleanField()
    hasEmergencyServices = serializers.BooleanField()
    numberHealthFacilities = _count()
    healthFacilityType = serializers.CharField(
        min_length=1,
        error_messages={"blank": "Health facility type is required"},
    )
    qualifiedHealthWorkers = _count()
    hasTrainedStaff = serializers.BooleanField()
    hasMedicineSupply = serializers.BooleanField()
    hasMedicalSupplies = serializers.BooleanField()
    hasMaternalChildServices = serializers.BooleanField()
    commonHealthIssues = _tags()
    additionalHealthDetails = _notes()


class PopulationPayloadSerializer(serializers.Serializer):
    totalHouseholds = _count()
    totalPopulation = _count()
    populationMale = _count()
    populationFemale = _count()
    populationUnder5 = _count()
    pregnantWomen = _count()
    lactatingMothers = _count()
    personWithDisability = _count()
    elderlyPersons = _count()
    separatedChildren = _count()
    numberLivesLost = _count()
    numberInjured = _count()
    additionalPopulationDetails = _notes()

    def validate(self, attrs):
        total = attrs["totalPopulation"]
        errors = {}
        if attrs["populationMale"] + attrs["populationFemale"] > total:
            errors["populationMale"] = "The sum of Male and Female population cannot exceed the Total Population"
        vulnerable = sum(attrs[k] for k in VULNERABLE_GROUP_FIELDS)
        if vulnerable > total:
            errors["populationUnder5"] = "The sum of vulnerable groups cannot exceed the Total Population"
        if attrs["numberLivesLost"] + attrs["numberInjured"] > total:
            errors["numberLivesLost"] = "The sum of Lives Lost and Injured Persons cannot exceed the Total Population"
        if errors:
            raise serializers.ValidationError(errors)
        return attrs


class FoodPayloadSerializer(serializers.Serializer):
    foodSource = serializers.ListField(
        child=serializers.CharField(),
        allow_empty=False,
        error_messages={"empty": "At least one food source is required"},
    )
    availableFoodDurationDays = _count()
    additionalFoodRequiredPersons = _count()
    additionalFoodRequiredHouseholds = _count()
    additionalFoodDetails = _notes()


class WashPayloadSerializer(serializers.Serializer):
    waterSource = _tags()
    isWaterSufficient = serializers.BooleanField()
    hasCleanWaterAccess = serializers.BooleanField()
    functionalLatrinesAvailable = _count()
    areLatrinesSufficient = serializers.BooleanField()
    hasHandwashingFacilities = serializers.BooleanField()
    hasOpenDefecationConcerns = serializers.BooleanField()
    additionalWashDetails = _notes()


class ShelterPayloadSerializer(serializers.Serializer):
    areSheltersSufficient = serializers.BooleanField()
    hasSafeStructures = serializers.BooleanField()
    shelterTypes = _tags()
    requiredShelterType = _tags()
    numberSheltersRequired = _count()
    areOvercrowded = serializers.BooleanField()
    provideWeatherProtection = serializers.BooleanField()
    additionalShelterDetails = _notes()


class SecurityPayloadSerializer(serializers.Serializer):
    gbvCasesReported = serializers.BooleanField()
    hasProtectionReportingMechanism = serializers.BooleanField()
    vulnerableGroupsHaveAccess = serializers.BooleanField()
    additionalSecurityDetails = _notes()


# assessment type -> (request key, serializer)
PAYLOADS: dict[str, tuple[str, type[serializers.Serializer]]] = {
    AssessmentType.HEALTH.value: ("healthData", HealthPayloadSerializer),
    AssessmentType.POPULATION.value: ("populationData", PopulationPayloadSerializer),
    AssessmentType.FOOD.value: ("foodData", FoodPayloadSerializer),
    AssessmentType.WASH.value: ("washData", WashPayloadSerializer),
    AssessmentType.SHELTER.value: ("shelterData", ShelterPayloadSerializer),
    AssessmentType.SECURITY.value: ("securityData", SecurityPayloadSerializer),
}


def payload_key_for(assessment_type: str) -> str:
    return PAYLOADS[assessment_type][0]


def validate_payload(assessment_type: str, data: Any) -> dict[str, Any]:
    """
    Validate a type specific body. Errors are raised keyed by the request key
    (e.g. {"foodData": {"foodSource": [...]}}) so they flatten to
    `foodData.foodSource` in the error envelope.
    """
    key, serializer_class = PAYLOADS[assessment_type]
    if not isinstance(data, dict):
        raise serializers.ValidationError({key: ["This field is required."]})

    s = serializer_class(data=data)
    if not s.is_valid():
        raise serializers.ValidationError({key: s.errors})
    return dict(s.validated_data)

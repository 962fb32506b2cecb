# backend/dm_core/conftest.py
import pytest
from django.contrib.auth import get_user_model
from django.contrib.auth.models import Group
from django.utils import timezone
from rest_framework.test import APIClient

from dm_core.assessments.models import RapidAssessment
from dm_core.common.permissions import ALL_ROLES, ROLE_ASSESSOR, ROLE_COORDINATOR
from dm_core.entities.models import Entity, EntityType


@pytest.fixture
def ensure_groups(db):
    return {name: Group.objects.get_or_create(name=name)[0] for name in ALL_ROLES}


@pytest.fixture
def make_user(db, ensure_groups):
    """
    make_user("amina", ROLE_COORDINATOR) -> active user in that role group.
    """
    User = get_user_model()

    def _make(username, *roles, **extra):
        user = User.objects.create_user(username=username, password="testpass", is_active=True, **extra)
        for role in roles:
            user.groups.add(ensure_groups[role])
        return user

    return _make


@pytest.fixture
def coordinator(make_user):
    return make_user("coord", ROLE_COORDINATOR, first_name="Amina", last_name="Bello")


@pytest.fixture
def assessor(make_user):
    return make_user("assessor", ROLE_ASSESSOR, first_name="Musa", last_name="Ibrahim")


@pytest.fixture
def coordinator_client(coordinator):
    c = APIClient()
    c.force_authenticate(user=coordinator)
    return c


@pytest.fixture
def assessor_client(assessor):
    c = APIClient()
    c.force_authenticate(user=assessor)
    return c


@pytest.fixture
def camp(db):
    return Entity.objects.create(name="Bakassi IDP Camp", type=EntityType.CAMP, location="Maiduguri, Borno")


@pytest.fixture
def clinic(db):
    return Entity.objects.create(name="Gwange Clinic", type=EntityType.FACILITY, location="Maiduguri, Borno")


@pytest.fixture
def make_assessment(db, assessor):
    """
    Direct row factory for read-side tests (bypasses the auto-approval rules).
    """

    def _make(entity, **overrides):
        fields = {
            "assessment_type": "HEALTH",
            "assessment_date": timezone.now(),
            "entity": entity,
            "assessor": assessor,
            "assessor_name": "Musa Ibrahim",
            "verification_status": "SUBMITTED",
            "priority": "MEDIUM",
        }
        fields.update(overrides)
        return RapidAssessment.objects.create(**fields)

    return _make


@pytest.fixture
def health_data():
    return {
        "hasFunctionalClinic": True,
        "hasEmergencyServices": False,
        "numberHealthFacilities": 1,
        "healthFacilityType": "Primary Health Centre",
        "qualifiedHealthWorkers": 3,
        "hasTrainedStaff": True,
        "hasMedicineSupply": False,
        "hasMedicalSupplies": True,
        "hasMaternalChildServices": True,
        "commonHealthIssues": ["Malaria", "Diarrhea"],
    }


@pytest.fixture
def population_data():
    return {
        "totalHouseholds": 200,
        "totalPopulation": 1000,
        "populationMale": 480,
        "populationFemale": 520,
        "populationUnder5": 150,
        "pregnantWomen": 40,
        "lactatingMothers": 60,
        "personWithDisability": 20,
        "elderlyPersons": 50,
        "separatedChildren": 10,
        "numberLivesLost": 2,
        "numberInjured": 15,
    }

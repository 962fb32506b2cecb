# backend/dm_core/intake/constants.py

# Field client tunables (device side, not Django settings).
AUTO_SAVE_INTERVAL_SECONDS = 30
GPS_TIMEOUT_SECONDS = 10
SUBMIT_REDIRECT_DELAY_SECONDS = 2

# Where the client lands after a successful submission.
ASSESSMENT_LIST_PATH = "/assessor/rapid-assessments"

CREATE_ASSESSMENT_PATH = "/api/v1/rapid-assessments"
LOGIN_PATH = "/api/v1/auth/login/"

HTTP_TIMEOUT_SECONDS = 15

import os
from dotenv import load_dotenv

load_dotenv()

# Default policy for nilable headers that are absent from the request.
# Handlers may still override it per call.
TREAT_NILABLE_AS_OPTIONAL = os.getenv("HDRBIND_TREAT_NILABLE_AS_OPTIONAL", "true").lower() == "true"

# Header() markers without an explicit name derive it from the parameter name (x_request_id -> x-request-id)
CONVERT_UNDERSCORES = os.getenv("HDRBIND_CONVERT_UNDERSCORES", "true").lower() == "true"

LOG_LEVEL = os.getenv("HDRBIND_LOG_LEVEL", "INFO").upper()
METRICS_ENABLED = os.getenv("HDRBIND_METRICS_ENABLED", "true").lower() == "true"


def treat_nilable_as_optional() -> bool:
    """Current policy, re-read from the environment so tests can flip it."""
    return os.getenv("HDRBIND_TREAT_NILABLE_AS_OPTIONAL", str(TREAT_NILABLE_AS_OPTIONAL)).lower() == "true"

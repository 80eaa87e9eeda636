"""Domain constants shared by deterministic logic."""

from fieldplan.domain.enums import JobClassification, JobPriority

CLASSIFICATION_WEIGHT = {
    JobClassification.EMERGENCY: 1000,
    JobClassification.DEMAND: 500,
    JobClassification.MAINTENANCE: 0,
}

PRIORITY_WEIGHT = {
    JobPriority.URGENT: 150,
    JobPriority.HIGH: 100,
    JobPriority.MEDIUM: 50,
    JobPriority.LOW: 10,
}
UNKNOWN_PRIORITY_WEIGHT = 25

VIP_BONUS = 200

EMERGENCY_KEYWORDS = (
    "emergency",
    "urgent",
    "leak",
    "flood",
    "gas",
    "electrical",
    "hazard",
    "safety",
)

INTER_JOB_GAP_MINUTES = 15
DEFAULT_JOB_DURATION_MINUTES = 90
SCHEDULE_LOAD_WARNING_RATIO = 0.8

SHOPPING_MINUTES_PER_ITEM = 5
MIN_STORE_VISIT_MINUTES = 20
MAX_STORE_VISIT_MINUTES = 60
HARDWARE_STORE_JOB_TYPE = "hardware_store"

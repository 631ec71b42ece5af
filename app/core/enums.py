from enum import Enum


class OAuthProvider(str, Enum):
    GOOGLE = "google"
    GITHUB = "github"


class BudgetMode(str, Enum):
    DIRECT = "direct"
    PERCENTAGE = "percentage"


class Confidence(str, Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class TransactionSource(str, Enum):
    EMAIL = "email"
    MANUAL = "manual"


class WebhookStatus(str, Enum):
    DUPLICATE = "duplicate"
    SKIPPED = "skipped"
    CACHED = "cached"
    PROCESSED = "processed"


class AlertType(str, Enum):
    WARNING = "warning"
    OVER_BUDGET = "over_budget"


RESEND_EMAIL_RECEIVED_EVENT = "email.received"
OTHER_CATEGORY_NAME = "Other"
UNKNOWN_VENDOR = "UNKNOWN"

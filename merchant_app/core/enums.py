"""
Shared enums and constants used across the application.
"""

from enum import Enum


class ProductStatus(str, Enum):
    """Shopify product status values"""
    DRAFT = "DRAFT"
    ACTIVE = "ACTIVE"
    ARCHIVED = "ARCHIVED"


class NotificationType(str, Enum):
    PSA = "PSA"
    TROLL = "TROLL"
    MANUAL = "MANUAL"
    AUTOMATION = "AUTOMATION"


class JobStatus(str, Enum):
    QUEUED = "queued"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"


class JobType(str, Enum):
    INVENTORY_CHECK = "inventory_check"
    TROLL_IMPORT = "troll_import"
    PSA_IMPORT = "psa_import"
    MANUAL_PRODUCT = "manual_product"
    RESTOCK_EMAIL = "restock_email"
    STORE_VALUE = "store_value"


class ShippingStatus(str, Enum):
    """Where a purchased lot is on its way to the shop"""
    PENDING_SHIPMENT = "pending_shipment"
    IN_TRANSIT = "in_transit"
    DELIVERED = "delivered"
    EXCEPTION = "exception"


class CardCondition(str, Enum):
    """Condition values accepted by the scrape import form"""
    STANDARD = "standard"
    MINT = "mint"
    NEAR_MINT = "near-mint"
    LOW_PLAYED = "low-played"
    MODERATELY_PLAYED = "moderately-played"
    HEAVILY_PLAYED = "heavily-played"
    DAMAGED = "damaged"

    @property
    def option_value(self):
        # "near-mint" -> "Near Mint"
        return " ".join(part.capitalize() for part in self.value.split("-"))


# Option values offered on single cards, in display order
CONDITION_OPTION_VALUES = [
    "Mint",
    "Near Mint",
    "Low Played",
    "Moderately Played",
    "Heavily Played",
    "Damaged",
]

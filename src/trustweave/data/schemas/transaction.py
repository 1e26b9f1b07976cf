"""Transaction schema - canonical definition."""

from datetime import datetime
from pydantic import BaseModel, Field


class Location(BaseModel):
    """Geographic location of a transaction."""
    lat: float = Field(..., ge=-90, le=90)
    lng: float = Field(..., ge=-180, le=180)
    country: str = Field(..., min_length=1, description="Country code or name")
    city: str = Field(..., min_length=1, description="City name")

    model_config = {"allow_inf_nan": False}

    @property
    def location_id(self) -> str:
        """City+country composite key used for location graph nodes."""
        return f"{self.city}_{self.country}"


class Merchant(BaseModel):
    """Merchant receiving the payment."""
    merchant_id: str = Field(..., min_length=1)
    name: str = Field(default="")
    category: str = Field(..., min_length=1, description="e.g. retail, food, atm, bank")


class Transaction(BaseModel):
    """Transaction entity schema.

    A single payment attempt from a user on a device at a merchant.
    """
    transaction_id: str = Field(..., min_length=1, description="Unique transaction identifier")
    user_id: str = Field(..., min_length=1)
    amount: float = Field(..., ge=0, description="Amount in account currency")
    timestamp: datetime = Field(..., description="When the transaction was initiated")
    location: Location
    merchant: Merchant
    device_id: str = Field(..., min_length=1)
    payment_method: str = Field(default="credit_card")

    model_config = {
        "frozen": True,
        "allow_inf_nan": False,
        "json_schema_extra": {
            "example": {
                "transaction_id": "txn_000123",
                "user_id": "user_001",
                "amount": 249.99,
                "timestamp": "2026-01-25T14:30:00Z",
                "location": {
                    "lat": 40.7128,
                    "lng": -74.0060,
                    "country": "US",
                    "city": "New York",
                },
                "merchant": {
                    "merchant_id": "merch_042",
                    "name": "Corner Market",
                    "category": "retail",
                },
                "device_id": "dev_a1b2",
                "payment_method": "credit_card",
            }
        }
    }

    @property
    def hour(self) -> int:
        """Hour of day the transaction was initiated."""
        return self.timestamp.hour

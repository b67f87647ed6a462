"""
Response models for the order endpoints.

Bodies are validated with pydantic; unknown fields are ignored and
numeric identifiers are coerced to strings.
"""

import re
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

BILLING_NUMBER_PATTERN = re.compile(r"billing number (\w+)", re.IGNORECASE)


class LineDetail(BaseModel):
    model_config = ConfigDict(extra="ignore", coerce_numbers_to_str=True)

    TransactionOrderItem: Optional[str] = None


class DeliveryResponse(BaseModel):
    """Body returned by the delivery (transaction order) endpoint."""
    model_config = ConfigDict(extra="ignore", coerce_numbers_to_str=True)

    TransactionOrderNumber: Optional[str] = None
    LineDetails: List[LineDetail] = Field(default_factory=list)

    @property
    def first_line_item(self) -> Optional[str]:
        if not self.LineDetails:
            return None
        return self.LineDetails[0].TransactionOrderItem or None


class PrepaymentResponse(BaseModel):
    """Body returned by the prepayment (sales order) endpoint."""
    model_config = ConfigDict(extra="ignore", coerce_numbers_to_str=True, populate_by_name=True)

    so_number: Optional[str] = Field(default=None, alias="SO_Number__c")
    status_description: Optional[str] = Field(default=None, alias="Status_Description__c")

    @property
    def billing_number(self) -> Optional[str]:
        return extract_billing_number(self.status_description)


def extract_billing_number(status_description: Optional[str]) -> Optional[str]:
    """Pull the billing number out of e.g. 'Created with billing number 1SA5000078'."""
    if not status_description:
        return None
    match = BILLING_NUMBER_PATTERN.search(status_description)
    return match.group(1) if match else None


@dataclass
class SubmissionReceipt:
    """What the core needs back from a delivery submission."""
    correlation_id: Optional[str]
    line_correlation_id: Optional[str] = None
    raw: Dict[str, Any] = field(default_factory=dict)


@dataclass
class PrepaymentReceipt:
    """What the prepayment runner needs back from a prepayment submission."""
    so_number: Optional[str]
    billing_number: Optional[str] = None
    raw: Dict[str, Any] = field(default_factory=dict)

"""Outbound collaborators: templates, HTTP clients and prepayment creation."""

from .templates import (
    TemplateProvider,
    apply_sales_order_number,
    build_delivery_payload,
    build_prepayment_payload,
)
from .responses import (
    DeliveryResponse,
    PrepaymentReceipt,
    PrepaymentResponse,
    SubmissionReceipt,
    extract_billing_number,
)
from .gateway import DeliveryClient, PrepaymentClient

__all__ = [
    "TemplateProvider",
    "apply_sales_order_number",
    "build_delivery_payload",
    "build_prepayment_payload",
    "DeliveryResponse",
    "PrepaymentReceipt",
    "PrepaymentResponse",
    "SubmissionReceipt",
    "extract_billing_number",
    "DeliveryClient",
    "PrepaymentClient",
]

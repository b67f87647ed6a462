"""
Sales-order JSON templates and the payload builders that stamp them.

Templates are loaded per company code and never mutated; every payload
starts from a deep copy.
"""

import copy
import json
import logging
from pathlib import Path
from typing import Any, Dict, Iterator, Optional

from ..utils.errors import TemplateNotFoundError

logger = logging.getLogger(__name__)

NET_AMOUNT_CONDITION = "ZSFN"
LOCAL_CURRENCY = "Local"


class TemplateProvider:
    """Loads <directory>/<company_code>.json templates."""

    def __init__(self, directory: Path):
        self.directory = Path(directory)
        self._cache: Dict[str, Dict[str, Any]] = {}

    def path_for(self, company_code: str) -> Path:
        return self.directory / f"{company_code}.json"

    def load(self, company_code: str) -> Dict[str, Any]:
        """
        Get a deep copy of the company template.

        Raises:
            TemplateNotFoundError: if no template exists for the company
        """
        if company_code not in self._cache:
            path = self.path_for(company_code)
            if not path.exists():
                raise TemplateNotFoundError(company_code, path)
            with open(path, "r") as f:
                self._cache[company_code] = json.load(f)
            logger.debug("Loaded template %s", path)
        return copy.deepcopy(self._cache[company_code])


def _sales_orders(document: Dict[str, Any]) -> Iterator[Dict[str, Any]]:
    yield from document.get("SalesOrder", []) or []


def _items(order: Dict[str, Any]) -> Iterator[Dict[str, Any]]:
    yield from order.get("SalesOrderItem", []) or []


def _list_field(node: Dict[str, Any], key: str) -> list:
    value = node.get(key)
    return value if isinstance(value, list) else []


def build_delivery_payload(
    template: Dict[str, Any],
    request_number: Optional[str],
    amount: Optional[float],
    test_id: str,
) -> Dict[str, Any]:
    """
    Build one delivery request body.

    Stamps the prepayment request number, the test id (line/salesforce/batch
    ids and the items set) and the net amount on the first order item.
    """
    body = copy.deepcopy(template)
    order = body["SalesOrder"][0]
    item = order["SalesOrderItem"][0]

    item["PrepaymentRequestnumber"] = request_number or ""
    item["YY1_SFDCLINEID_I"] = test_id
    item["YY1_SALESFORCEID_I"] = test_id
    item["YY1_BATCHID_I"] = test_id
    order["SalesOrderItemsSet"] = [test_id]

    if amount is not None:
        for pricing in _list_field(item, "PricingElement"):
            if pricing.get("ConditionType") == NET_AMOUNT_CONDITION:
                pricing["ConditionRateValue"] = amount
                break

    return body


def build_prepayment_payload(
    template: Dict[str, Any],
    company_code: str,
    request_number: str,
    amount: float,
    currency_type: str = LOCAL_CURRENCY,
    include_billing_plan: bool = True,
) -> Dict[str, Any]:
    """
    Build one prepayment request body.

    Every order item gets the request number, the derived SFID and the net
    amount. The currency is overridden unless currency_type is 'Local'.
    """
    body = copy.deepcopy(template)
    sfid = f"TEST{company_code}{request_number}"
    currency = None if currency_type == LOCAL_CURRENCY else currency_type.upper()

    for order in _sales_orders(body):
        order["SalesOrderItemsSet"] = [sfid]
        if currency:
            order["TransactionCurrency"] = currency

        for item in _items(order):
            item["YY1_SFDCLINEID_I"] = sfid
            item["YY1_SALESFORCEID_I"] = sfid
            item["PrepaymentRequestnumber"] = request_number
            item["YY1_BATCHID_I"] = request_number

            for pricing in _list_field(item, "PricingElement"):
                if currency:
                    pricing["ConditionCurrency"] = currency
                if pricing.get("ConditionType") == NET_AMOUNT_CONDITION:
                    pricing["ConditionRateValue"] = amount

            if include_billing_plan:
                for plan in _list_field(item, "to_billingplan"):
                    for plan_item in _list_field(plan, "to_billingplanitem"):
                        plan_item["BillingPlanAmount"] = amount

    return body


def apply_sales_order_number(document: Dict[str, Any], so_number: str) -> Dict[str, Any]:
    """Propagate a sales-order number through every nested node, in place."""
    for order in _sales_orders(document):
        order["SalesOrder"] = so_number
        for item in _items(order):
            item["SalesOrder"] = so_number
            for pricing in _list_field(item, "PricingElement"):
                pricing["SalesOrder"] = so_number
            for text in _list_field(item, "ItemText"):
                text["SalesOrder"] = so_number
            for plan in _list_field(item, "to_billingplan"):
                plan["SalesOrder"] = so_number
                for plan_item in _list_field(plan, "to_billingplanitem"):
                    plan_item["SalesOrder"] = so_number
    return document

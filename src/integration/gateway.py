"""
HTTP clients for the prepayment and delivery endpoints.

Both endpoints take a JSON sales-order document over an authenticated
POST. Any transport error, non-2xx status or unreadable body is raised
as SubmissionError; callers decide whether that is fatal.

Pass a custom `session` in tests to avoid real network calls.
"""

import logging
from typing import Any, Dict, Optional

import requests
from pydantic import ValidationError

from ..utils.config import EndpointConfig
from ..utils.errors import SubmissionError
from .responses import (
    DeliveryResponse,
    PrepaymentReceipt,
    PrepaymentResponse,
    SubmissionReceipt,
)

logger = logging.getLogger(__name__)

DEFAULT_HEADERS = {
    "Content-Type": "application/json",
    "Accept": "application/json",
}


class EndpointClient:
    """Authenticated JSON POST against one configured endpoint."""

    def __init__(
        self,
        endpoint: EndpointConfig,
        session: Optional[requests.Session] = None,
    ):
        self.endpoint = endpoint
        self._session = session

    @property
    def session(self) -> requests.Session:
        if self._session is None:
            self._session = requests.Session()
        return self._session

    def post(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        """POST the payload and return the decoded JSON body."""
        headers = {**DEFAULT_HEADERS, **self.endpoint.headers}
        try:
            response = self.session.post(
                self.endpoint.url,
                json=payload,
                headers=headers,
                auth=(self.endpoint.username, self.endpoint.password),
                timeout=self.endpoint.timeout,
            )
        except requests.RequestException as exc:
            raise SubmissionError(str(exc)) from exc

        if not response.ok:
            raise SubmissionError(
                f"HTTP {response.status_code}: {response.reason}",
                status_code=response.status_code,
            )

        try:
            body = response.json()
        except ValueError as exc:
            raise SubmissionError(f"Response is not JSON: {exc}", status_code=response.status_code) from exc

        if not isinstance(body, dict):
            raise SubmissionError("Response body is not a JSON object", status_code=response.status_code)

        logger.debug("POST %s -> %s", self.endpoint.url, body)
        return body


class DeliveryClient(EndpointClient):
    """Submits delivery documents and returns their transaction order number."""

    def submit(self, payload: Dict[str, Any]) -> SubmissionReceipt:
        body = self.post(payload)
        try:
            parsed = DeliveryResponse.model_validate(body)
        except ValidationError as exc:
            raise SubmissionError(f"Unexpected delivery response: {exc}") from exc

        return SubmissionReceipt(
            correlation_id=parsed.TransactionOrderNumber or None,
            line_correlation_id=parsed.first_line_item,
            raw=body,
        )


class PrepaymentClient(EndpointClient):
    """Submits prepayment documents and returns the sales order and billing numbers."""

    def submit(self, payload: Dict[str, Any]) -> PrepaymentReceipt:
        body = self.post(payload)
        try:
            parsed = PrepaymentResponse.model_validate(body)
        except ValidationError as exc:
            raise SubmissionError(f"Unexpected prepayment response: {exc}") from exc

        return PrepaymentReceipt(
            so_number=parsed.so_number or None,
            billing_number=parsed.billing_number,
            raw=body,
        )

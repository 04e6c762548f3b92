"""Liaison SpectrumEMP API client"""
import asyncio
import json
import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, Mapping, Optional

import httpx
from pydantic import ValidationError

from liaison_inquiry.models.credentials import CredentialSet
from liaison_inquiry.models.forms import FormDefinition
from liaison_inquiry.models.submission import SubmissionResult
from liaison_inquiry.services.requirements_cache import RequirementsCache
from liaison_inquiry.utils.retry import retry_with_timeouts

logger = logging.getLogger(__name__)

API_URL = "https://www.spectrumemp.com/api/"

# The default inquiry form is missing from the submittable forms response
DEFAULT_FORM_NAME = "Inquiry Form"

API_KEY_FIELD = "IQS-API-KEY"

READ_TIMEOUT = 10.0
# Three attempts plus delays stay under a 30 second gateway timeout
ATTEMPT_TIMEOUTS = (10.0, 10.0, 5.0)
MAX_RETRIES = len(ATTEMPT_TIMEOUTS) - 1
RETRY_DELAY = 0.1

RETRYABLE_ERRORS = frozenset({
    "http_request_failed",   # General failure, includes connection errors
    "curl_error",            # Low-level transport errors
    "http_500",
    "http_503",
    "http_request_timeout",
})

SUBMIT_FAILED_PREFIX = "Failed submitting to Liaison API. Please retry. Error: "
GENERIC_SUBMIT_FAILURE = "Something bad happened, please refresh the page and try again."
MISSING_API_KEY = "API Key missing"


class VendorError(Exception):
    """Base class for everything that can go wrong talking to the vendor"""

    def __init__(self, message: str):
        super().__init__(f"Error: {message}")
        self.message = message


class ConfigError(VendorError):
    """Credentials are missing; no request was made"""


class ApiTransportError(VendorError):
    """The request never produced a usable HTTP response"""

    def __init__(self, message: str, code: str = "http_request_failed"):
        super().__init__(message)
        self.code = code


class VendorProtocolError(VendorError):
    """HTTP succeeded but the body is not what the API contract promises"""


class ApiBadResponseError(VendorProtocolError):
    """Requirements response without a "data" envelope"""


def is_retryable_error(error: Exception) -> bool:
    return isinstance(error, ApiTransportError) and error.code in RETRYABLE_ERRORS


def decode_submit_response(body: Any) -> SubmissionResult:
    """Turn a submit response body (raw JSON text or decoded dict) into a SubmissionResult"""
    if isinstance(body, (str, bytes)):
        try:
            body = json.loads(body)
        except ValueError:
            body = {}
    if not isinstance(body, dict):
        body = {}

    message = body.get("message")
    data = body.get("data")
    return SubmissionResult(
        status=1 if body.get("status") == "success" else 0,
        response=message if message is not None else GENERIC_SUBMIT_FAILURE,
        data=data if data is not None else "",
    )


class VendorClient(ABC):
    """Operations the form and admin layers need from the vendor"""

    def __init__(self, credentials: CredentialSet, base_url: str = API_URL):
        self.credentials = credentials
        self.base_url = base_url.rstrip("/") + "/"

    @property
    def api_key(self) -> str:
        return self.credentials.api_key

    @property
    def client_id(self) -> str:
        return self.credentials.client_id

    # Consumed by the vendor's own front-end validation scripts
    @property
    def client_rules_url(self) -> str:
        return self.base_url + "field_rules/client_rules"

    @property
    def field_options_url(self) -> str:
        return self.base_url + "field_rules/field_options"

    @abstractmethod
    async def list_forms(self) -> Dict[str, Optional[str]]:
        """Form name -> form id, the default inquiry form first with id None"""

    @abstractmethod
    async def get_requirements(self, form_id: Optional[str] = None) -> FormDefinition:
        """Field definition of a form; None means the default inquiry form"""

    @abstractmethod
    async def post_form(
        self,
        fields: Mapping[str, str],
        attempt: int = 0,
        referring_page: str = "",
    ) -> SubmissionResult:
        """Submit prepared fields; never raises"""


class SpectrumClient(VendorClient):
    """HTTP client for the live SpectrumEMP API"""

    def __init__(
        self,
        credentials: CredentialSet,
        base_url: str = API_URL,
        cache: Optional[RequirementsCache] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        retry_delay: float = RETRY_DELAY,
    ):
        super().__init__(credentials, base_url)
        self.cache = cache
        self._transport = transport
        self._retry_delay = retry_delay

    @property
    def submittable_url(self) -> str:
        return self.base_url + "forms/submittable"

    @property
    def requirements_url(self) -> str:
        return self.base_url + "forms/requirements"

    @property
    def submit_url(self) -> str:
        return self.base_url + "forms/submit"

    async def _request(self, method: str, url: str, timeout: float, **kwargs) -> httpx.Response:
        try:
            async with httpx.AsyncClient(timeout=timeout, transport=self._transport) as client:
                # httpx timeouts apply per read; this bounds the whole attempt
                response = await asyncio.wait_for(client.request(method, url, **kwargs), timeout)
        except (httpx.TimeoutException, asyncio.TimeoutError) as e:
            raise ApiTransportError(
                f"Operation timed out after {timeout:g} seconds",
                code="http_request_timeout",
            ) from e
        except httpx.TransportError as e:
            raise ApiTransportError(
                str(e) or e.__class__.__name__,
                code="http_request_failed",
            ) from e

        if response.status_code in (500, 503):
            raise ApiTransportError(
                f"HTTP {response.status_code} {response.reason_phrase}",
                code=f"http_{response.status_code}",
            )
        return response

    @staticmethod
    def _decode(response: httpx.Response) -> Dict[str, Any]:
        try:
            decoded = response.json()
        except ValueError:
            raise VendorProtocolError(
                f"Invalid JSON in API response (HTTP {response.status_code})"
            )
        return decoded if isinstance(decoded, dict) else {}

    def _require_api_key(self) -> None:
        if not self.api_key:
            raise ConfigError(MISSING_API_KEY)

    async def list_forms(self) -> Dict[str, Optional[str]]:
        """
        Get the list of forms from the API

        Not cached: this only backs the admin form browser, where freshness
        matters more than speed.
        """
        self._require_api_key()

        result: Dict[str, Optional[str]] = {DEFAULT_FORM_NAME: None}
        try:
            response = await self._request(
                "GET",
                self.submittable_url,
                READ_TIMEOUT,
                params={API_KEY_FIELD: self.api_key},
            )
        except ApiTransportError as e:
            logger.error(f"Liaison form list call failed: {e.message}")
            raise

        decoded = self._decode(response)
        data = decoded.get("data")
        forms = data.get("sem_forms") if isinstance(data, dict) else None
        if isinstance(forms, dict):
            for name, form_id in forms.items():
                result[name] = None if form_id is None else str(form_id)
        return result

    async def get_requirements(self, form_id: Optional[str] = None) -> FormDefinition:
        """Fetch the field definition of a form, served from cache for up to the cache TTL"""
        self._require_api_key()

        if self.cache is not None:
            cached = self.cache.get(self.api_key, form_id)
            if cached is not None:
                return cached

        params = {API_KEY_FIELD: self.api_key}
        if form_id:
            params["formID"] = form_id

        try:
            response = await self._request("GET", self.requirements_url, READ_TIMEOUT, params=params)
        except ApiTransportError as e:
            logger.error(f"Liaison form API call failed: {e.message}")
            raise

        decoded = self._decode(response)
        if decoded.get("data") is None:
            message = decoded.get("message") or "Unknown error"
            logger.error(f"Bad response from Liaison API server: {message}")
            raise ApiBadResponseError(message)

        try:
            form = FormDefinition.model_validate(decoded["data"])
        except ValidationError as e:
            logger.error(f"Unexpected form definition from Liaison API server: {e}")
            raise VendorProtocolError("Form definition could not be read")

        if self.cache is not None:
            self.cache.set(self.api_key, form_id, form)
        return form

    async def post_form(
        self,
        fields: Mapping[str, str],
        attempt: int = 0,
        referring_page: str = "",
    ) -> SubmissionResult:
        """
        Send a prepared form to the API, retrying transient failures.

        Up to three attempts are made in total (10s, 10s and a final 5s
        timeout, 0.1s apart); ``attempt`` is the number already spent.
        """
        if not self.api_key:
            return SubmissionResult.failure(MISSING_API_KEY)

        body = dict(fields)
        body[API_KEY_FIELD] = self.api_key

        page_info = f" (Referring Page: {referring_page})" if referring_page else ""

        def log_failure(index: int, error: Exception, will_retry: bool) -> None:
            outcome = "retrying" if will_retry else "giving up"
            logger.warning(
                f"Try {attempt + index + 1} failed, {outcome} - Error: {getattr(error, 'message', error)}{page_info}"
            )

        try:
            response = await retry_with_timeouts(
                lambda timeout: self._request("POST", self.submit_url, timeout, data=body),
                ATTEMPT_TIMEOUTS[min(attempt, MAX_RETRIES):],
                is_retryable_error,
                delay=self._retry_delay,
                on_failure=log_failure,
            )
        except ApiTransportError as e:
            return SubmissionResult.failure(SUBMIT_FAILED_PREFIX + e.message)

        return decode_submit_response(response.text)

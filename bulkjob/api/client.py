"""HTTP client for the platform's asynchronous bulk job endpoints."""

import logging
from typing import Any, Dict, List, Optional, Tuple

import requests
from pydantic import ValidationError as PydanticValidationError
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from ..errors import APIError, JobNotFoundError, TransientNetworkError
from ..models.config import JobConfig
from .models import CreateJobResponse, JobStatusPayload

logger = logging.getLogger(__name__)

EXPORTS_ENDPOINT = "/cpq/async/exports"
IMPORTS_ENDPOINT = "/cpq/async/imports"
CATALOG_IMPORTS_ENDPOINT = "/cpq/async/imports/revenue-builder-data"
TRANSACTION_HUB_UPLOAD_ENDPOINT = "/revenue/transaction-hub/upload"
TRANSACTION_HUB_JOBS_ENDPOINT = "/revenue/transaction-hub/async-job"

MultipartParts = List[Tuple[str, Tuple[str, Any, str]]]


class PlatformClient:
    """
    REST client for bulk export and import jobs.

    Maps HTTP failures onto the client's error types:
    - 404 on a status endpoint -> JobNotFoundError
    - connection errors and timeouts -> TransientNetworkError
    - any other 4xx/5xx -> APIError with the server's message
    """

    def __init__(self, config: JobConfig, session: Optional[requests.Session] = None):
        """
        Initialize the client.

        Args:
            config: Client configuration
            session: Custom requests session
        """
        self.config = config
        self.base_url = config.base_url.rstrip("/")
        self._session = session or self._create_session()

    def _create_session(self) -> requests.Session:
        """Create a requests session with authentication and retry logic."""
        session = requests.Session()

        retries = Retry(
            total=self.config.max_retries,
            backoff_factor=self.config.backoff_factor,
            status_forcelist=[429, 500, 502, 503, 504],
            raise_on_status=False,
        )

        adapter = HTTPAdapter(max_retries=retries)
        session.mount("https://", adapter)
        session.mount("http://", adapter)

        if self.config.api_key:
            session.headers[self.config.api_key_header] = self.config.api_key
        session.headers["Accept"] = "application/json"

        return session

    def _url(self, endpoint: str) -> str:
        if endpoint.startswith("http://") or endpoint.startswith("https://"):
            return endpoint
        return f"{self.base_url}{endpoint}"

    def _request(self, method: str, endpoint: str, **kwargs) -> requests.Response:
        """Send one request and raise for HTTP errors."""
        url = self._url(endpoint)
        logger.debug(f"{method} {url}")

        try:
            response = self._session.request(
                method, url, timeout=self.config.request_timeout, **kwargs
            )
        except (requests.exceptions.ConnectionError, requests.exceptions.Timeout) as e:
            raise TransientNetworkError(f"Connection to {url} failed: {e}", url=url) from e
        except requests.exceptions.RequestException as e:
            raise APIError(f"Request to {url} failed: {e}", url=url) from e

        if response.status_code >= 400:
            raise APIError(
                self._error_message(response),
                status_code=response.status_code,
                url=url,
            )

        return response

    @staticmethod
    def _error_message(response: requests.Response) -> str:
        """Best human-readable message from an error response."""
        try:
            data = response.json()
        except ValueError:
            data = None

        if isinstance(data, dict):
            errors = data.get("errors")
            if isinstance(errors, list) and errors:
                return "; ".join(
                    str(e.get("message", e)) if isinstance(e, dict) else str(e) for e in errors
                )
            for key in ("error", "message", "errorMessage"):
                if data.get(key):
                    return str(data[key])

        text = (response.text or "").strip()
        return text[:500] if text else (response.reason or "Unknown error")

    @staticmethod
    def _json(response: requests.Response) -> Dict[str, Any]:
        if not response.text:
            return {}
        try:
            data = response.json()
        except ValueError as e:
            raise APIError(
                f"Invalid JSON in response: {e}", status_code=response.status_code, url=response.url
            ) from e
        if not isinstance(data, dict):
            raise APIError(
                "Expected a JSON object in response", status_code=response.status_code, url=response.url
            )
        logger.debug(f"API response: {data}")
        return data

    def _job_id(self, response: requests.Response) -> str:
        payload = CreateJobResponse.model_validate(self._json(response))
        if not payload.job_id:
            raise APIError(
                "Create job response did not include a job id",
                status_code=response.status_code,
                url=response.url,
            )
        return payload.job_id

    def _status(self, endpoint: str, job_id: str) -> JobStatusPayload:
        try:
            response = self._request("GET", endpoint)
        except APIError as e:
            if e.status_code == 404:
                raise JobNotFoundError(job_id, url=e.url) from e
            raise

        try:
            return JobStatusPayload.model_validate(self._json(response))
        except PydanticValidationError as e:
            raise APIError(f"Unexpected job status response: {e}", url=response.url) from e

    # Jobs

    def create_export_job(self, query: str, variables: Dict[str, Any]) -> str:
        """Create an export job from a GraphQL query. Returns the job id."""
        response = self._request(
            "POST", EXPORTS_ENDPOINT, json={"query": query, "variables": variables}
        )
        return self._job_id(response)

    def create_catalog_import_job(
        self,
        parts: MultipartParts,
        import_operation: Optional[str] = None
    ) -> str:
        """Create a product catalog import job and upload its files in one request."""
        response = self._request(
            "POST",
            CATALOG_IMPORTS_ENDPOINT,
            params={"import-operation": import_operation or self.config.import_operation},
            files=parts,
        )
        return self._job_id(response)

    def create_import_job(self, object_name: str, file_format: str = "jsonl") -> str:
        """Create an empty transaction import job. Returns the job id."""
        response = self._request(
            "POST",
            IMPORTS_ENDPOINT,
            json={"format": file_format, "objectname": object_name.lower()},
        )
        return self._job_id(response)

    def upload_import_content(self, job_id: str, parts: MultipartParts) -> None:
        """Upload the content of a transaction import job."""
        self._request("PATCH", f"{IMPORTS_ENDPOINT}/{job_id}/content", files=parts)

    def create_transaction_hub_import_job(self, records: List[Dict[str, Any]]) -> str:
        """Create a transaction hub import job with its records in the JSON body."""
        response = self._request("POST", TRANSACTION_HUB_UPLOAD_ENDPOINT, json={"data": records})
        return self._job_id(response)

    def get_export_status(self, job_id: str) -> JobStatusPayload:
        """Get the status of an export job."""
        return self._status(f"{EXPORTS_ENDPOINT}/{job_id}", job_id)

    def get_import_status(self, job_id: str) -> JobStatusPayload:
        """
        Get the status of an import job.

        Combined catalog imports, transaction imports and export-backed jobs
        live under different endpoints; each is tried in turn on 404.
        """
        endpoints = [
            f"{CATALOG_IMPORTS_ENDPOINT}/{job_id}",
            f"{IMPORTS_ENDPOINT}/{job_id}",
            f"{EXPORTS_ENDPOINT}/{job_id}",
        ]

        for endpoint in endpoints[:-1]:
            try:
                return self._status(endpoint, job_id)
            except JobNotFoundError:
                logger.debug(f"Job {job_id} not found at {endpoint}, trying next endpoint")

        return self._status(endpoints[-1], job_id)

    def get_transaction_hub_import_status(self, job_id: str) -> JobStatusPayload:
        """Get the status of a transaction hub import job."""
        return self._status(f"{TRANSACTION_HUB_JOBS_ENDPOINT}/{job_id}", job_id)

    def download_file(self, url: str) -> bytes:
        """Download a pre-authenticated result file."""
        logger.debug(f"Downloading file from {url}")
        return self._request("GET", url).content

"""Creation of export and import jobs."""

import json
import logging
from contextlib import ExitStack
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from ..api.client import PlatformClient
from ..errors import FileError, ValidationError
from ..models.config import JobConfig
from ..models.job import JobKind
from ..models.object_types import TRANSACTION_HUB_TYPES
from ..models.staging import BatchRequest, SourceFormat, StagedFile

logger = logging.getLogger(__name__)

TRANSACTION_HUB_MAX_RECORDS = 5000
TRANSACTION_HUB_REQUIRED_FIELDS = (
    "transactiontype", "nueid", "externalsystem", "externalsystemid", "externalid",
)
TRANSACTION_HUB_DIRECTIONS = ("inbound", "outbound")


def load_variables_file(variables_file: Union[str, Path]) -> Any:
    """Load export query variables from a JSON file."""
    try:
        return json.loads(Path(variables_file).read_text(encoding="utf-8"))
    except OSError as e:
        raise FileError(variables_file, f"Error loading variables file: {e}")
    except json.JSONDecodeError as e:
        raise FileError(variables_file, f"Invalid JSON: {e}")


@dataclass
class ExportPayload:
    """GraphQL query and variables for an export job."""
    query: str
    variables: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_strings(cls, query: str, variables: Optional[str] = None) -> "ExportPayload":
        """Build from a query string and an optional JSON variables string."""
        parsed: Any = {}
        if variables:
            try:
                parsed = json.loads(variables)
            except json.JSONDecodeError as e:
                raise ValidationError(f"Variables are not valid JSON: {e}")
        return cls(query=query, variables=parsed)

    @classmethod
    def from_files(
        cls,
        query_file: Union[str, Path],
        variables_file: Optional[Union[str, Path]] = None
    ) -> "ExportPayload":
        """Load the query (and optionally its variables) from files."""
        try:
            query = Path(query_file).read_text(encoding="utf-8")
        except OSError as e:
            raise FileError(query_file, f"Error loading query file: {e}")

        variables = load_variables_file(variables_file) if variables_file else {}
        return cls(query=query, variables=variables)

    def to_dict(self) -> Dict[str, Any]:
        return {"query": self.query, "variables": self.variables}


class JobSubmitter:
    """
    Issues create-job calls.

    Payloads are validated before any network call:
    - export: ExportPayload with a non-empty query and an object of variables
    - import: BatchRequest or a single StagedFile
    - transaction hub import: a list of at most 5000 records, each carrying
      the linking fields and a known transaction type
    """

    def __init__(self, client: PlatformClient, config: Optional[JobConfig] = None):
        self.client = client
        self.config = config or client.config

    def submit(self, kind: Union[JobKind, str], payload: Any) -> str:
        """
        Create a job.

        Args:
            kind: JobKind.EXPORT, JobKind.IMPORT or JobKind.TRANSACTION_HUB
            payload: ExportPayload for exports, BatchRequest or StagedFile for
                imports, a list of records for transaction hub imports

        Returns:
            Job id assigned by the platform

        Raises:
            ValidationError: If the payload is structurally invalid
            APIError: If the platform rejects the request
        """
        try:
            kind = JobKind(kind)
        except ValueError:
            raise ValidationError(f"Unknown job kind: {kind}")

        if kind == JobKind.EXPORT:
            job_id = self._submit_export(self.validate_export(payload))
            logger.info(f"Export job created successfully. Job ID: {job_id}")
        elif kind == JobKind.TRANSACTION_HUB:
            records = self.validate_transaction_hub(payload)
            logger.info(f"Submitting {len(records)} transaction hub records")
            job_id = self.client.create_transaction_hub_import_job(records)
            logger.info(f"Transaction hub import job created with ID: {job_id}")
        else:
            job_id = self._submit_import(self.validate_import(payload))
            logger.info(f"Import job created with ID: {job_id}")

        return job_id

    @staticmethod
    def validate_export(payload: Any) -> ExportPayload:
        if isinstance(payload, dict):
            payload = ExportPayload(query=payload.get("query"), variables=payload.get("variables") or {})
        if not isinstance(payload, ExportPayload):
            raise ValidationError("Export payload must provide a query and variables")
        if not isinstance(payload.query, str) or not payload.query.strip():
            raise ValidationError("Export query must be a non-empty string")
        if payload.variables is None:
            payload.variables = {}
        if not isinstance(payload.variables, dict):
            raise ValidationError("Export variables must be a JSON object")
        return payload

    @staticmethod
    def validate_import(payload: Any) -> BatchRequest:
        if isinstance(payload, StagedFile):
            batch = BatchRequest()
            batch.add(payload)
            payload = batch
        if not isinstance(payload, BatchRequest):
            raise ValidationError("Import payload must be a BatchRequest or StagedFile")
        if not payload.files:
            raise ValidationError("Import payload contains no files")

        for staged in payload.files.values():
            if staged.definition.is_transaction_hub:
                raise ValidationError("Transaction hub records are submitted as a list of records, not a file")
            if not staged.path.is_file():
                raise FileError(staged.path, "Staged file does not exist")
        return payload

    @staticmethod
    def validate_transaction_hub(payload: Any) -> List[Dict[str, Any]]:
        if not isinstance(payload, list):
            raise ValidationError("Transaction hub import data must be an array")
        if not payload:
            raise ValidationError("Transaction hub import data cannot be empty")
        if len(payload) > TRANSACTION_HUB_MAX_RECORDS:
            raise ValidationError(
                f"Transaction hub import data cannot exceed {TRANSACTION_HUB_MAX_RECORDS} records"
            )

        for index, record in enumerate(payload, start=1):
            if not isinstance(record, dict):
                raise ValidationError(f"Record {index} is not a JSON object")
            for name in TRANSACTION_HUB_REQUIRED_FIELDS:
                if not record.get(name):
                    raise ValidationError(f"Record {index} is missing required field: {name}")

            transaction_type = str(record["transactiontype"])
            if transaction_type.lower() not in TRANSACTION_HUB_TYPES:
                raise ValidationError(
                    f"Record {index} has invalid transaction type: {transaction_type}"
                )

            direction = record.get("direction")
            if direction and str(direction).lower() not in TRANSACTION_HUB_DIRECTIONS:
                raise ValidationError(f"Record {index} has invalid direction: {direction}")

        return payload

    @staticmethod
    def uses_transaction_route(batch: BatchRequest) -> bool:
        """
        A single transaction object read from a caller file goes through
        the create-then-upload route; everything else, including files from
        a previous export, goes to the combined import endpoint.
        """
        if len(batch) != 1 or batch.is_product_catalog:
            return False
        staged = next(iter(batch.files.values()))
        return staged.source_format != SourceFormat.EXPORT

    def _submit_export(self, payload: ExportPayload) -> str:
        logger.debug(f"Export query: {payload.query}")
        if payload.variables:
            logger.debug(f"Variables: {json.dumps(payload.variables, indent=2)}")
        return self.client.create_export_job(payload.query, payload.variables)

    def _submit_import(self, batch: BatchRequest) -> str:
        if self.uses_transaction_route(batch):
            return self._submit_transaction_import(next(iter(batch.files.values())))

        for staged in batch.files.values():
            logger.info(
                f"Uploading {staged.path.name} ({staged.size} bytes) as '{staged.upload_field}'"
            )
        with ExitStack() as stack:
            parts = batch.open_parts(stack)
            return self.client.create_catalog_import_job(parts, self.config.import_operation)

    def _submit_transaction_import(self, staged: StagedFile) -> str:
        """Create a transaction import job, then upload its content under 'data'."""
        upload_path = staged.path
        file_format = SourceFormat.JSONL.value
        if staged.source_path and staged.source_format in (
            SourceFormat.JSON, SourceFormat.CSV, SourceFormat.JSONL
        ):
            upload_path = staged.source_path
            file_format = staged.source_format.value

        job_id = self.client.create_import_job(staged.object_type.value, file_format)
        logger.info(f"Uploading {upload_path.name} to import job {job_id}")

        with open(upload_path, "rb") as handle:
            self.client.upload_import_content(
                job_id, [("data", (upload_path.name, handle, "application/octet-stream"))]
            )
        logger.info("File uploaded successfully")
        return job_id

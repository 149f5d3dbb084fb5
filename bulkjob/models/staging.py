"""Models for files staged in the wire format before upload."""

from contextlib import ExitStack
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

from .object_types import ObjectType, ObjectTypeDefinition, registry


class SourceFormat(str, Enum):
    """Formats a staged file can be produced from."""
    JSON = "json"
    CSV = "csv"
    JSONL = "jsonl"
    EXPORT = "export"  # File downloaded from a previous export job

    @classmethod
    def from_path(cls, path: Any) -> "SourceFormat":
        """Guess the format from a file extension, defaulting to JSON."""
        suffix = Path(path).suffix.lower().lstrip(".")
        if suffix in ("jsonl", "ndjson"):
            return cls.JSONL
        if suffix == "csv":
            return cls.CSV
        return cls.JSON


@dataclass
class StagedFile:
    """A local file in the platform's wire format."""
    path: Path
    object_type: ObjectType
    source_format: SourceFormat
    record_count: Optional[int] = None
    temporary: bool = True
    source_path: Optional[Path] = None

    @property
    def definition(self) -> ObjectTypeDefinition:
        return registry.get(self.object_type)

    @property
    def upload_field(self) -> str:
        return self.definition.upload_field

    @property
    def size(self) -> int:
        try:
            return self.path.stat().st_size
        except OSError:
            return 0

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary representation."""
        return {
            "path": str(self.path),
            "object_type": self.object_type.value,
            "source_format": self.source_format.value,
            "record_count": self.record_count,
            "temporary": self.temporary,
            "source_path": str(self.source_path) if self.source_path else None,
        }


@dataclass
class BatchRequest:
    """Staged files keyed by object type, uploaded as one multipart request."""
    files: Dict[ObjectType, StagedFile] = field(default_factory=dict)
    skipped: List[str] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.files)

    def add(self, staged: StagedFile) -> bool:
        """Add a staged file. Returns False if its type is already present."""
        if staged.object_type in self.files:
            return False
        self.files[staged.object_type] = staged
        return True

    @property
    def object_types(self) -> List[ObjectType]:
        return list(self.files.keys())

    @property
    def is_product_catalog(self) -> bool:
        return all(f.definition.is_product_catalog for f in self.files.values())

    def open_parts(self, stack: ExitStack) -> List[Tuple[str, Tuple[str, Any, str]]]:
        """
        Open every staged file and build the multipart parts for requests.

        Args:
            stack: ExitStack that owns the opened file handles

        Returns:
            List of (field name, (file name, file object, content type))
        """
        parts = []
        for staged in self.files.values():
            handle = stack.enter_context(open(staged.path, "rb"))
            parts.append(
                (staged.upload_field, (staged.path.name, handle, "application/octet-stream"))
            )
        return parts

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary representation."""
        return {
            "files": {t.value: f.to_dict() for t, f in self.files.items()},
            "skipped": self.skipped,
        }

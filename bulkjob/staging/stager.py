"""Conversion between caller file formats and the platform wire format."""

import itertools
import json
import logging
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Set, Tuple, Union

from ..errors import FileError
from ..models.object_types import ObjectTypeDefinition, ObjectTypeRegistry, registry
from ..models.staging import SourceFormat, StagedFile
from .readers import get_reader

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]

IMPORT_META_KEY = "meta"
IMPORT_OBJECT_KEY = "objectname"
EXPORT_OBJECT_KEY = "meta_objectName"


def wire_header(object_name: str) -> str:
    """Metadata line that opens every wire-format file."""
    return json.dumps({IMPORT_META_KEY: {IMPORT_OBJECT_KEY: object_name.lower()}})


def header_object_name(header: Dict[str, Any]) -> Optional[str]:
    """Object name declared by a metadata line in either the import or the export layout."""
    meta = header.get(IMPORT_META_KEY)
    if isinstance(meta, dict) and meta.get(IMPORT_OBJECT_KEY):
        return str(meta[IMPORT_OBJECT_KEY])
    if header.get(EXPORT_OBJECT_KEY):
        return str(header[EXPORT_OBJECT_KEY])
    return None


class FileStager:
    """
    Stages files in the platform's wire format.

    Supports:
    - JSON array, CSV and JSON Lines input
    - Rewriting files downloaded from an export job so they can be imported
    - Reading wire-format files back
    - Cleaning up temporary staged files
    """

    def __init__(
        self,
        staging_dir: Optional[PathLike] = None,
        object_registry: Optional[ObjectTypeRegistry] = None,
        encoding: str = "utf-8"
    ):
        """
        Initialize the stager.

        Args:
            staging_dir: Directory for staged files (defaults to the source file's directory)
            object_registry: Registry used to resolve object types
            encoding: Encoding of input files
        """
        self.staging_dir = Path(staging_dir) if staging_dir else None
        self.registry = object_registry or registry
        self.encoding = encoding
        # Paths this stager wrote; cleanup never touches anything else
        self._created: Set[Path] = set()

    def stage(
        self,
        file_path: PathLike,
        object_type: str,
        source_format: Optional[Union[str, SourceFormat]] = None
    ) -> StagedFile:
        """
        Convert a JSON, CSV or JSON Lines file to a staged wire-format file.

        Args:
            file_path: Input file
            object_type: Object type name the records belong to
            source_format: Input format, guessed from the extension if omitted

        Returns:
            StagedFile describing the written file

        Raises:
            ValidationError: If the object type or format is unknown
            FileError: If the input cannot be parsed
        """
        definition = self.registry.require(object_type)
        source = Path(file_path)
        reader = get_reader(source_format or SourceFormat.from_path(source), encoding=self.encoding)

        records = reader.read(source)
        fmt = reader.format
        target = self._claim_path(source, "", "-staged")

        self.write_wire_file(target, definition, records)
        logger.info(f"Staged {len(records)} {definition.name} records to {target}")

        return StagedFile(
            path=target,
            object_type=definition.object_type,
            source_format=fmt,
            record_count=len(records),
            source_path=source,
        )

    def read_records(
        self,
        file_path: PathLike,
        source_format: Optional[Union[str, SourceFormat]] = None
    ) -> List[Dict[str, Any]]:
        """Parse a JSON, CSV or JSON Lines file without staging it."""
        source = Path(file_path)
        reader = get_reader(source_format or SourceFormat.from_path(source), encoding=self.encoding)
        return reader.read(source)

    def write_wire_file(
        self,
        target: PathLike,
        definition: ObjectTypeDefinition,
        records: Iterable[Dict[str, Any]]
    ) -> Path:
        """Write records under a metadata line, one JSON object per line."""
        lines = [wire_header(definition.name)]
        lines.extend(json.dumps(record, ensure_ascii=False) for record in records)

        path = Path(target)
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w", encoding="utf-8", newline="") as f:
            f.write("\n".join(lines))
        return path

    def restage_export_file(
        self,
        file_path: PathLike,
        object_type: Optional[str] = None
    ) -> StagedFile:
        """
        Rewrite a file downloaded from an export job into the import layout.

        Only the metadata line changes; every byte after it is copied as is.

        Args:
            file_path: Export file whose first line uses the export layout
            object_type: Fallback type when the metadata line names none

        Returns:
            StagedFile for the rewritten copy
        """
        source = Path(file_path)
        try:
            content = source.read_bytes()
        except FileNotFoundError:
            raise FileError(source, "File not found")
        except OSError as e:
            raise FileError(source, f"Failed to read file: {e}")

        content = content.lstrip(b"\r\n\t ")
        if not content:
            raise FileError(source, "File is empty")

        first_line, newline, rest = content.partition(b"\n")
        try:
            header = json.loads(first_line.decode("utf-8").strip())
        except (UnicodeDecodeError, json.JSONDecodeError) as e:
            raise FileError(source, f"Invalid JSONL format in first line: {e}")
        if not isinstance(header, dict):
            raise FileError(source, "Invalid JSONL format in first line: not a JSON object")

        object_name = header_object_name(header) or object_type
        definition = self.registry.require(object_name)

        target = self._claim_path(source, "-import", "-import-staged")
        with open(target, "wb") as f:
            f.write(wire_header(definition.name).encode("utf-8"))
            f.write(newline)
            f.write(rest)

        record_count = sum(1 for line in rest.splitlines() if line.strip())
        logger.info(f"Converted export file {source.name} to import format ({record_count} records)")

        return StagedFile(
            path=target,
            object_type=definition.object_type,
            source_format=SourceFormat.EXPORT,
            record_count=record_count,
            source_path=source,
        )

    def read_wire_file(self, file_path: PathLike) -> Tuple[Optional[str], List[Dict[str, Any]]]:
        """Read a wire-format file back into its object name and records."""
        path = Path(file_path)
        records = get_reader(SourceFormat.JSONL, encoding="utf-8").read(path)
        if not records:
            raise FileError(path, "File is empty")
        return header_object_name(records[0]), records[1:]

    def cleanup(self, staged_files: Iterable[StagedFile], verbose: bool = False) -> List[Path]:
        """
        Delete temporary staged files this stager created.

        Anything else, such as a caller file passed through unchanged, is left
        alone. Files are kept when verbose diagnostics were requested.

        Returns:
            Paths that were removed
        """
        removed = []
        if verbose:
            for staged in staged_files:
                logger.info(f"Keeping staged file for inspection: {staged.path}")
            return removed

        for staged in staged_files:
            if not staged.temporary or staged.path not in self._created:
                continue
            self._created.discard(staged.path)
            if not staged.path.exists():
                continue
            try:
                staged.path.unlink()
                removed.append(staged.path)
            except OSError as e:
                logger.warning(f"Failed to clean up temporary file {staged.path}: {e}")

        return removed

    def _claim_path(self, source: Path, suffix: str, collision_suffix: str) -> Path:
        """
        Reserve a new file for a staged copy of source.

        Files are created exclusively, so an existing file (the source included)
        is never written over.
        """
        directory = self.staging_dir or source.parent
        directory.mkdir(parents=True, exist_ok=True)
        names = itertools.chain(
            [f"{source.stem}{suffix}.jsonl", f"{source.stem}{collision_suffix}.jsonl"],
            (f"{source.stem}{collision_suffix}-{n}.jsonl" for n in itertools.count(2)),
        )
        for name in names:
            target = directory / name
            try:
                with open(target, "x", encoding="utf-8"):
                    pass
            except FileExistsError:
                continue
            self._created.add(target)
            return target

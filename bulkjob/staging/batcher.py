"""Grouping of per-object staged files into one combined import."""

import logging
from pathlib import Path
from typing import Iterable, List, Optional, Union

from ..errors import ValidationError
from ..models.object_types import ObjectTypeRegistry, registry
from ..models.staging import BatchRequest, SourceFormat, StagedFile

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]


def object_type_prefix(file_name: str) -> str:
    """Object type embedded in a '<objecttype>-<jobid>.<ext>' file name."""
    return Path(file_name).name.split("-")[0]


def find_export_files(
    export_job_id: str,
    directory: PathLike = ".",
    object_type: Optional[str] = None,
    extension: str = ".jsonl"
) -> List[Path]:
    """
    Find files downloaded from an export job.

    Args:
        export_job_id: Export job the files came from
        directory: Directory to search
        object_type: Only match this type; None matches every type

    Returns:
        Sorted list of matching paths
    """
    base = Path(directory)
    if not base.is_dir():
        logger.error(f"Error searching for downloaded files: {base} is not a directory")
        return []

    suffix = f"-{export_job_id}{extension}".lower()
    wanted = f"{object_type.lower()}{suffix}" if object_type else None

    matches = []
    for path in base.iterdir():
        name = path.name.lower()
        if not path.is_file():
            continue
        if wanted is not None:
            if name == wanted:
                matches.append(path)
        elif name.endswith(suffix) and len(name) > len(suffix):
            matches.append(path)

    return sorted(matches)


class MultiObjectBatcher:
    """
    Builds one BatchRequest out of several per-object files.

    Files whose object type cannot be resolved are skipped with a warning;
    a partial batch is an accepted outcome.
    """

    def __init__(self, object_registry: Optional[ObjectTypeRegistry] = None):
        self.registry = object_registry or registry

    def build(self, files: Iterable[Union[StagedFile, PathLike]]) -> BatchRequest:
        """
        Assemble a batch with one entry per recognized object type.

        Args:
            files: StagedFiles, or paths named '<objecttype>-<jobid>.<ext>'

        Returns:
            BatchRequest ready for submission

        Raises:
            ValidationError: If no file could be batched
        """
        batch = BatchRequest()

        for item in files:
            staged = self._as_staged(item)
            if staged is None:
                name = Path(item).name
                logger.warning(
                    f"Skipping {name} - unknown object type: {object_type_prefix(name)}"
                )
                batch.skipped.append(name)
                continue

            if not batch.add(staged):
                logger.warning(
                    f"Skipping {staged.path.name} - {staged.object_type.value} is already in this batch"
                )
                batch.skipped.append(staged.path.name)
                continue

            logger.info(
                f"Adding {staged.object_type.value} data from {staged.path.name} "
                f"as '{staged.upload_field}'"
            )

        if not batch.files:
            raise ValidationError("No files with a recognized object type to import")

        return batch

    def _as_staged(self, item: Union[StagedFile, PathLike]) -> Optional[StagedFile]:
        if isinstance(item, StagedFile):
            return item

        path = Path(item)
        definition = self.registry.resolve(object_type_prefix(path.name))
        if definition is None:
            return None

        return StagedFile(
            path=path,
            object_type=definition.object_type,
            source_format=SourceFormat.from_path(path),
            temporary=False,
        )

"""Readers that turn caller-supplied files into lists of records."""

import csv
import json
import logging
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Dict, List

from ..errors import FileError, ValidationError
from ..models.staging import SourceFormat

logger = logging.getLogger(__name__)

# Keys under which a JSON document may wrap its list of records
WRAPPER_KEYS = ("data", "records", "items", "results")


class BaseReader(ABC):
    """
    Base class for record readers.

    Readers raise FileError for anything they cannot parse; they never
    skip a malformed record silently.
    """

    format: SourceFormat

    def __init__(self, encoding: str = "utf-8"):
        self.encoding = encoding

    @abstractmethod
    def read(self, file_path: Path) -> List[Dict[str, Any]]:
        """
        Read all records from a file.

        Args:
            file_path: File to read

        Returns:
            List of records, each a JSON object

        Raises:
            FileError: If the file is missing or malformed
        """
        pass

    def _read_text(self, file_path: Path) -> str:
        try:
            with open(file_path, "r", encoding=self.encoding) as f:
                return f.read()
        except FileNotFoundError:
            raise FileError(file_path, "File not found")
        except UnicodeDecodeError as e:
            raise FileError(file_path, f"File is not valid {self.encoding}: {e}")
        except OSError as e:
            raise FileError(file_path, f"Failed to read file: {e}")

    @staticmethod
    def _check_record(file_path: Path, item: Any, position: str) -> Dict[str, Any]:
        if not isinstance(item, dict):
            raise FileError(file_path, f"Record at {position} is not a JSON object")
        return item


class JSONReader(BaseReader):
    """Reader for a JSON array of records."""

    format = SourceFormat.JSON

    def read(self, file_path: Path) -> List[Dict[str, Any]]:
        text = self._read_text(file_path)
        try:
            data = json.loads(text)
        except json.JSONDecodeError as e:
            raise FileError(file_path, f"Invalid JSON: {e}")

        if isinstance(data, dict):
            for key in WRAPPER_KEYS:
                if isinstance(data.get(key), list):
                    data = data[key]
                    break

        if not isinstance(data, list):
            raise FileError(file_path, "Expected a JSON array of records")

        return [self._check_record(file_path, item, f"index {idx}") for idx, item in enumerate(data)]


class JSONLReader(BaseReader):
    """Reader for JSON Lines files, one record per line."""

    format = SourceFormat.JSONL

    def read(self, file_path: Path) -> List[Dict[str, Any]]:
        records = []
        text = self._read_text(file_path)

        # Only "\n" ends a record; U+2028 and friends may sit inside JSON strings
        for line_num, line in enumerate(text.split("\n"), start=1):
            line = line.strip()
            if not line:
                continue
            try:
                item = json.loads(line)
            except json.JSONDecodeError as e:
                raise FileError(file_path, f"Invalid JSON on line {line_num}: {e}")
            records.append(self._check_record(file_path, item, f"line {line_num}"))

        return records


class CSVReader(BaseReader):
    """
    Reader for CSV files with a header row.

    Values are kept as trimmed strings; a row shorter than the header gets
    empty strings for the missing cells and a longer row is rejected. Quoted
    fields may contain commas and newlines.
    """

    format = SourceFormat.CSV

    def __init__(self, encoding: str = "utf-8", delimiter: str = ","):
        super().__init__(encoding)
        self.delimiter = delimiter

    def read(self, file_path: Path) -> List[Dict[str, Any]]:
        try:
            return self._read_with_encoding(file_path, self.encoding)
        except UnicodeDecodeError:
            logger.warning(f"UTF-8 decode failed, trying latin-1 for {file_path}")
            return self._read_with_encoding(file_path, "latin-1")

    def _read_with_encoding(self, file_path: Path, encoding: str) -> List[Dict[str, Any]]:
        records = []

        try:
            with open(file_path, "r", encoding=encoding, newline="") as f:
                reader = csv.DictReader(f, delimiter=self.delimiter, restval="")
                if not reader.fieldnames:
                    raise FileError(
                        file_path, "CSV file must have at least a header row and one data row"
                    )
                headers = [h.strip() for h in reader.fieldnames]

                for row in reader:
                    if None in row:
                        raise FileError(file_path, f"Row {reader.line_num} has more values than headers")
                    values = [row.get(name, "") for name in reader.fieldnames]
                    if all(not (v or "").strip() for v in values):
                        continue
                    records.append({
                        header: (value or "").strip()
                        for header, value in zip(headers, values)
                    })

        except FileNotFoundError:
            raise FileError(file_path, "File not found")
        except csv.Error as e:
            raise FileError(file_path, f"Invalid CSV: {e}")

        if not records:
            raise FileError(file_path, "CSV file must have at least a header row and one data row")

        return records


READERS = {
    SourceFormat.JSON: JSONReader,
    SourceFormat.JSONL: JSONLReader,
    SourceFormat.CSV: CSVReader,
}


def get_reader(source_format: Any, encoding: str = "utf-8") -> BaseReader:
    """Get a reader for a format name or SourceFormat."""
    try:
        fmt = SourceFormat(str(getattr(source_format, "value", source_format)).lower())
    except ValueError:
        fmt = None

    reader_cls = READERS.get(fmt)
    if reader_cls is None:
        raise ValidationError(
            f"Unsupported format: {source_format}. Use one of: json, jsonl, csv"
        )
    return reader_cls(encoding=encoding)

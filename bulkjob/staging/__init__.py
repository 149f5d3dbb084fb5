"""Staging of files in the platform wire format."""

from .readers import BaseReader, JSONReader, JSONLReader, CSVReader, get_reader
from .stager import FileStager, wire_header
from .batcher import MultiObjectBatcher, find_export_files

__all__ = [
    "BaseReader",
    "JSONReader",
    "JSONLReader",
    "CSVReader",
    "get_reader",
    "FileStager",
    "wire_header",
    "MultiObjectBatcher",
    "find_export_files",
]

"""Exporters run after all conversations are merged."""

from .base import Generator
from .csv_index import CSVIndex
from .sms_backup import SMSBackup

__all__ = [
    "CSVIndex",
    "Generator",
    "SMSBackup",
]

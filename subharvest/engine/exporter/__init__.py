"""Exporter SPI and implementations."""

from .base import BaseExporter
from .file_exporter import LinkFileExporter

__all__ = ["BaseExporter", "LinkFileExporter"]

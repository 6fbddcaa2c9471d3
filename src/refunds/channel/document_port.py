"""Document generator port: renders refund and invoice documents to files."""

from abc import ABC, abstractmethod
from enum import Enum


class DocumentKind(Enum):
    REFUND = "refund"
    INVOICE = "invoice"


class DocumentGeneratorPort(ABC):
    @abstractmethod
    def generate(self, kind: str, data: dict, timeout: float | None = None) -> str:
        """Render a document of ``kind`` from ``data`` and return its file path."""
        ...

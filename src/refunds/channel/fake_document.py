"""Fake document generator: returns deterministic paths without rendering."""

from uuid import uuid4

from refunds.channel.document_port import DocumentGeneratorPort, DocumentKind


class FakeDocumentGenerator(DocumentGeneratorPort):
    def __init__(self, output_dir: str = "/tmp/refund-documents") -> None:
        self.output_dir = output_dir
        self.calls: list[dict] = []
        self.should_succeed = True
        self.failure_reason = "Document generation failed"

    def configure(self, should_succeed: bool = True, failure_reason: str = "Document generation failed") -> None:
        self.should_succeed = should_succeed
        self.failure_reason = failure_reason

    def generate(self, kind: str, data: dict, timeout: float | None = None) -> str:
        kind = DocumentKind(kind).value
        self.calls.append({"kind": kind, "data": dict(data)})
        if not self.should_succeed:
            raise RuntimeError(self.failure_reason)
        return f"{self.output_dir}/{kind}-{uuid4().hex[:10]}.pdf"

    def reset(self) -> None:
        self.calls.clear()
        self.should_succeed = True
        self.failure_reason = "Document generation failed"

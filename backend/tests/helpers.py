"""Builders and fakes shared by the test modules."""
from datetime import datetime
from typing import Any, Dict, List

from docchat.models.document import Chunk, Document, DocumentStatus, FileCategory


class RecordingTransport:
    """Collects everything the coordinator sends to one client."""

    def __init__(self):
        self.sent: List[Dict[str, Any]] = []

    async def send_json(self, data: Dict[str, Any]) -> None:
        self.sent.append(data)

    def events(self, name: str) -> List[Any]:
        return [frame["data"] for frame in self.sent if frame["event"] == name]

    @property
    def names(self) -> List[str]:
        return [frame["event"] for frame in self.sent]


def make_document(
    document_id: str,
    name: str,
    chunks: List[str],
    category: FileCategory = FileCategory.TXT,
    status: DocumentStatus = DocumentStatus.COMPLETED,
) -> Document:
    return Document(
        document_id=document_id,
        filename=name.lower(),
        original_name=name,
        content="\n".join(chunks),
        file_category=category,
        file_size=sum(len(c) for c in chunks),
        chunks=[Chunk(text=text, index=i) for i, text in enumerate(chunks)],
        status=status,
        uploaded_at=datetime.utcnow(),
    )

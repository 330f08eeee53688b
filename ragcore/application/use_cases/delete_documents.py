"""
Name: Delete Documents Use Case

Responsibilities:
  - Remove documents from the similarity index by id

Collaborators:
  - domain.repositories.SimilarityIndex

Notes:
  - Missing ids are ignored; the result counts only ids that existed
"""

from dataclasses import dataclass, field
from typing import List, Sequence

from ...domain.entities import DocumentId
from ...domain.repositories import SimilarityIndex
from ...logger import logger


@dataclass
class DeleteDocumentsResult:
    deleted: int = 0
    missing: List[DocumentId] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {"deleted": self.deleted, "missing": list(self.missing)}


class DeleteDocumentsUseCase:
    """R: Delete documents by id."""

    def __init__(self, index: SimilarityIndex):
        self.index = index

    def execute(self, ids: Sequence[DocumentId]) -> DeleteDocumentsResult:
        result = DeleteDocumentsResult()
        for document_id in dict.fromkeys(ids):
            if self.index.delete(document_id):
                result.deleted += 1
            else:
                result.missing.append(document_id)

        logger.info(
            "Documents deleted",
            extra={"deleted": result.deleted, "missing": len(result.missing)},
        )
        return result

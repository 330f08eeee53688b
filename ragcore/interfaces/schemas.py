"""
Name: Request Schemas

Responsibilities:
  - Validate transport payloads (dicts) before they reach the use cases
  - Bound k by max_top_k passed through the validation context

Collaborators:
  - interfaces.handlers: model_validate(payload, context={...})

Notes:
  - Per-document checks (empty text, scalar metadata) belong to ingestion
    and are reported as item errors; schemas only check the payload shape
"""

from typing import Any, Dict, List, Optional, Union

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    StrictInt,
    StrictStr,
    ValidationInfo,
    field_validator,
)

DocumentIdField = Union[StrictInt, StrictStr]


class QueryRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    text: str = Field(..., description="Natural language query")
    k: Optional[int] = Field(default=None, gt=0, description="Final number of matches")
    min_score: Optional[float] = Field(
        default=None, ge=0.0, le=1.0, description="Inclusive score threshold"
    )
    filters: Optional[Dict[str, Any]] = Field(
        default=None, description="Metadata predicate (equality or $-operators)"
    )
    generate: bool = Field(default=True, description="False returns matches only")

    @field_validator("k")
    @classmethod
    def k_within_limit(cls, v: Optional[int], info: ValidationInfo) -> Optional[int]:
        max_top_k = (info.context or {}).get("max_top_k")
        if v is not None and max_top_k is not None and v > max_top_k:
            raise ValueError(f"k must be <= {max_top_k}")
        return v


class IngestDocumentItem(BaseModel):
    model_config = ConfigDict(extra="forbid")

    id: DocumentIdField
    text: str
    metadata: Dict[str, Any] = Field(default_factory=dict)


class IngestRequest(BaseModel):
    documents: List[IngestDocumentItem]


class DeleteRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    ids: List[DocumentIdField] = Field(..., min_length=1)

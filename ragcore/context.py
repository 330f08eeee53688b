"""
Name: Operation Context (ContextVars)

Responsibilities:
  - Store operation-scoped data (request_id, collection, operation)
  - Provide thread/async-safe context without parameter passing
  - Enable structured logging with request correlation

Collaborators:
  - interfaces.handlers: sets context at request start
  - logger.py: reads context for log enrichment

Constraints:
  - Only primitive types (str) for safety
  - Default empty string (never None) for JSON serialization
"""

from contextlib import contextmanager
from contextvars import ContextVar
from typing import Iterator
from uuid import uuid4

# R: Request identifier (UUID) - set by the request handler
request_id_var: ContextVar[str] = ContextVar("request_id", default="")

# R: Collection the operation runs against
collection_var: ContextVar[str] = ContextVar("collection", default="")

# R: Operation name (query, ingest, delete)
operation_var: ContextVar[str] = ContextVar("operation", default="")


def get_context_dict() -> dict:
    """
    R: Get current context as dict for log enrichment.

    Returns:
        Dict with non-empty context values only
    """
    ctx = {}

    if val := request_id_var.get():
        ctx["request_id"] = val
    if val := collection_var.get():
        ctx["collection"] = val
    if val := operation_var.get():
        ctx["operation"] = val

    return ctx


@contextmanager
def operation_context(
    operation: str, *, collection: str = "", request_id: str | None = None
) -> Iterator[str]:
    """
    R: Bind context vars for the duration of one operation.

    Yields the request_id so callers can echo it back.
    """
    rid = request_id or str(uuid4())
    tokens = (
        request_id_var.set(rid),
        collection_var.set(collection),
        operation_var.set(operation),
    )
    try:
        yield rid
    finally:
        request_id_var.reset(tokens[0])
        collection_var.reset(tokens[1])
        operation_var.reset(tokens[2])

"""Catalog error taxonomy and message formatting.

- ValidationError: malformed search or mutation input
- ConflictError: store name already taken
- NotFoundError: mutation target does not exist
- ExecutionError: storage failure of any kind
"""

import logging

import pydantic

logger = logging.getLogger("uvicorn.error")

GENERIC_ERROR_MESSAGE = "Something went wrong, please try again later."


class CatalogError(RuntimeError):
    pass


class ValidationError(CatalogError):
    pass


class ConflictError(CatalogError):
    pass


class NotFoundError(CatalogError):
    pass


class ExecutionError(CatalogError):
    pass


def format_validation_error(exc: pydantic.ValidationError) -> str:
    """Join pydantic error entries, one per line: "name: String should have ..."."""
    parts = []
    for err in exc.errors():
        loc = ".".join(str(p) for p in err.get("loc", ()))
        parts.append(f"{loc}: {err['msg']}" if loc else err["msg"])
    return "\n".join(parts)


def get_error_message(exc: BaseException) -> str:
    """Turn any error into the message surfaced to mutation callers."""
    if isinstance(exc, pydantic.ValidationError):
        return format_validation_error(exc)
    if isinstance(exc, CatalogError):
        return str(exc)
    logger.error(f"Unexpected catalog error: {exc!r}")
    return GENERIC_ERROR_MESSAGE

"""
core/errors.py — Error Taxonomy
================================
Every failure a route can report maps to one of these.
They subclass HTTPException so FastAPI renders them without extra glue;
main.py adds handlers for request validation and unexpected errors.

    ValidationError → 400  {"detail": {"errors": [{"field", "msg"}]}}
    Unauthorized    → 401
    Forbidden       → 403
    NotFound        → 404
"""

from typing import List, Optional

from fastapi import HTTPException, status


class ValidationError(HTTPException):
    def __init__(self, errors: List[dict]):
        super().__init__(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={"errors": errors},
        )
        self.errors = errors

    @classmethod
    def single(cls, field: Optional[str], msg: str) -> "ValidationError":
        return cls([{"field": field, "msg": msg}])


class Unauthorized(HTTPException):
    def __init__(self, detail: str = "Not authenticated"):
        super().__init__(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=detail,
            headers={"WWW-Authenticate": "Bearer"},
        )


class Forbidden(HTTPException):
    def __init__(self, detail: str = "Not authorized"):
        super().__init__(status_code=status.HTTP_403_FORBIDDEN, detail=detail)


class NotFound(HTTPException):
    def __init__(self, detail: str = "Not found"):
        super().__init__(status_code=status.HTTP_404_NOT_FOUND, detail=detail)


def errors_from_pydantic(raw_errors) -> List[dict]:
    """Flatten pydantic error dicts into our {field, msg} list."""
    errors = []
    for err in raw_errors:
        loc = list(err.get("loc", ()))
        if loc and loc[0] in ("body", "query", "path", "header", "form"):
            loc = loc[1:]
        errors.append({
            "field": ".".join(str(part) for part in loc) or None,
            "msg": err.get("msg", "Invalid value"),
        })
    return errors

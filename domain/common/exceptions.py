"""Business exception base shared by the domain and infrastructure layers.

Every error that should surface as a business code in the unified response
envelope derives from `BusinessException`; `core.exceptions` maps the code
to an HTTP status.
"""
from __future__ import annotations

from typing import Optional

from shared.codes import BusinessCode


class BusinessException(Exception):

    def __init__(
        self,
        code: int = BusinessCode.PARAM_ERROR,
        message: str = "",
        error_type: Optional[str] = None,
        details: Optional[dict] = None,
        field: Optional[str] = None,
    ) -> None:
        self.code = code
        self.message = message
        self.error_type = error_type or type(self).__name__
        self.details = dict(details or {})
        self.field = field
        super().__init__(message)

    def __repr__(self) -> str:
        return f"{type(self).__name__}(code={int(self.code)}, message={self.message!r})"

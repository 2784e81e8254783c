from __future__ import annotations


class APIError(Exception):
    """HTTP-layer failure; `code` becomes the `error` field of the JSON body."""

    status_code: int = 500
    code: str = "api_error"

    def __init__(self, message: str, *, status_code: int | None = None, code: str | None = None):
        super().__init__(message)
        if status_code is not None:
            self.status_code = status_code
        if code is not None:
            self.code = code


class MissingTenantError(APIError):
    status_code = 400
    code = "missing_tenant_id"

    def __init__(self):
        super().__init__("tenant_id is required")

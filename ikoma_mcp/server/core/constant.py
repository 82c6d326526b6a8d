PROJECT_NAME = "IKOMA MCP"

API_KEY_HEADER = "X-API-Key"
ROLE_HEADER = "X-Role"

# Transport-level error codes (raised before a request reaches the dispatcher).
UNAUTHORIZED = "UNAUTHORIZED"
RATE_LIMITED = "RATE_LIMITED"
INTERNAL_ERROR = "INTERNAL_ERROR"

# HTTP status per dispatcher error code; codes not listed answer 200 with ``ok: false``
# (release stages report their failure inside the envelope).
STATUS_BY_ERROR_CODE = {
    "UNKNOWN_CAPABILITY": 404,
    "APP_NOT_FOUND": 404,
    "PERMISSION_DENIED": 403,
    "VALIDATION_ERROR": 400,
    "PATH_VIOLATION": 400,
    "INVALID_ROLE": 400,
    "ORCHESTRATION_FAILED": 500,
    "DATABASE_FAILED": 500,
    "EXECUTION_FAILED": 500,
}

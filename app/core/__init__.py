"""
Core Application - Infrastructure & Base Classes

Models (import from core.models):
    - BaseModel: Abstract model with timestamps (created_at, updated_at)

Model Mixins (import from core.model_mixins):
    - UUIDPrimaryKeyMixin: UUID as primary key
    - VersionedMixin: Optimistic-locking version counter

Services (import from core.services):
    - BaseService: Base class for service layer
    - ServiceResult: Result wrapper for webhook handlers and tasks

Exceptions (import from core.exceptions):
    - BaseApplicationError: Base exception with error codes and HTTP status
    - ValidationError, NotFoundError, PermissionDeniedError, ConflictError,
      RateLimitError, ExternalServiceError, StorageError

API (import from core.exception_handler):
    - application_exception_handler: DRF handler rendering the errors above
"""

"""Exception hierarchy shared by the pipeline and the HTTP layer."""
from typing import Optional


class LegalQAError(Exception):
    """Base class for all service errors."""

    status_code = 500
    public_message = "İstek işlenirken bir sunucu hatası oluştu"

    def __init__(self, message: str = "", details: Optional[str] = None):
        super().__init__(message or self.public_message)
        self.message = message or self.public_message
        self.details = details


class NotReadyError(LegalQAError):
    """The vector index has not been published yet (or its build failed)."""

    status_code = 503
    public_message = "Belge dizini henüz hazır değil, lütfen biraz sonra tekrar deneyin"


class RequestValidationError(LegalQAError):
    """The request body is malformed or missing required fields."""

    status_code = 400
    public_message = "Geçersiz istek"


class UpstreamError(LegalQAError):
    """An embedding or generation call to the model provider failed."""


class IndexBuildError(LegalQAError):
    """Index construction failed; no partial index is published."""


class PersistenceError(LegalQAError):
    """Writing the conversation log failed."""

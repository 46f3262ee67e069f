from __future__ import annotations

from collections.abc import Sequence


class PlanIngestError(RuntimeError):
    """
    Base error carrying a human-readable message plus remediation suggestions.

    Every exception that leaves the processor is one of these, so callers can always show
    `message` and `suggestions` instead of a raw traceback.
    """

    def __init__(
        self,
        message: str,
        suggestions: Sequence[str] | None = None,
        *,
        context: str | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.suggestions = list(suggestions or [])
        self.context = context

    def to_dict(self) -> dict[str, object]:
        return {
            "error": type(self).__name__,
            "message": self.message,
            "suggestions": list(self.suggestions),
            "context": self.context,
        }


class ValidationError(PlanIngestError):
    pass


class StorageError(PlanIngestError):
    pass


class DocumentNotFoundError(StorageError):
    pass


class ExtractionError(PlanIngestError):
    pass


class ExternalServiceError(PlanIngestError):
    pass


def wrap_platform_error(exc: BaseException, context: str, *, platform: str) -> PlanIngestError:
    """
    Re-raise helper: prefix the message with the platform and context, keep suggestions.

    Already-wrapped errors are returned unchanged so nested call sites don't stack prefixes.
    """
    if isinstance(exc, PlanIngestError) and exc.context:
        return exc

    prefix = "Web Platform" if platform == "web" else "Mobile Platform"
    base = exc.message if isinstance(exc, PlanIngestError) else (str(exc) or "An error occurred")
    message = f"{prefix} {context}: {base}"
    suggestions = exc.suggestions if isinstance(exc, PlanIngestError) else []
    if not suggestions:
        suggestions = [
            "Try the operation again",
            "Re-upload the document if the problem persists",
        ]

    cls = type(exc) if isinstance(exc, PlanIngestError) else PlanIngestError
    return cls(message, suggestions, context=context)

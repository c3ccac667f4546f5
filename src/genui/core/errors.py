"""Error taxonomy for the turn pipeline.

Every recoverable failure class has its own exception so that callers can
decide locally how to degrade. Only unexpected errors escape a run and become
a ``run-error`` event, carrying ``code``.
"""


class GenUIError(Exception):
    """Base class for pipeline errors."""

    code = "internal_error"

    def __init__(self, message: str, original: Exception | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.original = original


class ValidationError(GenUIError):
    """Request validation failed."""

    code = "validation_error"


class ClassificationFailure(GenUIError):
    """Intent classifier call failed or returned garbage."""

    code = "classification_failure"


class GenerationTimeout(GenUIError):
    """Text-completion call exceeded its time bound."""

    code = "generation_timeout"


class GenerationServiceFailure(GenUIError):
    """Text-completion call raised."""

    code = "generation_service_failure"


class InvalidGeneratedDocument(GenUIError):
    """Completion output is not a component tree."""

    code = "invalid_generated_document"

    def __init__(self, message: str, raw: str = "", original: Exception | None = None) -> None:
        super().__init__(message, original)
        self.raw = raw


class PatchApplicationFailure(GenUIError):
    """A patch operation could not be applied to a document."""

    code = "patch_application_failure"

    def __init__(self, message: str, operation: dict | None = None) -> None:
        super().__init__(message)
        self.operation = operation


class UnknownComponentKind(GenUIError):
    """Node kind outside the component vocabulary."""

    code = "unknown_component_kind"


class UnresolvedBinding(GenUIError):
    """Binding path missing from the data context."""

    code = "unresolved_binding"


def error_code(exc: BaseException) -> str:
    """Taxonomy code for any exception."""
    return exc.code if isinstance(exc, GenUIError) else GenUIError.code


__all__ = [
    "GenUIError",
    "ValidationError",
    "ClassificationFailure",
    "GenerationTimeout",
    "GenerationServiceFailure",
    "InvalidGeneratedDocument",
    "PatchApplicationFailure",
    "UnknownComponentKind",
    "UnresolvedBinding",
    "error_code",
]

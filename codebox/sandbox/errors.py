"""
Sandbox error taxonomy.

Validation errors are raised before any resource is allocated.
Infrastructure errors mean the sandbox itself failed, not the submitted program.
A program's own non-zero exit or a timeout is never an exception.
"""


class SandboxError(Exception):
    """Base class for every error raised by the sandbox subsystem."""
    pass


# =============================================================================
# VALIDATION (client errors)
# =============================================================================

class ValidationError(SandboxError):
    """Raised when a submission is rejected before execution."""
    pass


class UnsupportedLanguage(ValidationError):
    """Raised when the language is missing or not in the supported set."""

    def __init__(self, language: object = None):
        self.language = language
        if language:
            message = f"Unsupported language: {language}"
        else:
            message = "Unsupported or missing language"
        super().__init__(message)


class MissingCode(ValidationError):
    """Raised when the submission carries no source code."""

    def __init__(self):
        super().__init__("Missing code")


class PayloadTooLarge(ValidationError):
    """Raised when the submitted source exceeds the size bound."""

    def __init__(self, size: int, limit: int):
        self.size = size
        self.limit = limit
        super().__init__(f"Code too large: {size} characters (limit {limit})")


# =============================================================================
# INFRASTRUCTURE (server errors)
# =============================================================================

class InfrastructureError(SandboxError):
    """Raised when the sandbox cannot be set up or started."""
    pass


class WorkspaceError(InfrastructureError):
    """Raised when the workspace cannot be created or written."""
    pass


class LaunchError(InfrastructureError):
    """Raised when the isolation runtime is unavailable or refuses to start."""
    pass

"""
Case Study Agent - Custom Exception Hierarchy.

Each class names the stage that failed so callers can tell rendering
failures apart from configuration and upstream service failures.
"""


class CaseStudyError(Exception):
    """Base exception for all case study agent errors."""

    def __init__(self, message: str = "", stage: str = ""):
        self.stage = stage
        super().__init__(message)


class DocumentRenderError(CaseStudyError, IOError):
    """Raised when a PDF cannot be laid out or written to disk."""

    def __init__(self, message: str = "Document rendering failed"):
        super().__init__(message, stage="rendering")


class MissingConfigurationError(CaseStudyError, ValueError):
    """Raised at startup when a required environment variable is absent."""

    def __init__(self, variable: str):
        self.variable = variable
        super().__init__(
            f"{variable} environment variable is required", stage="configuration"
        )


class UpstreamServiceError(CaseStudyError):
    """Raised when search, email, embedding or vector search fails."""

    def __init__(self, message: str = "Upstream service failed", service: str = ""):
        self.service = service
        super().__init__(message, stage="upstream")

class ReportGenerationError(Exception):
    """Base class for failures while producing an AI report."""


class GenerationFailed(ReportGenerationError):
    """Report generation could not complete; the cause is chained."""


class UpstreamUnavailable(GenerationFailed):
    """The text-generation endpoint was unreachable or answered with a non-success status."""

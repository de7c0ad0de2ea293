"""Error taxonomy for the content preparation core."""


class CPWError(Exception):
    """Base class for every failure the core reports to its caller."""


class InvalidSource(CPWError):
    """A URL failed validation before any fetch was attempted."""

    def __init__(self, source: str, reason: str = "Invalid URL"):
        self.source = source
        super().__init__(f"{reason}: {source}")


class FetchFailed(CPWError):
    """The webpage could not be retrieved."""

    def __init__(self, source: str, reason: str, status_code: int | None = None):
        self.source = source
        self.status_code = status_code
        super().__init__(f"Failed to fetch {source}: {reason}")


class NoExtractableContent(CPWError):
    """Cleaning left nothing worth rendering."""

    def __init__(self, source: str):
        self.source = source
        super().__init__(f"No extractable content found in: {source}")


class DocumentProcessingError(CPWError):
    """Base class for converter registry failures."""


class NoProcessorAvailable(DocumentProcessingError):
    def __init__(self, extension: str, filename: str | None = None):
        self.extension = extension
        self.filename = filename
        super().__init__(f"No processor available for file type: {extension or '(none)'}")


class ProcessingFailed(DocumentProcessingError):
    def __init__(self, processor_id: str, filename: str, reason: str):
        self.processor_id = processor_id
        self.filename = filename
        super().__init__(f"{processor_id} failed to process {filename}: {reason}")


class NoSourceContent(CPWError):
    def __init__(self):
        super().__init__("No documents or webpages provided for plan generation.")


class NoProviderConfigured(CPWError):
    def __init__(self):
        super().__init__(
            "No AI provider configured. Set ANTHROPIC_API_KEY or claude_api_key in config."
        )


class ProviderError(CPWError):
    """The chat provider itself failed (transport, auth, rate limit...)."""

    def __init__(self, provider_id: str, model: str | None, reason: str):
        self.provider_id = provider_id
        self.model = model
        super().__init__(f"AI provider error ({provider_id}/{model}): {reason}")


class ResponseParseError(CPWError):
    """The chat response was not the JSON object we asked for."""


class PlanGenerationFailed(CPWError):
    def __init__(self, attempts: int, provider_id: str, model: str | None, reason: str = ""):
        self.attempts = attempts
        self.provider_id = provider_id
        self.model = model
        self.reason = reason
        msg = f"Failed to parse AI response after {attempts} attempts"
        if reason:
            msg += f": {reason}"
        super().__init__(msg)


class RefinementLimitExceeded(CPWError):
    def __init__(self, max_iterations: int):
        self.max_iterations = max_iterations
        super().__init__(f"Plan has reached maximum refinement iterations ({max_iterations}).")


class InvalidPlanState(CPWError):
    def __init__(self, status: str, action: str):
        self.status = status
        self.action = action
        super().__init__(f"Cannot {action} a plan with status '{status}'.")

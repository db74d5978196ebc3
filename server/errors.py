"""Error taxonomy for the subtitle pipeline.

Each error knows the HTTP status it maps to at the request boundary.
No-speech and filtered transcripts are results, not errors.
"""


class PipelineError(Exception):
    """Base error for a failed submission."""

    status_code = 500
    code = "pipeline_internal_error"

    def __init__(self, message: str, stage: str = ""):
        super().__init__(message)
        self.message = message
        self.stage = stage

    def to_payload(self) -> dict:
        payload = {"error": self.message, "code": self.code}
        if self.stage:
            payload["stage"] = self.stage
        return payload


class BadRequest(PipelineError):
    """Client sent no usable audio."""

    status_code = 400
    code = "bad_request"


class Misconfigured(PipelineError):
    """Server is missing the provider credential."""

    status_code = 500
    code = "misconfigured"


class ProviderError(PipelineError):
    """An external provider answered with a non-success response."""

    status_code = 502

    def __init__(self, provider: str, status: int | None, body: str = ""):
        detail = f"HTTP {status}" if status is not None else "request failed"
        super().__init__(f"{provider} provider error ({detail})", stage=provider)
        self.provider = provider
        self.status = status
        self.body = body
        self.code = f"provider_{provider}_failed"

    def to_payload(self) -> dict:
        payload = super().to_payload()
        payload["upstream_status"] = self.status
        payload["upstream_body"] = self.body
        return payload

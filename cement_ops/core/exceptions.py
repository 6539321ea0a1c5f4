"""Custom exceptions for the advisory service.

All exceptions are namespaced to avoid shadowing Python builtins
(no bare TimeoutError / ConnectionError subclasses).

Parse failures of model output are NOT exceptions: they are returned as
ParseError values by the response parser and flow through the pipeline.
"""


class AdvisorError(Exception):
    """Base exception for all advisory service errors.

    All service exceptions inherit from this class to enable
    catching any of them with a single except clause.
    """

    def __init__(self, message: str, stage: str | None = None) -> None:
        """Initialize advisor error.

        Args:
            message: Error description
            stage: Pipeline stage that raised the error, if any
        """
        self.message = message
        self.stage = stage
        super().__init__(message)


class ModelTransportError(AdvisorError):
    """Raised when the generative model call fails or times out.

    Covers HTTP errors, network errors, timeouts and response envelopes
    that carry no candidate text.
    """

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        cause: Exception | None = None,
        stage: str | None = None,
    ) -> None:
        """Initialize transport error.

        Args:
            message: Error description
            status_code: HTTP status code if applicable
            cause: Original exception that caused this error
            stage: Pipeline stage that issued the call
        """
        self.status_code = status_code
        self.cause = cause
        super().__init__(message, stage)
        if cause is not None:
            self.__cause__ = cause


class VisionClientError(AdvisorError):
    """Raised when the image annotation API call fails."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        self.status_code = status_code
        super().__init__(message)


class TelemetryStoreError(AdvisorError):
    """Raised when the telemetry store cannot be read or written."""


class PipelineBusyError(AdvisorError):
    """Raised when a pipeline run is requested while another is in flight."""

    def __init__(self, active_run_id: str) -> None:
        self.active_run_id = active_run_id
        super().__init__(f"Pipeline run '{active_run_id}' is already in progress")


class PipelineRunError(AdvisorError):
    """Raised when a pipeline run terminates on a transport failure.

    Attributes:
        run_id: Identifier of the failed run
        cause: The transport error that terminated the run
    """

    def __init__(
        self,
        message: str,
        stage: str,
        run_id: str | None = None,
        cause: Exception | None = None,
    ) -> None:
        self.run_id = run_id
        self.cause = cause
        super().__init__(message, stage)
        if cause is not None:
            self.__cause__ = cause


class ModelOutputError(AdvisorError):
    """Raised when a single-shot advisory reply cannot be used.

    The multi-agent pipeline keeps parse failures as data; direct advisory
    calls (recommendations, flame analysis, goal proposals) have no
    downstream stage to forward them to.
    """

    def __init__(self, message: str, raw: str | None = None) -> None:
        self.raw = raw
        super().__init__(message)


class ProposalNotFoundError(AdvisorError):
    """Raised when a proposal id is not in the pending registry."""

    def __init__(self, proposal_id: str) -> None:
        self.proposal_id = proposal_id
        super().__init__(f"Proposal '{proposal_id}' not found")


class ProposalRejectedError(AdvisorError):
    """Raised when an operator tries to apply a proposal the safety gate rejected."""

    def __init__(self, proposal_id: str) -> None:
        self.proposal_id = proposal_id
        super().__init__(f"Proposal '{proposal_id}' was rejected by the safety gate")

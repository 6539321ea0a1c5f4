"""Core module - Configuration, logging, exceptions and shared constants.

Exports:
    - Settings, get_settings: Pydantic Settings configuration
    - configure_logging, get_logger: Structured logging (structlog)
    - StageName, SUB_AGENT_CATALOGUE: Pipeline stage constants
    - Exception classes: AdvisorError, ModelTransportError, etc.
"""

from cement_ops.core.config import Settings, get_settings
from cement_ops.core.constants import (
    AGENT_DISPLAY_NAMES,
    SUB_AGENT_CATALOGUE,
    StageName,
)
from cement_ops.core.exceptions import (
    AdvisorError,
    ModelOutputError,
    ModelTransportError,
    PipelineBusyError,
    PipelineRunError,
    ProposalNotFoundError,
    ProposalRejectedError,
    TelemetryStoreError,
    VisionClientError,
)
from cement_ops.core.logging import configure_logging, get_logger


__all__ = [
    "AGENT_DISPLAY_NAMES",
    "SUB_AGENT_CATALOGUE",
    # Exceptions
    "AdvisorError",
    "ModelOutputError",
    "ModelTransportError",
    "PipelineBusyError",
    "PipelineRunError",
    "ProposalNotFoundError",
    "ProposalRejectedError",
    # Configuration
    "Settings",
    # Constants
    "StageName",
    "TelemetryStoreError",
    "VisionClientError",
    # Logging
    "configure_logging",
    "get_logger",
    "get_settings",
]

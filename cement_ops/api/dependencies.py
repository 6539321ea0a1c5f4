"""Service wiring and FastAPI dependency providers.

ServiceContainer holds every long-lived component of the service. The
application lifespan builds one with ``build_services`` (or uses the one
passed to ``create_app``) and stores it on ``app.state.services``; routes
receive it through ``Depends(get_services)``.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from fastapi import Request

from cement_ops.advisory.advisor import PlantAdvisor, RecommendationCache
from cement_ops.advisory.assembler import ProposalAssembler
from cement_ops.advisory.registry import ProposalRegistry
from cement_ops.advisory.runner import PipelineConfig, ProposalPipeline
from cement_ops.clients.gemini import create_gemini_client
from cement_ops.clients.vision import create_vision_client
from cement_ops.core.logging import get_logger
from cement_ops.telemetry.bootstrap import load_initial_history
from cement_ops.telemetry.history import TelemetryHistory
from cement_ops.telemetry.store import InMemoryTelemetryStore


if TYPE_CHECKING:
    from collections.abc import Callable

    from cement_ops.clients.protocols import ModelGatewayProtocol, VisionClientProtocol
    from cement_ops.core.config import Settings
    from cement_ops.telemetry.store import TelemetryStoreProtocol


logger = get_logger(__name__)


@dataclass
class ServiceContainer:
    """Long-lived service components shared by all requests."""

    settings: Settings
    gateway: ModelGatewayProtocol
    vision: VisionClientProtocol | None
    store: TelemetryStoreProtocol
    history: TelemetryHistory
    registry: ProposalRegistry
    pipeline: ProposalPipeline
    advisor: PlantAdvisor
    recommendations: RecommendationCache
    _unsubscribers: list[Callable[[], None]] = field(default_factory=list)

    def subscribe_history(self) -> None:
        """Keep the live history in step with the store's latest snapshot."""
        self._unsubscribers.append(self.store.on_latest_update(self.history.record_latest))

    async def close(self) -> None:
        """Drop store subscriptions and release HTTP clients."""
        for unsubscribe in self._unsubscribers:
            unsubscribe()
        self._unsubscribers.clear()
        for client in (self.gateway, self.vision):
            close = getattr(client, "close", None)
            if close is not None:
                await close()


def wire_services(
    settings: Settings,
    gateway: Any,
    vision: VisionClientProtocol | None,
    store: TelemetryStoreProtocol,
    history: TelemetryHistory | None = None,
) -> ServiceContainer:
    """Assemble the pipeline, registry and advisor around the given clients.

    ``gateway`` must implement ModelGatewayProtocol; when it also implements
    ChatModelProtocol it serves the operations chat.
    """
    history = history or TelemetryHistory(window=settings.telemetry_history_window)
    registry = ProposalRegistry()
    config = PipelineConfig.from_settings(settings)
    assembler = ProposalAssembler(
        on_proposal_generated=registry.add,
        on_analysis_complete=registry.record_gate_approval,
        fail_closed=config.safety_fail_closed,
    )
    pipeline = ProposalPipeline(gateway, config=config, assembler=assembler)
    chat_model = gateway if hasattr(gateway, "chat") else None
    advisor = PlantAdvisor(gateway, vision=vision, chat_model=chat_model)
    recommendations = RecommendationCache(
        advisor,
        history,
        interval_seconds=settings.recommendation_interval_seconds,
    )
    return ServiceContainer(
        settings=settings,
        gateway=gateway,
        vision=vision,
        store=store,
        history=history,
        registry=registry,
        pipeline=pipeline,
        advisor=advisor,
        recommendations=recommendations,
    )


async def build_services(settings: Settings) -> ServiceContainer:
    """Create the production clients, load the startup history and wire everything."""
    store = InMemoryTelemetryStore()
    services = wire_services(
        settings,
        gateway=create_gemini_client(settings),
        vision=create_vision_client(settings),
        store=store,
    )
    services.history.replace(await load_initial_history(store, settings))
    logger.info("Telemetry history initialized", records=len(services.history))
    services.subscribe_history()
    return services


# =============================================================================
# Dependency Providers
# =============================================================================

def get_services(request: Request) -> ServiceContainer:
    """FastAPI dependency returning the application's ServiceContainer."""
    return request.app.state.services

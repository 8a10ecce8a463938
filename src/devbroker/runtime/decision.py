from __future__ import annotations

import logging
from enum import Enum
from typing import TYPE_CHECKING

from pydantic import BaseModel, ConfigDict

from devbroker.config.properties import PropertySource
from devbroker.core.fingerprint import DevServiceFingerprint
from devbroker.core.models import AMQP_HOST_PROP, AMQP_PORT_PROP, DevServicesSettings
from devbroker.discovery.channels import has_channel_needing_discovery
from devbroker.runtime.container import ContainerRuntime

if TYPE_CHECKING:
    from devbroker.runtime.registry import RegistryState

logger = logging.getLogger(__name__)


class Decision(str, Enum):
    """What one build/reload cycle does with the dev broker."""

    SKIP = "skip"
    REUSE = "reuse"
    RESTART = "restart"
    START = "start"


class DecisionOutcome(BaseModel):
    """A decision together with the policy check that produced it."""

    model_config = ConfigDict(frozen=True)

    decision: Decision
    reason: str


class DecisionEngine:
    """Decides START/REUSE/RESTART/SKIP for one cycle.

    Policy declines short-circuit in a fixed order: disabled, global location
    configured, every AMQP channel configured, container runtime unavailable. Only
    then is the registry state consulted.
    """

    def __init__(self, runtime: ContainerRuntime) -> None:
        self.runtime = runtime

    def decide(
        self,
        settings: DevServicesSettings,
        properties: PropertySource,
        state: RegistryState,
        full_reset: bool = False,
    ) -> Decision:
        return self.evaluate(settings, properties, state, full_reset=full_reset).decision

    def evaluate(
        self,
        settings: DevServicesSettings,
        properties: PropertySource,
        state: RegistryState,
        full_reset: bool = False,
    ) -> DecisionOutcome:
        if not settings.devservices_enabled:
            logger.debug("Not starting dev services for AMQP, as it has been disabled in the config.")
            return DecisionOutcome(decision=Decision.SKIP, reason="dev services are disabled in the config")

        if properties.is_property_present(AMQP_HOST_PROP) or properties.is_property_present(AMQP_PORT_PROP):
            logger.debug("Not starting dev services for AMQP, the amqp-host and/or amqp-port are configured.")
            return DecisionOutcome(decision=Decision.SKIP, reason="amqp-host and/or amqp-port are configured")

        if not has_channel_needing_discovery(properties.get_property_names(), properties):
            logger.debug("Not starting dev services for AMQP, all the channels are configured.")
            return DecisionOutcome(decision=Decision.SKIP, reason="all the AMQP channels are configured")

        if not self.runtime.availability():
            logger.warning("Docker isn't working, please configure the AMQP broker location.")
            return DecisionOutcome(decision=Decision.SKIP, reason="the container runtime is not available")

        if state.fingerprint is None:
            return DecisionOutcome(decision=Decision.START, reason="no dev broker is running")

        fingerprint = DevServiceFingerprint.from_settings(settings)
        if full_reset:
            logger.debug("Restarting the AMQP dev service for a full environment reset.")
            return DecisionOutcome(decision=Decision.RESTART, reason="a full environment reset was requested")
        if fingerprint != state.fingerprint:
            logger.debug("Restarting the AMQP dev service, its configuration changed.")
            return DecisionOutcome(decision=Decision.RESTART, reason="the dev service configuration changed")

        return DecisionOutcome(decision=Decision.REUSE, reason="the running dev broker matches the configuration")

from __future__ import annotations

from devbroker.core.errors import ConfigurationError, ProvisionError, TeardownError, UnsupportedImageError
from devbroker.core.models import BrokerConnection, DevServicesSettings, LaunchMode
from devbroker.config.properties import PropertySource
from devbroker.runtime import Decision, DevServicesController, InMemoryConfigPublisher, LifecycleRegistry

__all__ = [
	"BrokerConnection",
	"ConfigurationError",
	"Decision",
	"DevServicesController",
	"DevServicesSettings",
	"InMemoryConfigPublisher",
	"LaunchMode",
	"LifecycleRegistry",
	"PropertySource",
	"ProvisionError",
	"TeardownError",
	"UnsupportedImageError",
]

from enum import Enum
from typing import Any, Dict, Optional
from pydantic import BaseModel, ConfigDict, Field, ValidationError
from pydantic_settings import BaseSettings, SettingsConfigDict
from devbroker.core.errors import ConfigurationError


AMQP_HOST_PROP = "amqp-host"
AMQP_PORT_PROP = "amqp-port"
AMQP_USER_PROP = "amqp-user"
AMQP_PASSWORD_PROP = "amqp-password"

DEVSERVICES_PREFIX = "amqp.devservices."

DEFAULT_IMAGE_NAME = "quay.io/artemiscloud/activemq-artemis-broker:1.0.25"
DEFAULT_EXTRA_ARGS = "--no-autotune --mapped --no-fsync --relax-jolokia"


class LaunchMode(str, Enum):
    """How the application hosting the dev service was launched."""

    NORMAL = "normal"
    DEVELOPMENT = "dev"
    TEST = "test"


class DevServicesSettings(BaseSettings):
    """
    Dev service settings (the 'amqp.devservices' section in devbroker.yaml).

    Environment variables prefixed with AMQP_DEVSERVICES_ override file values.
    """
    model_config = SettingsConfigDict(env_prefix='AMQP_DEVSERVICES_', extra='ignore')

    # Unset means enabled
    enabled: Optional[bool] = None
    image_name: str = DEFAULT_IMAGE_NAME
    port: Optional[int] = Field(default=None, ge=0, le=65535)
    extra_args: str = DEFAULT_EXTRA_ARGS
    readiness_timeout: float = Field(default=60.0, gt=0)

    @property
    def devservices_enabled(self) -> bool:
        return self.enabled is not False

    @classmethod
    def from_properties(cls, properties: Any) -> "DevServicesSettings":
        """
        Build settings from the 'amqp.devservices.*' entries of a property source.

        Raises ConfigurationError when a value does not validate.
        """
        values: Dict[str, Any] = {}
        for name in properties.get_property_names():
            if not name.startswith(DEVSERVICES_PREFIX):
                continue
            key = name[len(DEVSERVICES_PREFIX):]
            if "." in key or not properties.is_property_present(name):
                continue
            values[key.replace("-", "_")] = properties.get_value(name)
        try:
            return cls(**values)
        except ValidationError as e:
            problems = "; ".join(
                f"{DEVSERVICES_PREFIX}{'.'.join(str(part).replace('_', '-') for part in error['loc'])}: {error['msg']}"
                for error in e.errors()
            )
            raise ConfigurationError(f"Invalid dev service settings: {problems}") from e


class BrokerConnection(BaseModel):
    """Connection parameters of a running dev broker."""

    model_config = ConfigDict(frozen=True)

    host: str
    port: int = Field(ge=1, le=65535)
    user: str
    password: str

    def as_properties(self) -> Dict[str, str]:
        return {
            AMQP_HOST_PROP: self.host,
            AMQP_PORT_PROP: str(self.port),
            AMQP_USER_PROP: self.user,
            AMQP_PASSWORD_PROP: self.password,
        }

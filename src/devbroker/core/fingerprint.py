from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional

from devbroker.core.models import DevServicesSettings


@dataclass(frozen=True)
class DevServiceFingerprint:
    """Comparison key over the settings that decide whether a running broker can be reused.

    ``extra_args`` is carried for reference but is not part of equality or hashing:
    changing only the extra launch arguments keeps the running broker.
    """

    enabled: bool
    image_name: str
    fixed_port: Optional[int] = None
    extra_args: str = field(default="", compare=False)

    @classmethod
    def from_settings(cls, settings: DevServicesSettings) -> DevServiceFingerprint:
        return cls(
            enabled=settings.devservices_enabled,
            image_name=settings.image_name,
            fixed_port=settings.port,
            extra_args=settings.extra_args,
        )

from __future__ import annotations

import re
from typing import Iterable, Protocol

AMQP_CONNECTOR = "smallrye-amqp"

CHANNEL_CONNECTOR_PATTERN = re.compile(
    r"^(?P<prefix>mp\.messaging\.(?:incoming|outgoing))\.(?P<channel>.+)\.connector$"
)


class PropertyLookup(Protocol):
    def get_value(self, name: str) -> str:
        ...

    def is_property_present(self, name: str) -> bool:
        ...


def is_amqp_connector(value: str) -> bool:
    return value.strip().lower() == AMQP_CONNECTOR


def has_channel_needing_discovery(property_names: Iterable[str], lookup: PropertyLookup) -> bool:
    """Return True when some AMQP channel has no broker location of its own.

    A channel is declared by ``mp.messaging.<incoming|outgoing>.<channel>.connector``.
    Channels on other connectors are ignored. An AMQP channel with neither ``.host``
    nor ``.port`` needs discovery. When no channel uses the AMQP connector at all the
    answer is also True and the global ``amqp-host``/``amqp-port`` check decides.
    """
    found_amqp_channel = False

    for name in sorted(property_names):
        match = CHANNEL_CONNECTOR_PATTERN.match(name)
        if match is None or not lookup.is_property_present(name):
            continue

        if not is_amqp_connector(lookup.get_value(name)):
            continue

        found_amqp_channel = True
        base = f"{match.group('prefix')}.{match.group('channel')}"
        has_host = lookup.is_property_present(f"{base}.host")
        has_port = lookup.is_property_present(f"{base}.port")
        if not has_host and not has_port:
            return True

    return not found_amqp_channel

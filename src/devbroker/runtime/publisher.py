from __future__ import annotations

import json
from pathlib import Path
from typing import Dict, Optional, Protocol

from pydantic import ValidationError

from devbroker.core.models import BrokerConnection


class ConfigPublisher(Protocol):
    """The two sinks that receive dev service connection parameters."""

    def publish_default(self, key: str, value: str) -> None:
        ...

    def publish_diagnostic(self, key: str, value: str) -> None:
        ...


class InMemoryConfigPublisher:
    """Keeps both sinks as plain dictionaries; later values for a key overwrite earlier ones."""

    def __init__(self) -> None:
        self.defaults: Dict[str, str] = {}
        self.diagnostics: Dict[str, str] = {}

    def publish_default(self, key: str, value: str) -> None:
        self.defaults[key] = value

    def publish_diagnostic(self, key: str, value: str) -> None:
        self.diagnostics[key] = value


class ResultPublisher:
    """Pushes a started broker's connection into the runtime defaults and the diagnostic sink."""

    def __init__(self, publisher: ConfigPublisher) -> None:
        self.publisher = publisher

    def publish(self, connection: BrokerConnection) -> None:
        properties = connection.as_properties()
        for key, value in properties.items():
            self.publisher.publish_default(key, value)
        for key, value in properties.items():
            self.publisher.publish_diagnostic(key, value)


def connection_metadata_path(root_dir: Path) -> Path:
    """Return the dev service connection metadata file path for a project root."""
    return root_dir / ".devbroker" / "devservices.json"


def write_connection_metadata(root_dir: Path, connection: BrokerConnection) -> Path:
    """Persist connection metadata so tooling outside the process can find the broker."""
    metadata_file = connection_metadata_path(root_dir)
    metadata_file.parent.mkdir(parents=True, exist_ok=True)
    metadata_file.write_text(connection.model_dump_json(indent=2), encoding="utf-8")
    return metadata_file


def read_connection_metadata(root_dir: Path) -> Optional[BrokerConnection]:
    """Return persisted connection metadata, or None when missing or unreadable."""
    metadata_file = connection_metadata_path(root_dir)
    if not metadata_file.exists():
        return None

    try:
        payload = json.loads(metadata_file.read_text(encoding="utf-8"))
        return BrokerConnection.model_validate(payload)
    except (OSError, json.JSONDecodeError, ValidationError):
        return None


def clear_connection_metadata(root_dir: Path) -> bool:
    """Remove persisted connection metadata; returns whether a file was removed."""
    metadata_file = connection_metadata_path(root_dir)
    if metadata_file.exists():
        metadata_file.unlink()
        return True
    return False

from __future__ import annotations

import os
import re
from pathlib import Path
from typing import Dict, Mapping, Optional, Set

from devbroker.config.loader import flatten_properties, load_config

_NON_ALPHANUMERIC = re.compile(r"[^A-Za-z0-9]")


def environment_name(property_name: str) -> str:
    """Map a property name to its environment variable form (``amqp-host`` -> ``AMQP_HOST``)."""
    return _NON_ALPHANUMERIC.sub("_", property_name).upper()


class PropertySource:
    """
    Resolved configuration properties for one process.

    File values come from a flattened mapping; an environment variable named after a
    property (see ``environment_name``) overrides the file value. Empty values count as
    absent.
    """

    def __init__(
        self,
        values: Optional[Mapping[str, str]] = None,
        environ: Optional[Mapping[str, str]] = None,
    ) -> None:
        self._values: Dict[str, str] = dict(values or {})
        self._environ = os.environ if environ is None else environ

    @classmethod
    def from_file(cls, path: Path, environ: Optional[Mapping[str, str]] = None) -> PropertySource:
        return cls(flatten_properties(load_config(path)), environ=environ)

    def get_property_names(self) -> Set[str]:
        return set(self._values.keys())

    def get_value(self, name: str) -> str:
        """Return the resolved value of ``name``; raises KeyError when it is not present."""
        value = self._lookup(name)
        if value is None:
            raise KeyError(f"Property '{name}' is not configured.")
        return value

    def is_property_present(self, name: str) -> bool:
        return self._lookup(name) is not None

    def _lookup(self, name: str) -> Optional[str]:
        env_value = self._environ.get(environment_name(name))
        if env_value:
            return env_value

        value = self._values.get(name)
        if value is None or value == "":
            return None
        return value

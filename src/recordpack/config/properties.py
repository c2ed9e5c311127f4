# recordpack/config/properties.py
"""Reader for ``Name = Value`` property files."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Dict, Iterator, Union

from recordpack.errors import ConfigError

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]

__all__ = ["PropertiesFile", "parse_properties"]


def parse_properties(text: str) -> Dict[str, str]:
    """
    Parse property text into a dict.

    One ``Name = Value`` pair per line. Blank lines and ``#`` comments are
    skipped; the last occurrence of a name wins.
    """
    props: Dict[str, str] = {}
    for lineno, raw in enumerate(text.splitlines(), start=1):
        line = raw.strip()
        if not line or line.startswith("#"):
            continue
        if "=" not in line:
            raise ConfigError(f"Malformed property on line {lineno}: {raw!r}")
        name, value = line.split("=", 1)
        name = name.strip()
        if not name:
            raise ConfigError(f"Empty property name on line {lineno}")
        props[name] = value.strip()
    return props


class PropertiesFile:
    """Read-only view over a properties file."""

    def __init__(self, path: PathLike):
        self.path = Path(path).expanduser()
        try:
            text = self.path.read_text(encoding="utf-8")
        except OSError as exc:
            raise ConfigError(f"Could not open properties: {exc}") from exc
        self._props = parse_properties(text)
        logger.debug("Read %d properties from %s", len(self._props), self.path)

    def __contains__(self, name: object) -> bool:
        return name in self._props

    def __iter__(self) -> Iterator[str]:
        return iter(self._props)

    def __len__(self) -> int:
        return len(self._props)

    def get_property(self, name: str) -> str:
        try:
            return self._props[name]
        except KeyError:
            raise ConfigError(f"Property not found: {name}") from None

    def get_property_as_integer(self, name: str) -> int:
        value = self.get_property(name)
        try:
            return int(value)
        except ValueError:
            raise ConfigError(
                f"Property {name!r} is not an integer: {value!r}"
            ) from None

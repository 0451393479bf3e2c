"""Known components and how to locate them in the dev server."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Optional

from figma_parity.errors import UnknownComponentError
from figma_parity.models.config import ComponentEntry, ToolConfig

logger = logging.getLogger(__name__)

_CAMEL_BOUNDARY = re.compile(r"(?<=[a-z0-9])(?=[A-Z])|(?<=[A-Z])(?=[A-Z][a-z])")
_NON_WORD = re.compile(r"[^a-zA-Z0-9]+")


def kebab_case(name: str) -> str:
    """``PrimaryButton`` -> ``primary-button``."""
    spaced = _CAMEL_BOUNDARY.sub("-", name)
    return _NON_WORD.sub("-", spaced).strip("-").lower()


def default_selector(component_name: str) -> str:
    return f".{kebab_case(component_name)}"


def default_route(component_name: str) -> str:
    return f"/component/{component_name}"


@dataclass(frozen=True)
class ComponentTarget:
    name: str
    route: str
    selector: str


class ComponentRegistry:
    """Name -> route/selector lookup populated from config at startup.

    In strict mode only registered names resolve; otherwise unknown names
    fall back to the default route and kebab-case class selector.
    """

    def __init__(self, components: dict[str, ComponentEntry] | None = None, strict: bool = False):
        self._components = dict(components or {})
        self.strict = strict

    @classmethod
    def from_config(cls, config: ToolConfig) -> "ComponentRegistry":
        registry = cls(config.components, strict=config.strict_components)
        logger.debug("Component registry: %d entries (strict=%s)", len(registry), registry.strict)
        return registry

    def __len__(self) -> int:
        return len(self._components)

    def __contains__(self, name: str) -> bool:
        return name in self._components

    def names(self) -> list[str]:
        return sorted(self._components)

    def register(self, name: str, route: Optional[str] = None, selector: Optional[str] = None) -> None:
        self._components[name] = ComponentEntry(route=route, selector=selector)

    def resolve(self, name: str, selector: Optional[str] = None) -> ComponentTarget:
        """Resolve ``name``; an explicit ``selector`` overrides the registered one."""
        entry = self._components.get(name)
        if entry is None and self.strict:
            known = ", ".join(self.names()) or "(none)"
            raise UnknownComponentError(
                f"Unknown component '{name}'. Registered components: {known}",
                solutions=["Add the component to the 'components' section of the config file"],
                component=name,
            )
        entry = entry or ComponentEntry()
        return ComponentTarget(
            name=name,
            route=entry.route or default_route(name),
            selector=selector or entry.selector or default_selector(name),
        )

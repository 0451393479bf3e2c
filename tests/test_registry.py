"""Tests for component name resolution."""

import pytest

from figma_parity.capture.registry import ComponentRegistry, default_selector, kebab_case
from figma_parity.errors import UnknownComponentError
from figma_parity.models.config import ToolConfig


@pytest.mark.parametrize(
    "name, expected",
    [
        ("PrimaryButton", "primary-button"),
        ("HTMLButton", "html-button"),
        ("card_header", "card-header"),
        ("Icon2Large", "icon2-large"),
        ("avatar", "avatar"),
    ],
)
def test_kebab_case(name, expected):
    assert kebab_case(name) == expected


def test_default_selector():
    assert default_selector("PrimaryButton") == ".primary-button"


class TestComponentRegistry:
    def test_unregistered_name_uses_defaults(self):
        target = ComponentRegistry().resolve("PrimaryButton")
        assert target.route == "/component/PrimaryButton"
        assert target.selector == ".primary-button"

    def test_registered_entry(self):
        config = ToolConfig(components={"Card": {"route": "/preview/card", "selector": "#card"}})
        registry = ComponentRegistry.from_config(config)
        assert "Card" in registry
        assert len(registry) == 1
        target = registry.resolve("Card")
        assert (target.route, target.selector) == ("/preview/card", "#card")

    def test_explicit_selector_wins(self):
        registry = ComponentRegistry()
        registry.register("Card", selector="#card")
        assert registry.resolve("Card", selector=".override").selector == ".override"

    def test_partial_entry(self):
        registry = ComponentRegistry()
        registry.register("Card", route="/demo/card")
        target = registry.resolve("Card")
        assert target.route == "/demo/card"
        assert target.selector == ".card"

    def test_strict_mode_rejects_unknown(self):
        registry = ComponentRegistry(strict=True)
        registry.register("Card")
        registry.register("Avatar")
        with pytest.raises(UnknownComponentError, match="Registered components: Avatar, Card"):
            registry.resolve("Button")

    def test_strict_mode_allows_registered(self):
        registry = ComponentRegistry(strict=True)
        registry.register("Card")
        assert registry.resolve("Card").selector == ".card"

"""Tests for CapabilityRegistry."""

import pytest
from typing import Any

from b3_agents.core import (
    CallContext,
    Capability,
    CapabilityRegistry,
    CapabilityStartError,
    ConversationLogger,
    FunctionDeclaration,
    UnknownCapabilityError,
)


class NullLogger(ConversationLogger):
    def log_question(self, source_name: str, text: str) -> None:
        pass

    def log_response(self, source_name: str, text: str) -> None:
        pass


class MockCapability(Capability):
    """Mock capability for testing registry functionality."""

    def __init__(self, name: str, description: str = "", fail_start: bool = False):
        self._name = name
        self._description = description or f"Mock capability: {name}"
        self._fail_start = fail_start
        self.start_args = None

    def declare(self) -> FunctionDeclaration:
        return FunctionDeclaration(name=self._name, description=self._description)

    async def start(self, context, client, conversation_logger) -> None:
        if self._fail_start:
            raise RuntimeError("cannot start")
        self.start_args = (context, client, conversation_logger)

    async def call(self, context: CallContext, args: dict[str, Any]) -> dict[str, Any]:
        return {"output": self._description}


async def build(*capabilities: Capability) -> CapabilityRegistry:
    return await CapabilityRegistry.build(capabilities, CallContext(), object(), NullLogger())


class TestCapabilityRegistry:
    """Test suite for CapabilityRegistry."""

    @pytest.mark.asyncio
    async def test_build_starts_and_indexes(self):
        """Test that every capability is started and reachable by name."""
        first, second = MockCapability("First"), MockCapability("Second")
        registry = await build(first, second)

        assert len(registry) == 2
        assert registry.names() == ["First", "Second"]
        assert registry.get("First") is first
        assert registry.require("Second") is second
        assert first.start_args is not None
        assert second.start_args is not None

    @pytest.mark.asyncio
    async def test_schemas_follow_declaration_order(self):
        """Test the schema list exposed to the model."""
        registry = await build(MockCapability("B"), MockCapability("A"))

        assert [d.name for d in registry.schemas] == ["B", "A"]

    @pytest.mark.asyncio
    async def test_duplicate_name_last_wins(self):
        """Test that a later declaration replaces an earlier one."""
        old = MockCapability("Same", "old")
        other = MockCapability("Other")
        new = MockCapability("Same", "new")
        registry = await build(old, other, new)

        assert len(registry) == 2
        assert registry.require("Same") is new
        assert [d.name for d in registry.schemas] == ["Same", "Other"]
        assert registry.schemas[0].description == "new"

    @pytest.mark.asyncio
    async def test_unknown_name(self):
        """Test lookup of unregistered names."""
        registry = await build(MockCapability("Known"))

        assert registry.get("Unknown") is None
        assert "Known" in registry
        assert "Unknown" not in registry
        with pytest.raises(UnknownCapabilityError):
            registry.require("Unknown")

    @pytest.mark.asyncio
    async def test_start_failure(self):
        """Test that a failing capability aborts the build."""
        with pytest.raises(CapabilityStartError) as exc_info:
            await build(MockCapability("Good"), MockCapability("Bad", fail_start=True))

        assert exc_info.value.name == "Bad"
        assert "cannot start" in str(exc_info.value)

    @pytest.mark.asyncio
    async def test_empty_registry(self):
        """Test that an agent may have no capabilities at all."""
        registry = await build()

        assert len(registry) == 0
        assert registry.schemas == []

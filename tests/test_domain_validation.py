"""Tests for the connection validator."""
from __future__ import annotations

import pytest

from archflow.domain.pricing import ModelPriceIndex, PriceBreakpoints
from archflow.domain.validation import (
    AGENT_REQUIRED,
    DEFAULT_BLUE,
    ERROR_MARKER,
    ERROR_RED,
    PROTOCOL_ERROR,
    SUCCESS_GREEN,
    describe,
    validate_connection,
)

from factories import make_agent, make_node

PRICES = ModelPriceIndex(
    prices={"cheap": 1.0, "mid": 5.0, "pricey": 20.0},
    breakpoints=PriceBreakpoints(low=2.0, high=10.0),
)


def client(node_id="client"):
    return make_node(node_id, "Client Interface")


def mcp(node_id="mcp", kind="MCP Server"):
    return make_node(node_id, kind)


def error(node_id="err"):
    return make_node(node_id, "System Error")


class TestProtocolErrors:
    """Test the red, non-animated annotations."""

    def test_client_to_mcp_requires_agent(self):
        annotation = validate_connection(client(), mcp())
        assert annotation.label == AGENT_REQUIRED
        assert annotation.label == "Protocol Error: Agent Required"
        assert annotation.animated is False
        assert annotation.style["stroke"] == ERROR_RED
        assert annotation.marker_end == ERROR_MARKER
        assert annotation.is_protocol_error

    @pytest.mark.parametrize("source, target", [
        (mcp("a"), client("b")),
        (mcp("a"), mcp("b", "Database")),
        (mcp("a", "Storage"), client("b")),
        (client("a"), client("b")),
    ])
    def test_other_agentless_pairs(self, source, target):
        assert validate_connection(source, target).label == AGENT_REQUIRED

    def test_error_sink_wins_over_everything(self):
        for other in (client(), mcp(), make_agent("agent")):
            for source, target in ((error(), other), (other, error())):
                annotation = validate_connection(source, target)
                assert annotation.label == PROTOCOL_ERROR
                assert annotation.animated is False
                assert annotation.marker_end == ERROR_MARKER


class TestToolProviderEdges:
    """Test agent <-> tool provider annotations."""

    def test_agent_to_mcp_is_green_with_throughput(self):
        agent = make_agent("agent", modelId="pricey")
        annotation = validate_connection(agent, mcp(), PRICES)
        assert annotation.style == {"stroke": SUCCESS_GREEN, "strokeWidth": 5}
        assert annotation.class_name == "edge-heavy"
        assert annotation.label is None
        assert annotation.animated is True

    def test_mcp_to_agent_is_flat_green(self):
        agent = make_agent("agent", modelId="pricey")
        annotation = validate_connection(mcp(), agent, PRICES)
        assert annotation.style == {"stroke": SUCCESS_GREEN, "strokeWidth": 2}
        assert annotation.class_name == ""


class TestAgentEdges:
    """Test throughput styling derived from the source agent's model price."""

    @pytest.mark.parametrize("model_id, width, class_name", [
        ("cheap", 1, "edge-light"),
        ("mid", 2.5, ""),
        ("pricey", 5, "edge-heavy"),
        ("not-in-catalogue", 2, ""),
    ])
    def test_agent_to_agent(self, model_id, width, class_name):
        source = make_agent("a", modelId=model_id)
        annotation = validate_connection(source, make_agent("b"), PRICES)
        assert annotation.style == {"stroke": DEFAULT_BLUE, "strokeWidth": width}
        assert annotation.class_name == class_name
        assert annotation.animated is True

    def test_no_price_data_defaults(self):
        source = make_agent("a", modelId="pricey")
        annotation = validate_connection(source, client())
        assert annotation.style == {"stroke": DEFAULT_BLUE, "strokeWidth": 2}
        assert annotation.class_name == ""

    def test_client_to_agent_is_fallback_blue(self):
        annotation = validate_connection(client(), make_agent("a", modelId="pricey"), PRICES)
        assert annotation.style == {"stroke": DEFAULT_BLUE, "strokeWidth": 2}
        assert annotation.animated is True
        assert annotation.label is None

    def test_unknown_kind_does_not_raise(self):
        annotation = validate_connection(make_node("x", "Hologram"), client())
        assert annotation.style["stroke"] == DEFAULT_BLUE


class TestDeterminism:
    """Same inputs, same annotation."""

    def test_repeatable(self):
        source = make_agent("a", modelId="cheap")
        target = mcp()
        assert validate_connection(source, target, PRICES) == validate_connection(source, target, PRICES)

    def test_ignores_unrelated_attributes(self):
        plain = make_agent("a", modelId="cheap")
        noisy = make_agent("a", modelId="cheap", systemPrompt="be terse", baseTokens=9000, x=50)
        assert validate_connection(plain, mcp(), PRICES) == validate_connection(noisy, mcp(), PRICES)

    def test_describe_uses_wire_names(self):
        data = describe(validate_connection(client(), mcp()))
        assert data["markerEnd"] == ERROR_MARKER
        assert data["className"] == ""
        assert data["label"] == AGENT_REQUIRED

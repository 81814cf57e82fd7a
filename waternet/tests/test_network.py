"""Tests for network construction, valve history and flow propagation."""

import pytest

from waternet import (
    Coordinate,
    DuplicateIdError,
    InvalidArgumentError,
    Network,
    NotFoundError,
    PreconditionError,
)
from waternet.nodes import Consumer, Junction, Source

from .conftest import at


def test_add_nodes_and_lookup():
    net = Network()
    source = net.add_source("S", at(41.0))
    consumer = net.add_consumer("C", at(41.1), peak_demand=12.5)
    junction = net.add_junction("J", at(41.2))
    assert isinstance(source, Source) and source.output == 0
    assert isinstance(consumer, Consumer) and consumer.current_demand == 0
    assert isinstance(junction, Junction)
    assert len(net) == 3
    assert "S" in net and source in net
    assert net.node("C") is consumer
    assert all(node.valve_open for node in net.nodes())


def test_duplicate_ids_are_rejected_across_variants():
    net = Network()
    net.add_source("X", at(41.0))
    with pytest.raises(DuplicateIdError):
        net.add_junction("X", at(41.1))
    with pytest.raises(DuplicateIdError):
        net.add_consumer("X", at(41.1), peak_demand=1)
    # Also catchable as a plain ValueError
    with pytest.raises(ValueError):
        net.add_source("X", at(41.1))
    assert len(net) == 1


def test_negative_peak_demand_is_rejected():
    net = Network()
    with pytest.raises(InvalidArgumentError):
        net.add_consumer("C", at(41.0), peak_demand=-1)
    assert not net.has_node("C")


def test_lookup_failures():
    net = Network()
    net.add_junction("J", at(41.0))
    with pytest.raises(NotFoundError):
        net.node("missing")
    with pytest.raises(NotFoundError):
        net.pipe("J-missing")
    with pytest.raises(NotFoundError):
        net.source("J")
    with pytest.raises(NotFoundError):
        net.consumer("J")
    # NotFoundError is a LookupError
    with pytest.raises(LookupError):
        net.flow_at("missing")


def test_connect_records_pipe():
    net = Network()
    net.add_source("S", at(41.0))
    net.add_consumer("C", at(41.1), peak_demand=3)
    pipe = net.connect("S", "C", 7.5)
    assert pipe.id == "S-C"
    assert net.pipe("S-C") is pipe
    assert net.outgoing("S") == [pipe]
    assert net.incoming("C") == [pipe]
    assert net.incoming("S") == []


def test_connect_validation_leaves_network_untouched():
    net = Network()
    net.add_source("S", at(41.0))
    net.add_consumer("C", at(41.1), peak_demand=3)
    net.add_junction("J", at(41.2))
    with pytest.raises(NotFoundError):
        net.connect("S", "nowhere", 1)
    with pytest.raises(NotFoundError):
        net.connect("nowhere", "S", 1)
    with pytest.raises(InvalidArgumentError):
        net.connect("C", "J", 1)
    with pytest.raises(InvalidArgumentError):
        net.connect("S", "J", 0)
    with pytest.raises(InvalidArgumentError):
        net.connect("S", "J", -2)
    assert list(net.pipes()) == []
    net.connect("S", "J", 1)
    with pytest.raises(InvalidArgumentError):
        net.connect("S", "J", 4)
    assert len(list(net.pipes())) == 1


def test_source_receiving_inflow_becomes_junction():
    net = Network()
    net.add_source("S1", at(41.0))
    net.add_source("S2", at(41.1))
    net.close_valve("S2")
    net.connect("S1", "S2", 5)
    converted = net.node("S2")
    assert isinstance(converted, Junction), "A source with inflow must become a junction"
    assert converted.coordinate == at(41.1)
    assert converted.valve_open is False
    with pytest.raises(NotFoundError):
        net.set_source_output("S2", 3)
    # Undo still resolves the node through its id
    net.undo(1)
    assert net.node("S2").valve_open is True


def test_close_then_undo_reopens():
    net = Network()
    net.add_junction("X", at(41.0))
    net.close_valve("X")
    assert not net.node("X").valve_open
    net.undo(1)
    assert net.node("X").valve_open


def test_noop_toggle_consumes_an_undo_step():
    net = Network()
    net.add_junction("X", at(41.0))
    net.add_junction("Y", at(41.1))
    net.close_valve("X")
    net.open_valve("Y")  # already open
    assert net.history_depth == 2
    assert net.undo(1) == 1
    assert not net.node("X").valve_open, "Undoing a no-op must not change any valve"
    assert net.node("Y").valve_open
    net.undo(1)
    assert net.node("X").valve_open


def test_undo_more_steps_than_history():
    net = Network()
    net.add_junction("X", at(41.0))
    net.close_valve("X")
    net.open_valve("X")
    net.close_valve("X")
    assert net.undo(10) == 3
    assert net.node("X").valve_open
    assert net.history_depth == 0
    assert net.undo(1) == 0


@pytest.mark.parametrize("steps", [0, -1])
def test_undo_requires_positive_steps(steps):
    net = Network()
    with pytest.raises(InvalidArgumentError):
        net.undo(steps)


def test_valve_operations_on_missing_nodes():
    net = Network()
    with pytest.raises(NotFoundError):
        net.close_valve("ghost")
    with pytest.raises(NotFoundError):
        net.open_valve("ghost")
    assert net.history_depth == 0


def test_subscribe_is_idempotent():
    net = Network()
    net.add_consumer("C", at(41.0), peak_demand=1)
    net.add_junction("J", at(41.1))
    assert net.subscribe("12345678A", "C") is False
    assert net.subscribe("12345678A", "C") is True
    assert net.consumer("C").subscribers == {"12345678A"}
    with pytest.raises(NotFoundError):
        net.subscribe("12345678A", "J")
    with pytest.raises(NotFoundError):
        net.subscribe("12345678A", "missing")


def test_setters_validate_variant_and_sign():
    net = Network()
    net.add_source("S", at(41.0))
    net.add_consumer("C", at(41.1), peak_demand=5)
    with pytest.raises(NotFoundError):
        net.set_source_output("C", 1)
    with pytest.raises(NotFoundError):
        net.set_consumer_demand("S", 1)
    with pytest.raises(InvalidArgumentError):
        net.set_source_output("S", -1)
    with pytest.raises(InvalidArgumentError):
        net.set_consumer_demand("C", -0.5)
    net.set_consumer_demand("C", 7)  # above peak is allowed
    assert net.consumer("C").current_demand == 7


def test_proportional_rationing(rationing_network):
    """Output 10 against demand 12 scales both consumers by 10/12."""
    net = rationing_network
    assert net.demand_at("J") == pytest.approx(12)
    assert net.demand_at("S") == pytest.approx(12)
    assert net.flow_at("S") == pytest.approx(10)
    assert net.flow_at("J") == pytest.approx(10)
    assert net.flow_at("C1") == pytest.approx(4 * 10 / 12)
    assert net.flow_at("C2") == pytest.approx(8 * 10 / 12)
    assert net.pipe_flow("J-C1") / 4 == pytest.approx(net.pipe_flow("J-C2") / 8)


def test_source_flow_is_min_of_output_and_demand(rationing_network):
    net = rationing_network
    for output in (0, 5, 12, 50):
        net.set_source_output("S", output)
        source = net.source("S")
        assert net.flow_at("S") <= source.output
        assert net.flow_at("S") == pytest.approx(min(source.output, net.demand_at("S")))


def test_satisfied_demand_flows_in_full(rationing_network):
    net = rationing_network
    net.set_source_output("S", 100)
    assert net.flow_at("C1") == pytest.approx(4)
    assert net.flow_at("C2") == pytest.approx(8)


def test_bounded_propagation_saturates_pipe_capacity():
    net = Network()
    net.add_source("S", at(41.0))
    net.add_consumer("C", at(41.1), peak_demand=10)
    net.connect("S", "C", 5)
    net.set_source_output("S", 100)
    net.set_consumer_demand("C", 8)
    assert net.propagated_demand("S-C") == pytest.approx(5)
    assert net.demand_at("S") == pytest.approx(5)
    assert net.flow_at("C") == pytest.approx(5)
    # Unbounded evaluation asks for the full demand
    assert net.propagated_demand("S-C", bounded=False) == pytest.approx(8)
    assert net.demand_at("S", bounded=False) == pytest.approx(8)
    assert net.pipe_flow("S-C", bounded=False) == pytest.approx(8)


def test_closed_valve_blocks_demand_and_flow(rationing_network):
    net = rationing_network
    net.close_valve("C2")
    assert net.demand_at("C2") == 0
    assert net.demand_at("S") == pytest.approx(4)
    assert net.flow_at("C1") == pytest.approx(4)
    net.close_valve("J")
    assert net.demand_at("S") == 0
    assert net.flow_at("S") == 0
    assert net.flow_at("C1") == 0


def test_pipes_without_supply_take_no_share_of_demand():
    net = Network()
    net.add_source("S", at(41.0))
    net.add_junction("Dry", at(41.1))
    net.add_consumer("C", at(41.2), peak_demand=30)
    net.connect("S", "C", 10)
    net.connect("Dry", "C", 30)
    net.set_source_output("S", 100)
    net.set_consumer_demand("C", 6)
    # Only S-C can deliver, so it is asked for the whole demand
    assert net.propagated_demand("S-C") == pytest.approx(6)
    assert net.flow_at("C") == pytest.approx(6)
    assert net.reaches_source("S")
    assert not net.reaches_source("Dry")


def test_zero_denominators_yield_zero():
    net = Network()
    net.add_junction("J", at(41.0))
    net.add_consumer("C", at(41.1), peak_demand=5)
    net.connect("J", "C", 10)
    net.set_consumer_demand("C", 5)
    assert net.demand_at("J") == 0
    assert net.flow_at("C") == 0
    assert net.pipe_flow("J-C") == 0

    net.add_source("S", at(41.2))
    net.connect("S", "J", 10)
    net.set_consumer_demand("C", 0)
    net.set_source_output("S", 10)
    assert net.demand_at("S") == 0
    assert net.pipe_flow("J-C") == 0


def test_reaches_source_stops_at_closed_valves(rationing_network):
    net = rationing_network
    assert net.reaches_source("C1")
    net.close_valve("S")
    assert not net.reaches_source("C1")
    net.undo(1)
    net.close_valve("C1")
    assert not net.reaches_source("C1")


def test_reaches_source_terminates_on_cycles():
    net = Network()
    net.add_junction("A", at(41.0))
    net.add_junction("B", at(41.1))
    net.connect("A", "B", 1)
    net.connect("B", "A", 1)
    assert not net.reaches_source("A")


def test_cyclic_demand_raises_precondition_error():
    net = Network()
    net.add_source("S", at(41.0))
    net.add_junction("A", at(41.1))
    net.add_junction("B", at(41.2))
    net.connect("S", "A", 1)
    net.connect("A", "B", 1)
    net.connect("B", "A", 1)
    with pytest.raises(PreconditionError):
        net.demand_at("S")
    # A closed valve breaks the loop
    net.close_valve("B")
    assert net.demand_at("S") == 0


def test_client_flow(rationing_network):
    net = rationing_network
    net.subscribe("client-1", "C2")
    assert net.client_flow("client-1") == pytest.approx(net.flow_at("C2"))
    with pytest.raises(NotFoundError):
        net.client_flow("nobody")


def test_connected_component_follows_pipes_both_ways():
    net = Network()
    net.add_source("S1", at(41.0))
    net.add_source("S2", at(41.1))
    net.add_junction("J", at(41.2))
    net.add_consumer("C", at(41.3), peak_demand=1)
    net.add_source("Other", at(42.0))
    net.add_consumer("Far", at(42.1), peak_demand=1)
    net.connect("S1", "J", 1)
    net.connect("S2", "J", 1)
    net.connect("J", "C", 1)
    net.connect("Other", "Far", 1)
    component = net.connected_component("S1")
    assert {node.id for node in component.nodes()} == {"S1", "S2", "J", "C"}
    assert {pipe.id for pipe in component.pipes()} == {"S1-J", "S2-J", "J-C"}
    assert component.node("J") is net.node("J")
    assert component.history_depth == 0
    assert len(net.connected_component("Far")) == 2


def test_graph_view_is_read_only(rationing_network):
    graph = rationing_network.graph
    assert graph.number_of_edges() == 3
    assert graph.edges["S", "J"]["capacity"] == 100
    with pytest.raises(Exception):
        graph.add_edge("C1", "S")


def test_coordinates_are_immutable():
    net = Network()
    node = net.add_junction("J", Coordinate(41.0, 2.0))
    with pytest.raises(Exception):
        node.coordinate.latitude = 0.0

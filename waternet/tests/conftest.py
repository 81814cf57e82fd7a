"""Shared network fixtures for the test suite."""

import pytest

from waternet import Coordinate, Network


def at(lat, lon=2.0):
    return Coordinate(lat, lon)


@pytest.fixture
def rationing_network():
    """One source of output 10 feeding two consumers (demand 4 and 8) through a junction."""
    net = Network()
    net.add_source("S", at(41.0))
    net.add_junction("J", at(41.1))
    net.add_consumer("C1", at(41.2), peak_demand=10)
    net.add_consumer("C2", at(41.3), peak_demand=10)
    net.connect("S", "J", 100)
    net.connect("J", "C1", 100)
    net.connect("J", "C2", 100)
    net.set_source_output("S", 10)
    net.set_consumer_demand("C1", 4)
    net.set_consumer_demand("C2", 8)
    return net


@pytest.fixture
def tree_network():
    """S -> A -> B -> {C1, C2} and A -> C3."""
    net = Network()
    net.add_source("S", at(41.0))
    net.add_junction("A", at(41.1))
    net.add_junction("B", at(41.2))
    net.add_consumer("C1", at(41.3), peak_demand=5)
    net.add_consumer("C2", at(41.4), peak_demand=5)
    net.add_consumer("C3", at(41.5), peak_demand=5)
    net.connect("S", "A", 20)
    net.connect("A", "B", 10)
    net.connect("B", "C1", 5)
    net.connect("B", "C2", 5)
    net.connect("A", "C3", 5)
    return net


@pytest.fixture
def diamond_network():
    """Source -> A -> {B, C} -> T with capacity 10 on the first pipe and 5 elsewhere."""
    net = Network()
    net.add_source("Source", at(41.0))
    net.add_junction("A", at(41.1))
    net.add_junction("B", at(41.2, 2.1))
    net.add_junction("C", at(41.2, 1.9))
    net.add_consumer("T", at(41.3), peak_demand=10)
    net.connect("Source", "A", 10)
    net.connect("A", "B", 5)
    net.connect("A", "C", 5)
    net.connect("B", "T", 5)
    net.connect("C", "T", 5)
    return net

#!/usr/bin/env python3
"""
Main entry point for the water network analyser.
Builds a small network and prints its demand, flow and capacity reports.
"""

import sys

import pandas as pd

from waternet import (
    Coordinate,
    Network,
    configure_logging,
    excess_capacity,
    is_tree,
    load_config,
    max_flow,
    max_flow_frame,
    minimum_source_flow,
    node_frame,
    order_by_distance,
    pipe_frame,
    valves_to_close,
)


def build_network(config=None):
    """A reservoir feeding two districts through a main junction."""
    net = Network(config)
    net.add_source("Reservoir", Coordinate(41.40, 2.15))
    net.add_junction("Main", Coordinate(41.39, 2.16))
    net.add_junction("North", Coordinate(41.41, 2.17))
    net.add_junction("South", Coordinate(41.37, 2.17))
    net.add_consumer("Hospital", Coordinate(41.42, 2.18), peak_demand=40)
    net.add_consumer("School", Coordinate(41.41, 2.19), peak_demand=15)
    net.add_consumer("Market", Coordinate(41.36, 2.18), peak_demand=30)

    net.connect("Reservoir", "Main", 80)
    net.connect("Main", "North", 50)
    net.connect("Main", "South", 25)
    net.connect("North", "Hospital", 40)
    net.connect("North", "School", 10)
    net.connect("South", "Market", 30)

    net.set_source_output("Reservoir", 60)
    net.set_consumer_demand("Hospital", 35)
    net.set_consumer_demand("School", 12)
    net.set_consumer_demand("Market", 20)
    net.subscribe("client-0001", "Hospital")
    return net


def main():
    """Run every analysis on the demo network."""
    config = load_config(sys.argv[1]) if len(sys.argv) > 1 else None
    configure_logging(config)

    print("Water Network Analyser")
    print("=" * 60)

    net = build_network(config)
    print(net)

    with pd.option_context("display.width", 120, "display.max_columns", None):
        print("\nNodes:")
        print(node_frame(net).to_string(index=False))
        print("\nPipes:")
        print(pipe_frame(net).to_string(index=False))

    print("\nStructure")
    print("-" * 60)
    print(f"Tree rooted at Reservoir: {is_tree(net, 'Reservoir')}")
    print(f"Supply for 80% service: {minimum_source_flow(net, 'Reservoir', 80):.2f}")
    print(f"Flow seen by client-0001: {net.client_flow('client-0001'):.2f}")

    exceeded = sorted(pipe.id for pipe in excess_capacity(net, net.pipes()))
    print(f"Pipes over capacity: {', '.join(exceeded) or 'none'}")

    closures = valves_to_close(net, {"Hospital": False, "School": False, "Market": True})
    print(f"Valves to close for a dry north district: {sorted(node.id for node in closures)}")

    nearest = order_by_distance(Coordinate(41.40, 2.18), net.nodes(), config)
    print(f"Nodes by distance: {[node.id for node in nearest]}")

    result = max_flow(net, "Reservoir")
    print(f"\nMaximum flow: {result.value:.2f}")
    print(max_flow_frame(result).to_string(index=False))

    print("\nAnalysis complete!")


if __name__ == "__main__":
    main()

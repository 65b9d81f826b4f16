"""
STACKBRIDGE MAIN - Entry Point and CLI

Commands:
    run      - Build a stack graph by running a script, then print it
    journal  - Run a script and print the mutations it made

Usage:
    # Run process_graph(graph) from a script and list nodes and edges
    python main.py run build_graph.py

    # Use another entry point and export the result
    python main.py run build_graph.py --entry build --export ./out/graph --format parquet

    # Show what the script did, event by event
    python main.py journal build_graph.py

Script Format:
    A Python file defining a function that takes a graph proxy:

        def process_graph(graph):
            file = graph.file("test.py")
            definition = file.definition_node("foo")
            definition.add_edge_from(graph.root_node())
"""
import logging
import sys
from pathlib import Path

# Add project root to path for imports
sys.path.insert(0, str(Path(__file__).parent))

from core.stack_graph import StackGraph
from bridge.link import BridgeError
from bridge.graph_proxy import GraphProxy
from bridge.script_host import ScriptHost
from infrastructure.config import apply_config, load_config


def _build(args):
    """Load the config, run the script's entry point, return (graph, journal)."""
    config = load_config(Path(args.config) if args.config else None)
    logging.basicConfig(format="%(levelname)s %(name)s: %(message)s")
    journal = apply_config(config)  # sets the package logger levels

    graph = StackGraph()
    host = ScriptHost(journal=journal)
    host.load_file(Path(args.script))
    host.call(args.entry, graph)
    return graph, journal


def cmd_run(args):
    """Run a script and print the resulting graph."""
    graph, _ = _build(args)
    proxy = GraphProxy.owned(graph)

    print(f"Nodes ({graph.node_count}):")
    for node in proxy.nodes():
        print(f"  {node}")

    edges = proxy.edges()
    print(f"Edges ({len(edges)}):")
    for edge in edges:
        print(f"  {edge}")

    if args.export:
        if args.format == "arrow":
            nodes_path, edges_path = graph.save_arrow(Path(args.export))
        else:
            nodes_path, edges_path = graph.save_parquet(Path(args.export))
        print(f"Exported {nodes_path} and {edges_path}")


def cmd_journal(args):
    """Run a script and print its mutation events."""
    graph, journal = _build(args)
    for event in journal.get_events_for_graph(graph.token):
        detail = event.display or event.value or ""
        if event.source is not None:
            detail = f"{event.source} -{event.precedence}-> {event.sink}"
        print(f"{event.sequence:>5}  {event.mutation_type:<20} {detail}")


def main(argv=None):
    """Main entry point with subcommand dispatch."""
    import argparse

    parser = argparse.ArgumentParser(
        description="Stackbridge - build stack graphs from scripts",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )
    parser.add_argument(
        "--config",
        help="Path to a stackbridge.toml (default: config/stackbridge.toml)",
    )

    subparsers = parser.add_subparsers(dest="command")

    # run
    run_parser = subparsers.add_parser("run", help="Run a script and print the graph")
    run_parser.add_argument("script", help="Path to the graph-building script")
    run_parser.add_argument("--entry", default="process_graph", help="Entry function name")
    run_parser.add_argument("--export", help="Base path for exported node/edge tables")
    run_parser.add_argument("--format", choices=["parquet", "arrow"], default="parquet")
    run_parser.set_defaults(func=cmd_run)

    # journal
    journal_parser = subparsers.add_parser("journal", help="Run a script and print its mutations")
    journal_parser.add_argument("script", help="Path to the graph-building script")
    journal_parser.add_argument("--entry", default="process_graph", help="Entry function name")
    journal_parser.set_defaults(func=cmd_journal)

    args = parser.parse_args(argv)
    if not args.command:
        parser.print_help()
        return 1

    try:
        args.func(args)
    except BridgeError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())

"""
STACKBRIDGE MUTATION JOURNAL - The Temporal Debugger

Records every mutation made through the proxy bridge, so a host can replay
what a script did to its graph.

Architecture:
- MutationLogger: Core logging interface
- FileLogger: Optional append-only newline-delimited JSON log
- EventBuffer: In-memory ring buffer for recent events

Usage:
    journal = MutationLogger()
    journal.log_node_created(graph.token, 3, "pop_symbol", file="test.py")

    for event in journal.get_recent_events(10):
        print(f"{event.sequence}: {event.mutation_type}")

Events are emitted after the graph borrow of the recording operation has been
released, so subscribers may use the bridge themselves.
"""
import logging
from collections import deque
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional
import io
import threading

import msgspec

logger = logging.getLogger(__name__)


# =============================================================================
# EVENTS
# =============================================================================

class MutationType(str, Enum):
    """Types of graph mutations for event tracking."""
    FILE_CREATED = "FILE_CREATED"
    NODE_CREATED = "NODE_CREATED"
    EDGE_CREATED = "EDGE_CREATED"
    SPAN_SET = "SPAN_SET"
    DEFINIENS_SPAN_SET = "DEFINIENS_SPAN_SET"
    SYNTAX_TYPE_SET = "SYNTAX_TYPE_SET"
    DEBUG_INFO_ADDED = "DEBUG_INFO_ADDED"


class MutationEvent(msgspec.Struct, kw_only=True):
    """Individual mutation event."""
    timestamp: str
    sequence: int
    mutation_type: str                  # MutationType value
    graph: str                          # token of the mutated graph

    # Nodes and files
    node: Optional[int] = None          # node handle index
    node_kind: Optional[str] = None
    file: Optional[str] = None
    display: Optional[str] = None

    # Edges
    source: Optional[int] = None
    sink: Optional[int] = None
    precedence: Optional[int] = None

    # Attachments
    key: Optional[str] = None
    value: Optional[str] = None


# =============================================================================
# CONFIGURATION
# =============================================================================

@dataclass
class LoggerConfig:
    """Configuration for the mutation journal."""
    enabled: bool = True                # Record events at all
    enable_file_log: bool = False       # Enable file-based logging
    log_path: Optional[Path] = None     # Path for log files
    buffer_size: int = 10000            # In-memory buffer size

    def __post_init__(self):
        if self.log_path is None:
            self.log_path = Path("./workspace/logs")


# =============================================================================
# EVENT BUFFER
# =============================================================================

class EventBuffer:
    """
    Thread-safe ring buffer of recent mutation events.

    Events are also indexed by graph token, so the history of one graph can
    be pulled out of a journal shared by several. The index holds only
    events still in the ring.
    """

    def __init__(self, max_size: int = 10000):
        self._buffer: deque[MutationEvent] = deque(maxlen=max_size)
        self._by_graph: Dict[str, deque[MutationEvent]] = {}
        self._lock = threading.RLock()
        self._sequence = 0

    def append(self, event: MutationEvent) -> None:
        with self._lock:
            if not self._buffer.maxlen:
                return
            if len(self._buffer) == self._buffer.maxlen:
                evicted = self._buffer[0]
                bucket = self._by_graph[evicted.graph]
                bucket.popleft()
                if not bucket:
                    del self._by_graph[evicted.graph]
            self._buffer.append(event)
            self._by_graph.setdefault(event.graph, deque()).append(event)

    def get_last(self, n: int) -> List[MutationEvent]:
        with self._lock:
            if n <= 0:
                return []
            return list(self._buffer)[-n:]

    def get_by_graph(self, graph: str) -> List[MutationEvent]:
        with self._lock:
            return list(self._by_graph.get(graph, ()))

    def get_by_node(self, node: int, graph: Optional[str] = None) -> List[MutationEvent]:
        """All events that touch a node, including edges into or out of it."""
        with self._lock:
            events = self._buffer if graph is None else self._by_graph.get(graph, ())
            return [e for e in events if node in (e.node, e.source, e.sink)]

    def get_by_type(self, mutation_type: str) -> List[MutationEvent]:
        with self._lock:
            return [e for e in self._buffer if e.mutation_type == mutation_type]

    def graphs(self) -> List[str]:
        """Tokens of the graphs with events in the buffer, oldest first."""
        with self._lock:
            return list(self._by_graph)

    def next_sequence(self) -> int:
        with self._lock:
            self._sequence += 1
            return self._sequence

    def clear(self) -> None:
        with self._lock:
            self._buffer.clear()
            self._by_graph.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._buffer)


# =============================================================================
# FILE LOGGER
# =============================================================================

JOURNAL_FILE_NAME = "mutations.jsonl"


class FileLogger:
    """
    Append-only journal file.

    One msgspec-encoded event per line in `<log_path>/mutations.jsonl`. The
    file is opened on the first write and appended to across runs; events of
    different graphs are told apart by their `graph` token.
    """

    def __init__(self, log_path: Path):
        self._path = Path(log_path) / JOURNAL_FILE_NAME
        self._file: Optional[io.TextIOWrapper] = None
        self._lock = threading.Lock()
        self._encoder = msgspec.json.Encoder()

        self._path.parent.mkdir(parents=True, exist_ok=True)

    @property
    def path(self) -> Path:
        return self._path

    def write(self, event: MutationEvent) -> None:
        with self._lock:
            if self._file is None:
                self._file = open(self._path, "a", encoding="utf-8")
            self._file.write(self._encoder.encode(event).decode("utf-8") + "\n")
            self._file.flush()

    def close(self) -> None:
        with self._lock:
            if self._file:
                self._file.close()
                self._file = None

    def read_log(self, graph: Optional[str] = None) -> List[MutationEvent]:
        """
        Read events back, optionally only those of one graph.

        Malformed lines are skipped with a warning.
        """
        if not self._path.exists():
            return []

        events = []
        decoder = msgspec.json.Decoder(type=MutationEvent)

        with open(self._path, "r", encoding="utf-8") as f:
            for lineno, line in enumerate(f, start=1):
                line = line.strip()
                if not line:
                    continue
                try:
                    event = decoder.decode(line.encode())
                except msgspec.DecodeError as e:
                    logger.warning("skipping %s:%d: %s", self._path, lineno, e)
                    continue
                if graph is None or event.graph == graph:
                    events.append(event)

        return events


# =============================================================================
# MUTATION LOGGER (Main Interface)
# =============================================================================

class MutationLogger:
    """
    Main logging interface for graph mutations.

    Provides a unified API for logging events to:
    - In-memory buffer (always, unless disabled)
    - File-based logs (configurable)
    - Subscribers

    Usage:
        journal = MutationLogger()
        journal.subscribe(print)
        events = journal.get_events_for_node(3)
    """

    def __init__(self, config: Optional[LoggerConfig] = None):
        self.config = config or LoggerConfig()

        self._buffer = EventBuffer(self.config.buffer_size)
        self._file_logger: Optional[FileLogger] = None

        if self.config.enabled and self.config.enable_file_log and self.config.log_path:
            self._file_logger = FileLogger(self.config.log_path)

        self._subscribers: List[Callable[[MutationEvent], None]] = []

    @property
    def enabled(self) -> bool:
        return self.config.enabled

    def _now(self) -> str:
        return datetime.now(timezone.utc).isoformat()

    def _record(self, mutation_type: MutationType, graph: str, **fields: Any) -> Optional[MutationEvent]:
        if not self.config.enabled:
            return None
        event = MutationEvent(
            timestamp=self._now(),
            sequence=self._buffer.next_sequence(),
            mutation_type=mutation_type.value,
            graph=graph,
            **fields,
        )
        self._emit(event)
        return event

    def _emit(self, event: MutationEvent) -> None:
        self._buffer.append(event)

        if self._file_logger:
            self._file_logger.write(event)

        for subscriber in list(self._subscribers):
            try:
                subscriber(event)
            except Exception:
                logger.exception("mutation subscriber %r failed", subscriber)

    # =========================================================================
    # LOGGING METHODS
    # =========================================================================

    def log_file_created(self, graph: str, file: int, name: str) -> Optional[MutationEvent]:
        return self._record(MutationType.FILE_CREATED, graph, file=name, value=str(file))

    def log_node_created(
        self,
        graph: str,
        node: int,
        node_kind: str,
        file: Optional[str] = None,
        display: Optional[str] = None,
    ) -> Optional[MutationEvent]:
        return self._record(
            MutationType.NODE_CREATED, graph,
            node=node, node_kind=node_kind, file=file, display=display,
        )

    def log_edge_created(
        self,
        graph: str,
        source: int,
        sink: int,
        precedence: int,
    ) -> Optional[MutationEvent]:
        return self._record(
            MutationType.EDGE_CREATED, graph,
            source=source, sink=sink, precedence=precedence,
        )

    def log_node_updated(
        self,
        graph: str,
        node: int,
        mutation_type: MutationType,
        key: Optional[str] = None,
        value: Optional[str] = None,
    ) -> Optional[MutationEvent]:
        """Log a change to one of a node's attachments (span, syntax type, debug info)."""
        return self._record(mutation_type, graph, node=node, key=key, value=value)

    # =========================================================================
    # QUERY METHODS
    # =========================================================================

    def get_recent_events(self, n: int = 100) -> List[MutationEvent]:
        return self._buffer.get_last(n)

    def get_events_for_graph(self, graph: str) -> List[MutationEvent]:
        return self._buffer.get_by_graph(graph)

    def get_events_for_node(
        self, node: int, graph: Optional[str] = None
    ) -> List[MutationEvent]:
        """Events touching a node. Indices repeat across graphs; `graph` narrows."""
        return self._buffer.get_by_node(node, graph)

    def graphs(self) -> List[str]:
        return self._buffer.graphs()

    def get_events_by_type(self, mutation_type: str) -> List[MutationEvent]:
        if isinstance(mutation_type, MutationType):
            mutation_type = mutation_type.value
        return self._buffer.get_by_type(mutation_type)

    def get_node_timeline(
        self, node: int, graph: Optional[str] = None
    ) -> List[Dict[str, Any]]:
        """Simplified list of the mutations that touched a node."""
        return [
            {
                "sequence": e.sequence,
                "type": e.mutation_type,
                "key": e.key,
                "value": e.value,
            }
            for e in self.get_events_for_node(node, graph)
        ]

    def clear(self) -> None:
        self._buffer.clear()

    def __len__(self) -> int:
        return len(self._buffer)

    # =========================================================================
    # SUBSCRIPTION
    # =========================================================================

    def subscribe(self, callback: Callable[[MutationEvent], None]) -> None:
        self._subscribers.append(callback)

    def unsubscribe(self, callback: Callable[[MutationEvent], None]) -> None:
        if callback in self._subscribers:
            self._subscribers.remove(callback)

    # =========================================================================
    # LIFECYCLE
    # =========================================================================

    def close(self) -> None:
        if self._file_logger:
            self._file_logger.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()


# =============================================================================
# CONVENIENCE FUNCTIONS
# =============================================================================

_global_logger: Optional[MutationLogger] = None


def get_logger() -> MutationLogger:
    """Get or create the global journal."""
    global _global_logger
    if _global_logger is None:
        _global_logger = MutationLogger()
    return _global_logger


def configure_logger(config: LoggerConfig) -> MutationLogger:
    """Configure and return a new global journal."""
    global _global_logger
    if _global_logger:
        _global_logger.close()
    _global_logger = MutationLogger(config)
    return _global_logger


def reset_logger() -> None:
    global _global_logger
    if _global_logger:
        _global_logger.close()
    _global_logger = None

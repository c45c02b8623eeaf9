"""
Flowchart DSL parser - Turn compact flowchart text into a Graph.

The notation is line oriented:

    flowchart TD
      A[Start] --> B{Check}
      B -->|yes| C(Done)
      D((Note))

Each line is scanned with a small cursor instead of one large regular
expression. Parsing is lenient and total: a line that does not scan as an
arrow line or a node line is skipped, and `parse` never raises.
"""

import logging
import string

from .layout import layout
from .models import Graph, Node, NodeShape

logger = logging.getLogger(__name__)

HEADER_KEYWORDS = ("flowchart", "graph")
DIRECTIONS = {"TD": "TD", "TB": "TD", "BT": "TD", "LR": "LR", "RL": "LR"}

# Opening token -> (shape, closing token). Longest tokens first.
SHAPE_TOKENS: list[tuple[str, NodeShape, str]] = [
    ("((", NodeShape.STADIUM, "))"),
    ("([", NodeShape.STADIUM, "])"),
    ("[[", NodeShape.SUBROUTINE, "]]"),
    ("[", NodeShape.RECT, "]"),
    ("(", NodeShape.ROUND, ")"),
    ("{", NodeShape.DIAMOND, "}"),
    (">", NodeShape.FLAG, "]"),
]

ID_CHARS = frozenset(string.ascii_letters + string.digits + "_")


class _LineScanner:
    """Cursor over a single trimmed line."""

    def __init__(self, text: str):
        self.text = text
        self.pos = 0

    @property
    def done(self) -> bool:
        return self.pos >= len(self.text)

    def skip_spaces(self):
        while not self.done and self.text[self.pos].isspace():
            self.pos += 1

    def startswith(self, token: str) -> bool:
        return self.text.startswith(token, self.pos)

    def identifier(self) -> str | None:
        start = self.pos
        while not self.done and self.text[self.pos] in ID_CHARS:
            self.pos += 1
        return self.text[start:self.pos] or None

    def shape(self, stop: str | None = None, to_end: bool = False) -> tuple[NodeShape, str] | None:
        """
        Scan `OPEN label CLOSE`.

        A missing close token ends the label right before `stop`, or at the
        end of the line with `to_end`; otherwise the close is required.
        """
        for open_token, shape, close_token in SHAPE_TOKENS:
            if not self.startswith(open_token):
                continue
            label_start = self.pos + len(open_token)
            close_at = self.text.find(close_token, label_start)
            if close_at != -1:
                self.pos = close_at + len(close_token)
                return shape, self.text[label_start:close_at]
            stop_at = self.text.find(stop, label_start) if stop else -1
            if stop_at != -1:
                self.pos = stop_at
                return shape, self.text[label_start:stop_at]
            if to_end:
                self.pos = len(self.text)
                return shape, self.text[label_start:]
            return None
        return None

    def arrow(self) -> str | None:
        """
        Scan `--+>` with an optional `|label|` after it or before the `>`.

        Returns the edge label ('' when absent) or None if no arrow is here.
        """
        if not self.startswith("--"):
            return None
        while self.startswith("-"):
            self.pos += 1
        label = self.pipe_label()
        if label is not None:
            while self.startswith("-"):
                self.pos += 1
        self.skip_spaces()
        if not self.startswith(">"):
            return None
        self.pos += 1
        self.skip_spaces()
        if label is None:
            label = self.pipe_label()
            self.skip_spaces()
        return label or ""

    def pipe_label(self) -> str | None:
        if not self.startswith("|"):
            return None
        end = self.text.find("|", self.pos + 1)
        if end == -1:
            return None
        label = self.text[self.pos + 1:end]
        self.pos = end + 1
        return label


class _GraphBuilder:
    """Accumulates nodes and edges while lines are scanned."""

    def __init__(self):
        self.nodes: dict[str, Node] = {}
        self.edges: list[dict] = []
        self.direction = "TD"

    def register(self, node_id: str, shaped: tuple[NodeShape, str] | None):
        # A bare reference never overwrites an existing node
        if shaped is None:
            if node_id not in self.nodes:
                self.nodes[node_id] = Node(id=node_id, label=node_id)
            return
        shape, label = shaped
        self.nodes[node_id] = Node(id=node_id, label=label.strip() or node_id, shape=shape)

    def build(self) -> Graph:
        return Graph(nodes=self.nodes, edges=self.edges, direction=self.direction)


def _header_direction(line: str) -> str | None:
    """Return the direction if `line` is a header line ('' when it has none)."""
    if not line.lower().startswith(HEADER_KEYWORDS):
        return None
    words = line.split()
    if len(words) > 1:
        return DIRECTIONS.get(words[1].upper(), "")
    return ""


def _parse_arrow_line(line: str, builder: _GraphBuilder) -> bool:
    scanner = _LineScanner(line)
    source = scanner.identifier()
    if source is None:
        return False
    scanner.skip_spaces()
    source_shape = scanner.shape(stop="--")
    scanner.skip_spaces()
    label = scanner.arrow()
    if label is None:
        return False
    target = scanner.identifier()
    if target is None:
        return False
    scanner.skip_spaces()
    target_shape = scanner.shape(to_end=True)

    builder.register(source, source_shape)
    builder.register(target, target_shape)
    builder.edges.append({"source": source, "target": target, "label": label.strip()})
    return True


def _parse_node_line(line: str, builder: _GraphBuilder) -> bool:
    scanner = _LineScanner(line)
    node_id = scanner.identifier()
    if node_id is None:
        return False
    scanner.skip_spaces()
    shaped = scanner.shape()
    if shaped is None:
        return False
    scanner.skip_spaces()
    if not scanner.done:
        return False
    builder.register(node_id, shaped)
    return True


def parse(text: str) -> Graph:
    """
    Parse flowchart text into an unpositioned Graph.

    Never raises: unrecognized lines are skipped and empty input gives an
    empty Graph.

    Args:
        text: The flowchart source

    Returns:
        Graph with every node at (0, 0)
    """
    builder = _GraphBuilder()
    if not text:
        return builder.build()

    for raw in text.splitlines():
        line = raw.strip()
        if not line:
            continue

        direction = _header_direction(line)
        if direction is not None:
            if direction:
                builder.direction = direction
            continue

        if _parse_arrow_line(line, builder):
            continue
        if _parse_node_line(line, builder):
            continue
        logger.debug("Skipping unrecognized line: %r", line)

    return builder.build()


def load(text: str) -> Graph:
    """Parse flowchart text and assign initial positions."""
    return layout(parse(text))

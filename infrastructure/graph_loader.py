"""
SIMGRAPH GRAPH LOADER - Flat-File Graph I/O

Reads and writes the line-oriented graph format:

    # comment
    <id> <label> <child1> <child2> ...

One line per vertex, ids dense from 0 and listed in order. Edge labels live
in an optional companion file:

    <source> <target> <edge_label>

Blank lines and lines starting with '#' are ignored in both files. Ids are
unsigned ASCII decimals; labels may carry a leading '-'. Any malformed line,
including one that is not valid UTF-8, raises GraphFormatError naming its
line number.
"""
import logging
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Tuple, Union

from core.errors import GraphFormatError
from core.labeled_graph import LabeledGraph

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]
Lines = Iterable[Union[str, bytes]]


# =============================================================================
# PARSING
# =============================================================================

def _content_lines(lines: Lines) -> Iterable[Tuple[int, List[str]]]:
    """
    Yield (line_number, tokens) for non-blank, non-comment lines.

    Byte lines (files opened in binary mode) are decoded one at a time, so
    bad UTF-8 is reported on the line that holds it.
    """
    for number, line in enumerate(lines, start=1):
        if isinstance(line, bytes):
            try:
                line = line.decode("utf-8")
            except UnicodeDecodeError:
                raise GraphFormatError("invalid UTF-8", number) from None
        stripped = line.strip()
        if not stripped or stripped.startswith("#"):
            continue
        yield number, stripped.split()


def _parse_int(token: str, what: str, line_number: int, signed: bool = False) -> int:
    """Plain ASCII decimal; a leading '-' only when signed. No '+' or '_'."""
    digits = token[1:] if signed and token.startswith("-") else token
    if not (digits.isascii() and digits.isdigit()):
        raise GraphFormatError(f"{what} {token!r} is not an integer", line_number)
    return int(token)


def parse_edge_labels(lines: Lines) -> Dict[Tuple[int, int], int]:
    """
    Parse `<source> <target> <edge_label>` lines.

    Raises:
        GraphFormatError: On a wrong field count, a non-integer field or a
                          pair labeled twice
    """
    edge_labels: Dict[Tuple[int, int], int] = {}
    for number, tokens in _content_lines(lines):
        if len(tokens) != 3:
            raise GraphFormatError(f"expected 3 fields, found {len(tokens)}", number)
        source = _parse_int(tokens[0], "source", number)
        target = _parse_int(tokens[1], "target", number)
        label = _parse_int(tokens[2], "edge label", number, signed=True)
        if (source, target) in edge_labels:
            raise GraphFormatError(f"edge {source} -> {target} labeled twice", number)
        edge_labels[(source, target)] = label
    return edge_labels


def parse_graph(
    lines: Lines,
    edge_label_lines: Optional[Lines] = None,
    dual: bool = False,
) -> LabeledGraph:
    """
    Parse vertex lines (and optional edge-label lines) into a LabeledGraph.

    Args:
        lines: Vertex lines `<id> <label> <child>...`
        edge_label_lines: Optional `<source> <target> <label>` lines
        dual: Build parent sets

    Raises:
        GraphFormatError: If a line is malformed or ids are not dense
        InvalidGraphError: If a child or labeled edge references a missing vertex
    """
    labels: List[int] = []
    children: List[List[int]] = []

    for number, tokens in _content_lines(lines):
        if len(tokens) < 2:
            raise GraphFormatError("expected '<id> <label> [children...]'", number)
        vertex = _parse_int(tokens[0], "vertex id", number)
        if vertex != len(labels):
            raise GraphFormatError(f"expected vertex id {len(labels)}, found {vertex}", number)
        labels.append(_parse_int(tokens[1], "label", number, signed=True))
        children.append([_parse_int(t, "child id", number) for t in tokens[2:]])

    edge_labels = parse_edge_labels(edge_label_lines) if edge_label_lines is not None else None
    return LabeledGraph(labels, children, edge_labels=edge_labels, dual=dual)


def load_graph(
    path: PathLike,
    edge_label_path: Optional[PathLike] = None,
    dual: bool = False,
) -> LabeledGraph:
    """
    Load a graph from disk.

    Args:
        path: Vertex file
        edge_label_path: Optional edge-label file
        dual: Build parent sets

    Raises:
        GraphFormatError: If a line is malformed or not valid UTF-8
        InvalidGraphError: If the parsed graph violates a structural invariant
    """
    path = Path(path)
    with open(path, "rb") as f:
        if edge_label_path is None:
            graph = parse_graph(f, dual=dual)
        else:
            with open(edge_label_path, "rb") as g:
                graph = parse_graph(f, g, dual=dual)
    logger.info("Loaded %r from %s", graph, path)
    return graph


# =============================================================================
# WRITING
# =============================================================================

def format_graph(graph: LabeledGraph) -> List[str]:
    """Vertex lines for a graph, children in ascending order."""
    return [
        " ".join(str(x) for x in [v, graph.label_of(v), *sorted(graph.children_of(v))])
        for v in graph.vertices()
    ]


def format_edge_labels(graph: LabeledGraph) -> List[str]:
    """Edge-label lines in (source, target) order; empty if unlabeled."""
    lines = []
    for source, target in graph.edges():
        label = graph.get_edge_label(source, target)
        if label is not None:
            lines.append(f"{source} {target} {label}")
    return lines


def save_graph(
    graph: LabeledGraph,
    path: PathLike,
    edge_label_path: Optional[PathLike] = None,
) -> None:
    """
    Write a graph to disk.

    Edge labels are written only when edge_label_path is given.
    """
    Path(path).write_text("\n".join(format_graph(graph)) + "\n", encoding="utf-8")
    if edge_label_path is not None:
        lines = format_edge_labels(graph)
        Path(edge_label_path).write_text(
            "\n".join(lines) + ("\n" if lines else ""), encoding="utf-8"
        )
    logger.info("Saved %r to %s", graph, path)

"""
Connection Graph Builder

Derives an undirected weighted graph of related notes for visualization.

Steps:
    1. Take up to ``node_limit`` notes, most recently updated first.
    2. One store round trip computes similarity for every unordered pair
       of candidates with embeddings.
    3. Keep pairs above ``threshold``, strongest first, capped at
       GRAPH_MAX_EDGES.
    4. Drop candidates without any kept edge.

Nothing is cached between calls; for a fixed corpus and threshold the
output is fully reproducible.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from sqlalchemy.ext.asyncio import AsyncSession

from neuralmd.models import Note, NoteSource
from neuralmd.repositories.notes import NoteRepository, note_repository

logger = logging.getLogger(__name__)

DEFAULT_GRAPH_THRESHOLD = 0.3
DEFAULT_NODE_LIMIT = 50
DEFAULT_MAX_EDGES = 500
EDGE_TYPE_SEMANTIC = "semantic"


@dataclass(frozen=True)
class GraphNode:
    id: str
    title: str
    tags: list[str]
    source: NoteSource


@dataclass(frozen=True)
class GraphEdge:
    """Undirected edge; ``source < target`` always holds."""

    source: str
    target: str
    similarity: float
    type: str = EDGE_TYPE_SEMANTIC


@dataclass(frozen=True)
class GraphStats:
    """
    Attributes:
        total_notes: Candidate notes considered.
        connected_notes: Nodes kept (at least one edge).
        connections: Number of edges.
        threshold: Threshold the graph was built with.
    """

    total_notes: int
    connected_notes: int
    connections: int
    threshold: float


@dataclass
class Graph:
    nodes: list[GraphNode] = field(default_factory=list)
    edges: list[GraphEdge] = field(default_factory=list)
    stats: GraphStats | None = None


class GraphBuilder:
    """
    Builds the similarity graph over recently updated notes.

    Usage::

        builder = GraphBuilder(max_edges=settings.GRAPH_MAX_EDGES)
        graph = await builder.build_graph(session, threshold=0.3, node_limit=50)
    """

    def __init__(
        self,
        repository: NoteRepository | None = None,
        max_edges: int = DEFAULT_MAX_EDGES,
    ) -> None:
        self._repository = repository or note_repository
        self._max_edges = max_edges

    async def build_graph(
        self,
        session: AsyncSession,
        threshold: float = DEFAULT_GRAPH_THRESHOLD,
        node_limit: int = DEFAULT_NODE_LIMIT,
    ) -> Graph:
        """
        Build the graph of notes linked by similarity above ``threshold``.

        Args:
            session: Active async database session.
            threshold: Edges need similarity strictly above this, 0..1.
            node_limit: Maximum number of candidate notes.

        Returns:
            Graph with connected nodes only, edges strongest first, and stats.
        """
        if not 0.0 <= threshold <= 1.0:
            raise ValueError(f"threshold must be between 0 and 1, got {threshold}")
        if node_limit < 1:
            raise ValueError(f"node_limit must be positive, got {node_limit}")

        candidates = list(await self._repository.list_recent(session, node_limit))
        candidate_ids = [note.id for note in candidates]

        pairs = await self._repository.similarity_pairs(
            session,
            candidate_ids,
            threshold=threshold,
            limit=self._max_edges,
        )
        edges = self._build_edges(pairs, set(candidate_ids), threshold)

        connected_ids = {e.source for e in edges} | {e.target for e in edges}
        nodes = [_to_node(note) for note in candidates if note.id in connected_ids]

        stats = GraphStats(
            total_notes=len(candidates),
            connected_notes=len(nodes),
            connections=len(edges),
            threshold=threshold,
        )
        logger.info(
            "Graph built: %d/%d notes connected by %d edges (threshold=%.2f)",
            stats.connected_notes,
            stats.total_notes,
            stats.connections,
            threshold,
        )
        return Graph(nodes=nodes, edges=edges, stats=stats)

    def _build_edges(
        self,
        pairs: list[tuple[str, str, float]],
        candidate_ids: set[str],
        threshold: float,
    ) -> list[GraphEdge]:
        strongest: dict[tuple[str, str], float] = {}
        for first, second, similarity in pairs:
            # NaN from degenerate vectors fails ">" and is dropped
            if first == second or not similarity > threshold:
                continue
            if first not in candidate_ids or second not in candidate_ids:
                continue
            key = (first, second) if first < second else (second, first)
            strongest[key] = max(similarity, strongest.get(key, similarity))

        ranked = sorted(strongest.items(), key=lambda item: (-item[1], item[0]))
        return [
            GraphEdge(source=source, target=target, similarity=similarity)
            for (source, target), similarity in ranked[: self._max_edges]
        ]


def _to_node(note: Note) -> GraphNode:
    return GraphNode(
        id=note.id,
        title=note.title,
        tags=list(note.tags or []),
        source=note.source,
    )

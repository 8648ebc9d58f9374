"""
Search API Router

HTTP endpoints exposing the semantic core to the UI and agent clients.

Endpoints:
    POST /search  - Semantic search with automatic text fallback.
    GET  /graph   - Similarity graph of recently updated notes.
"""

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from neuralmd.core.config import settings
from neuralmd.core.database import get_db
from neuralmd.schemas.notes import (
    GraphEdgeRead,
    GraphNodeRead,
    GraphResponse,
    GraphStatsRead,
    NoteRead,
    SearchRequest,
    SearchResponse,
    SearchResultItem,
)
from neuralmd.services.embeddings import EmbeddingService
from neuralmd.services.graph import GraphBuilder
from neuralmd.services.search import SearchService

router = APIRouter()


# ---------------------------------------------------------------------------
# Dependencies
# ---------------------------------------------------------------------------


def get_embedding_service(request: Request) -> EmbeddingService:
    """FastAPI dependency: the EmbeddingService built in the app lifespan."""
    return request.app.state.embedding_service


def get_search_service(
    embeddings: EmbeddingService = Depends(get_embedding_service),
) -> SearchService:
    """FastAPI dependency: returns a SearchService bound to the active provider."""
    return SearchService(embeddings)


def get_graph_builder() -> GraphBuilder:
    """FastAPI dependency: returns a GraphBuilder instance."""
    return GraphBuilder(max_edges=settings.GRAPH_MAX_EDGES)


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------


@router.post("/search", response_model=SearchResponse)
async def search_notes(
    search_req: SearchRequest,
    db: AsyncSession = Depends(get_db),
    service: SearchService = Depends(get_search_service),
):
    """
    Search notes by meaning.

    Embeds the query with the configured provider and ranks notes by
    cosine similarity. If embeddings are disabled or the provider fails,
    returns case-insensitive text matches instead (``search_type='text'``,
    ``similarity=null``). Embedding problems never surface as errors.
    """
    results = await service.search(
        db,
        search_req.query,
        limit=search_req.limit,
        threshold=search_req.threshold,
        tags=search_req.tags,
    )

    items = [
        SearchResultItem(
            **NoteRead.model_validate(hit.note).model_dump(),
            similarity=hit.similarity,
        )
        for hit in results.hits
    ]
    return SearchResponse(
        query=results.query,
        results=items,
        count=len(items),
        search_type=results.search_type,
    )


@router.get("/graph", response_model=GraphResponse)
async def get_graph(
    threshold: float = Query(0.3, ge=0.0, le=1.0, description="Minimum similarity"),
    limit: int = Query(50, ge=1, le=500, description="Maximum candidate notes"),
    db: AsyncSession = Depends(get_db),
    builder: GraphBuilder = Depends(get_graph_builder),
):
    """
    Similarity graph for visualization.

    Nodes are notes with at least one connection above ``threshold``
    among the ``limit`` most recently updated notes.
    """
    graph = await builder.build_graph(db, threshold=threshold, node_limit=limit)

    return GraphResponse(
        nodes=[GraphNodeRead.model_validate(node) for node in graph.nodes],
        edges=[GraphEdgeRead.model_validate(edge) for edge in graph.edges],
        stats=GraphStatsRead.model_validate(graph.stats),
    )

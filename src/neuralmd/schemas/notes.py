"""
Note Schemas

Pydantic models for the search and graph API request/response cycle.
Separates concerns: SearchRequest (input), SearchResponse/GraphResponse (output).
"""

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

from neuralmd.models import NoteSource


class NoteRead(BaseModel):
    """Full Note representation (embedding omitted)."""

    id: str
    title: str
    content: str
    tags: list[str] = Field(default_factory=list)
    source: NoteSource
    source_ref: str | None = None
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)  # Enables ORM model conversion


class SearchRequest(BaseModel):
    """Request schema for the search endpoint."""

    query: str = Field(
        ...,
        min_length=1,
        description="Search query text",
    )
    limit: int = Field(
        default=10,
        ge=1,
        le=100,
        description="Maximum number of results",
    )
    threshold: float = Field(
        default=0.3,
        ge=0.0,
        le=1.0,
        description="Minimum similarity (exclusive) for semantic results",
    )
    tags: list[str] | None = Field(
        default=None,
        description="Only notes sharing at least one of these tags",
    )


class SearchResultItem(NoteRead):
    """A note plus its similarity to the query (null for text matches)."""

    similarity: float | None = None


class SearchResponse(BaseModel):
    query: str
    results: list[SearchResultItem]
    count: int
    search_type: Literal["semantic", "text"] = Field(
        description="'semantic' (vector search) or 'text' (lexical fallback)",
    )


class GraphNodeRead(BaseModel):
    id: str
    title: str
    tags: list[str]
    source: NoteSource

    model_config = ConfigDict(from_attributes=True)


class GraphEdgeRead(BaseModel):
    source: str = Field(description="Note id, always lower than target")
    target: str
    similarity: float
    type: str = "semantic"

    model_config = ConfigDict(from_attributes=True)


class GraphStatsRead(BaseModel):
    total_notes: int = Field(description="Candidate notes considered")
    connected_notes: int = Field(description="Notes with at least one edge")
    connections: int = Field(description="Number of edges")
    threshold: float

    model_config = ConfigDict(from_attributes=True)


class GraphResponse(BaseModel):
    nodes: list[GraphNodeRead]
    edges: list[GraphEdgeRead]
    stats: GraphStatsRead

    model_config = ConfigDict(from_attributes=True)

"""
Graph Builder Unit Tests

Edge selection, node pruning, candidate window and edge cap, run against
the in-memory note repository.
"""

from __future__ import annotations

import math

import pytest

from neuralmd.services.graph import GraphBuilder
from tests.fakes import VECTOR_X, VECTOR_Y, FakeNoteRepository, make_note

X, Y, Z = "x" * 8, "y" * 8, "z" * 8


class TestScenarioGraph:
    @pytest.mark.asyncio
    async def test_only_related_notes_are_connected(self, scenario_repository) -> None:
        builder = GraphBuilder(scenario_repository)

        graph = await builder.build_graph(None, threshold=0.3, node_limit=10)

        assert [(e.source, e.target) for e in graph.edges] == [(X, Y)]
        assert graph.edges[0].similarity == pytest.approx(0.6)
        assert graph.edges[0].type == "semantic"
        assert {node.id for node in graph.nodes} == {X, Y}
        assert graph.stats.total_notes == 3
        assert graph.stats.connected_notes == 2
        assert graph.stats.connections == 1
        assert graph.stats.threshold == 0.3

    @pytest.mark.asyncio
    async def test_nodes_carry_note_metadata(self, scenario_repository) -> None:
        graph = await GraphBuilder(scenario_repository).build_graph(None)

        by_id = {node.id: node for node in graph.nodes}
        assert by_id[Y].title == "deep learning intro"
        assert by_id[Y].tags == ["ml", "dl"]

    @pytest.mark.asyncio
    async def test_edges_are_unique_and_ordered(self, scenario_repository) -> None:
        graph = await GraphBuilder(scenario_repository).build_graph(
            None, threshold=0.0, node_limit=10
        )

        pairs = [(e.source, e.target) for e in graph.edges]
        assert len(pairs) == len(set(pairs)) == 3
        assert all(source < target for source, target in pairs)
        similarities = [e.similarity for e in graph.edges]
        assert similarities == sorted(similarities, reverse=True)
        assert all(s > 0.0 for s in similarities)

    @pytest.mark.asyncio
    async def test_no_isolated_nodes(self, scenario_repository) -> None:
        graph = await GraphBuilder(scenario_repository).build_graph(
            None, threshold=0.5, node_limit=10
        )

        endpoints = {e.source for e in graph.edges} | {e.target for e in graph.edges}
        assert {node.id for node in graph.nodes} == endpoints

    @pytest.mark.asyncio
    async def test_high_threshold_gives_empty_graph(self, scenario_repository) -> None:
        graph = await GraphBuilder(scenario_repository).build_graph(
            None, threshold=0.9, node_limit=10
        )

        assert graph.nodes == []
        assert graph.edges == []
        assert graph.stats.total_notes == 3
        assert graph.stats.connected_notes == 0

    @pytest.mark.asyncio
    async def test_is_deterministic(self, scenario_repository) -> None:
        builder = GraphBuilder(scenario_repository)

        first = await builder.build_graph(None, threshold=0.0, node_limit=10)
        second = await builder.build_graph(None, threshold=0.0, node_limit=10)

        assert first == second


class TestCandidateWindow:
    @pytest.mark.asyncio
    async def test_node_limit_takes_most_recent(self, scenario_repository) -> None:
        graph = await GraphBuilder(scenario_repository).build_graph(
            None, threshold=0.3, node_limit=2
        )

        # Z and Y are the two most recent; X falls outside the window
        assert scenario_repository.pair_queries == [[Z, Y]]
        assert graph.edges == []
        assert graph.stats.total_notes == 2

    @pytest.mark.asyncio
    async def test_edge_cap_keeps_strongest(self, scenario_repository) -> None:
        builder = GraphBuilder(scenario_repository, max_edges=1)

        graph = await builder.build_graph(None, threshold=0.0, node_limit=10)

        assert [(e.source, e.target) for e in graph.edges] == [(X, Y)]
        assert {node.id for node in graph.nodes} == {X, Y}

    @pytest.mark.asyncio
    async def test_notes_without_embedding_are_not_connected(
        self, scenario_notes
    ) -> None:
        pending = make_note("p" * 8, "unembedded", "pending", None, minutes_ago=1)
        repository = FakeNoteRepository([*scenario_notes, pending])

        graph = await GraphBuilder(repository).build_graph(
            None, threshold=0.0, node_limit=10
        )

        assert pending.id not in {node.id for node in graph.nodes}
        assert graph.stats.total_notes == 4

    @pytest.mark.asyncio
    async def test_mixed_dimensions_are_not_compared(self) -> None:
        repository = FakeNoteRepository(
            [
                make_note("a" * 8, "new", "", VECTOR_X, minutes_ago=1),
                make_note("b" * 8, "legacy", "", [1.0, 0.0], minutes_ago=2),
                make_note("c" * 8, "new too", "", VECTOR_Y, minutes_ago=3),
            ]
        )

        graph = await GraphBuilder(repository).build_graph(
            None, threshold=0.0, node_limit=10
        )

        assert [(e.source, e.target) for e in graph.edges] == [("a" * 8, "c" * 8)]


class _UnorderedPairsRepository(FakeNoteRepository):
    """Returns reversed and duplicated pairs, plus one outside the candidates."""

    async def similarity_pairs(self, session, note_ids, *, threshold, limit):
        return [
            (Y, X, 0.6),
            (X, Y, 0.6),
            (X, X, 1.0),
            (X, "outsider", 0.9),
            (Y, Z, 0.2),
        ]


@pytest.mark.asyncio
async def test_store_pairs_are_normalized(scenario_notes) -> None:
    builder = GraphBuilder(_UnorderedPairsRepository(scenario_notes))

    graph = await builder.build_graph(None, threshold=0.3, node_limit=10)

    assert [(e.source, e.target, e.similarity) for e in graph.edges] == [
        (X, Y, 0.6)
    ]


@pytest.mark.asyncio
@pytest.mark.parametrize(
    ("threshold", "node_limit"), [(-0.1, 10), (1.1, 10), (0.3, 0)]
)
async def test_invalid_arguments(threshold, node_limit) -> None:
    with pytest.raises(ValueError):
        await GraphBuilder(FakeNoteRepository()).build_graph(
            None, threshold=threshold, node_limit=node_limit
        )


@pytest.mark.asyncio
async def test_empty_store() -> None:
    graph = await GraphBuilder(FakeNoteRepository()).build_graph(None)

    assert graph.nodes == []
    assert graph.edges == []
    assert graph.stats.total_notes == 0


class _DegeneratePairsRepository(FakeNoteRepository):
    """Pair scores as PostgreSQL reports them for a zero vector."""

    async def similarity_pairs(self, session, note_ids, *, threshold, limit):
        return [(X, Z, math.nan), (X, Y, 0.6)]


@pytest.mark.asyncio
async def test_nan_similarity_is_not_an_edge(scenario_notes) -> None:
    builder = GraphBuilder(_DegeneratePairsRepository(scenario_notes))

    graph = await builder.build_graph(None, threshold=0.3, node_limit=10)

    assert [(e.source, e.target) for e in graph.edges] == [(X, Y)]
    assert all(math.isfinite(e.similarity) for e in graph.edges)
    assert Z not in {node.id for node in graph.nodes}


@pytest.mark.asyncio
async def test_zero_vector_note_is_not_connected(scenario_notes) -> None:
    zero = make_note("0" * 8, "blank", "", [0.0, 0.0, 0.0], minutes_ago=1)
    repository = FakeNoteRepository([*scenario_notes, zero])

    graph = await GraphBuilder(repository).build_graph(
        None, threshold=0.0, node_limit=10
    )

    assert zero.id not in {node.id for node in graph.nodes}

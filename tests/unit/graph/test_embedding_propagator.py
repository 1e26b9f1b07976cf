"""Unit tests for embedding propagation."""

import numpy as np
import pytest

from trustweave.models.graph import (
    EmbeddingPropagator,
    GraphBuilder,
    GraphNode,
    NodeType,
    PropagatorConfig,
    TransactionGraph,
    extract_node_features,
    node_key,
)


@pytest.fixture
def graph(make_transaction):
    return GraphBuilder().build([
        make_transaction("txn_a", category="atm"),
        make_transaction("txn_b", merchant_id="m2", category="food"),
    ])


class TestNodeFeatures:
    """Tests for extract_node_features."""

    def test_merchant_category_one_hot(self):
        node = GraphNode("m", NodeType.MERCHANT, (("category", "ATM"),))
        features = extract_node_features(node)

        assert features.shape == (10,)
        assert features[1] == 1.0
        assert features[4] == 1.0
        assert features[2] == 0.0

    def test_location_coordinates_normalized(self):
        node = GraphNode("NYC_US", NodeType.LOCATION, (("lat", 45.0), ("lng", -90.0)))
        features = extract_node_features(node)

        assert features[6] == 1.0
        assert features[7] == pytest.approx(0.5)
        assert features[8] == pytest.approx(-0.5)


class TestEmbeddingPropagator:
    """Tests for EmbeddingPropagator.propagate."""

    def test_every_node_embedded_with_64_dims(self, graph):
        embeddings = EmbeddingPropagator(PropagatorConfig(seed=1)).propagate(graph)

        assert set(embeddings) == set(graph.nodes)
        for embedding in embeddings.values():
            assert embedding.vector.shape == (64,)

    def test_values_bounded_by_tanh(self, graph):
        embeddings = EmbeddingPropagator(PropagatorConfig(seed=1, weight_scale=5.0)).propagate(graph)
        for embedding in embeddings.values():
            assert np.all(np.abs(embedding.vector) <= 1.0)

    def test_same_seed_same_embeddings(self, graph):
        first = EmbeddingPropagator(PropagatorConfig(seed=3)).propagate(graph)
        second = EmbeddingPropagator(PropagatorConfig(seed=3)).propagate(graph)

        for key in first:
            np.testing.assert_array_equal(first[key].vector, second[key].vector)

    def test_empty_graph(self):
        assert EmbeddingPropagator(PropagatorConfig(seed=1)).propagate(TransactionGraph()) == {}

    def test_isolated_node_uses_zero_aggregate(self):
        graph = TransactionGraph()
        node = GraphNode("lonely", NodeType.USER)
        graph.add_node(node)
        propagator = EmbeddingPropagator(PropagatorConfig(seed=5))

        embedding = propagator.propagate(graph)[node.key]
        features = np.concatenate([extract_node_features(node), np.zeros(10)])
        expected = np.tanh(features @ propagator.weights[0])
        np.testing.assert_allclose(embedding.vector, expected)

    def test_multiple_layers(self, graph):
        propagator = EmbeddingPropagator(PropagatorConfig(seed=1, num_layers=2))

        assert [w.shape for w in propagator.weights] == [(20, 64), (128, 64)]
        embeddings = propagator.propagate(graph)
        assert embeddings[node_key(NodeType.USER, "user_001")].vector.shape == (64,)

    def test_load_weights_validates_shape(self):
        propagator = EmbeddingPropagator(PropagatorConfig(seed=1))
        with pytest.raises(ValueError):
            propagator.load_weights([np.zeros((10, 64))])

    def test_zero_layers_rejected(self):
        with pytest.raises(ValueError):
            EmbeddingPropagator(PropagatorConfig(num_layers=0))

import pytest

from force_graph.graph_model import GraphModel
from force_graph.overlay import SelectionOverlay
from force_graph.position import PositionResolver
from force_graph.reconciler import TopologyReconciler
from force_graph.simulation import ForceDirectedGraph


@pytest.fixture
def model():
    return GraphModel()


@pytest.fixture
def simulation():
    return ForceDirectedGraph(seed=7)


@pytest.fixture
def overlay(model):
    return SelectionOverlay(model)


@pytest.fixture
def sent_events():
    return []


@pytest.fixture
def reconciler(model, simulation, overlay, sent_events):
    return TopologyReconciler(
        model, simulation, resolver=PositionResolver(), overlay=overlay,
        send_event=lambda name, payload: sent_events.append((name, payload)))

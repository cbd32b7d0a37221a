import math

from force_graph.models import Device, RegionLink
from force_graph.simulation import ForceDirectedGraph

from factories import device, link


def build(seed=3, **kwargs):
    simulation = ForceDirectedGraph(seed=seed, **kwargs)
    nodes = [Device.from_dict(device(f'd{i}')) for i in range(4)]
    links = [RegionLink.from_dict(link('d0', 'd1')), RegionLink.from_dict(link('d1', 'd2'))]
    for l in links:
        l.source, l.target = l.node_a, l.node_b
    simulation.nodes = nodes
    simulation.links = links
    return simulation, nodes


def test_tick_without_reinit_does_nothing():
    simulation, nodes = build()

    assert not simulation.tick()
    assert all(n.x is None for n in nodes)


def test_reinit_seeds_positions_and_steps():
    simulation, nodes = build()

    simulation.reinit_simulation()
    assert simulation.tick()

    for node in nodes:
        assert math.isfinite(node.x) and math.isfinite(node.y)
        assert node.vx is not None
    assert simulation.alpha < 1.0
    assert simulation.tick_count == 1


def test_pinned_nodes_stay_put():
    simulation, nodes = build()
    nodes[0].fx, nodes[0].fy = 10.0, 20.0

    simulation.reinit_simulation()
    simulation.tick()
    simulation.tick()

    assert (nodes[0].x, nodes[0].y) == (10.0, 20.0)
    assert (nodes[0].vx, nodes[0].vy) == (0.0, 0.0)


def test_simulation_cools_down():
    simulation, _ = build(alpha_decay=0.3)

    simulation.reinit_simulation()
    ticks = simulation.run_until_settled(max_ticks=100)

    assert 0 < ticks < 100
    assert not simulation.running
    assert not simulation.tick()


def test_subscribers_are_called_each_tick():
    simulation, _ = build()
    calls = []
    simulation.subscribe(lambda sim: calls.append(sim.tick_count))

    simulation.reinit_simulation()
    simulation.tick()
    simulation.tick()

    assert calls == [1, 2]


def test_restart_reheats_without_reseeding():
    simulation, nodes = build()
    simulation.reinit_simulation()
    simulation.tick()
    simulation.stop()
    positions = [(n.x, n.y) for n in nodes]

    simulation.restart_simulation()

    assert simulation.running
    assert [(n.x, n.y) for n in nodes] == positions


def test_empty_node_list_never_steps():
    simulation = ForceDirectedGraph(seed=1)

    simulation.reinit_simulation()

    assert not simulation.tick()

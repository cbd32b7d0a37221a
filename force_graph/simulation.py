"""
Force Directed Graph Simulation

Drives the layout of the shared node list. The spring/charge solving is done
by networkx's Fruchterman-Reingold implementation; this class only decides
what it runs on and when it runs.
"""
import logging
import random
import threading
from typing import Callable, Dict, List, Optional

import networkx as nx

from force_graph.models import Node, RegionLink
from utils.config import Config


class ForceDirectedGraph:
    """Force simulation over the nodes and links of the visible layer"""

    def __init__(self, width: float = Config.CANVAS_WIDTH, height: float = Config.CANVAS_HEIGHT,
                 alpha_min: float = Config.ALPHA_MIN, alpha_decay: float = Config.ALPHA_DECAY,
                 iterations: int = Config.ITERATIONS_PER_TICK, seed: Optional[int] = None):
        """Initialize force simulation"""
        self.width = width
        self.height = height
        self.alpha_min = alpha_min
        self.alpha_decay = alpha_decay
        self.iterations = iterations
        self.alpha = 0.0
        self.nodes: List[Node] = []
        self.links: List[RegionLink] = []
        self.tick_count = 0
        self._graph = nx.Graph()
        self._reseed_pending = False
        self._subscribers: List[Callable[['ForceDirectedGraph'], None]] = []
        self._random = random.Random(seed)
        self._lock = threading.RLock()
        self.logger = logging.getLogger(__name__)

    @property
    def lock(self):
        """Held while stepping; structural changes take it too"""
        return self._lock

    @property
    def running(self) -> bool:
        return self.alpha >= self.alpha_min

    def subscribe(self, callback: Callable[['ForceDirectedGraph'], None]):
        """Call ``callback`` after every tick"""
        self._subscribers.append(callback)

    def reinit_simulation(self):
        """The node or link set changed: reseed on the next tick and reheat"""
        with self._lock:
            self._reseed_pending = True
            self.alpha = 1.0

    def restart_simulation(self):
        """Reheat without rebuilding, e.g. after the canvas was resized"""
        with self._lock:
            self.alpha = max(self.alpha, 0.3)

    def stop(self):
        with self._lock:
            self.alpha = 0.0

    def _reseed(self):
        graph = nx.Graph()
        for node in self.nodes:
            if node.x is None or node.y is None:
                # New nodes start where they are pinned or at a random point
                node.x = node.fx if node.fx is not None else self._random.uniform(0, self.width)
                node.y = node.fy if node.fy is not None else self._random.uniform(0, self.height)
                node.vx = node.vy = 0.0
            graph.add_node(node.id)
        for link in self.links:
            if link.source in graph and link.target in graph and link.source != link.target:
                graph.add_edge(link.source, link.target)
        self._graph = graph
        self._reseed_pending = False
        self.logger.debug(f"Simulation reseeded with {graph.number_of_nodes()} nodes, "
                          f"{graph.number_of_edges()} links")

    def tick(self) -> bool:
        """
        Advance the layout by one step

        Returns:
            bool: Whether positions were updated
        """
        with self._lock:
            if self._reseed_pending:
                self._reseed()
            if not self.running or not self.nodes:
                return False

            by_id: Dict[str, Node] = {node.id: node for node in self.nodes}
            pos = {}
            fixed = []
            for node_id in self._graph.nodes:
                node = by_id.get(node_id)
                if node is None:
                    continue
                if node.pinned:
                    pos[node_id] = (node.fx, node.fy)
                    fixed.append(node_id)
                else:
                    pos[node_id] = (node.x, node.y)

            if len(pos) > 1:
                k = self.width / max(len(pos) ** 0.5, 1.0) * 0.5
                new_pos = nx.spring_layout(
                    self._graph.subgraph(pos.keys()),
                    k=k,
                    pos=pos,
                    fixed=fixed or None,
                    iterations=self.iterations,
                    scale=None,
                    seed=self._random.randint(0, 2 ** 31 - 1),
                )
            else:
                new_pos = pos

            # Only the solver's share of the move, scaled by the cooling alpha
            for node_id, (nx_, ny_) in new_pos.items():
                node = by_id[node_id]
                if node.pinned:
                    node.vx = node.vy = 0.0
                    node.x, node.y = node.fx, node.fy
                    continue
                dx = (float(nx_) - node.x) * self.alpha
                dy = (float(ny_) - node.y) * self.alpha
                node.vx, node.vy = dx, dy
                node.x += dx
                node.y += dy

            self.alpha += (0.0 - self.alpha) * self.alpha_decay
            self.tick_count += 1

        for callback in self._subscribers:
            try:
                callback(self)
            except Exception as e:
                self.logger.error(f"Tick subscriber failed: {str(e)}")
        return True

    def run_until_settled(self, max_ticks: int = 300) -> int:
        """Tick until alpha cools down; returns the number of ticks run"""
        ticks = 0
        while ticks < max_ticks and self.tick():
            ticks += 1
        return ticks

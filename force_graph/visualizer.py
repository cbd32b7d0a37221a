"""
Network Topology Visualization
"""
import io
import logging
from typing import Dict, Optional

import matplotlib
matplotlib.use('Agg')
import matplotlib.pyplot as plt
import networkx as nx

from force_graph.graph_model import GraphModel
from force_graph.models import Host, SubRegion
from force_graph.overlay import SelectionOverlay
from utils.config import Config


class NetworkVisualizer:
    """Turns the graph model into browser snapshots and PNG images"""

    def __init__(self):
        """Initialize visualizer"""
        self.logger = logging.getLogger(__name__)
        self.node_styles = {
            'device': {
                'color': '#2196F3',
                'size': 30,
                'label': 'Device'
            },
            'host': {
                'color': '#4CAF50',
                'size': 20,
                'label': 'Host'
            },
            'region': {
                'color': '#9C27B0',
                'size': 40,
                'label': 'Region'
            }
        }
        self.edge_styles = {
            'normal': {
                'color': '#666',
                'width': 2
            },
            'down': {
                'color': '#FF5252',
                'width': 2,
                'dashes': True
            }
        }
        self.selected_color = '#FFC107'

    def _node_kind(self, node) -> str:
        if isinstance(node, Host):
            return 'host'
        if isinstance(node, SubRegion):
            return 'region'
        return 'device'

    def get_visualization_data(self, model: GraphModel, overlay: Optional[SelectionOverlay] = None) -> Dict:
        """
        Get visualization data

        Args:
            model: Graph model to render
            overlay: Selection and highlight state

        Returns:
            Dict: Nodes with their current positions, links with resolved
            endpoints, and the overlay state
        """
        show_hosts = overlay.show_hosts if overlay is not None else True
        nodes = []
        for node in model.nodes:
            if isinstance(node, Host) and not show_hosts:
                continue
            kind = self._node_kind(node)
            entry = node.to_dict(include_transient=True)
            entry['style'] = self.node_styles[kind]
            nodes.append(entry)

        edges = []
        for link in model.filtered_links(show_hosts):
            entry = link.to_dict(include_transient=True)
            entry['style'] = self.get_edge_style(link.online)
            edges.append(entry)

        vis_data = {
            'nodes': nodes,
            'edges': edges,
            'layer': model.visible_layer.value,
        }
        if overlay is not None:
            vis_data.update(overlay.to_dict())
        return vis_data

    def render(self, model: GraphModel, overlay: Optional[SelectionOverlay] = None,
               fmt: str = 'png') -> bytes:
        """
        Draw the current layout with matplotlib

        Args:
            model: Graph model to render
            overlay: Selection state; selected nodes are drawn highlighted
            fmt: Image format understood by matplotlib

        Returns:
            bytes: Encoded image
        """
        graph = nx.Graph()
        pos = {}
        colors = []
        sizes = []
        selected = set(overlay.selected) if overlay is not None else set()
        for node in model.nodes:
            if node.x is None or node.y is None:
                continue
            kind = self._node_kind(node)
            graph.add_node(node.id)
            # Canvas y grows downwards
            pos[node.id] = (node.x, Config.CANVAS_HEIGHT - node.y)
            colors.append(self.selected_color if node.id in selected else self.node_styles[kind]['color'])
            sizes.append(self.node_styles[kind]['size'] * 10)

        edgelist = []
        edge_colors = []
        styles = []
        for link in model.links:
            if link.source in pos and link.target in pos:
                graph.add_edge(link.source, link.target)
                edgelist.append((link.source, link.target))
                style = self.get_edge_style(link.online)
                edge_colors.append(style['color'])
                styles.append('dashed' if style.get('dashes') else 'solid')

        fig, ax = plt.subplots(figsize=(8, 8))
        try:
            ax.set_axis_off()
            nx.draw_networkx_nodes(graph, pos, ax=ax, node_color=colors, node_size=sizes)
            nx.draw_networkx_edges(graph, pos, edgelist=edgelist, ax=ax, edge_color=edge_colors or '#666',
                                   style=styles or 'solid')
            labels = {n.id: getattr(n, 'name', None) or n.id for n in model.nodes if n.id in pos}
            nx.draw_networkx_labels(graph, pos, labels=labels, ax=ax, font_size=7)
            buffer = io.BytesIO()
            fig.savefig(buffer, format=fmt, bbox_inches='tight')
        finally:
            plt.close(fig)
        return buffer.getvalue()

    def get_node_style(self, node_type: str) -> Dict:
        """
        Get node style

        Args:
            node_type: Node type ('device', 'host' or 'region')

        Returns:
            Dict: Node style
        """
        return self.node_styles.get(node_type, {})

    def get_edge_style(self, is_live: bool) -> Dict:
        """
        Get edge style

        Args:
            is_live: Whether the link is active

        Returns:
            Dict: Edge style
        """
        return self.edge_styles['normal' if is_live else 'down']

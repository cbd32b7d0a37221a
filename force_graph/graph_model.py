"""
Graph Model

The nodes and links of the region currently in view. Nodes are kept in one
list that the force simulation shares by reference, plus an id index that
links use to resolve their endpoints.
"""
import logging
from typing import Dict, List, Optional

from force_graph.models import (
    Device,
    EndpointNotFound,
    Host,
    LayerType,
    Node,
    NodeType,
    Region,
    RegionLink,
)


class GraphModel:
    """Authoritative node and link collections for the visible layer"""

    def __init__(self, visible_layer: LayerType = LayerType.LAYER_DEFAULT):
        """Initialize graph model"""
        self.region = Region()
        self.visible_layer = visible_layer
        self.nodes: List[Node] = []           # Shared with the simulation
        self.links: List[RegionLink] = []     # Resolved links of the visible layer
        self._index: Dict[str, Node] = {}     # id -> node
        self.logger = logging.getLogger(__name__)

    def visible_layer_idx(self) -> int:
        """Index of the visible layer in the region's per-layer arrays"""
        return self.visible_layer.layer_index

    def layer_devices(self) -> List[Device]:
        return self.region.devices[self.visible_layer_idx()]

    def layer_hosts(self) -> List[Host]:
        return self.region.hosts[self.visible_layer_idx()]

    def replace_region(self, region: Region) -> List[RegionLink]:
        """
        Replace the whole region and resolve every link against its nodes

        Args:
            region: New region snapshot

        Returns:
            List[RegionLink]: Links dropped because an endpoint is missing
        """
        self.region = region
        nodes: List[Node] = []
        nodes.extend(self.layer_devices())
        nodes.extend(self.layer_hosts())
        nodes.extend(region.sub_regions)
        self.nodes[:] = nodes
        self._index = {node.id: node for node in nodes}

        kept = []
        dropped = []
        for link in region.links:
            try:
                self._resolve(link)
            except EndpointNotFound as e:
                self.logger.error(f"Dropping link on region change: {e}")
                link.source = link.target = None
                dropped.append(link)
                continue
            link.index = len(kept)
            kept.append(link)

        # The region keeps every link; the view list object is shared with the simulation
        self.links[:] = kept
        return dropped

    def set_visible_layer(self, layer: LayerType) -> List[RegionLink]:
        """Switch to another layer of the current region"""
        self.visible_layer = layer
        return self.replace_region(self.region)

    def find_node(self, node_id: str) -> Optional[Node]:
        return self._index.get(node_id)

    def __contains__(self, node_id: str) -> bool:
        return node_id in self._index

    def _layer_array(self, node: Node) -> List:
        if isinstance(node, Host) or node.node_type == NodeType.HOST:
            return self.layer_hosts()
        if isinstance(node, Device):
            return self.layer_devices()
        return self.region.sub_regions

    def add_node(self, node: Node):
        """
        Add a node to the visible layer

        Args:
            node: New device, host or sub-region
        """
        self._layer_array(node).append(node)
        node.index = len(self.nodes)
        self.nodes.append(node)
        self._index[node.id] = node

    def find_in_layer(self, node_id: str, node_type: NodeType) -> Optional[Node]:
        """Look a node up in the layer array that holds nodes of ``node_type``"""
        array = self.layer_hosts() if node_type == NodeType.HOST else self.layer_devices()
        return next((n for n in array if n.id == node_id), None)

    def remove_node(self, node_id: str, node_type: NodeType) -> Optional[Node]:
        """
        Remove a device or host and every link attached to it

        Args:
            node_id: Id of the node
            node_type: NodeType.DEVICE or NodeType.HOST

        Returns:
            Optional[Node]: The removed node, None if it was not tracked
        """
        node = self.find_in_layer(node_id, node_type)
        if node is None:
            return None
        array = self._layer_array(node)
        array[:] = [n for n in array if n is not node]
        self.nodes[:] = [n for n in self.nodes if n is not node]
        for idx, remaining in enumerate(self.nodes):
            remaining.index = idx
        self._index.pop(node_id, None)
        self.remove_related_links(node_id)
        return node

    def find_link(self, link_id: str) -> Optional[RegionLink]:
        return next((l for l in self.links if l.id == link_id), None)

    def _resolve(self, link: RegionLink):
        node_a = link.node_a
        if node_a not in self._index:
            raise EndpointNotFound(node_a, link.id)
        node_b = link.node_b
        if node_b not in self._index:
            raise EndpointNotFound(node_b, link.id)
        link.source = node_a
        link.target = node_b

    def add_link(self, link: RegionLink):
        """
        Resolve both endpoints of a link and add it

        Raises:
            EndpointNotFound: If either endpoint is not a node of the layer;
                the link list is left untouched
        """
        self._resolve(link)
        link.index = len(self.links)
        self.links.append(link)
        if link not in self.region.links:
            self.region.links.append(link)

    def remove_link(self, link_id: str) -> Optional[RegionLink]:
        link = self.find_link(link_id)
        if link is not None:
            self.links[:] = [l for l in self.links if l is not link]
            self.region.links[:] = [l for l in self.region.links if l is not link]
        return link

    def remove_related_links(self, node_id: str) -> List[RegionLink]:
        """Remove every link that has ``node_id`` at either end"""
        related = [l for l in self.links if node_id in (l.node_a, l.node_b, l.source, l.target)]
        if related:
            self.links[:] = [l for l in self.links if l not in related]
            self.region.links[:] = [l for l in self.region.links if l not in related]
            for link in related:
                self.logger.debug(f"Link {link.id} removed with node {node_id}")
        return related

    def source(self, link: RegionLink) -> Optional[Node]:
        return self._index.get(link.source)

    def target(self, link: RegionLink) -> Optional[Node]:
        return self._index.get(link.target)

    def filtered_links(self, show_hosts: bool) -> List[RegionLink]:
        """
        Links to render; host links are left out unless hosts are shown

        Args:
            show_hosts: Whether hosts are displayed

        Returns:
            List[RegionLink]: Links to display
        """
        if show_hosts:
            return list(self.links)
        return [
            l for l in self.links
            if not isinstance(self.source(l), Host) and not isinstance(self.target(l), Host)
        ]

    def dangling_links(self) -> List[str]:
        """Ids of links whose source or target is not a current node"""
        return [l.id for l in self.links if l.source not in self._index or l.target not in self._index]

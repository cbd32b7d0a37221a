"""
Topology Reconciler

Applies the controller's model events to the graph model one at a time and
keeps the force simulation fed with the resulting node and link lists.
"""
import logging
from typing import Callable, Dict, List, Optional

from force_graph.diff import ChangeSummary, merge
from force_graph.graph_model import GraphModel
from force_graph.models import (
    Device,
    EndpointNotFound,
    Host,
    LayerType,
    MetaUi,
    ModelEventMemo,
    ModelEventType,
    Node,
    NodeType,
    Region,
    RegionLink,
)
from force_graph.overlay import SelectionOverlay
from force_graph.position import PositionResolver
from force_graph.simulation import ForceDirectedGraph

NODE_EVENTS = {
    ModelEventType.DEVICE_ADDED_OR_UPDATED: (Device, NodeType.DEVICE),
    ModelEventType.HOST_ADDED_OR_UPDATED: (Host, NodeType.HOST),
}

REMOVE_EVENTS = {
    ModelEventType.DEVICE_REMOVED: NodeType.DEVICE,
    ModelEventType.HOST_REMOVED: NodeType.HOST,
}


def parse_event_type(value) -> Optional[ModelEventType]:
    """Model event types arrive by name, e.g. "DEVICE_ADDED_OR_UPDATED" """
    if isinstance(value, ModelEventType):
        return value
    try:
        return ModelEventType[value]
    except (KeyError, TypeError):
        return None


def parse_memo(value):
    """
    Map a wire memo onto ModelEventMemo

    None stays None (memo absent). A memo that is not recognized is returned
    unchanged so that no transition accepts it.
    """
    if value is None or isinstance(value, ModelEventMemo):
        return value
    try:
        return ModelEventMemo(str(value).lower())
    except ValueError:
        return value


class TopologyReconciler:
    """Turns model events into graph model mutations"""

    def __init__(self, model: GraphModel, simulation: ForceDirectedGraph,
                 resolver: Optional[PositionResolver] = None,
                 overlay: Optional[SelectionOverlay] = None,
                 send_event: Optional[Callable[[str, Dict], None]] = None):
        """
        Initialize reconciler

        Args:
            model: Graph model to mutate
            simulation: Force simulation sharing the model's node list
            resolver: Pins nodes from their location metadata
            overlay: Selection and highlight state, cleaned up on removals
            send_event: Sends an event back to the controller
        """
        self.model = model
        self.simulation = simulation
        self.resolver = resolver or PositionResolver()
        self.overlay = overlay
        self.send_event = send_event
        self._node_listeners: List[Callable[[Node, ChangeSummary], None]] = []
        self.logger = logging.getLogger(__name__)
        self.simulation.nodes = self.model.nodes
        self.simulation.links = self.model.links

    def add_node_listener(self, callback: Callable[[Node, ChangeSummary], None]):
        """Call ``callback`` whenever an update changes a node"""
        self._node_listeners.append(callback)

    def _reseed(self):
        self.simulation.nodes = self.model.nodes
        self.simulation.links = self.model.links
        self.simulation.reinit_simulation()

    def replace_region(self, region_data) -> Region:
        """
        Replace the visible region wholesale

        Args:
            region_data: Region snapshot, as a dict or a Region

        Returns:
            Region: The region now in view
        """
        region = region_data if isinstance(region_data, Region) else Region.from_dict(region_data)
        with self.simulation.lock:
            self.model.replace_region(region)
            for node in self.model.nodes:
                self.resolver.fix_position(node)
            self.simulation.nodes = self.model.nodes
            self.simulation.links = self.model.links
            if self.model.nodes:
                self.simulation.reinit_simulation()
        self.logger.debug(f"Region {region.id} replaced: {len(self.model.nodes)} nodes, "
                          f"{len(self.model.links)} links")
        return region

    def set_visible_layer(self, layer: LayerType):
        with self.simulation.lock:
            self.model.set_visible_layer(layer)
            for node in self.model.nodes:
                self.resolver.fix_position(node)
            self._reseed()

    def handle_model_event(self, event_type, memo, subject: Optional[str], data: Optional[Dict]):
        """
        Apply one model event

        Malformed events (unknown type, missing subject, unresolvable link
        endpoint) are logged and leave the model untouched.

        Args:
            event_type: ModelEventType or its name
            memo: ModelEventMemo or its value; may be None for removals
            subject: Id of the entity the event is about
            data: New definition of the entity
        """
        kind = parse_event_type(event_type)
        memo_value = parse_memo(memo)
        data = data or {}

        with self.simulation.lock:
            if kind in NODE_EVENTS:
                self._node_added_or_updated(kind, memo_value, subject, data)
            elif kind in REMOVE_EVENTS:
                self._node_removed(REMOVE_EVENTS[kind], memo_value, subject)
            elif kind == ModelEventType.LINK_ADDED_OR_UPDATED:
                self._link_added_or_updated(memo_value, subject, data)
            elif kind == ModelEventType.LINK_REMOVED:
                self._link_removed(memo_value, subject)
            else:
                self.logger.error(f"Unexpected model event {event_type} for {subject} Data {data}")
            self._reseed()

    def _node_added_or_updated(self, kind: ModelEventType, memo: Optional[ModelEventMemo],
                               subject: Optional[str], data: Dict):
        node_cls, node_type = NODE_EVENTS[kind]
        label = node_type.value.capitalize()

        if memo == ModelEventMemo.ADDED:
            node_id = data.get('id') or subject
            if self.model.find_in_layer(node_id, node_type) is not None:
                # Delivered twice, fold it into the tracked node
                self.logger.warning(f"{label} {node_id} added again - treating as update")
                self._update_node(node_id, node_type, data)
                return
            if node_id in self.model:
                self.logger.error(f"{label} {node_id} added but the id is taken by another node")
                return
            node = node_cls.from_dict(data)
            node.id = node_id
            self.resolver.fix_position(node)
            self.model.add_node(node)
            self.logger.debug(f"{label} added {node.id}")
        elif memo == ModelEventMemo.UPDATED:
            self._update_node(subject, node_type, data)
        else:
            self.logger.warning(f"{label} {memo} - unexpected memo {data}")

    def _update_node(self, subject: Optional[str], node_type: NodeType, data: Dict):
        label = node_type.value.capitalize()
        existing = self.model.find_in_layer(subject, node_type)
        if existing is None:
            self.logger.warning(f"{label} {subject} to update not found")
            return
        changes = merge(existing, data)
        if changes.num_changes > 0:
            self.logger.debug(f"{label} {existing.id} updated - {changes.num_changes} changes")
            if changes.location_changed:
                self.resolver.fix_position(existing)
            for callback in self._node_listeners:
                callback(existing, changes)

    def _node_removed(self, node_type: NodeType, memo: Optional[ModelEventMemo], subject: Optional[str]):
        label = node_type.value.capitalize()
        if memo not in (ModelEventMemo.REMOVED, None):
            self.logger.warning(f"{label} removed - unexpected memo {memo}")
            return
        removed = self.model.remove_node(subject, node_type)
        if removed is None:
            self.logger.warning(f"{label} {subject} to remove not found")
            return
        if self.overlay is not None:
            self.overlay.forget(subject)
        self.logger.debug(f"{label} {subject} removed. {len(self.model.links)} links remain")

    def _link_added_or_updated(self, memo: Optional[ModelEventMemo], subject: Optional[str], data: Dict):
        if memo == ModelEventMemo.ADDED:
            link = RegionLink.from_dict(data)
            link_id = subject or link.id
            if self.model.find_link(link_id) is not None:
                self.logger.debug(f"Link {link_id} already present")
                return
            link.id = link_id
            try:
                self.model.add_link(link)
            except EndpointNotFound as e:
                self.logger.error(str(e))
                return
            self.logger.debug(f"Link added {link_id}")
        elif memo == ModelEventMemo.UPDATED:
            existing = self.model.find_link(subject)
            if existing is None:
                self.logger.warning(f"Link {subject} to update not found")
                return
            changes = merge(existing, data)
            self.logger.debug(f"Link {subject} updated - {changes.num_changes} items")
        else:
            self.logger.warning(f"Link event ignored {subject} {data}")

    def _link_removed(self, memo: Optional[ModelEventMemo], subject: Optional[str]):
        if memo != ModelEventMemo.REMOVED:
            self.logger.warning(f"Link removed - unexpected memo {memo}")
            return
        if self.model.remove_link(subject) is None:
            self.logger.warning(f"Link {subject} to remove not found")
            return
        if self.overlay is not None:
            self.overlay.forget(subject)
        self.logger.debug(f"Link {subject} removed")

    def _target_nodes(self) -> List[Node]:
        nodes = [n for n in self.model.nodes if isinstance(n, (Device, Host))]
        if self.overlay is not None and self.overlay.selected:
            selected = set(self.overlay.selected)
            nodes = [n for n in nodes if n.id in selected]
        return nodes

    def reset_node_locations(self) -> int:
        """
        Put nodes with a fixed location back where they belong; only the
        selected ones if there is a selection

        Returns:
            int: Number of nodes reset
        """
        with self.simulation.lock:
            nodes = self._target_nodes()
            for node in nodes:
                self.resolver.reset_node_location(node)
            self.simulation.reinit_simulation()
        return len(nodes)

    def unpin_or_freeze_nodes(self, freeze: bool) -> int:
        """
        Toggle floating nodes between unpinned and frozen; only the selected
        ones if there is a selection

        Returns:
            int: Number of nodes toggled
        """
        with self.simulation.lock:
            count = sum(
                1 for node in self._target_nodes()
                if self.resolver.unpin_or_freeze_node(node, freeze)
            )
            self.simulation.reinit_simulation()
        return count

    def node_moved(self, klass: str, node_id: str, x: float, y: float):
        """
        Persist a manual placement back to the controller

        Args:
            klass: Class of node, e.g. 'device' or 'host'
            node_id: Id of the node
            x: New canvas x
            y: New canvas y
        """
        node = self.model.find_node(node_id)
        if node is None:
            self.logger.warning(f"Moved node {node_id} not found")
            return
        with self.simulation.lock:
            node.meta_ui = MetaUi(x=x, y=y)
            node.x, node.y = x, y
            if node.pinned:
                node.fx, node.fy = x, y
        if self.send_event is not None:
            self.send_event('updateMeta2', {
                'id': node_id,
                'class': klass,
                'memento': node.meta_ui.to_dict(),
            })
        self.logger.debug(f"{klass} {node_id} has been moved to {x}, {y}")

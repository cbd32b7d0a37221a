"""
Topology Service

Binds the topology event handlers to the controller channel and routes each
event to the reconciler or the overlay.
"""
import logging
from typing import Dict, List, Optional

from controller.channel import EventChannel
from controller.topology_rest import RegionClient
from force_graph.overlay import SelectionOverlay
from force_graph.reconciler import TopologyReconciler


class TopologyService:
    """Subscribes the force graph view to the controller's topology events"""

    def __init__(self, channel: EventChannel, reconciler: TopologyReconciler,
                 overlay: Optional[SelectionOverlay] = None,
                 region_client: Optional[RegionClient] = None):
        self.channel = channel
        self.reconciler = reconciler
        self.overlay = overlay
        self.region_client = region_client
        self.handlers: List[str] = []
        self.open_listener = None
        self.instances: List[Dict] = []
        self.instances_index: Dict[str, int] = {}
        self.layout_data: Optional[Dict] = None
        self.logger = logging.getLogger(__name__)

    def init(self):
        """
        Bind our event handlers to the channel so that our callbacks get
        invoked for incoming events, then ask the controller to start
        sending them
        """
        handlers = {
            'topo2AllInstances': self._on_all_instances,
            'topo2CurrentLayout': self._on_current_layout,
            'topo2CurrentRegion': self._on_current_region,
            'topo2PeerRegions': self._on_peer_regions,
            'topo2UiModelEvent': self._on_model_event,
            'showHighlights': self._on_highlights,
        }
        self.channel.bind_handlers(handlers)
        self.handlers.extend(handlers)

        # In case we fail over to a new server, listen for channel open events
        self.open_listener = self.channel.add_open_listener(self.ws_open)

        self.channel.send_event('topo2Start', {})
        self.logger.debug("TopologyService initialized")

    def destroy(self):
        """Tell the controller we no longer wish to receive topology events"""
        self.channel.send_event('topo2Stop', {})
        self.channel.unbind_handlers(self.handlers)
        self.handlers = []
        self.channel.remove_open_listener(self.open_listener)
        self.open_listener = None
        self.logger.debug("TopologyService destroyed")

    def ws_open(self, host: Optional[str] = None, url: Optional[str] = None):
        self.logger.debug(f"Channel open - cluster node: {host} URL: {url}")
        self.channel.send_event('topo2Start', {})

    def _on_all_instances(self, data: Dict):
        self.instances = list(data.get('members', []))
        # Devices are coloured by the index of their master instance
        self.instances_index = {inst['id']: idx for idx, inst in enumerate(self.instances)}
        self.logger.debug(f"Created local index of instances {self.instances_index}")

    def _on_current_layout(self, data: Dict):
        self.layout_data = data
        self.logger.debug("Background layout updated")

    def _on_current_region(self, data: Dict):
        region = self.reconciler.replace_region(data)
        self.logger.debug(f"Region data replaced from topo2CurrentRegion {region.id}")

    def _on_peer_regions(self, data: Dict):
        self.logger.warning(f"No handler for topo2PeerRegions {data}")

    def _on_model_event(self, event: Dict):
        self.logger.debug(f"Handling {event}")
        self.reconciler.handle_model_event(
            event.get('type'), event.get('memo'), event.get('subject'), event.get('data'))

    def _on_highlights(self, event: Dict):
        if self.overlay is None:
            return
        self.overlay.handle_highlights(
            event.get('devices', []), event.get('hosts', []), event.get('links', []),
            event.get('fadems', 0) or 0)

    def resync(self) -> bool:
        """
        Replace the region from a REST snapshot

        Returns:
            bool: Whether a snapshot was applied
        """
        if self.region_client is None:
            return False
        data = self.region_client.fetch_region(force=True)
        if data is None:
            return False
        self._on_current_region(data)
        return True

    def master_index(self, instance_id: Optional[str]) -> Optional[int]:
        """Index of a cluster instance, used to colour devices by mastership"""
        return self.instances_index.get(instance_id)

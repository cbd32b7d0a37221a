"""
Selection and Highlight Overlay

Which nodes and links the user selected, which ones traffic monitoring
highlights, and which devices are muted by an instance selection. Kept apart
from the graph model; nothing here changes the nodes or links themselves.
"""
import logging
import threading
import time
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional

from force_graph.graph_model import GraphModel
from force_graph.models import Device, link_id_from_show_highlights


@dataclass
class SelectedEvent:
    """A click on a node or link (or on the empty canvas)"""
    element_id: Optional[str] = None
    is_shift: bool = False
    deselecting: bool = False


@dataclass
class Highlight:
    element_id: str
    css: Optional[str] = None
    label: Optional[str] = None
    badge: Optional[Dict] = None
    fade_ms: int = 0
    applied_at: float = field(default_factory=time.time)

    def expired(self, now: Optional[float] = None) -> bool:
        if self.fade_ms <= 0:
            return False
        now = time.time() if now is None else now
        return (now - self.applied_at) * 1000 >= self.fade_ms

    def to_dict(self) -> Dict:
        return {
            'id': self.element_id,
            'css': self.css,
            'label': self.label,
            'badge': self.badge,
            'fadems': self.fade_ms,
        }


class SelectionOverlay:
    """Selection, highlight and mastership state layered on the graph model"""

    def __init__(self, model: GraphModel):
        """Initialize overlay"""
        self.model = model
        self.selected: List[str] = []
        self.selected_link: Optional[str] = None
        self.show_hosts = False
        self.muted: set = set()
        self.device_highlights: Dict[str, Highlight] = {}
        self.host_highlights: Dict[str, Highlight] = {}
        self.link_highlights: Dict[str, Highlight] = {}
        self._selection_listeners: List[Callable[[List[str]], None]] = []
        self._link_listeners: List[Callable[[Optional[str]], None]] = []
        # Highlights arrive on the controller thread and are read by the simulation loop
        self._highlight_lock = threading.RLock()
        self.logger = logging.getLogger(__name__)

    def add_selection_listener(self, callback: Callable[[List[str]], None]):
        self._selection_listeners.append(callback)

    def add_link_listener(self, callback: Callable[[Optional[str]], None]):
        self._link_listeners.append(callback)

    def _emit_selection(self):
        selection = list(self.selected)
        for callback in self._selection_listeners:
            callback(selection)

    def update_selected(self, event: SelectedEvent) -> List[str]:
        """
        Apply a click to the selection and report the whole selection

        A plain click selects one element, a shift-click toggles it in the
        multi-selection, deselecting without shift clears everything.

        Args:
            event: The click

        Returns:
            List[str]: Ids currently selected, in selection order
        """
        self.logger.debug(f"Node or link {event.element_id or '--'} "
                          f"{'deselected' if event.deselecting else 'selected'}"
                          f"{' Multiple' if event.is_shift else ''}")
        if event.is_shift and event.deselecting:
            if event.element_id in self.selected:
                self.selected.remove(event.element_id)
        elif event.is_shift:
            if event.element_id is not None and event.element_id not in self.selected:
                self.selected.append(event.element_id)
        elif event.deselecting or event.element_id is None:
            self.selected = []
        else:
            self.selected = [event.element_id]
        self._emit_selection()
        return list(self.selected)

    def deselect_all(self) -> List[str]:
        return self.update_selected(SelectedEvent(deselecting=True))

    def select_link(self, link_id: Optional[str]):
        """Make ``link_id`` the link shown in the details panel"""
        self.selected_link = link_id
        for callback in self._link_listeners:
            callback(link_id)

    def forget(self, element_id: str):
        """Drop all overlay state for an element that left the model"""
        if element_id in self.selected:
            self.selected.remove(element_id)
            self._emit_selection()
        if self.selected_link == element_id:
            self.select_link(None)
        self.muted.discard(element_id)
        with self._highlight_lock:
            self.device_highlights.pop(element_id, None)
            self.host_highlights.pop(element_id, None)
            self.link_highlights.pop(element_id, None)

    def _highlight(self, item: Dict, fade_ms: int) -> Highlight:
        return Highlight(
            element_id=item['id'],
            css=item.get('css'),
            label=item.get('label'),
            badge=item.get('badge'),
            fade_ms=fade_ms or item.get('fadems', 0) or 0,
        )

    def handle_highlights(self, devices: List[Dict], hosts: List[Dict], links: List[Dict],
                          fade_ms: int = 0) -> int:
        """
        Apply traffic highlights pushed by the controller

        Links that are not rendered right now (host links while hosts are
        hidden) are skipped, so are entries without an id.

        Args:
            devices: Device highlights
            hosts: Host highlights
            links: Link highlights, ids in the highlight "A-B" form
            fade_ms: Fade duration applied to link highlights when > 0

        Returns:
            int: Number of highlights applied
        """
        applied = 0
        with self._highlight_lock:
            if devices:
                self.logger.debug(f"{len(devices)} Devices highlighted")
                for item in devices:
                    device_id = item.get('id')
                    if isinstance(self.model.find_node(device_id), Device):
                        self.device_highlights[device_id] = self._highlight(item, 0)
                        applied += 1
                    else:
                        self.logger.warning(f"Device not found {device_id}")
            if hosts:
                self.logger.debug(f"{len(hosts)} Hosts highlighted")
                for item in hosts:
                    host_id = item.get('id')
                    if host_id is not None and self.model.find_node(host_id) is not None:
                        self.host_highlights[host_id] = self._highlight(item, 0)
                        applied += 1
            if links:
                self.logger.debug(f"{len(links)} Links highlighted")
                rendered = {l.id for l in self.model.filtered_links(self.show_hosts)}
                for item in links:
                    if item.get('id') is None:
                        self.logger.warning(f"Link highlight without id {item}")
                        continue
                    link_id = link_id_from_show_highlights(item['id'])
                    if link_id not in rendered:
                        continue
                    self.link_highlights[link_id] = self._highlight(dict(item, id=link_id), fade_ms)
                    applied += 1
        return applied

    def expire_highlights(self, now: Optional[float] = None) -> int:
        """Remove highlights whose fade time has passed"""
        expired = 0
        with self._highlight_lock:
            for store in (self.device_highlights, self.host_highlights, self.link_highlights):
                for element_id in [k for k, h in store.items() if h.expired(now)]:
                    del store[element_id]
                    expired += 1
        return expired

    def change_inst_selection(self, instance_name: Optional[str]) -> List[str]:
        """
        Mute the devices not mastered by ``instance_name``; unmute all when
        no instance is given

        Returns:
            List[str]: Ids of the muted devices
        """
        self.logger.debug(f"Mastership changed {instance_name}")
        if instance_name:
            self.muted = {
                d.id for d in self.model.layer_devices() if d.master != instance_name
            }
        else:
            self.muted = set()
        return sorted(self.muted)

    def to_dict(self) -> Dict:
        with self._highlight_lock:
            highlights = {
                'devices': [h.to_dict() for h in self.device_highlights.values()],
                'hosts': [h.to_dict() for h in self.host_highlights.values()],
                'links': [h.to_dict() for h in self.link_highlights.values()],
            }
        return {
            'selected': list(self.selected),
            'selectedLink': self.selected_link,
            'muted': sorted(self.muted),
            'highlights': highlights,
        }

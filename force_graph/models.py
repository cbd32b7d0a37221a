"""
Topology View Entities

Devices, hosts and sub-regions are the nodes of the force graph, region links
are its edges. The controller speaks camelCase JSON, so every field carries its
wire name in the dataclass metadata; the diff engine and the (de)serializers
walk that closed set of fields instead of introspecting arbitrary objects.
"""
import logging
from dataclasses import dataclass, field, fields
from enum import Enum
from typing import Any, Callable, Dict, List, Optional

logger = logging.getLogger(__name__)

# Fields owned by the force simulation, never diffed or copied from events
TRANSIENT_FIELDS = frozenset(['id', 'x', 'y', 'fx', 'fy', 'vx', 'vy', 'index'])

# Fields whose change means the node has to be pinned again
LOCATION_FIELDS = frozenset(['locType', 'latOrY', 'longOrX', 'latitude', 'longitude', 'gridX', 'gridY'])


class LocationType(str, Enum):
    NONE = 'none'
    GEO = 'geo'
    GRID = 'grid'


class NodeType(str, Enum):
    REGION = 'region'
    DEVICE = 'device'
    HOST = 'host'


class LinkType(str, Enum):
    UiRegionLink = 'UiRegionLink'
    UiDeviceLink = 'UiDeviceLink'
    UiEdgeLink = 'UiEdgeLink'


class LayerType(str, Enum):
    """Visibility partitions; the declaration order is the region array index"""
    LAYER_OPTICAL = 'opt'
    LAYER_PACKET = 'pkt'
    LAYER_DEFAULT = 'def'

    @property
    def layer_index(self) -> int:
        return list(LayerType).index(self)


class ModelEventType(Enum):
    DEVICE_ADDED_OR_UPDATED = 0
    LINK_ADDED_OR_UPDATED = 1
    HOST_ADDED_OR_UPDATED = 2
    DEVICE_REMOVED = 3
    LINK_REMOVED = 4
    HOST_REMOVED = 5


class ModelEventMemo(str, Enum):
    ADDED = 'added'
    UPDATED = 'updated'
    REMOVED = 'removed'


def lenient(enum_cls) -> Callable[[Any], Any]:
    """Build a converter that maps a wire value onto ``enum_cls`` when it can"""
    def convert(value):
        if isinstance(value, enum_cls):
            return value
        try:
            return enum_cls(value)
        except ValueError:
            return value
    return convert


def wire(name: str, default=None, default_factory=None, nested=None,
         coerce: Optional[Callable] = None, transient: bool = False):
    """Declare a dataclass field together with its JSON wire name"""
    metadata = {'wire': name, 'nested': nested, 'coerce': coerce, 'transient': transient}
    if default_factory is not None:
        return field(default_factory=default_factory, metadata=metadata)
    return field(default=default, metadata=metadata)


class WireModel:
    """Mixin for dataclasses whose fields are declared with :func:`wire`"""

    @classmethod
    def wire_fields(cls) -> Dict[str, Any]:
        return {f.metadata['wire']: f for f in fields(cls) if 'wire' in f.metadata}

    @classmethod
    def decode_field(cls, f, value):
        nested = f.metadata.get('nested')
        if nested is not None and isinstance(value, dict):
            return nested.from_dict(value)
        if isinstance(value, dict):
            return dict(value)
        coerce = f.metadata.get('coerce')
        if coerce is not None and value is not None:
            return coerce(value)
        return value

    @classmethod
    def from_dict(cls, data: Dict):
        kwargs = {}
        for wire_name, f in cls.wire_fields().items():
            if f.metadata.get('transient') and wire_name != 'id':
                continue
            if wire_name in data:
                kwargs[f.name] = cls.decode_field(f, data[wire_name])
        return cls(**kwargs)

    def to_dict(self, include_transient: bool = False) -> Dict:
        result = {}
        for wire_name, f in self.wire_fields().items():
            if f.metadata.get('transient') and wire_name != 'id' and not include_transient:
                continue
            value = getattr(self, f.name)
            if isinstance(value, WireModel):
                value = value.to_dict()
            elif isinstance(value, Enum):
                value = value.value
            elif isinstance(value, dict):
                value = dict(value)
            result[wire_name] = value
        return result


@dataclass
class Location(WireModel):
    loc_type: Any = wire('locType', default=LocationType.NONE, coerce=lenient(LocationType))
    lat_or_y: Optional[float] = wire('latOrY')
    long_or_x: Optional[float] = wire('longOrX')


@dataclass
class MetaUi(WireModel):
    x: Optional[float] = wire('x')
    y: Optional[float] = wire('y')


@dataclass(eq=False)
class Node(WireModel):
    """Common part of everything the simulation moves around"""
    id: str = wire('id', default='', transient=True)
    node_type: Any = wire('nodeType', coerce=lenient(NodeType))
    location: Optional[Location] = wire('location', nested=Location)
    props: Dict[str, Any] = wire('props', default_factory=dict)
    meta_ui: Optional[MetaUi] = wire('metaUi', nested=MetaUi)

    # Owned by the force simulation
    x: Optional[float] = wire('x', transient=True)
    y: Optional[float] = wire('y', transient=True)
    vx: Optional[float] = wire('vx', transient=True)
    vy: Optional[float] = wire('vy', transient=True)
    fx: Optional[float] = wire('fx', transient=True)
    fy: Optional[float] = wire('fy', transient=True)
    index: Optional[int] = wire('index', transient=True)

    @property
    def pinned(self) -> bool:
        return self.fx is not None and self.fy is not None


@dataclass(eq=False)
class Device(Node):
    type: Optional[str] = wire('type')
    name: Optional[str] = wire('name')
    online: bool = wire('online', default=False)
    master: Optional[str] = wire('master')
    layer: Optional[str] = wire('layer')
    rank: Any = wire('rank')

    def __post_init__(self):
        if self.node_type is None:
            self.node_type = NodeType.DEVICE


@dataclass(eq=False)
class Host(Node):
    ips: List[str] = wire('ips', default_factory=list)
    configured: bool = wire('configured', default=False)
    online: bool = wire('online', default=True)
    rank: Any = wire('rank')

    def __post_init__(self):
        if self.node_type is None:
            self.node_type = NodeType.HOST


@dataclass(eq=False)
class SubRegion(Node):
    name: Optional[str] = wire('name')
    n_devs: int = wire('nDevs', default=0)
    n_hosts: int = wire('nHosts', default=0)

    def __post_init__(self):
        if self.node_type is None:
            self.node_type = NodeType.REGION


def extract_node_name(endpoint: Optional[str], port: Any) -> Optional[str]:
    """
    Extract the owning node id from a link endpoint string

    Args:
        endpoint: Endpoint string, possibly suffixed with "/<port>"
        port: Port the endpoint refers to, or None

    Returns:
        str: Endpoint with exactly the trailing "/<port>" removed
    """
    if endpoint is None or port is None:
        return endpoint
    suffix = f'/{port}'
    if endpoint.endswith(suffix):
        return endpoint[:-len(suffix)]
    return endpoint


def _endpoint_token(endpoint: str, port: Any) -> str:
    if port is None or endpoint.endswith(f'/{port}'):
        return endpoint
    return f'{endpoint}/{port}'


@dataclass(eq=False)
class RegionLink(WireModel):
    id: str = wire('id', default='', transient=True)
    ep_a: Optional[str] = wire('epA')
    port_a: Any = wire('portA')
    ep_b: Optional[str] = wire('epB')
    port_b: Any = wire('portB')
    type: Any = wire('type', coerce=lenient(LinkType))
    rank: Any = wire('rank')
    online: bool = wire('online', default=True)

    # Resolved node ids, looked up in the graph model
    source: Optional[str] = wire('source', transient=True)
    target: Optional[str] = wire('target', transient=True)
    index: Optional[int] = wire('index', transient=True)

    def __post_init__(self):
        if not self.id and self.ep_a and self.ep_b:
            self.id = self.derive_id(self.ep_a, self.port_a, self.ep_b, self.port_b)

    @staticmethod
    def derive_id(ep_a: str, port_a: Any, ep_b: str, port_b: Any) -> str:
        """Link id as the controller builds it: "<A>[/portA]~<B>[/portB]" """
        return f'{_endpoint_token(ep_a, port_a)}~{_endpoint_token(ep_b, port_b)}'

    @property
    def node_a(self) -> Optional[str]:
        return extract_node_name(self.ep_a, self.port_a)

    @property
    def node_b(self) -> Optional[str]:
        return extract_node_name(self.ep_b, self.port_b)


def _remove_host_port_num(endpoint: str) -> str:
    if '/None' in endpoint:
        return endpoint.split('/')[0]
    return endpoint


def link_id_from_show_highlights(highlight_id: str) -> str:
    """
    Convert a traffic highlight link id ("A-B") to a region link id ("A~B")

    Host ends are reported with a "/None" port that the region link ids do
    not carry on the highlight side.
    """
    if '-' in highlight_id:
        part_a, part_b = highlight_id.split('-', 1)
        return f'{_remove_host_port_num(part_a)}~{_remove_host_port_num(part_b)}'
    return highlight_id


NUM_LAYERS = len(LayerType)


def _layers(raw: Optional[List], factory) -> List[List]:
    layers = [[factory(item) for item in (layer or [])] for layer in (raw or [])]
    while len(layers) < NUM_LAYERS:
        layers.append([])
    return layers


@dataclass
class Region:
    """Layer-partitioned container of the nodes and links in view"""
    id: Optional[str] = None
    layer_order: List[str] = field(default_factory=list)
    devices: List[List[Device]] = field(default_factory=lambda: [[] for _ in range(NUM_LAYERS)])
    hosts: List[List[Host]] = field(default_factory=lambda: [[] for _ in range(NUM_LAYERS)])
    sub_regions: List[SubRegion] = field(default_factory=list)
    links: List[RegionLink] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Dict) -> 'Region':
        sub_regions = data.get('subregions')
        if sub_regions is None:
            sub_regions = data.get('subRegion') or []
        return cls(
            id=data.get('id'),
            layer_order=list(data.get('layerOrder') or []),
            devices=_layers(data.get('devices'), Device.from_dict),
            hosts=_layers(data.get('hosts'), Host.from_dict),
            sub_regions=[SubRegion.from_dict(s) for s in sub_regions],
            links=[RegionLink.from_dict(l) for l in data.get('links') or []],
        )


class EndpointNotFound(KeyError):
    """A link endpoint does not name a node in the current layer"""

    def __init__(self, endpoint: Optional[str], link_id: str):
        super().__init__(endpoint)
        self.endpoint = endpoint
        self.link_id = link_id

    def __str__(self):
        return f'Could not find endpoint {self.endpoint} of link {self.link_id}'

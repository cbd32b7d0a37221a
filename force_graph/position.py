"""
Node Position Resolver

Decides whether a node is pinned to a fixed point on the canvas or left to
the force simulation.
"""
import logging
from typing import Optional, Tuple

from force_graph.models import LocationType, Node
from utils.config import Config


class GeoProjection:
    """Equirectangular projection of longitude/latitude onto the canvas"""

    def __init__(self, width: float = Config.CANVAS_WIDTH, height: float = Config.CANVAS_HEIGHT,
                 longitude_extent: float = Config.LONGITUDE_EXTENT,
                 latitude_extent: float = Config.LATITUDE_EXTENT):
        self.width = width
        self.height = height
        self.longitude_extent = longitude_extent
        self.latitude_extent = latitude_extent

    def geo_to_canvas(self, lng: float, lat: float) -> Tuple[float, float]:
        """
        Convert a geographic coordinate to canvas space

        Args:
            lng: Longitude in degrees
            lat: Latitude in degrees

        Returns:
            Tuple[float, float]: Canvas x, y (y grows southwards)
        """
        x = (self.longitude_extent + lng) / (self.longitude_extent * 2) * self.width
        y = (self.latitude_extent - lat) / (self.latitude_extent * 2) * self.height
        return x, y


class PositionResolver:
    """Pins nodes according to their location metadata"""

    def __init__(self, projection: Optional[GeoProjection] = None):
        self.projection = projection or GeoProjection()
        self.logger = logging.getLogger(__name__)

    def fix_position(self, node: Node):
        """
        If a node has a fixed location assign it to fx and fy so that it
        does not get moved by the forces

        Args:
            node: The node whose location should be processed
        """
        loc = node.location
        props = node.props or {}
        if loc is not None and loc.loc_type in (LocationType.GEO, LocationType.GRID) \
                and (loc.long_or_x is None or loc.lat_or_y is None):
            self.logger.warning(f"Node {node.id} has a {loc.loc_type.value} location without coordinates")
            node.fx = None
            node.fy = None
        elif loc is not None and loc.loc_type == LocationType.GEO:
            node.fx, node.fy = self.projection.geo_to_canvas(loc.long_or_x, loc.lat_or_y)
            self.logger.debug(f"Found node {node.id} with {loc.loc_type.value}")
        elif loc is not None and loc.loc_type == LocationType.GRID:
            node.fx = loc.long_or_x
            node.fy = loc.lat_or_y
            self.logger.debug(f"Found node {node.id} with {loc.loc_type.value}")
        elif props.get('locType') == LocationType.NONE and node.meta_ui is not None:
            node.fx = node.meta_ui.x
            node.fy = node.meta_ui.y
            self.logger.debug(f"Found node {node.id} with locType=none and metaUi")
        else:
            node.fx = None
            node.fy = None

    def reset_node_location(self, node: Node):
        """Put a dragged node back where its location metadata says it belongs"""
        self.fix_position(node)
        if node.pinned:
            node.x, node.y = node.fx, node.fy

    @staticmethod
    def unpin_or_freeze_node(node: Node, freeze: bool) -> bool:
        """
        Toggle a floating node between unpinned and frozen

        Nodes with a geo or grid location keep their pins.

        Args:
            node: Node to toggle
            freeze: Pin to the current position if True, release if False

        Returns:
            bool: Whether the node was touched
        """
        loc = node.location
        if loc is not None and loc.loc_type in (LocationType.GEO, LocationType.GRID):
            return False
        if freeze:
            node.fx, node.fy = node.x, node.y
        else:
            node.fx = None
            node.fy = None
        return True

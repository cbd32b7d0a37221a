"""
Configuration constants for the topology force-graph view
"""
import os


class Config:
    """Configuration class with system constants"""

    # Backend controller configuration
    CONTROLLER_EVENTS_URL = os.environ.get('TOPO_CONTROLLER_EVENTS_URL', 'http://localhost:8181')
    CONTROLLER_REST_URL = os.environ.get('TOPO_CONTROLLER_REST_URL', 'http://localhost:8181/topology')
    CONTROLLER_REST_TIMEOUT = 5

    # Web interface configuration
    WEB_HOST = "0.0.0.0"
    WEB_PORT = 5000
    SOCKETIO_ASYNC_MODE = 'threading'

    # Canvas the force layout works in
    CANVAS_WIDTH = 1000
    CANVAS_HEIGHT = 1000

    # Geographic extent mapped onto the canvas (degrees)
    LONGITUDE_EXTENT = 180
    LATITUDE_EXTENT = 75

    # Force simulation tuning
    ALPHA_MIN = 0.001
    ALPHA_DECAY = 0.0228
    ITERATIONS_PER_TICK = 5
    TICK_INTERVAL = 0.05  # seconds

    # Update intervals (seconds)
    PUSH_INTERVAL = 0.2

    LOG_LEVEL = os.environ.get('TOPO_LOG_LEVEL', 'INFO')

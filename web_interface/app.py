import os
import sys
import time
import logging

# Add project root directory to Python path
project_root = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
sys.path.append(project_root)

from flask import Flask, Response, jsonify
from flask_socketio import SocketIO, emit

from controller.channel import EventChannel, LocalChannel, SocketIOChannel
from controller.topology_rest import RegionClient
from controller.topology_service import TopologyService
from force_graph.graph_model import GraphModel
from force_graph.models import LayerType
from force_graph.overlay import SelectedEvent, SelectionOverlay
from force_graph.reconciler import TopologyReconciler
from force_graph.simulation import ForceDirectedGraph
from force_graph.visualizer import NetworkVisualizer
from utils.config import Config

logger = logging.getLogger(__name__)


def configure_logging(level: str = Config.LOG_LEVEL):
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format='%(asctime)s [%(levelname)s] %(message)s',
        datefmt='%H:%M:%S'
    )
    # Set log levels to suppress frequent access logs
    logging.getLogger('werkzeug').setLevel(logging.WARNING)
    logging.getLogger('engineio').setLevel(logging.WARNING)
    logging.getLogger('socketio').setLevel(logging.WARNING)


class TopologyView:
    """One force graph view: model, simulation, overlay and their event feed"""

    def __init__(self, channel: EventChannel, region_client: RegionClient = None):
        self.channel = channel
        self.model = GraphModel()
        self.simulation = ForceDirectedGraph()
        self.overlay = SelectionOverlay(self.model)
        self.reconciler = TopologyReconciler(
            self.model, self.simulation, overlay=self.overlay, send_event=channel.send_event)
        self.service = TopologyService(channel, self.reconciler, self.overlay, region_client)
        self.visualizer = NetworkVisualizer()
        self.started = False

    def start(self):
        if not self.started:
            self.service.init()
            self.started = True

    def shutdown(self):
        if self.started:
            self.service.destroy()
            self.simulation.stop()
            self.started = False

    def snapshot(self):
        with self.simulation.lock:
            return self.visualizer.get_visualization_data(self.model, self.overlay)


def create_app(channel: EventChannel = None, region_client: RegionClient = None,
               run_simulation: bool = True):
    """
    Build the web application around a topology view

    Args:
        channel: Event channel to the controller; an in-process one if None
        region_client: REST client used for explicit resyncs
        run_simulation: Step the simulation in a background task

    Returns:
        Tuple[Flask, SocketIO]: Application and its Socket.IO server
    """
    app = Flask(__name__)

    socketio = SocketIO(
        app,
        cors_allowed_origins="*",
        async_mode=Config.SOCKETIO_ASYNC_MODE,
        ping_timeout=10,
        ping_interval=5,
        max_http_buffer_size=1024 * 1024,  # Increase buffer size
        logger=False,  # Disable SocketIO internal logging
        engineio_logger=False  # Disable Engine.IO internal logging
    )

    view = TopologyView(channel or LocalChannel(), region_client)
    app.extensions['topology_view'] = view
    loop_state = {'task': None}

    view.overlay.add_selection_listener(
        lambda selection: socketio.emit('selection', {'selected': selection}))
    view.overlay.add_link_listener(
        lambda link_id: socketio.emit('linkSelected', {'id': link_id}))
    view.reconciler.add_node_listener(
        lambda node, changes: socketio.emit('nodeUpdated', {
            'node': node.to_dict(include_transient=True),
            'numChanges': changes.num_changes,
            'locationChanged': changes.location_changed,
        }))

    def simulation_loop():
        """Step the layout and push positions to the browsers"""
        last_push = 0.0
        while view.started:
            try:
                moved = view.simulation.tick()
                expired = view.overlay.expire_highlights()
                now = time.time()
                if (moved or expired) and now - last_push >= Config.PUSH_INTERVAL:
                    socketio.emit('topology_update', {
                        'topology': view.snapshot(),
                        'timestamp': now
                    })
                    last_push = now
            except Exception as e:
                logger.error(f"Simulation loop error: {str(e)}")
            socketio.sleep(Config.TICK_INTERVAL)

    view.start()

    @app.route('/topology')
    def get_topology():
        """Get topology snapshot"""
        try:
            return jsonify(view.snapshot())
        except Exception as e:
            logger.error(f"Error getting topology: {str(e)}")
            return jsonify({'error': str(e)}), 500

    @app.route('/topology/snapshot.png')
    def get_topology_image():
        """Render the current layout"""
        try:
            with view.simulation.lock:
                image = view.visualizer.render(view.model, view.overlay)
            return Response(image, mimetype='image/png')
        except Exception as e:
            logger.error(f"Error rendering topology: {str(e)}")
            return jsonify({'error': str(e)}), 500

    @app.route('/topology/refresh', methods=['POST'])
    def refresh_topology():
        """Replace the region from the controller's REST snapshot"""
        try:
            if view.service.resync():
                return jsonify({'nodes': len(view.model.nodes), 'links': len(view.model.links)})
            return jsonify({'error': 'Failed to get region from controller'}), 503
        except Exception as e:
            logger.error(f"Error refreshing topology: {str(e)}")
            return jsonify({'error': str(e)}), 500

    @socketio.on('connect')
    def handle_connect():
        """Handle client connection"""
        if run_simulation and loop_state['task'] is None:
            loop_state['task'] = socketio.start_background_task(simulation_loop)
        emit('topology_update', {'topology': view.snapshot(), 'timestamp': time.time()})

    @socketio.on('request_topology')
    def handle_topology_request():
        """Handle client topology request"""
        emit('topology_update', {'topology': view.snapshot(), 'timestamp': time.time()})

    @socketio.on('select')
    def handle_select(data):
        view.overlay.update_selected(SelectedEvent(
            element_id=data.get('id'),
            is_shift=bool(data.get('shift')),
            deselecting=bool(data.get('deselecting'))
        ))

    @socketio.on('deselectAll')
    def handle_deselect_all(data=None):
        view.overlay.deselect_all()

    @socketio.on('selectLink')
    def handle_select_link(data):
        view.overlay.select_link(data.get('id'))

    @socketio.on('nodeMoved')
    def handle_node_moved(data):
        try:
            view.reconciler.node_moved(data['class'], data['id'], float(data['x']), float(data['y']))
        except (KeyError, TypeError, ValueError) as e:
            logger.error(f"Invalid nodeMoved event {data}: {str(e)}")
            emit('topology_error', {'message': f'Invalid nodeMoved event: {str(e)}'})

    @socketio.on('resetNodeLocations')
    def handle_reset_locations(data=None):
        emit('nodesReset', {'count': view.reconciler.reset_node_locations()})

    @socketio.on('unpinOrFreeze')
    def handle_unpin_or_freeze(data):
        emit('nodesToggled', {'count': view.reconciler.unpin_or_freeze_nodes(bool(data.get('freeze')))})

    @socketio.on('setLayer')
    def handle_set_layer(data):
        try:
            view.reconciler.set_visible_layer(LayerType(data.get('layer')))
        except ValueError as e:
            emit('topology_error', {'message': str(e)})
            return
        emit('topology_update', {'topology': view.snapshot(), 'timestamp': time.time()})

    @socketio.on('showHosts')
    def handle_show_hosts(data):
        view.overlay.show_hosts = bool(data.get('show'))
        emit('topology_update', {'topology': view.snapshot(), 'timestamp': time.time()})

    @socketio.on('instanceSelected')
    def handle_instance_selected(data):
        emit('muted', {'devices': view.overlay.change_inst_selection(data.get('instance'))})

    return app, socketio


if __name__ == '__main__':
    configure_logging()
    channel = SocketIOChannel(Config.CONTROLLER_EVENTS_URL)
    app, socketio = create_app(channel, RegionClient())
    try:
        channel.connect()
    except Exception as e:
        logger.error(f"Could not connect to controller: {str(e)}")
    try:
        socketio.run(
            app,
            host=Config.WEB_HOST,
            port=Config.WEB_PORT,
            debug=False,  # Disable debug mode
            use_reloader=False,
            allow_unsafe_werkzeug=True,
            log_output=False  # Disable HTTP request logging
        )
    finally:
        app.extensions['topology_view'].shutdown()
        channel.disconnect()

"""
Event channel to the backend controller

Named events with JSON payloads over a persistent duplex connection. The
Socket.IO implementation talks to a live controller; the local one loops
events back in-process and is what the tests drive.
"""
import logging
from typing import Any, Callable, Dict, Iterable, List, Optional

import socketio

Handler = Callable[[Any], None]
OpenListener = Callable[..., None]


class EventChannel:
    """Interface the topology service binds its handlers to"""

    def __init__(self):
        self.handlers: Dict[str, Handler] = {}
        self.open_listeners: List[OpenListener] = []
        self.logger = logging.getLogger(__name__)

    def bind_handlers(self, handlers: Dict[str, Handler]):
        """Register a callback per event name"""
        for name, handler in handlers.items():
            if name in self.handlers:
                self.logger.warning(f"Replacing handler for {name}")
            self.handlers[name] = handler

    def unbind_handlers(self, names: Iterable[str]):
        for name in names:
            if self.handlers.pop(name, None) is None:
                self.logger.warning(f"No handler bound for {name}")

    def add_open_listener(self, listener: OpenListener) -> OpenListener:
        """Call ``listener`` every time the connection is (re)opened"""
        self.open_listeners.append(listener)
        return listener

    def remove_open_listener(self, listener: Optional[OpenListener]):
        if listener in self.open_listeners:
            self.open_listeners.remove(listener)

    def send_event(self, name: str, payload: Dict):
        raise NotImplementedError

    def dispatch(self, name: str, payload: Any) -> bool:
        """
        Deliver an incoming event to its handler

        Returns:
            bool: Whether a handler was bound for the event
        """
        handler = self.handlers.get(name)
        if handler is None:
            self.logger.warning(f"Unhandled event {name}")
            return False
        try:
            handler(payload)
        except Exception as e:
            self.logger.error(f"Handler for {name} failed: {str(e)}", exc_info=True)
        return True

    def notify_open(self, *args):
        for listener in list(self.open_listeners):
            listener(*args)


class LocalChannel(EventChannel):
    """In-process channel; sent events are recorded instead of transmitted"""

    def __init__(self):
        super().__init__()
        self.sent: List[tuple] = []

    def send_event(self, name: str, payload: Dict):
        self.sent.append((name, payload))
        self.logger.debug(f"Sent {name}")


class SocketIOChannel(EventChannel):
    """Channel backed by a python-socketio client"""

    def __init__(self, url: str, namespace: str = '/', client: Optional[socketio.Client] = None):
        super().__init__()
        self.url = url
        self.namespace = namespace
        self.client = client or socketio.Client(reconnection=True, logger=False, engineio_logger=False)
        self.client.on('connect', self._on_connect, namespace=self.namespace)
        self.client.on('disconnect', self._on_disconnect, namespace=self.namespace)

    def _on_connect(self):
        self.logger.info(f"Connected to controller at {self.url}")
        self.notify_open(self.url)

    def _on_disconnect(self, *args):
        self.logger.warning(f"Disconnected from controller at {self.url}")

    def _bind(self, name: str):
        self.client.on(name, lambda payload=None: self.dispatch(name, payload), namespace=self.namespace)

    def bind_handlers(self, handlers: Dict[str, Handler]):
        super().bind_handlers(handlers)
        for name in handlers:
            self._bind(name)

    def unbind_handlers(self, names: Iterable[str]):
        names = list(names)
        super().unbind_handlers(names)
        registered = self.client.handlers.get(self.namespace, {})
        for name in names:
            registered.pop(name, None)

    def connect(self):
        self.client.connect(self.url, namespaces=[self.namespace])

    def disconnect(self):
        self.client.disconnect()

    def send_event(self, name: str, payload: Dict):
        if not self.client.connected:
            self.logger.warning(f"Not connected, dropping {name}")
            return
        self.client.emit(name, payload, namespace=self.namespace)

"""
WebSocket connection manager for real-time task updates.
"""

import asyncio
import json
import logging
from dataclasses import dataclass, field

from fastapi import WebSocket, WebSocketDisconnect

from bgqueue.types.events import TaskEvent, WebSocketMessage

logger = logging.getLogger(__name__)


@dataclass
class ConnectionInfo:
    """Information about a WebSocket connection."""

    websocket: WebSocket
    # Empty means every task's events are delivered
    subscribed_tasks: set[str] = field(default_factory=set)

    def wants(self, task_id: str) -> bool:
        """Check if this connection should receive events for a task."""
        return not self.subscribed_tasks or task_id in self.subscribed_tasks


class WebSocketManager:
    """
    Manager for WebSocket connections.

    Registered as a queue listener, it relays task events to connected
    clients without blocking the queue's dispatch pass. Events go through
    one outbox drained by a single sender task, so clients receive them in
    emission order.
    """

    def __init__(self):
        """Initialize the WebSocket manager."""
        self._connections: list[ConnectionInfo] = []
        self._lock = asyncio.Lock()
        self._outbox: asyncio.Queue[TaskEvent] = asyncio.Queue()
        self._sender: asyncio.Task | None = None

    async def connect(self, websocket: WebSocket) -> ConnectionInfo:
        """
        Accept a new WebSocket connection.

        Args:
            websocket: The WebSocket connection.

        Returns:
            ConnectionInfo for the new connection.
        """
        await websocket.accept()

        connection = ConnectionInfo(websocket=websocket)

        async with self._lock:
            self._connections.append(connection)

        logger.info("WebSocket connected")

        return connection

    async def disconnect(self, connection: ConnectionInfo) -> None:
        """
        Handle WebSocket disconnection.

        Args:
            connection: The connection to remove.
        """
        async with self._lock:
            if connection in self._connections:
                self._connections.remove(connection)

        logger.info("WebSocket disconnected")

    def subscribe_to_task(self, connection: ConnectionInfo, task_id: str) -> None:
        """Restrict a connection to events of the given task ids."""
        connection.subscribed_tasks.add(task_id)

    def unsubscribe_from_task(self, connection: ConnectionInfo, task_id: str) -> None:
        """Stop filtering on a task id."""
        connection.subscribed_tasks.discard(task_id)

    async def broadcast_task_event(self, event: TaskEvent) -> None:
        """
        Broadcast a task event to interested connections.

        Args:
            event: The task event to broadcast.
        """
        async with self._lock:
            connections = [c for c in self._connections if c.wants(event.task_id)]

        if not connections:
            return

        message_json = WebSocketMessage.from_event(event).model_dump_json()

        # Send to all connections, handling failures
        disconnected = []
        for connection in connections:
            try:
                await connection.websocket.send_text(message_json)
            except Exception as e:
                logger.warning(
                    f"Failed to send WebSocket message: {e}",
                    extra={"task_id": event.task_id}
                )
                disconnected.append(connection)

        for connection in disconnected:
            await self.disconnect(connection)

    def publish(self, event: TaskEvent) -> None:
        """
        Queue listener: enqueue ``event`` for broadcast.

        Args:
            event: The task event emitted by the queue.
        """
        if not self._connections:
            return

        if self._sender is None or self._sender.done():
            self._sender = asyncio.get_running_loop().create_task(
                self._send_loop(), name="websocket-sender"
            )
        self._outbox.put_nowait(event)

    async def _send_loop(self) -> None:
        while True:
            event = await self._outbox.get()
            try:
                await self.broadcast_task_event(event)
            except Exception as e:
                logger.warning(
                    f"Failed to broadcast task event: {e}",
                    extra={"task_id": event.task_id}
                )
            finally:
                self._outbox.task_done()

    async def flush(self) -> None:
        """Wait until every published event has been broadcast."""
        await self._outbox.join()

    async def close(self) -> None:
        """Stop the sender task."""
        if self._sender is None:
            return
        self._sender.cancel()
        try:
            await self._sender
        except asyncio.CancelledError:
            pass
        self._sender = None

    def get_connection_count(self) -> int:
        """Get the number of active connections."""
        return len(self._connections)


async def websocket_handler(websocket: WebSocket, manager: WebSocketManager) -> None:
    """
    Handle a WebSocket connection for task updates.

    Args:
        websocket: The WebSocket connection.
        manager: The application's connection manager.
    """
    connection = await manager.connect(websocket)

    try:
        while True:
            data = await websocket.receive_text()

            try:
                message = json.loads(data)
                action = message.get("action")

                if action == "subscribe":
                    task_id = str(message["task_id"])
                    manager.subscribe_to_task(connection, task_id)
                    await websocket.send_json({
                        "type": "subscribed",
                        "task_id": task_id,
                    })

                elif action == "unsubscribe":
                    task_id = str(message["task_id"])
                    manager.unsubscribe_from_task(connection, task_id)
                    await websocket.send_json({
                        "type": "unsubscribed",
                        "task_id": task_id,
                    })

                elif action == "ping":
                    await websocket.send_json({"type": "pong"})

                else:
                    await websocket.send_json({
                        "type": "error",
                        "message": f"Unknown action: {action}",
                    })

            except (json.JSONDecodeError, AttributeError, KeyError) as e:
                await websocket.send_json({
                    "type": "error",
                    "message": f"Invalid message: {e!r}",
                })

    except WebSocketDisconnect:
        await manager.disconnect(connection)

import logging
import socketio
from typing import Any, Dict, Optional

logger = logging.getLogger(__name__)

# Global Socket.IO server instance
sio: Optional[socketio.AsyncServer] = None


def session_room(session_id) -> str:
    return f"session:{session_id}"


def init_socketio(socketio_server: socketio.AsyncServer):
    """Initialize the Socket.IO server reference"""
    global sio
    sio = socketio_server

    register_event_handlers()

    logger.info("✅ Socket.IO manager initialized")


async def broadcast_session_event(event: str, session_id, data: Dict[str, Any]):
    """Send an event to every dashboard watching a session.

    Broadcasting is best effort: attendance is already persisted when this runs.
    """
    if not sio:
        logger.debug("Socket.IO server not initialized, skipping broadcast")
        return
    try:
        await sio.emit(event, {"sessionId": str(session_id), **data}, room=session_room(session_id))
        logger.info(f"📡 Broadcast {event} for session {session_id}")
    except Exception as e:
        logger.warning(f"⚠️ Error broadcasting {event} via Socket.IO: {e}")


def register_event_handlers():
    """Register Socket.IO event handlers"""
    if not sio:
        logger.warning("⚠️ Cannot register handlers: Socket.IO server not initialized")
        return

    @sio.event
    async def connect(sid, environ, auth=None):
        logger.info(f"🔗 Client connected: {sid}")
        await sio.emit('connection_status', {'status': 'connected', 'message': 'Connected to attendance system'}, room=sid)

    @sio.event
    async def disconnect(sid, *args):
        logger.info(f"🔌 Client disconnected: {sid}")

    @sio.event
    async def join_session(sid, data):
        session_id = (data or {}).get('sessionId')
        if not session_id:
            await sio.emit('error', {'message': 'sessionId is required'}, room=sid)
            return
        await sio.enter_room(sid, session_room(session_id))
        await sio.emit('joined_session', {'sessionId': session_id}, room=sid)

    @sio.event
    async def leave_session(sid, data):
        session_id = (data or {}).get('sessionId')
        if session_id:
            await sio.leave_room(sid, session_room(session_id))

import logging
import sys

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

# Socket.IO imports
import socketio
import uvicorn

from app import config
from app.database import init_db
from app.errors import register_error_handlers
from app.routes import attendance
from app.services.session_service import expiry_scheduler
from app.utils.socketio_manager import init_socketio

logging.basicConfig(
    level=config.LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger("qr_attendance")

app = FastAPI(title="QR Attendance API")

# Create Socket.IO server for live session dashboards
sio = socketio.AsyncServer(
    async_mode='asgi',
    cors_allowed_origins=config.CORS_ORIGINS,
)


@app.on_event("startup")
async def startup_event():
    try:
        await init_db()
    except Exception as e:
        logger.critical(f"❌ Failed to connect to MongoDB: {e}")
        sys.exit(1)

    init_socketio(sio)
    logger.info(f"✅ Server ready on port {config.PORT} ({config.APP_ENV})")


@app.on_event("shutdown")
async def shutdown_event():
    await expiry_scheduler.shutdown()


@app.get("/health")
async def health():
    return {"status": "ok", "message": "Server is running"}


app.include_router(attendance.router)
register_error_handlers(app)

app.add_middleware(
    CORSMiddleware,
    allow_origins=config.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Wrap FastAPI app with Socket.IO
socket_app = socketio.ASGIApp(sio, app)

if __name__ == "__main__":
    uvicorn.run(socket_app, host="0.0.0.0", port=config.PORT)

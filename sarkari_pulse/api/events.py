"""
Sarkari Pulse — Run Events WebSocket
Relays RunNotifier events to connected dashboard clients.
"""

import asyncio

from fastapi import APIRouter, WebSocket, WebSocketDisconnect

from sarkari_pulse.services.notifier import build_event, get_notifier
from sarkari_pulse.utils.logger import logger

router = APIRouter()


@router.websocket("/ws/events")
async def run_events(websocket: WebSocket):
    await websocket.accept()
    loop = asyncio.get_running_loop()
    queue: asyncio.Queue = asyncio.Queue()

    # Runs publish from worker threads; hop onto this connection's loop.
    def forward(message: dict) -> None:
        loop.call_soon_threadsafe(queue.put_nowait, message)

    async def pump() -> None:
        await websocket.send_json(build_event("connected", {}))
        while True:
            await websocket.send_json(await queue.get())

    async def drain() -> None:
        # Clients only listen; reading is how a disconnect gets noticed.
        while True:
            await websocket.receive_text()

    unsubscribe = get_notifier().subscribe(forward)
    logger.info("🔌 Dashboard client connected to run events")
    tasks = [asyncio.create_task(pump()), asyncio.create_task(drain())]
    try:
        done, pending = await asyncio.wait(tasks, return_when=asyncio.FIRST_COMPLETED)
        for task in pending:
            task.cancel()
        for task in done:
            error = task.exception()
            if error is not None and not isinstance(error, WebSocketDisconnect):
                raise error
        logger.info("🔌 Dashboard client disconnected")
    finally:
        for task in tasks:
            task.cancel()
        unsubscribe()

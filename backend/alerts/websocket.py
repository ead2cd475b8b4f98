"""
WebSocket endpoint for real-time system notifications.

Streams whatever alerts.system publishes on the Redis system channel.
"""

import asyncio

import redis.asyncio as aioredis
from fastapi import APIRouter, WebSocket, WebSocketDisconnect

from core.config import get_settings

router = APIRouter()

HEARTBEAT_SECONDS = 30


@router.websocket("/ws/alerts")
async def websocket_alerts(websocket: WebSocket):
    """
    Connect: ws://host/ws/alerts

    Messages sent to client:
        {"type": "alert", "payload": {...}}
        {"type": "digest", "payload": {...}}
        {"type": "heartbeat", "payload": {}}
    """
    settings = get_settings()
    await websocket.accept()

    redis = aioredis.from_url(settings.redis_url)
    pubsub = redis.pubsub()
    await pubsub.subscribe(settings.system_channel)

    try:

        async def listen_redis():
            async for message in pubsub.listen():
                if message["type"] == "message":
                    try:
                        await websocket.send_text(message["data"].decode())
                    except Exception:
                        break

        async def send_heartbeat():
            while True:
                await asyncio.sleep(HEARTBEAT_SECONDS)
                try:
                    await websocket.send_json({"type": "heartbeat", "payload": {}})
                except Exception:
                    break

        await asyncio.gather(listen_redis(), send_heartbeat())

    except WebSocketDisconnect:
        pass
    finally:
        await pubsub.unsubscribe(settings.system_channel)
        await pubsub.aclose()
        await redis.aclose()

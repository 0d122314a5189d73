"""
WebSocket Routes for Real-time Progress Streaming.

Provides live step events for a running workflow call.
"""

from fastapi import APIRouter, WebSocket, WebSocketDisconnect
import asyncio
import logging

from runwatch.storage.memory import run_storage


logger = logging.getLogger(__name__)

router = APIRouter(tags=["WebSocket"])

FINISHED_STATES = ("succeeded", "failed", "cancelled")

# Seconds between storage checks
SUBSCRIBE_POLL_INTERVAL = 0.5


@router.websocket("/ws/subscribe/{correlation_token}")
async def websocket_subscribe(websocket: WebSocket, correlation_token: str):
    """
    Subscribe to updates for a workflow call.
    
    Use this to watch a call started via POST /workflows/run.
    
    Message format (server -> client):
    ```json
    {"type": "step", "job_id": 1, "job_name": "build-...", "step_name": "test", "conclusion": "success"}
    ```
    """
    stored = await run_storage.get(correlation_token)
    if not stored:
        await websocket.close(code=4004, reason=f"Call '{correlation_token}' not found")
        return
    
    await websocket.accept()
    logger.info(f"WebSocket subscribed to call: {correlation_token}")
    
    try:
        await websocket.send_json({
            "type": "current_state",
            "correlation_token": correlation_token,
            "state": stored.state,
            "run_id": stored.run_id,
            "run_url": stored.run_url,
            "events": list(stored.events),
        })
        
        sent = len(stored.events)
        
        while stored.state not in FINISHED_STATES:
            await asyncio.sleep(SUBSCRIBE_POLL_INTERVAL)
            
            stored = await run_storage.get(correlation_token)
            if not stored:
                return
            
            for event in stored.events[sent:]:
                await websocket.send_json({"type": "step", **event})
            sent = len(stored.events)
        
        await websocket.send_json({
            "type": "completed",
            "correlation_token": correlation_token,
            "state": stored.state,
            "run_url": stored.run_url,
            "conclusion": stored.conclusion,
            "error": stored.error,
        })
    
    except WebSocketDisconnect:
        logger.info(f"Subscriber disconnected from call {correlation_token}")
    except Exception as e:
        logger.exception(f"WebSocket error: {e}")

"""
Subscribes to an upstream summit feed over a WebSocket and hands every text
frame to the dispatcher, reconnecting when the feed drops.
"""
import asyncio
import logging

import aiohttp

from dispatcher import GraphDispatcher

logger = logging.getLogger("summits.feed")


async def pump_messages(ws, dispatcher: GraphDispatcher) -> int:
    """Applies frames until the socket closes; returns how many were handled."""
    handled = 0
    async for msg in ws:
        if msg.type in (aiohttp.WSMsgType.TEXT, aiohttp.WSMsgType.BINARY):
            try:
                dispatcher.handle(msg.data)
            except Exception:
                logger.exception("Failed to apply summit update from feed; continuing with the next one")
            handled += 1
        elif msg.type == aiohttp.WSMsgType.ERROR:
            logger.warning("Feed socket error: %s", ws.exception())
            break
    return handled


async def consume_feed(url: str, dispatcher: GraphDispatcher, reconnect_delay: float = 2.0) -> None:
    """Runs until cancelled."""
    async with aiohttp.ClientSession() as session:
        while True:
            try:
                logger.info("Connecting to summit feed %s", url)
                async with session.ws_connect(url, heartbeat=30) as ws:
                    logger.info("Subscribed to summit feed %s", url)
                    handled = await pump_messages(ws, dispatcher)
                    logger.info("Summit feed closed after %d message(s)", handled)
            except (aiohttp.ClientError, OSError) as exc:
                logger.warning("Summit feed unavailable (%s): %s", type(exc).__name__, exc)
            await asyncio.sleep(reconnect_delay)

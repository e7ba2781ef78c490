import asyncio
import json
import os
import sys
import unittest
from types import SimpleNamespace
from unittest.mock import MagicMock, patch

# Add project root to sys.path
sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import aiohttp

from feed_client import consume_feed, pump_messages


class FakeSocket:
    def __init__(self, messages):
        self._messages = list(messages)

    def __aiter__(self):
        return self

    async def __anext__(self):
        if not self._messages:
            raise StopAsyncIteration
        return self._messages.pop(0)

    def exception(self):
        return RuntimeError("boom")


class FakeConnection:
    """Stands in for the async context manager returned by ws_connect."""

    def __init__(self, socket):
        self.socket = socket

    async def __aenter__(self):
        return self.socket

    async def __aexit__(self, *exc):
        return False


class StalledConnection:
    """A connection attempt that never completes."""

    async def __aenter__(self):
        await asyncio.Event().wait()

    async def __aexit__(self, *exc):
        return False


def text(payload):
    return SimpleNamespace(type=aiohttp.WSMsgType.TEXT, data=json.dumps(payload))


class TestPumpMessages(unittest.TestCase):

    def test_text_frames_reach_dispatcher_in_order(self):
        dispatcher = MagicMock()
        frames = [
            text({"id": "a", "geometry": {"x": 0, "y": 0, "r": 1}}),
            SimpleNamespace(type=aiohttp.WSMsgType.PING, data=b""),
            text({"id": "b", "geometry": {"x": 1, "y": 0, "r": 1}}),
        ]
        handled = asyncio.run(pump_messages(FakeSocket(frames), dispatcher))
        self.assertEqual(handled, 2)
        ids = [json.loads(call.args[0])["id"] for call in dispatcher.handle.call_args_list]
        self.assertEqual(ids, ["a", "b"])

    def test_error_frame_stops_pump(self):
        dispatcher = MagicMock()
        frames = [
            SimpleNamespace(type=aiohttp.WSMsgType.ERROR, data=None),
            text({"id": "a", "geometry": {"x": 0, "y": 0, "r": 1}}),
        ]
        handled = asyncio.run(pump_messages(FakeSocket(frames), dispatcher))
        self.assertEqual(handled, 0)
        dispatcher.handle.assert_not_called()

    def test_handler_failure_does_not_stop_pump(self):
        dispatcher = MagicMock()
        dispatcher.handle.side_effect = [RuntimeError("bug"), None]
        frames = [
            text({"id": "a", "geometry": {"x": 0, "y": 0, "r": 1}}),
            text({"id": "b", "geometry": {"x": 1, "y": 0, "r": 1}}),
        ]
        handled = asyncio.run(pump_messages(FakeSocket(frames), dispatcher))
        self.assertEqual(handled, 2)
        self.assertEqual(dispatcher.handle.call_count, 2)


class TestConsumeFeed(unittest.TestCase):

    def test_reconnects_after_failure_until_cancelled(self):
        dispatcher = MagicMock()
        frames = [
            text({"id": "a", "geometry": {"x": 0, "y": 0, "r": 1}}),
            text({"id": "b", "geometry": {"x": 1, "y": 0, "r": 1}}),
        ]
        ws_connect = MagicMock(side_effect=[
            aiohttp.ClientConnectionError("feed down"),
            FakeConnection(FakeSocket(frames)),
            StalledConnection(),
        ])

        async def scenario():
            with patch.object(aiohttp.ClientSession, "ws_connect", ws_connect):
                task = asyncio.create_task(
                    consume_feed("ws://feed.test/v1", dispatcher, reconnect_delay=0)
                )
                for _ in range(200):
                    if ws_connect.call_count >= 3:
                        break
                    await asyncio.sleep(0)
                task.cancel()
                with self.assertRaises(asyncio.CancelledError):
                    await task
                return task

        task = asyncio.run(scenario())
        self.assertTrue(task.cancelled())
        self.assertEqual(ws_connect.call_count, 3)
        ws_connect.assert_called_with("ws://feed.test/v1", heartbeat=30)
        ids = [json.loads(call.args[0])["id"] for call in dispatcher.handle.call_args_list]
        self.assertEqual(ids, ["a", "b"])


if __name__ == '__main__':
    unittest.main()

# backend/tests/fakes.py

from typing import Any, Dict, List


class FakeConnection:
    """
    Stand-in for a WebSocket as seen by SyncHub.
    Records every envelope it is sent; with fail=True every send raises.
    """

    def __init__(self, fail: bool = False):
        self.fail = fail
        self.sent: List[Dict[str, Any]] = []

    async def send_json(self, data):
        if self.fail:
            raise RuntimeError("socket closed")
        self.sent.append(data)

    def events(self, name: str) -> List[Any]:
        return [m["data"] for m in self.sent if m["event"] == name]

"""Scripted stand-ins for the vision model."""

import asyncio

from receipt_extractor.vision import VisionModel


class FakeVisionModel(VisionModel):
    """Returns queued replies in order and records every call.

    A queued Exception instance is raised instead of returned; the string
    "HANG" makes the call sleep past any reasonable timeout.
    """

    def __init__(self, replies=None):
        self.replies = list(replies or [])
        self.calls = []

    async def generate(self, prompt, image=None):
        self.calls.append((prompt, image))
        reply = self.replies.pop(0) if self.replies else ""
        if isinstance(reply, Exception):
            raise reply
        if reply == "HANG":
            await asyncio.sleep(10)
        return reply


COFFEE_RECEIPT = {
    "storeName": "Blue Bottle",
    "address": "66 Mint St, San Francisco, CA 94103",
    "phone": None,
    "date": "2025-03-14",
    "currency": "USD",
    "items": [{"name": "Coffee", "quantity": "2", "price": "6.00"}],
    "tax": None,
    "total": "6.00",
}

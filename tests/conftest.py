import json
import sys
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).parent.parent))

from core.transport import Response


class FakeTransport:
    def __init__(self, body="", status_code=200, status_text="OK", error=None):
        if not isinstance(body, (str, bytes)):
            body = json.dumps(body)
        self.body = body
        self.status_code = status_code
        self.status_text = status_text
        self.error = error
        self.calls = []

    async def __call__(self, url, config):
        self.calls.append((url, config))
        if self.error:
            raise self.error
        return Response(self.status_code, self.status_text, self.body, url)


@pytest.fixture
def fake_transport():
    return FakeTransport

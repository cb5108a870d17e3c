import io

import requests
from PIL import Image


class Resp:
    def __init__(self, data=None, content=b"", status_code=200):
        self._data = data
        self.content = content
        self.status_code = status_code

    def json(self):
        if self._data is None:
            raise ValueError("no JSON body")
        return self._data

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} error")


class FakeSession:
    """Serve canned responses keyed by URL and record every request."""

    def __init__(self, routes):
        self.routes = routes
        self.calls = []

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        return False

    def get(self, url, timeout=None):
        self.calls.append((url, timeout))
        result = self.routes.get(url)
        if result is None:
            return Resp(status_code=404)
        if isinstance(result, Exception):
            raise result
        return result


def png_bytes(image: Image.Image) -> bytes:
    buffer = io.BytesIO()
    image.save(buffer, format="PNG")
    return buffer.getvalue()

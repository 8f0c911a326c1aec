"""Test doubles shared across test modules."""

import requests


class FakeResponse:
    def __init__(self, status_code=200, content=b"", reason="OK", json_data=None):
        self.status_code = status_code
        self.content = content
        self.reason = reason
        self._json_data = json_data

    def json(self):
        if self._json_data is None:
            raise ValueError("No JSON body")
        return self._json_data

    def iter_content(self, chunk_size=1):
        for i in range(0, len(self.content), chunk_size):
            yield self.content[i:i + chunk_size]

    def close(self):
        pass

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} {self.reason}")


def version_frame(version: str) -> bytes:
    encoded = version.encode("utf-8")
    message = bytes([0x0A, len(encoded)]) + encoded
    return b"\x00" + len(message).to_bytes(4, "big") + message


class FakeClock:
    def __init__(self, now: float = 1_700_000_000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float):
        self.now += seconds

from __future__ import annotations

from typing import Dict, List

import httpx
import pytest

from datamart_sdk import DataMartClient


class FakeDataMart:
    """In-memory Data Mart speaking HEAD/GET/POST on /DataMart."""

    def __init__(self, secret: str = "sec_123", project_id: str = "42") -> None:
        self.secret = secret
        self.project_id = project_id
        self.files: Dict[str, bytes] = {}
        self.content_types: Dict[str, str] = {}
        self.requests: List[httpx.Request] = []
        self.upload_status = 200

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        assert request.url.path == "/api/DataMart"
        if (
            request.headers.get("X-Q-Company-Secret") != self.secret
            or request.headers.get("X-Q-Project-ID") != self.project_id
        ):
            return httpx.Response(403)
        name = request.url.params.get("filename")
        if request.method == "POST":
            if self.upload_status != 200:
                return httpx.Response(self.upload_status)
            self.files[name] = request.content
            self.content_types[name] = request.headers.get("Content-Type", "")
            return httpx.Response(200)
        if name not in self.files:
            return httpx.Response(404)
        if request.method == "HEAD":
            return httpx.Response(200)
        return httpx.Response(
            200,
            content=self.files[name],
            headers={"Content-Type": self.content_types.get(name) or "application/octet-stream"},
        )


def _attach_transport(client: DataMartClient, handler) -> DataMartClient:
    client._client.close()
    client._client = httpx.Client(
        base_url=client.base_url,
        transport=httpx.MockTransport(handler),
    )
    return client


@pytest.fixture
def mock_transport():
    return _attach_transport


@pytest.fixture
def datamart() -> FakeDataMart:
    return FakeDataMart()


@pytest.fixture
def temp_dir(tmp_path):
    path = tmp_path / "datamart_tmp"
    path.mkdir()
    return path


@pytest.fixture
def client(datamart, temp_dir):
    c = DataMartClient(
        base_url="http://testserver/api",
        company_secret="sec_123",
        client_id="proj-42",
        temp_dir=str(temp_dir),
    )
    _attach_transport(c, datamart)
    try:
        yield c
    finally:
        c.close()

"""Shared fixtures: an in-memory platform API behind httpx.MockTransport."""

import asyncio
from typing import Dict, List, Optional, Tuple

import httpx
import pytest

from src.datalink.client import PlatformClient
from src.datalink.config import PlatformConfig
from src.datalink.service import ListingService


BASE_URL = "https://api.example.test"


class FakePlatform:
    """
    Serves the search, browse and user-info endpoints.

    Attributes:
        links: Entries returned by the data link search
        pages: Browse path -> list of pages (each a list of objects)
        failures: Browse path -> HTTP status to fail with
        requests: Every request received
    """

    def __init__(self):
        self.links: List[dict] = []
        self.pages: Dict[str, List[List[dict]]] = {}
        self.failures: Dict[str, int] = {}
        self.requests: List[httpx.Request] = []
        self.user = {"userName": "alice", "email": "alice@example.com"}

    def add_link(self, link_id="dl-123", name="my-data-link", credentials=("cred-1",), **extra) -> dict:
        link = {
            "id": link_id,
            "name": name,
            "type": "bucket",
            "provider": "aws",
            "resourceRef": "s3://my-bucket",
            "credentials": [{"id": c} for c in credentials],
        }
        link.update(extra)
        self.links.append(link)
        return link

    def set_pages(self, path: str, *pages: List[dict]) -> None:
        self.pages[path] = list(pages)

    @property
    def browse_calls(self) -> List[Tuple[str, Optional[str]]]:
        """(path, nextPageToken) for every browse request, in order."""
        calls = []
        for request in self.requests:
            if "/browse" in request.url.path:
                path = request.url.path.split("/browse", 1)[1].strip("/")
                calls.append((path, request.url.params.get("nextPageToken")))
        return calls

    @property
    def search_calls(self) -> List[httpx.Request]:
        return [r for r in self.requests if r.url.path == "/data-links/"]

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path

        if path == "/data-links/":
            return httpx.Response(200, json={"dataLinks": self.links})

        if path == "/user-info":
            return httpx.Response(200, json={"user": self.user})

        if path.startswith("/data-links/") and "/browse" in path:
            browse_path = path.split("/browse", 1)[1].strip("/")
            if browse_path in self.failures:
                return httpx.Response(self.failures[browse_path], json={"message": "denied"})
            pages = self.pages.get(browse_path, [[]])
            token = request.url.params.get("nextPageToken")
            index = int(token) if token else 0
            body = {"objects": pages[index]}
            if index + 1 < len(pages):
                body["nextPageToken"] = str(index + 1)
            return httpx.Response(200, json=body)

        return httpx.Response(404, json={"message": "not found"})


def file_obj(name: str, size: int = 100) -> dict:
    return {"name": name, "type": "FILE", "size": size}


def folder_obj(name: str) -> dict:
    return {"name": name, "type": "FOLDER"}


def run(coro):
    return asyncio.run(coro)


@pytest.fixture
def platform():
    return FakePlatform()


@pytest.fixture
def client(platform):
    config = PlatformConfig(base_url=BASE_URL, workspace_id="ws-1", token="secret-token")
    return PlatformClient(config, transport=httpx.MockTransport(platform.handler))


@pytest.fixture
def service(client):
    return ListingService(client)

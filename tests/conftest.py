"""Pytest fixtures for storefront tests."""

import json
from dataclasses import dataclass, field
from typing import Any, Dict, List

import pytest
import requests

from storefront.container import Storefront
from storefront.repos.token_repo import FileTokenRepo
from storefront.services.api_client import StorefrontAPI

BASE_URL = "http://shop.test"


def make_response(status: int = 200, body: Any = None, headers: Dict[str, str] | None = None, text: str | None = None):
    """A real requests.Response with the given status and JSON (or raw text) body."""
    resp = requests.Response()
    resp.status_code = status
    resp.encoding = "utf-8"
    if text is not None:
        resp._content = text.encode("utf-8")
    elif body is not None:
        resp._content = json.dumps(body).encode("utf-8")
    else:
        resp._content = b""
    resp.headers.update(headers or {})
    return resp


@dataclass
class Call:
    method: str
    path: str
    headers: Dict[str, str]
    kwargs: Dict[str, Any] = field(default_factory=dict)


class FakeSession:
    """
    Scripted stand-in for requests.Session.

    Responses queue per (method, path); the last one stays for further calls.
    A queued exception is raised, a queued callable is called for the response.
    """

    def __init__(self):
        self.routes: Dict[tuple, List[Any]] = {}
        self.calls: List[Call] = []

    def on(self, method: str, path: str, *responses):
        self.routes.setdefault((method, path), []).extend(responses)
        return self

    def request(self, method, url, timeout=None, headers=None, **kwargs):
        path = url[len(BASE_URL):]
        self.calls.append(Call(method, path, dict(headers or {}), kwargs))

        queue = self.routes.get((method, path))
        if not queue:
            raise AssertionError(f"Unexpected request: {method} {path}")
        resp = queue.pop(0) if len(queue) > 1 else queue[0]

        if isinstance(resp, BaseException):
            raise resp
        if callable(resp):
            resp = resp()
        return resp

    def calls_to(self, method: str, path: str) -> List[Call]:
        return [c for c in self.calls if c.method == method and c.path == path]


@pytest.fixture
def session():
    return FakeSession()


@pytest.fixture
def token_repo(tmp_path):
    return FileTokenRepo(str(tmp_path / "storefront" / "token"))


@pytest.fixture
def api(session):
    return StorefrontAPI(base_url=BASE_URL, timeout=1, session=session)


@pytest.fixture
def storefront(api, token_repo):
    """Wired container with no persisted token."""
    return Storefront(api=api, token_repo=token_repo)


@pytest.fixture
def authed_storefront(api, token_repo):
    """Wired container seeded with a persisted token (no user profile yet)."""
    token_repo.save("tok-123456789")
    return Storefront(api=api, token_repo=token_repo)


def raw_line(line_id, product_id, quantity=1, price=None, name=None):
    product: Dict[str, Any] = {"_id": product_id}
    if price is not None:
        product["price"] = price
    if name is not None:
        product["productName"] = name
    line: Dict[str, Any] = {"product": product, "quantity": quantity}
    if line_id is not None:
        line["_id"] = line_id
    return line

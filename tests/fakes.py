"""
Fake HTTP layer for the mail.tm client.
"""

import json
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

import requests


def make_response(
    status: int = 200,
    payload: Any = None,
    text: str = "",
    content_type: str = "application/ld+json; charset=utf-8",
    reason: Optional[str] = None,
) -> requests.Response:
    """Build a real Response object with the given status and body."""
    res = requests.Response()
    res.status_code = status
    res.reason = reason or ("OK" if status < 400 else "Error")
    res.encoding = "utf-8"
    if payload is not None:
        res._content = json.dumps(payload).encode("utf-8")
        res.headers["Content-Type"] = content_type
    else:
        res._content = text.encode("utf-8")
    return res


@dataclass
class Call:
    method: str
    path: str
    url: str = ""
    headers: Dict[str, str] = field(default_factory=dict)
    json: Any = None


class FakeSession:
    """Stand-in for requests.Session routing (method, path) to canned responses.

    A route value may be a Response, an exception instance to raise, or a
    list of responses served in order (the last one repeats).
    """

    def __init__(self, routes: Optional[Dict[tuple, Any]] = None):
        self.routes = dict(routes or {})
        self.calls: List[Call] = []
        self.headers: Dict[str, str] = {}

    def request(self, method, url, headers=None, json=None, timeout=None):
        path = url.split("://", 1)[-1]
        path = path[path.index("/"):] if "/" in path else "/"
        self.calls.append(Call(method, path, url, dict(headers or {}), json))

        handler = self.routes.get((method, path))
        if handler is None:
            return make_response(404, text="Not Found", reason="Not Found")
        if isinstance(handler, Exception):
            raise handler
        if isinstance(handler, list):
            return handler.pop(0) if len(handler) > 1 else handler[0]
        return handler

    def paths(self, method: Optional[str] = None) -> List[str]:
        return [c.path for c in self.calls if method is None or c.method == method]


def mailtm_routes(
    messages: Optional[List[Dict[str, Any]]] = None,
    domain: str = "example.com",
    token: str = "tok-new",
    account_id: str = "acc-1",
) -> Dict[tuple, Any]:
    """Routes emulating a healthy mail.tm instance."""
    messages = messages or []
    routes: Dict[tuple, Any] = {
        ("GET", "/domains?page=1"): make_response(
            200, {"hydra:member": [{"id": "d1", "domain": domain, "isActive": True}]}
        ),
        ("POST", "/accounts"): make_response(201, {"id": account_id, "address": "ignored"}),
        ("POST", "/token"): make_response(200, {"token": token, "id": account_id}),
        ("GET", "/me"): make_response(200, {"id": account_id, "address": "ignored"}),
        ("DELETE", f"/accounts/{account_id}"): make_response(204, reason="No Content"),
        ("GET", "/messages"): make_response(200, {"hydra:member": messages}),
    }
    for m in messages:
        detail = dict(m, text=f"Body of {m['id']}", html=[])
        routes[("GET", f"/messages/{m['id']}")] = make_response(200, detail)
    return routes


def listing(*ids: str) -> requests.Response:
    """A /messages response containing bare entries with the given ids."""
    return make_response(200, {"hydra:member": [{"id": i, "subject": i} for i in ids]})

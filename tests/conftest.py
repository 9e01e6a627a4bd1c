# tests/conftest.py
"""Shared fixtures: an in-process fake of the global admin API and a wired console."""

import asyncio
import json
import math
from datetime import datetime, timedelta
from typing import Any, Callable, Dict, List, Optional, Set, Tuple

import httpx
import pytest
import pytest_asyncio
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from tenant_console.console import AdminConsole
from tenant_console.sessions.credential_store import InMemoryCredentialStore

API_BASE_URL = "http://console.test"
ADMIN_USERNAME = "admin"
ADMIN_PASSWORD = "correct-horse"
PAGE_SIZE = 20
DEBOUNCE_SECONDS = 0.05

SUMMARY_FIELDS = (
    "id", "company_name", "email", "status", "plan", "user_count",
    "created_at", "trial_ends_at", "subscription_ends_at",
)

Response = Tuple[int, Any]
RequestPredicate = Callable[[Dict[str, Any]], bool]


def make_tenant(tenant_id: int, company_name: str, status: str = "trial", plan: str = "trial", **extra) -> Dict[str, Any]:
    slug = company_name.lower().replace(" ", "-")
    tenant = {
        "id": tenant_id,
        "company_name": company_name,
        "email": f"admin@{slug}.example",
        "status": status,
        "plan": plan,
        "user_count": 3,
        "created_at": "2026-01-05T09:30:00",
        "trial_ends_at": "2026-11-01T00:00:00" if status == "trial" else None,
        "subscription_ends_at": None if status == "trial" else "2027-01-01T00:00:00",
        "phone": "+1 555 0100",
        "country": "US",
        "max_users": 10,
        "max_camps": 3,
        "camp_count": 1,
        "admin_notes": "",
        "modules": "",
        "users": [{"name": "Owner", "username": f"{slug}-owner", "email": f"owner@{slug}.example", "role": "admin"}],
        "camps": [{"name": "Main Camp", "location": "North Site"}],
    }
    tenant.update(extra)
    return tenant


def seed_tenants() -> List[Dict[str, Any]]:
    return [
        make_tenant(1, "Acme Corp"),
        make_tenant(2, "Globex", status="active", plan="starter"),
        make_tenant(3, "Initech", status="suspended", plan="professional"),
        make_tenant(
            4, "Umbrella", plan="trial",
            max_users=25, max_camps=5, admin_notes="Key account", modules="hr,payroll",
        ),
        make_tenant(5, "Hooli", status="expired", plan="starter"),
    ]


class FakeAdminBackend:
    """
    In-memory stand-in for the global admin API.

    Requests can be held at the door with `hold()` to force out-of-order
    completion, and any action can be given a canned response with `respond()`.
    """

    def __init__(self):
        self.tenants: Dict[int, Dict[str, Any]] = {}
        self.valid_tokens: Set[str] = set()
        self.requests: List[Dict[str, Any]] = []
        self.responses: Dict[str, Response] = {}
        self._gates: List[Tuple[RequestPredicate, asyncio.Event]] = []
        self._issued = 0

    def add_tenants(self, tenants: List[Dict[str, Any]]) -> None:
        for tenant in tenants:
            self.tenants[tenant["id"]] = tenant

    def issue_token(self) -> str:
        self._issued += 1
        token = f"token-{self._issued:04d}-abcdef"
        self.valid_tokens.add(token)
        return token

    def hold(self, predicate: RequestPredicate) -> asyncio.Event:
        """Block matching requests until the returned event is set."""
        event = asyncio.Event()
        self._gates.append((predicate, event))
        return event

    def release_all(self) -> None:
        for _, event in self._gates:
            event.set()

    def respond(self, action: str, status_code: int, payload: Any) -> None:
        self.responses[action] = (status_code, payload)

    def requests_for(self, action: str) -> List[Dict[str, Any]]:
        return [entry for entry in self.requests if entry["action"] == action]

    async def wait_for_request(self, action: str, count: int = 1, timeout: float = 2.0) -> None:
        deadline = asyncio.get_running_loop().time() + timeout
        while len(self.requests_for(action)) < count:
            if asyncio.get_running_loop().time() > deadline:
                raise AssertionError(f"Timed out waiting for {count} '{action}' request(s)")
            await asyncio.sleep(0.005)

    async def handle(
        self,
        method: str,
        params: Dict[str, str],
        body: Optional[Dict[str, Any]],
        authorization: Optional[str],
    ) -> Response:
        action = params.get("action", "")
        entry = {
            "method": method,
            "action": action,
            "params": params,
            "body": body,
            "authorization": authorization,
        }
        self.requests.append(entry)

        for predicate, event in list(self._gates):
            if predicate(entry):
                await event.wait()

        if action in self.responses:
            return self.responses[action]

        body = body or {}
        if action == "login":
            return self._login(body)

        token = (authorization or "").removeprefix("Bearer ")
        if token not in self.valid_tokens:
            return 401, {"success": False, "message": "Unauthorized"}

        handlers = {
            "tenants": lambda: self._list(params),
            "dashboard": self._dashboard,
            "tenant": lambda: self._detail(params),
            "extend-trial": lambda: self._extend(body),
            "suspend": lambda: self._set_status(body, "suspended"),
            "activate": lambda: self._set_status(body, "active", plan=body.get("plan")),
            "update": lambda: self._update(body),
        }
        handler = handlers.get(action)
        if handler is None:
            return 400, {"success": False, "message": f"Unknown action: {action}"}
        return handler()

    def _login(self, body: Dict[str, Any]) -> Response:
        if body.get("username") == ADMIN_USERNAME and body.get("password") == ADMIN_PASSWORD:
            return 200, {
                "success": True,
                "token": self.issue_token(),
                "admin": {"username": ADMIN_USERNAME, "name": "Global Admin"},
            }
        return 401, {"success": False, "message": "Invalid credentials"}

    def _list(self, params: Dict[str, str]) -> Response:
        rows = sorted(self.tenants.values(), key=lambda t: t["id"])
        status = params.get("status")
        if status:
            rows = [t for t in rows if t["status"] == status]
        search = params.get("search", "").lower()
        if search:
            rows = [t for t in rows if search in t["company_name"].lower() or search in t["email"].lower()]
        page = int(params.get("page", 1))
        start = (page - 1) * PAGE_SIZE
        return 200, {
            "success": True,
            "tenants": [{k: t[k] for k in SUMMARY_FIELDS} for t in rows[start:start + PAGE_SIZE]],
            "total": len(rows),
            "page": page,
            "pages": max(1, math.ceil(len(rows) / PAGE_SIZE)),
        }

    def _dashboard(self) -> Response:
        statuses = [t["status"] for t in self.tenants.values()]
        return 200, {
            "success": True,
            "stats": {
                "total_tenants": len(statuses),
                "active": statuses.count("active"),
                "trial": statuses.count("trial"),
                "suspended": statuses.count("suspended"),
                "expiring_soon": statuses.count("trial"),
            },
        }

    def _find(self, tenant_id: Any) -> Optional[Dict[str, Any]]:
        try:
            return self.tenants.get(int(tenant_id))
        except (TypeError, ValueError):
            return None

    def _detail(self, params: Dict[str, str]) -> Response:
        tenant = self._find(params.get("id"))
        if tenant is None:
            return 404, {"success": False, "message": "Tenant not found"}
        return 200, {"success": True, "tenant": dict(tenant)}

    def _extend(self, body: Dict[str, Any]) -> Response:
        tenant = self._find(body.get("id"))
        if tenant is None:
            return 404, {"success": False, "message": "Tenant not found"}
        current = datetime.fromisoformat(tenant["trial_ends_at"] or "2026-10-19T00:00:00")
        tenant["trial_ends_at"] = (current + timedelta(days=int(body["days"]))).isoformat()
        return 200, {"success": True, "message": f"Trial extended by {body['days']} days"}

    def _set_status(self, body: Dict[str, Any], status: str, plan: Optional[str] = None) -> Response:
        tenant = self._find(body.get("id"))
        if tenant is None:
            return 404, {"success": False, "message": "Tenant not found"}
        tenant["status"] = status
        if plan:
            tenant["plan"] = plan
        return 200, {"success": True, "message": f"Tenant {status}"}

    def _update(self, body: Dict[str, Any]) -> Response:
        tenant = self._find(body.get("id"))
        if tenant is None:
            return 404, {"success": False, "message": "Tenant not found"}
        for field in ("max_users", "max_camps", "plan", "modules"):
            if field in body:
                tenant[field] = body[field]
        if "notes" in body:
            tenant["admin_notes"] = body["notes"]
        return 200, {"success": True, "message": "Tenant updated"}


def build_admin_app(backend: FakeAdminBackend) -> FastAPI:
    app = FastAPI()

    @app.api_route("/global-admin.php", methods=["GET", "POST"])
    async def global_admin(request: Request):
        raw = await request.body()
        body = json.loads(raw) if raw else None
        status_code, payload = await backend.handle(
            request.method,
            dict(request.query_params),
            body,
            request.headers.get("authorization"),
        )
        return JSONResponse(status_code=status_code, content=payload)

    return app


def build_http_client(backend: FakeAdminBackend) -> httpx.AsyncClient:
    return httpx.AsyncClient(
        transport=httpx.ASGITransport(app=build_admin_app(backend)),
        base_url=API_BASE_URL,
    )


@pytest.fixture
def backend() -> FakeAdminBackend:
    fake = FakeAdminBackend()
    fake.add_tenants(seed_tenants())
    return fake


@pytest.fixture
def credential_store() -> InMemoryCredentialStore:
    return InMemoryCredentialStore()


@pytest_asyncio.fixture
async def http_client(backend):
    async with build_http_client(backend) as client:
        yield client


@pytest_asyncio.fixture
async def console(backend, http_client, credential_store):
    admin_console = AdminConsole(
        credential_store=credential_store,
        http_client=http_client,
        debounce_seconds=DEBOUNCE_SECONDS,
    )
    yield admin_console
    backend.release_all()
    await admin_console.aclose()


@pytest_asyncio.fixture
async def logged_in_console(console, backend):
    """Authenticated console with an empty request log."""
    await console.login(ADMIN_USERNAME, ADMIN_PASSWORD, load_directory=False)
    backend.requests.clear()
    return console

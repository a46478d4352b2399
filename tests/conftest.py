import os

# Doit précéder l'import de l'app: le lifespan lit ces variables au démarrage
os.environ.setdefault("DISABLE_FASTAPI_LIMITER_INIT_FOR_TESTS", "1")
os.environ.setdefault("ALLOWED_HOSTS", "testserver,localhost,127.0.0.1")

from typing import Any, Callable, Dict, Generator, List, Optional
from urllib.parse import parse_qsl

import httpx
import pytest
import stripe
from fastapi.testclient import TestClient

from backend.app import app as fastapi_app
from backend.checkout import metadata as checkout_metadata

# Marquage automatique selon le dossier
def pytest_collection_modifyitems(config, items):
    for item in items:
        nodeid = item.nodeid.replace("\\", "/")
        if "tests/unit/" in nodeid:
            item.add_marker(pytest.mark.unit)
        elif "tests/integration/" in nodeid:
            item.add_marker(pytest.mark.integration)

@pytest.fixture(scope="session")
def app():
    return fastapi_app

@pytest.fixture()
def client(app) -> Generator[TestClient, None, None]:
    with TestClient(app) as c:
        yield c

# Uploads temporaires isolés par test
@pytest.fixture(autouse=True)
def temp_upload_dir(tmp_path, monkeypatch):
    root = tmp_path / "uploads"
    root.mkdir()
    monkeypatch.setattr("backend.checkout.temp_assets.TEMP_UPLOAD_DIR", root)
    return root

# Pas d'attente entre deux tentatives HTTP
@pytest.fixture(autouse=True)
def _no_http_backoff(monkeypatch):
    monkeypatch.setattr("backend.infra.http_client.HTTP_RETRY_BACKOFF_SECONDS", 0)

# Aucune requête Stripe réelle: chaque test fournit ses propres fakes
@pytest.fixture(autouse=True)
def _no_stripe_network(monkeypatch):
    def _refuse(*args, **kwargs):
        raise RuntimeError("Appel Stripe non mocké")

    monkeypatch.setattr(stripe.checkout.Session, "create", _refuse)
    monkeypatch.setattr(stripe.checkout.Session, "retrieve", _refuse)
    monkeypatch.setattr(stripe.PaymentIntent, "modify", _refuse)


class FakeOrderApi:
    """
    API commandes simulée (httpx.MockTransport).
    - responses: liste de httpx.Response (ou callables request -> Response) consommées dans l'ordre
    - requests: requêtes reçues, dans l'ordre
    """

    def __init__(self, responses: Optional[List[Any]] = None):
        self.responses = list(responses or [])
        self.requests: List[httpx.Request] = []

    def handler(self, request: httpx.Request) -> httpx.Response:
        request.read()
        self.requests.append(request)
        if request.method == "DELETE":
            return httpx.Response(200, json={"success": True})
        if not self.responses:
            return httpx.Response(201, json={"success": True, "order": {"id": len(self.requests)}})
        nxt = self.responses.pop(0)
        return nxt(request) if callable(nxt) else nxt

    def client(self) -> httpx.Client:
        return httpx.Client(transport=httpx.MockTransport(self.handler))

    def calls(self, method: str) -> List[httpx.Request]:
        return [r for r in self.requests if r.method == method]


@pytest.fixture
def order_api(monkeypatch) -> Callable[..., FakeOrderApi]:
    """Installe une FakeOrderApi pour tous les appels de backend.infra.http_client."""
    def _install(responses: Optional[List[Any]] = None) -> FakeOrderApi:
        api = FakeOrderApi(responses)
        monkeypatch.setattr("backend.infra.http_client.build_client", api.client)
        return api
    return _install


@pytest.fixture
def make_session() -> Callable[..., Dict[str, Any]]:
    """Fabrique une session Stripe (dict) dont les métadonnées portent le payload encodé."""
    def _make(
        items: List[Dict[str, Any]],
        *,
        session_id: str = "cs_test_123",
        paid: bool = True,
        source: Optional[str] = None,
        user_id: str = "u1",
        user_email: str = "buyer@example.com",
        fulfilled: Optional[str] = None,
    ) -> Dict[str, Any]:
        payload = {"userId": user_id, "userEmail": user_email, "items": items}
        intent_metadata = {"fulfilled_order_ids": fulfilled} if fulfilled else {}
        return {
            "id": session_id,
            "payment_status": "paid" if paid else "unpaid",
            "metadata": checkout_metadata.encode(payload, source=source),
            "payment_intent": {"id": "pi_test_123", "metadata": intent_metadata},
        }
    return _make

def _form_fields(request: httpx.Request) -> Dict[str, str]:
    """Champs texte d'une requête multipart ou urlencoded (lecture simplifiée pour assertions)."""
    body = request.content.decode("utf-8", errors="replace")
    ctype = request.headers.get("content-type", "")
    if ctype.startswith("application/x-www-form-urlencoded"):
        return dict(parse_qsl(body, keep_blank_values=True))
    boundary = ctype.split("boundary=", 1)[1]
    fields: Dict[str, str] = {}
    for part in body.split(f"--{boundary}"):
        head, _, value = part.partition("\r\n\r\n")
        if 'name="' not in head or "filename=" in head:
            continue
        name = head.split('name="', 1)[1].split('"', 1)[0]
        fields[name] = value[:-2] if value.endswith("\r\n") else value
    return fields

def _file_field_names(request: httpx.Request) -> List[str]:
    body = request.content.decode("utf-8", errors="replace")
    names = []
    for part in body.split("Content-Disposition: form-data; ")[1:]:
        header = part.split("\r\n", 1)[0]
        if "filename=" in header:
            names.append(header.split('name="', 1)[1].split('"', 1)[0])
    return names

@pytest.fixture
def form_fields() -> Callable[[httpx.Request], Dict[str, str]]:
    return _form_fields

@pytest.fixture
def file_field_names() -> Callable[[httpx.Request], List[str]]:
    return _file_field_names

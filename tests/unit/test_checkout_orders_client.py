import json

import httpx
import pytest

from backend.checkout import orders_client, temp_assets
from backend.checkout.errors import ItemSubmissionError
from backend.checkout.normalizer import normalize_item


@pytest.mark.parametrize(
    "body, expected",
    [
        ({"order": {"id": 12}}, "12"),
        ({"orderId": "o-7"}, "o-7"),
        ({"id": 3}, "3"),
        ({"data": {"id": 4}}, "4"),
        ({"data": {"order": {"id": 5}}}, "5"),
        ({"order_id": 6}, "6"),
        ({"success": True}, None),
        ([1, 2], None),
    ],
)
def test_extract_order_id_shapes(body, expected):
    assert orders_client.extract_order_id(body) == expected


def test_extract_order_id_priority():
    assert orders_client.extract_order_id({"id": 1, "order": {"id": 2}}) == "2"


@pytest.mark.parametrize(
    "field, expected",
    [
        ("host_0", "host_file"),
        ("host_1", "host_file_1"),
        ("host_file", "host_file"),
        ("dj_0", "dj_0"),
        ("sponsor_2", "sponsor_2"),
        ("venue_logo", "venue_logo"),
    ],
)
def test_backend_file_field(field, expected):
    assert orders_client.backend_file_field(field) == expected


def test_form_fields_canonical_shape():
    item = normalize_item(
        {
            "presenting": "DJ A",
            "event_title": "Party",
            "flyer_is": "26",
            "total_price": "$45",
            "djs": ["A", {"name": "B", "image": "https://cdn.example.com/b.png"}],
            "host": [{"name": "Host 1"}, {"name": "Host 2"}],
            "venue_logo": "https://cdn.example.com/logo.png",
        },
        {"user_id": "u1", "email": "buyer@example.com"},
    )
    fields = orders_client.build_form_fields(item)
    assert fields["flyer_is"] == "26"
    assert fields["user_id"] == fields["web_user_id"] == "u1"
    assert fields["total_price"] == fields[" total_price"] == "45"
    assert fields["instagram_post_size"] == "true"
    assert fields["animated_flyer"] == "false"
    assert json.loads(fields["djs"]) == [{"name": "A"}, {"name": "B", "image_url": "https://cdn.example.com/b.png"}]
    assert json.loads(fields["host"]) == {"name": "Host 1"}
    assert json.loads(fields["sponsors"]) == []
    assert fields["venue_logo"] == "https://cdn.example.com/logo.png"
    assert fields["image_url"] == ""


def test_form_fields_default_host():
    fields = orders_client.build_form_fields(normalize_item({}))
    assert json.loads(fields["host"]) == {"name": ""}
    assert "venue_logo" not in fields


def test_build_submission_reads_staged_files(temp_upload_dir):
    host = temp_assets.stage(b"host-bytes", "host_0", filename="h.png", upload_id="s1")
    dj = temp_assets.stage(b"dj-bytes", "dj_1", filename="d.jpg", upload_id="s1")
    item = normalize_item(
        {"temp_files": {"host_0": host.file_path, "dj_1": dj.file_path, "sponsor_0": "/etc/passwd"}}
    )
    submission = orders_client.build_submission(item)

    names = [name for name, _ in submission.files]
    assert names == ["host_file", "dj_1"]
    assert submission.files[0][1][1] == b"host-bytes"
    assert submission.files[0][1][2] == "image/png"
    # chemin hors répertoire temporaire ignoré
    assert submission.staged_paths == [host.file_path, dj.file_path]


def test_submit_order_success_sends_idempotency_key(order_api):
    api = order_api([httpx.Response(201, json={"success": True, "order": {"id": 99}})])
    submission = orders_client.OrderSubmission(data={"event_title": "Party"})
    assert orders_client.submit_order(submission, idempotency_key="cs_1:0") == "99"

    request = api.calls("POST")[0]
    assert request.url.path == "/api/orders"
    assert request.headers["Idempotency-Key"] == "cs_1:0"


@pytest.mark.parametrize(
    "response",
    [
        httpx.Response(400, json={"error": "bad"}),
        httpx.Response(200, json={"success": False, "message": "invalid flyer"}),
        httpx.Response(200, json={"success": True}),
        httpx.Response(200, text="<html>oops</html>"),
    ],
)
def test_submit_order_failures_raise(order_api, response):
    order_api([response])
    with pytest.raises(ItemSubmissionError):
        orders_client.submit_order(orders_client.OrderSubmission(data={}))


def test_submit_order_transport_error_raises(order_api):
    def _down(request):
        raise httpx.ConnectError("refused", request=request)

    order_api([_down, _down, _down])
    with pytest.raises(ItemSubmissionError) as exc:
        orders_client.submit_order(orders_client.OrderSubmission(data={}))
    assert "unreachable" in exc.value.message


def test_clear_cart_calls_delete(order_api):
    api = order_api()
    orders_client.clear_cart("u1")
    request = api.calls("DELETE")[0]
    assert request.url.path == "/api/cart/clear/u1"


def test_form_fields_large_prices_are_exact():
    item = normalize_item({"total_price": "$1,234,567", "subtotal": 1000000})
    fields = orders_client.build_form_fields(item)
    assert fields["total_price"] == fields[" total_price"] == "1234567"
    assert fields["subtotal"] == "1000000"


def test_form_fields_fractional_price():
    fields = orders_client.build_form_fields(normalize_item({"subtotal": "$15.50", "total_price": 1234567.25}))
    assert fields["subtotal"] == "15.5"
    assert fields["total_price"] == "1234567.25"


def _gateway_timeout(request):
    return httpx.Response(504, json={"error": "gateway timeout"})


def _read_timeout(request):
    raise httpx.ReadTimeout("read timeout", request=request)


@pytest.mark.parametrize("failure", [_gateway_timeout, _read_timeout])
def test_submit_order_is_not_replayed_once_sent(order_api, failure):
    # la commande a pu être créée: pas de seconde tentative
    api = order_api([failure, httpx.Response(201, json={"order": {"id": 1}})])
    with pytest.raises(ItemSubmissionError):
        orders_client.submit_order(orders_client.OrderSubmission(data={}), idempotency_key="cs_1:0")
    assert len(api.calls("POST")) == 1

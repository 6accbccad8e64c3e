import pytest

from print_bridge.error_handling import NoDeviceFound, RetryExhausted, PrintTimeout
from print_bridge.main import create_app

HEADERS = {"X-API-Key": "test-key"}

ORDER = {
    "receipt_number": "R-1",
    "items": [{"product_name": "Nasi Lemak", "quantity": 1, "sell_price": 6.5}],
    "total_amount": 6.5,
}


class StubPrintService:
    """Records calls made by the routes; optionally fails them."""

    def __init__(self):
        self.handle = None
        self.error = None
        self.printed = []
        self.tests = 0
        self.connectivity_checks = 0

    def _maybe_fail(self):
        if self.error is not None:
            raise self.error

    def print_receipt(self, order):
        self._maybe_fail()
        self.printed.append(order)
        return {"success": True, "message": "Receipt printed successfully"}

    def print_test(self):
        self._maybe_fail()
        self.tests += 1
        return {"success": True, "message": "Test receipt printed successfully"}

    def test_connectivity(self):
        self._maybe_fail()
        self.connectivity_checks += 1
        return True

    def current_handle_for_health_check(self):
        return self.handle


@pytest.fixture
def service():
    return StubPrintService()


@pytest.fixture
def app(app_config, service):
    return create_app(app_config, service)


@pytest.fixture
def client(app):
    return app.test_client()


def test_health_degraded_without_handle(client):
    response = client.get("/health")

    assert response.status_code == 200
    body = response.get_json()
    assert body["status"] == "degraded"
    assert body["printer"] == {"connected": False, "type": "usb"}
    assert "timestamp" in body


def test_health_ok_with_handle(client, service):
    service.handle = object()

    body = client.get("/health").get_json()

    assert body["status"] == "ok"
    assert body["printer"]["connected"] is True


@pytest.mark.parametrize("method, path", [("get", "/test"), ("post", "/test-receipt"), ("post", "/print")])
def test_endpoints_require_api_key(client, service, method, path):
    response = getattr(client, method)(path, json=ORDER, headers={"X-API-Key": "wrong"})

    assert response.status_code == 401
    assert response.get_json()["error"]["message"] == "Invalid or missing API key"
    assert service.printed == []


def test_missing_api_key(client):
    assert client.post("/print", json=ORDER).status_code == 401


def test_print_receipt(client, service):
    response = client.post("/print", json=ORDER, headers=HEADERS)

    assert response.status_code == 200
    assert response.get_json() == {"success": True, "message": "Receipt printed successfully"}
    assert service.printed == [ORDER]


def test_test_page(client, service):
    response = client.get("/test", headers=HEADERS)

    assert response.status_code == 200
    assert response.get_json() == {"success": True, "message": "Test print sent successfully"}
    assert service.connectivity_checks == 1


def test_test_receipt(client, service):
    response = client.post("/test-receipt", headers=HEADERS)

    assert response.status_code == 200
    assert response.get_json()["message"] == "Test receipt printed successfully"


@pytest.mark.parametrize("payload, message", [
    ([1, 2], "request body must be a JSON object"),
    ({}, "Missing required fields: items"),
    ({"items": []}, "items must be a non-empty array"),
    ({"items": "abc"}, "items must be a non-empty array"),
    ({"items": [{}] * 101}, "Too many items"),
    ({"items": ["x"]}, "Invalid item at index 0: must be an object"),
    ({"items": [{}, {"quantity": -1}]}, "Invalid item at index 1: quantity must be a non-negative number"),
    ({"items": [{"quantity": "2"}]}, "quantity must be a non-negative number"),
    ({"items": [{"sell_price": -3}]}, "sell_price must be a non-negative number"),
    ({"items": [{"price": "free"}]}, "sell_price must be a non-negative number"),
])
def test_print_validation(client, service, payload, message):
    response = client.post("/print", json=payload, headers=HEADERS)

    assert response.status_code == 400
    body = response.get_json()
    assert body["success"] is False
    assert message in body["error"]["message"]
    assert service.printed == []


def test_print_requires_json_body(client):
    response = client.post("/print", data="not json", headers=HEADERS)

    assert response.status_code == 400


def test_printer_failure_hides_details(client, service):
    service.error = RetryExhausted("Print receipt", 3, PrintTimeout())

    response = client.post("/print", json=ORDER, headers=HEADERS)

    assert response.status_code == 500
    body = response.get_json()
    assert body["success"] is False
    assert body["error"]["message"] == "Internal error"
    assert "details" not in body["error"]


def test_printer_failure_details_in_debug(app_config, service):
    app_config["debug"] = True
    client = create_app(app_config, service).test_client()
    service.error = NoDeviceFound()

    response = client.get("/test", headers=HEADERS)

    assert response.status_code == 500
    assert response.get_json()["error"]["message"] == "No USB printer found"


def test_test_endpoints_are_rate_limited(client, service):
    statuses = [client.post("/test-receipt", headers=HEADERS).status_code for _ in range(4)]

    assert statuses == [200, 200, 200, 429]
    response = client.get("/test", headers=HEADERS)
    assert response.status_code == 429
    assert response.headers["Retry-After"] == "60"
    assert response.get_json()["error"]["details"]["retry_after"] == 60
    assert service.tests == 3


def test_print_rate_limit_is_separate(client, service):
    for _ in range(3):
        client.get("/test", headers=HEADERS)

    assert client.post("/print", json=ORDER, headers=HEADERS).status_code == 200


def test_print_rate_limit(client):
    statuses = [client.post("/print", json=ORDER, headers=HEADERS).status_code for _ in range(11)]

    assert statuses.count(200) == 10
    assert statuses[-1] == 429


def test_payload_too_large(client):
    response = client.post("/print", data="x" * (1024 * 1024 + 1),
                           headers=dict(HEADERS, **{"Content-Type": "application/json"}))

    assert response.status_code == 413
    assert "too large" in response.get_json()["error"]["message"]


def test_cors_allows_configured_origin(client):
    response = client.get("/health", headers={"Origin": "http://localhost:5173"})

    assert response.headers["Access-Control-Allow-Origin"] == "http://localhost:5173"


def test_cors_rejects_unknown_origin(client):
    response = client.get("/health", headers={"Origin": "http://evil.example"})

    assert "Access-Control-Allow-Origin" not in response.headers


def test_security_headers(client):
    response = client.get("/health")

    assert response.headers["X-Content-Type-Options"] == "nosniff"
    assert "default-src 'self'" in response.headers["Content-Security-Policy"]

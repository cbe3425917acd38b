from __future__ import annotations

from fastapi import FastAPI
from fastapi.testclient import TestClient

from showroom.domain_errors import DomainError, InsufficientStockError, InvalidAmountError, NotFoundError
from showroom.problem_details import build_problem_details_response, domain_error_handler


def test_problem_details_payload_contains_stable_code_and_rfc7807_fields() -> None:
    response = build_problem_details_response(
        InsufficientStockError(
            code="INSUFFICIENT_STOCK",
            message="Not enough stock for SP-0001",
            details={"available": 1, "requested": 2},
        )
    )

    assert response.status_code == 409
    assert response.media_type == "application/problem+json"

    body = response.body.decode("utf-8")
    assert '"type":"https://api.showroom.local/problems/insufficient_stock"' in body
    assert '"title":"Conflict"' in body
    assert '"status":409' in body
    assert '"detail":"Not enough stock for SP-0001"' in body
    assert '"code":"INSUFFICIENT_STOCK"' in body
    assert '"details":{"available":1,"requested":2}' in body


def test_problem_details_omits_details_when_none() -> None:
    response = build_problem_details_response(
        InvalidAmountError(code="SALE_PRICE_BELOW_HPP", message="Selling price below HPP")
    )

    body = response.body.decode("utf-8")
    assert response.status_code == 422
    assert '"title":"Unprocessable Entity"' in body or '"title":"Unprocessable Content"' in body
    assert '"details"' not in body


def test_unknown_status_falls_back_to_generic_title() -> None:
    response = build_problem_details_response(DomainError(code="ODD", http_status=599, message="odd"))

    assert '"title":"Domain Error"' in response.body.decode("utf-8")


def test_fastapi_exception_handler_maps_domain_error_to_problem_details() -> None:
    app = FastAPI()
    app.add_exception_handler(DomainError, domain_error_handler)

    @app.get("/vehicles/{vehicle_id}")
    def _missing(vehicle_id: int):
        raise NotFoundError(
            code="VEHICLE_NOT_FOUND",
            message="Vehicle not found",
            details={"vehicle_id": vehicle_id},
        )

    client = TestClient(app)
    response = client.get("/vehicles/42")

    assert response.status_code == 404
    assert response.headers["content-type"].startswith("application/problem+json")
    payload = response.json()
    assert payload["code"] == "VEHICLE_NOT_FOUND"
    assert payload["details"] == {"vehicle_id": 42}

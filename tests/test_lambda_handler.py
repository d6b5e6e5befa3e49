"""Tests for AWS Lambda handler."""

import base64
import json

from lambda_handler import lambda_handler


def _contract(contract_id="contract-1", tenant_id="tenant-1", advance=0, rate="0.10"):
    return {
        "contract_id": contract_id,
        "tenant_id": tenant_id,
        "title_id": f"title-{contract_id}",
        "tiers": [{"tier_id": "flat", "format": "paperback", "min_quantity": 0, "rate": rate}],
        "advance_amount": advance,
    }


def _preview_payload(**contract_overrides):
    return {
        "contract": _contract(**contract_overrides),
        "period_start": "2025-01-01",
        "period_end": "2025-01-31",
        "sales": [{"format": "paperback", "net_quantity": 1000, "net_revenue": "12000.00"}],
    }


def _post(path, payload, **extra):
    event = {"httpMethod": "POST", "path": path, "body": json.dumps(payload)}
    event.update(extra)
    return lambda_handler(event, None)


class TestLambdaHandler:
    """Test the Lambda handler routes and responses."""

    def test_health_check(self):
        """GET /health returns healthy status."""
        event = {"httpMethod": "GET", "path": "/health"}
        response = lambda_handler(event, None)

        assert response["statusCode"] == 200
        body = json.loads(response["body"])
        assert body["status"] == "healthy"

    def test_api_info(self):
        """GET /api returns API information."""
        event = {"httpMethod": "GET", "path": "/api"}
        response = lambda_handler(event, None)

        assert response["statusCode"] == 200
        body = json.loads(response["body"])
        assert body["status"] == "ok"
        assert "generate_statements_batch" in body["endpoints"]

    def test_cors_preflight(self):
        """OPTIONS requests return CORS headers."""
        event = {"httpMethod": "OPTIONS", "path": "/preview_royalty"}
        response = lambda_handler(event, None)

        assert response["statusCode"] == 200
        assert "Access-Control-Allow-Origin" in response["headers"]
        assert "Access-Control-Allow-Methods" in response["headers"]

    def test_not_found(self):
        """Unknown paths return 404."""
        event = {"httpMethod": "GET", "path": "/unknown"}
        response = lambda_handler(event, None)

        assert response["statusCode"] == 404

    def test_preview_success(self):
        """1,000 copies, $12,000 at 10% = $1,200"""
        response = _post("/preview_royalty", _preview_payload(advance=500))

        assert response["statusCode"] == 200
        body = json.loads(response["body"])
        assert body["gross_royalty"] == "1200.00"
        assert body["net_payable"] == "700.00"

    def test_http_api_v2_format(self):
        """HTTP API (v2) events carry method and path elsewhere."""
        event = {
            "requestContext": {"http": {"method": "POST"}},
            "rawPath": "/preview_royalty",
            "body": json.dumps(_preview_payload()),
        }
        response = lambda_handler(event, None)

        assert response["statusCode"] == 200

    def test_base64_body(self):
        body = base64.b64encode(json.dumps(_preview_payload()).encode("utf-8")).decode("ascii")
        event = {"httpMethod": "POST", "path": "/preview_royalty", "body": body, "isBase64Encoded": True}

        response = lambda_handler(event, None)

        assert response["statusCode"] == 200

    def test_empty_body(self):
        event = {"httpMethod": "POST", "path": "/preview_royalty", "body": ""}
        response = lambda_handler(event, None)

        assert response["statusCode"] == 400

    def test_invalid_json(self):
        event = {"httpMethod": "POST", "path": "/preview_royalty", "body": "{not json"}
        response = lambda_handler(event, None)

        assert response["statusCode"] == 400
        assert "Invalid JSON" in json.loads(response["body"])["error"]

    def test_invalid_schedule_is_validation_error(self):
        payload = _preview_payload(rate="1.5")
        response = _post("/preview_royalty", payload)

        assert response["statusCode"] == 400
        body = json.loads(response["body"])
        assert body["status"] == "validation_failed"
        assert body["kind"] == "configuration"

    def test_missing_sales_is_validation_error(self):
        payload = _preview_payload()
        payload["sales"] = []
        response = _post("/preview_royalty", payload)

        assert response["statusCode"] == 400
        assert json.loads(response["body"])["kind"] == "data"

    def test_missing_field_is_validation_error(self):
        payload = _preview_payload()
        del payload["period_end"]
        response = _post("/preview_royalty", payload)

        assert response["statusCode"] == 400


class TestStatementBatch:
    """Test POST /generate_statements_batch."""

    def test_batch_with_partial_failure(self):
        payload = {
            "period_start": "2025-01-01",
            "period_end": "2025-01-31",
            "contracts": [
                {
                    "contract": _contract("c1", advance=1000),
                    "sales": [{"format": "paperback", "net_quantity": 1000, "net_revenue": "12000.00"}],
                },
                {
                    "contract": _contract("c2", tenant_id="tenant-2"),
                    "sales": [],
                },
                {
                    "contract": _contract("c3", tenant_id="tenant-2"),
                    "sales": [{"format": "paperback", "net_quantity": 10, "net_revenue": "100.00"}],
                },
            ],
        }

        response = _post("/generate_statements_batch", payload)

        assert response["statusCode"] == 200
        body = json.loads(response["body"])
        assert (body["total"], body["succeeded"], body["failed"]) == (3, 2, 1)
        assert [r["success"] for r in body["results"]] == [True, False, True]
        assert body["results"][0]["net_payable"] == "200.00"
        assert body["results"][1]["error_kind"] == "data"
        assert [r["contract_id"] for r in body["records"]] == ["c1", "c3"]

    def test_contracts_on_same_title_share_its_sales(self):
        """Two contracts on one title each see its 100 units once: 100 × $10 × 10% = $100"""
        sales = [{"format": "paperback", "net_quantity": 100, "net_revenue": "1000.00"}]
        contracts = [dict(_contract(contract_id), title_id="shared-title") for contract_id in ("c1", "c2")]
        payload = {
            "period_start": "2025-01-01",
            "period_end": "2025-01-31",
            "contracts": [{"contract": contract, "sales": sales} for contract in contracts],
        }

        response = _post("/generate_statements_batch", payload)

        body = json.loads(response["body"])
        assert body["succeeded"] == 2
        assert [r["formats"][0]["net_quantity"] for r in body["records"]] == ["100", "100"]
        assert [r["gross_royalty"] for r in body["records"]] == ["100.00", "100.00"]

    def test_batch_missing_period(self):
        response = _post("/generate_statements_batch", {"contracts": []})

        assert response["statusCode"] == 400

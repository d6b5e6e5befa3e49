"""
AWS Lambda handler for the Royalty Calculation Engine API.

This is the production entry point for AWS Lambda deployments: interactive
previews and the scheduled statement-generation batch.
For local development, use main.py (Flask app) instead.
"""

import base64
import json
import logging

from royalties import (
    BatchRunner,
    CalculationRequest,
    ConcurrencyError,
    DuplicateCalculationError,
    EngineSettings,
    InMemoryLedger,
    InMemorySalesStore,
    RoyaltyEngineError,
    RoyaltyProcessor,
    preview_royalty_from_dict,
)
from royalties.models import parse_date
from royalties.processor import sales_store_from_dict

settings = EngineSettings.from_env()

# Configure logging
logger = logging.getLogger()
logger.setLevel(getattr(logging, settings.log_level, logging.INFO))

# Environment (dev, staging, prod)
ENVIRONMENT = settings.environment

# CORS headers for API Gateway
CORS_HEADERS = {
    "Content-Type": "application/json",
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Headers": "Content-Type,Authorization",
    "Access-Control-Allow-Methods": "GET,POST,OPTIONS",
}


def lambda_handler(event, context):
    """
    Main Lambda entry point.

    Handles API Gateway events for:
    - GET /health
    - GET /api
    - POST /preview_royalty
    - POST /generate_statements_batch
    - OPTIONS (CORS preflight)
    """
    # Handle CORS preflight
    http_method = event.get("httpMethod") or event.get("requestContext", {}).get("http", {}).get("method", "")
    if http_method == "OPTIONS":
        return {"statusCode": 200, "headers": CORS_HEADERS, "body": ""}

    # Get path (supports both REST API and HTTP API formats)
    path = event.get("path") or event.get("rawPath", "")

    # Route to appropriate handler
    if path == "/health" and http_method == "GET":
        return handle_health()
    elif path == "/api" and http_method == "GET":
        return handle_api_info()
    elif path == "/preview_royalty" and http_method == "POST":
        return _handle_post(event, handle_preview_royalty)
    elif path == "/generate_statements_batch" and http_method == "POST":
        return _handle_post(event, handle_generate_statements_batch)
    else:
        return _response(404, {"error": "Not found", "path": path})


def handle_health():
    """Health check endpoint."""
    return _response(200, {"status": "healthy", "environment": ENVIRONMENT})


def handle_api_info():
    """API information endpoint."""
    return _response(
        200,
        {
            "status": "ok",
            "message": "Royalty Calculation Engine API",
            "version": "1.0",
            "environment": ENVIRONMENT,
            "runtime": "AWS Lambda",
            "endpoints": {
                "preview_royalty": "/preview_royalty [POST]",
                "generate_statements_batch": "/generate_statements_batch [POST]",
                "health": "/health [GET]",
            },
        },
    )


def handle_preview_royalty(input_data):
    """Preview one contract's royalty for a period. Nothing is persisted."""
    contract_id = input_data.get("contract", {}).get("contract_id", "Unknown")
    logger.info(f"Previewing royalty for contract: {contract_id}")
    return preview_royalty_from_dict(input_data)


def handle_generate_statements_batch(input_data):
    """
    Calculate and commit statements for every contract in the payload.

    The batch reads sales with an elevated (not tenant-scoped) store, as a
    scheduled job does. Each entry in "contracts" carries its contract plus
    the period's "sales" and optional "lifetime" baselines. Contracts on the
    same title share its sales, so a title is loaded from the first entry that
    carries data for it. One contract failing does not stop the others.
    """
    period_start = parse_date(input_data["period_start"])
    period_end = parse_date(input_data["period_end"])

    store = InMemorySalesStore()
    requests = []
    loaded_titles = set()
    for entry in input_data.get("contracts", []):
        request = CalculationRequest.from_dict(
            {"contract": entry["contract"], "period_start": period_start, "period_end": period_end}
        )
        title_key = (request.tenant_id, request.contract.title_id)
        if title_key not in loaded_titles and (entry.get("sales") or entry.get("lifetime")):
            sales_store_from_dict(entry, *title_key, period_start, period_end, store)
            loaded_titles.add(title_key)
        requests.append(request)

    logger.info(f"Generating statements for {len(requests)} contracts, {period_start} to {period_end}")

    ledger = InMemoryLedger(lock_timeout=settings.lock_timeout_seconds)
    processor = RoyaltyProcessor(store, ledger=ledger, settings=settings)
    summary = BatchRunner(processor, settings).run(requests)

    result = summary.to_dict()
    result["records"] = [r.record.to_dict() for r in summary.succeeded]
    return result


def _handle_post(event, handler):
    try:
        # Parse request body
        body = event.get("body", "")
        if isinstance(body, str):
            if not body:
                return _response(400, {"error": "No input data provided", "status": "failed"})
            # Handle base64 encoded body (API Gateway)
            if event.get("isBase64Encoded"):
                body = base64.b64decode(body).decode("utf-8")
            input_data = json.loads(body)
        else:
            input_data = body

        return _response(200, handler(input_data))

    except json.JSONDecodeError as e:
        logger.error(f"JSON parse error: {str(e)}")
        return _response(400, {"error": f"Invalid JSON: {str(e)}", "status": "failed"})

    except (ConcurrencyError, DuplicateCalculationError) as e:
        logger.error(f"Conflict ({e.kind}): {e.message}")
        return _response(409, {**e.to_dict(), "status": "conflict"})

    except RoyaltyEngineError as e:
        logger.error(f"Engine error ({e.kind}): {e.message}")
        return _response(400, {**e.to_dict(), "status": "validation_failed"})

    except PermissionError as e:
        logger.warning(f"Permission denied: {str(e)}")
        return _response(403, {"error": str(e), "status": "forbidden"})

    except (ValueError, KeyError, TypeError) as e:
        # Malformed payloads (missing fields, invalid types, etc.)
        logger.error(f"Validation error: {str(e)}")
        return _response(400, {"error": f"Validation error: {str(e)}", "status": "validation_failed"})

    except Exception as e:
        # Unexpected errors - log details but return generic message to avoid information disclosure
        logger.error(f"Unexpected processing error: {str(e)}", exc_info=True)
        return _response(500, {"error": "An unexpected error occurred during processing", "status": "failed"})


def _response(status_code, payload):
    return {"statusCode": status_code, "headers": CORS_HEADERS, "body": json.dumps(payload)}

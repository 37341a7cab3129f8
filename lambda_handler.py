"""
AWS Lambda handler for the Studio Payroll Settlement API.

This is the production entry point for AWS Lambda deployments.
For local development, use main.py (Flask app) instead.
"""

import json
import logging
import os

from settlement.errors import AlreadySettledError, NothingToPayError, SettlementError
from settlement.processor import (
    calculate_payouts_from_dict,
    payment_history_from_dict,
    purchase_package_from_dict,
    settle_from_dict,
)

# Configure logging
logger = logging.getLogger()
logger.setLevel(logging.INFO)

# Environment (dev, staging, prod)
ENVIRONMENT = os.environ.get("ENVIRONMENT", "dev")

# CORS headers for API Gateway
CORS_HEADERS = {
    "Content-Type": "application/json",
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Headers": "Content-Type,Authorization",
    "Access-Control-Allow-Methods": "GET,POST,OPTIONS",
}

POST_ROUTES = {
    "/payouts": calculate_payouts_from_dict,
    "/payouts/settle": settle_from_dict,
    "/payouts/history": payment_history_from_dict,
    "/packages/purchase": purchase_package_from_dict,
}


def _response(status_code, body):
    return {"statusCode": status_code, "headers": CORS_HEADERS, "body": json.dumps(body)}


def lambda_handler(event, context):
    """
    Main Lambda entry point.

    Handles API Gateway events for:
    - GET /health, GET /api
    - POST /payouts, /payouts/settle, /payouts/history, /packages/purchase
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
    elif path in POST_ROUTES and http_method == "POST":
        return handle_post(event, POST_ROUTES[path], path)
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
            "message": "Studio Payroll Settlement API",
            "version": "1.0",
            "environment": ENVIRONMENT,
            "runtime": "AWS Lambda",
            "endpoints": {path: f"{path} [POST]" for path in POST_ROUTES} | {"health": "/health [GET]"},
        },
    )


def handle_post(event, handler, path):
    """Run a settlement engine entry point on the request body."""
    try:
        # Parse request body
        body = event.get("body", "")
        if isinstance(body, str):
            if not body:
                return _response(400, {"error": "No input data provided", "status": "failed"})
            # Handle base64 encoded body (API Gateway)
            if event.get("isBase64Encoded"):
                import base64

                body = base64.b64decode(body).decode("utf-8")
            input_data = json.loads(body)
        else:
            input_data = body

        logger.info(f"Processing {path}")
        result = handler(input_data)
        logger.info(f"Processed {path} successfully")

        return _response(200, result)

    except json.JSONDecodeError as e:
        logger.error(f"JSON parse error: {str(e)}")
        return _response(400, {"error": f"Invalid JSON: {str(e)}", "status": "failed"})

    except AlreadySettledError as e:
        logger.info(f"Already settled: {str(e)}")
        return _response(409, {"error": str(e), "status": "already_settled"})

    except NothingToPayError as e:
        logger.info(f"Nothing to pay: {str(e)}")
        return _response(422, {"error": str(e), "status": "nothing_to_pay"})

    except SettlementError as e:
        logger.warning(f"Settlement rejected: {str(e)}")
        return _response(
            409,
            {"error": str(e), "status": "conflict" if e.retryable else "rejected", "retryable": e.retryable},
        )

    except (ValueError, KeyError, TypeError) as e:
        # Validation errors from engine (missing fields, invalid types, etc.)
        logger.error(f"Validation error: {str(e)}")
        return _response(400, {"error": f"Validation error: {str(e)}", "status": "validation_failed"})

    except Exception as e:
        # Unexpected errors - log details but return generic message to avoid information disclosure
        logger.error(f"Unexpected processing error: {str(e)}", exc_info=True)
        return _response(500, {"error": "An unexpected error occurred during processing", "status": "failed"})

from flask import Flask, request, jsonify
from flask_cors import CORS
from settlement.errors import AlreadySettledError, NothingToPayError, SettlementError
from settlement.processor import (
    calculate_payouts_from_dict,
    payment_history_from_dict,
    purchase_package_from_dict,
    settle_from_dict,
)
import os
import logging

# Configure logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

app = Flask(__name__)

# Enable CORS for all routes (the dashboard UI calls the API from another origin)
CORS(app)


@app.route("/api", methods=["GET"])
def api_info():
    """API information endpoint"""
    return jsonify({
        "status": "ok",
        "message": "Studio Payroll Settlement API",
        "version": "1.0",
        "endpoints": {
            "payouts": "/payouts [POST]",
            "settle": "/payouts/settle [POST]",
            "payment_history": "/payouts/history [POST]",
            "purchase_package": "/packages/purchase [POST]",
            "health": "/health [GET]"
        }
    }), 200


@app.route("/health", methods=["GET"])
def health():
    """Health check for monitoring"""
    return jsonify({"status": "healthy"}), 200


def _run(handler, action: str):
    """Run an engine entry point and map its outcomes to HTTP responses."""
    try:
        input_data = request.get_json(force=True, silent=True)

        if not input_data:
            return jsonify({
                "error": "No input data provided",
                "status": "failed"
            }), 400

        logger.info(f"Processing {action}")
        result = handler(input_data)
        logger.info(f"{action} processed successfully")

        return jsonify(result), 200

    except AlreadySettledError as e:
        # Benign: the UI should refresh, not retry
        logger.info(f"Already settled: {str(e)}")
        return jsonify({
            "error": str(e),
            "status": "already_settled"
        }), 409

    except NothingToPayError as e:
        logger.info(f"Nothing to pay: {str(e)}")
        return jsonify({
            "error": str(e),
            "status": "nothing_to_pay"
        }), 422

    except SettlementError as e:
        logger.warning(f"Settlement rejected: {str(e)}")
        return jsonify({
            "error": str(e),
            "status": "conflict" if e.retryable else "rejected",
            "retryable": e.retryable
        }), 409

    except (ValueError, KeyError, TypeError) as e:
        # Validation errors from engine
        logger.error(f"Validation error: {str(e)}")
        return jsonify({
            "error": f"Validation error: {str(e)}",
            "status": "validation_failed"
        }), 400

    except Exception as e:
        # Unexpected errors
        logger.error(f"Processing error: {str(e)}", exc_info=True)
        return jsonify({
            "error": "An unexpected error occurred during processing",
            "status": "failed"
        }), 500


@app.route("/payouts", methods=["POST"])
def payouts():
    """Payout breakdown for every trainer in the requested week"""
    return _run(calculate_payouts_from_dict, "payouts")


@app.route("/payouts/settle", methods=["POST"])
def settle():
    """Record a trainer payment for the requested week"""
    return _run(settle_from_dict, "settlement")


@app.route("/payouts/history", methods=["POST"])
def payment_history():
    """A trainer's recorded payments, newest first"""
    return _run(payment_history_from_dict, "payment history")


@app.route("/packages/purchase", methods=["POST"])
def purchase_package():
    """Add a package to a customer and resolve a matching session debt"""
    return _run(purchase_package_from_dict, "package purchase")


if __name__ == "__main__":
    port = int(os.environ.get("PORT", 8080))
    app.run(host="0.0.0.0", port=port, debug=False)

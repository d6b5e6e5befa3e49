from flask import Flask, request, jsonify
from flask_cors import CORS
from royalties import ConcurrencyError, DuplicateCalculationError, EngineSettings, RoyaltyEngineError
from royalties import preview_royalty_from_dict, project_royalty_from_dict
import logging
import os

settings = EngineSettings.from_env()

# Configure logging
logging.basicConfig(level=getattr(logging, settings.log_level, logging.INFO))
logger = logging.getLogger(__name__)

app = Flask(__name__)

# Enable CORS for all routes (the ERP front end previews royalties from the browser)
CORS(app)


@app.route("/api", methods=["GET"])
def api_info():
    """API information endpoint"""
    return jsonify({
        "status": "ok",
        "message": "Royalty Calculation Engine API",
        "version": "1.0",
        "environment": settings.environment,
        "endpoints": {
            "preview_royalty": "/preview_royalty [POST]",
            "project_royalty": "/project_royalty [POST]",
            "health": "/health [GET]"
        }
    }), 200


@app.route("/health", methods=["GET"])
def health():
    """Health check for monitoring"""
    return jsonify({"status": "healthy"}), 200


@app.route("/preview_royalty", methods=["POST"])
def preview_royalty():
    """
    Preview a contract's royalty for one period. Nothing is persisted.
    """
    input_data = request.get_json(force=True, silent=True)
    if not input_data:
        return jsonify({
            "error": "No input data provided",
            "status": "failed"
        }), 400

    contract_id = input_data.get("contract", {}).get("contract_id", "Unknown")
    logger.info(f"Previewing royalty for contract: {contract_id}")

    return _run(preview_royalty_from_dict, input_data)


@app.route("/project_royalty", methods=["POST"])
def project_royalty():
    """
    Project tier crossover and annual royalty for a lifetime-mode title.
    """
    input_data = request.get_json(force=True, silent=True)
    if not input_data:
        return jsonify({
            "error": "No input data provided",
            "status": "failed"
        }), 400

    return _run(project_royalty_from_dict, input_data)


def _run(handler, input_data):
    try:
        return jsonify(handler(input_data)), 200

    except RoyaltyEngineError as e:
        logger.error(f"Engine error ({e.kind}): {e.message}")
        status = 409 if isinstance(e, (ConcurrencyError, DuplicateCalculationError)) else 400
        body = e.to_dict()
        body["status"] = "validation_failed" if status == 400 else "conflict"
        return jsonify(body), status

    except PermissionError as e:
        logger.warning(f"Permission denied: {str(e)}")
        return jsonify({
            "error": str(e),
            "status": "forbidden"
        }), 403

    except (ValueError, KeyError, TypeError) as e:
        # Malformed payloads (missing fields, invalid numbers or dates)
        logger.error(f"Validation error: {str(e)}")
        return jsonify({
            "error": f"Validation error: {str(e)}",
            "status": "validation_failed"
        }), 400

    except Exception as e:
        logger.error(f"Processing error: {str(e)}", exc_info=True)
        return jsonify({
            "error": "An unexpected error occurred during processing",
            "status": "failed"
        }), 500


if __name__ == "__main__":
    port = int(os.environ.get("PORT", 8080))
    app.run(host="0.0.0.0", port=port, debug=False)

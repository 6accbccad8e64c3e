#!/usr/bin/env python3.11
"""
Main application for the print bridge.
This is the entry point for the application.
"""
import logging
import signal
import sys
from typing import Any, Dict, Optional

from flask import Flask, jsonify, request
from flask_cors import CORS

from print_bridge.config import build_config, validate_config
from print_bridge.constants import MAX_CONTENT_LENGTH, PRINTER_CLOSE_TIMEOUT
from print_bridge.error_handling import ConfigurationError, PayloadTooLargeError, handle_exception
from print_bridge.print_service import PrintService, build_print_service
from print_bridge.rate_limit import RateLimiter
from print_bridge.routes import api_bp

logger = logging.getLogger(__name__)

SECURITY_HEADERS = {
    "Content-Security-Policy": "default-src 'self'; script-src 'self'; style-src 'self' 'unsafe-inline'; "
                               "img-src 'self'; connect-src 'self'",
    "X-Content-Type-Options": "nosniff",
    "X-Frame-Options": "SAMEORIGIN",
    "Referrer-Policy": "no-referrer",
}


def configure_logging(debug: bool = False) -> None:
    logging.basicConfig(
        level=logging.DEBUG if debug else logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )


def create_app(config: Optional[Dict[str, Any]] = None, service: Optional[PrintService] = None) -> Flask:
    """
    Create the Flask application.

    Args:
        config: Configuration dictionary (default: built from the environment)
        service: Print service to use (default: one driving the configured USB printer)

    Returns:
        Configured Flask application
    """
    config = config if config is not None else build_config()
    service = service if service is not None else build_print_service(config)

    app = Flask(__name__)
    app.debug = config["debug"]
    app.config["MAX_CONTENT_LENGTH"] = MAX_CONTENT_LENGTH
    app.config["PRINT_BRIDGE"] = config

    CORS(app, origins=config["cors"]["origins"], methods=["GET", "POST"])

    limits = config["rate_limit"]
    app.extensions["print_service"] = service
    app.extensions["rate_limiters"] = {
        "print": RateLimiter(limits["print_max"], limits["window_seconds"],
                             "Too many print requests. Please try again later."),
        "test": RateLimiter(limits["test_max"], limits["window_seconds"],
                            "Too many test requests. Please try again later."),
    }

    app.register_blueprint(api_bp)

    @app.before_request
    def log_request():
        logger.info(f"{request.method} {request.path}")

    @app.after_request
    def add_security_headers(response):
        for header, value in SECURITY_HEADERS.items():
            response.headers.setdefault(header, value)
        return response

    @app.errorhandler(413)
    def payload_too_large(error):
        logger.error(f"Payload too large: {error}")
        return jsonify(PayloadTooLargeError().to_dict()), 413

    @app.errorhandler(500)
    def internal_error(error):
        error_response = handle_exception(getattr(error, "original_exception", None) or error)
        return jsonify({"success": False, "error": {"code": error_response["error"]["code"],
                                                     "message": "Internal server error"}}), 500

    return app


def print_banner(config: Dict[str, Any]) -> None:
    """Print the start-up banner with the server address and endpoints."""
    server = config["server"]
    rule = "=" * 50
    print(f"\n{rule}")
    print("  Receipt Print Bridge")
    print(rule)
    print(f"Server running at http://{server['host']}:{server['port']}")
    print(f"Printer type: {config['printer']['type']}")
    print(f"Paper width: {config['receipt']['paper_width']} characters")
    print(rule)
    print("\nEndpoints:")
    print("  GET  /health        - Health check")
    print("  GET  /test          - Test printer connection")
    print("  POST /test-receipt  - Print test receipt")
    print("  POST /print         - Print receipt")
    print(f"{rule}\n")


def install_shutdown_handlers(service: PrintService) -> None:
    """Close the printer within the close timeout on SIGTERM or SIGINT, then exit."""
    def _shutdown(signum, frame):
        logger.info(f"{signal.Signals(signum).name} received, shutting down gracefully...")
        service.close_gracefully(PRINTER_CLOSE_TIMEOUT)
        sys.exit(0)

    signal.signal(signal.SIGTERM, _shutdown)
    signal.signal(signal.SIGINT, _shutdown)


def main(host: Optional[str] = None, port: Optional[int] = None, debug: Optional[bool] = None) -> int:
    """Load configuration, start the print bridge and serve until interrupted."""
    try:
        config = build_config()
        if debug is not None:
            config["debug"] = debug
        if host:
            config["server"]["host"] = host
        if port:
            config["server"]["port"] = port
        configure_logging(config["debug"])
        validate_config(config)
    except ConfigurationError as e:
        logging.getLogger(__name__).error(f"[CONFIG ERROR] {e.message}")
        return 1

    service = build_print_service(config)
    app = create_app(config, service)
    install_shutdown_handlers(service)

    print_banner(config)
    app.run(host=config["server"]["host"], port=int(config["server"]["port"]),
            debug=False, threaded=True, use_reloader=False)
    return 0


if __name__ == "__main__":
    sys.exit(main())

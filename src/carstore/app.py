import logging

from flask import Flask, jsonify, request
from werkzeug.exceptions import HTTPException

from carstore.car import CarRepository
from carstore.car.service import CarService
from carstore.config import Config
from carstore.db import Database
from carstore.enrichment import CarInfoClient
from carstore.errors import CarstoreError, classify, error_response
from carstore.logger import setup_logger


def build_service(config: Config, logger: logging.Logger) -> CarService:
    """Wire the car service to PostgreSQL and the car info API."""
    database = Database(config.database_url, logger=logger)
    resolver = CarInfoClient(
        config.external_cars_api_url,
        timeout=config.resolver_timeout,
        logger=logger,
    )
    return CarService(
        CarRepository(database),
        resolver,
        logger,
        max_workers=config.resolver_workers,
    )


def create_app(
    config: Config = None,
    service: CarService = None,
    logger: logging.Logger = None,
) -> Flask:
    """
    Application factory.

    Args:
        config: Settings, read from the environment when omitted
        service: Prebuilt car service (tests pass one backed by fakes)
        logger: Application logger, configured for the environment when omitted
    """
    if service is None or logger is None:
        config = config or Config.from_env()
        logger = logger or setup_logger(config.environment)
    if service is None:
        service = build_service(config, logger)

    app = Flask(__name__)
    app.car_service = service
    app.carstore_logger = logger

    from carstore.api.cars import bp as cars_bp

    app.register_blueprint(cars_bp, url_prefix="/cars")

    @app.route("/health")
    def health():
        return {"status": "ok"}

    @app.after_request
    def log_request(response):
        logger.info(
            "%s %s %s",
            request.method,
            request.path,
            response.status_code,
            extra={"method": request.method, "path": request.path, "status": response.status_code},
        )
        return response

    @app.errorhandler(HTTPException)
    def handle_http_error(e: HTTPException):
        return jsonify({"error": e.name.lower().replace(" ", "_"), "message": e.description}), e.code

    @app.errorhandler(Exception)
    def handle_error(e: Exception):
        status, body = error_response(e)
        extra = {
            "kind": classify(e).value,
            "status": status,
            "method": request.method,
            "path": request.path,
        }
        if isinstance(e, CarstoreError):
            extra["operation"] = e.operation
            logger.error("request failed: %s", e.message, extra=extra)
        else:
            logger.error("unhandled error", exc_info=e, extra=extra)
        return jsonify(body), status

    return app

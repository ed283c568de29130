from __future__ import annotations

import logging
from typing import Dict, Optional

from fastapi import FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.middleware.trustedhost import TrustedHostMiddleware

from chavruta.backend import constants
from chavruta.backend.config import Settings, load_settings
from chavruta.backend.middleware import RequestContextMiddleware
from chavruta.backend.response import error_response
from chavruta.backend.routers import study
from chavruta.backend.services.responder_service import Responder


logger = logging.getLogger(__name__)


def create_app(settings: Optional[Settings] = None, responder: Optional[Responder] = None) -> FastAPI:
	settings = settings or load_settings()
	_configure_logging(settings)
	app = FastAPI(
		title=constants.APP_NAME,
		version=constants.APP_VERSION,
	)
	app.state.settings = settings
	app.state.responder = responder or Responder(settings)
	if not app.state.responder.model_available:
		logger.warning("OPENAI_API_KEY not configured or offline forced; serving offline replies only.")
	_register_middleware(app, settings)
	_register_handlers(app)
	_register_routers(app)
	return app


def _configure_logging(settings: Settings) -> None:
	logging.basicConfig(
		level=getattr(logging, settings.log_level, logging.INFO),
		format="%(asctime)s %(levelname)s %(name)s: %(message)s",
	)


def _register_middleware(app: FastAPI, settings: Settings) -> None:
	app.add_middleware(RequestContextMiddleware)
	app.add_middleware(GZipMiddleware, minimum_size=1024)
	app.add_middleware(
		CORSMiddleware,
		allow_origins=settings.cors_allow_origins,
		allow_credentials=False,
		allow_methods=["POST", "OPTIONS"],
		allow_headers=["Content-Type"],
	)
	app.add_middleware(
		TrustedHostMiddleware,
		allowed_hosts=settings.trusted_hosts,
	)


def _register_routers(app: FastAPI) -> None:
	app.include_router(study.router)


def _register_handlers(app: FastAPI) -> None:
	@app.exception_handler(HTTPException)
	async def handle_http_exception(request: Request, exc: HTTPException) -> JSONResponse:
		return _http_error(request, exc.status_code, getattr(exc, "headers", None))

	@app.exception_handler(StarletteHTTPException)
	async def handle_starlette_http_exception(request: Request, exc: StarletteHTTPException) -> JSONResponse:
		return _http_error(request, exc.status_code, getattr(exc, "headers", None))

	@app.exception_handler(RequestValidationError)
	async def handle_request_validation_error(
		request: Request,
		exc: RequestValidationError,
	) -> JSONResponse:
		issues = []
		for issue in exc.errors():
			loc = ".".join(str(part) for part in issue.get("loc", []))
			msg = issue.get("msg", "Invalid request.")
			issues.append(f"{loc}: {msg}" if loc else msg)
		logger.info("Rejected malformed request: %s", "; ".join(issues))
		payload = error_response(code="malformed_request", request=request)
		return JSONResponse(status_code=400, content=payload)

	@app.exception_handler(Exception)
	async def handle_unexpected_exception(request: Request, exc: Exception) -> JSONResponse:
		logger.exception("Unhandled error while answering %s", request.url.path)
		payload = error_response(code="internal_error", request=request)
		return JSONResponse(status_code=500, content=payload)


def _http_error(request: Request, status_code: int, headers: Optional[Dict[str, str]] = None) -> JSONResponse:
	if status_code == 405:
		payload = error_response(
			code="method_not_allowed",
			request=request,
			reply=constants.METHOD_NOT_ALLOWED_REPLY,
		)
	else:
		payload = error_response(code=f"http_{status_code}", request=request)
	return JSONResponse(status_code=status_code, content=payload, headers=headers)


app = create_app()

from __future__ import annotations

import logging
import time
import uuid

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse, Response

from chavruta.backend.response import error_response


logger = logging.getLogger(__name__)


class RequestContextMiddleware(BaseHTTPMiddleware):
	"""Tags every response with a request id and timing, including unexpected 500s."""

	async def dispatch(self, request: Request, call_next) -> Response:
		request_id = request.headers.get("X-Request-ID", uuid.uuid4().hex)
		request.state.request_id = request_id
		start = time.perf_counter()
		try:
			response = await call_next(request)
		except Exception:
			# Answered here so CORS and the request id still wrap the apology.
			logger.exception("Unhandled error while answering %s [%s]", request.url.path, request_id)
			response = JSONResponse(
				status_code=500,
				content=error_response(code="internal_error", request=request),
			)
		process_time = time.perf_counter() - start
		response.headers["X-Request-ID"] = request_id
		response.headers["X-Process-Time"] = f"{process_time:.6f}"
		logger.debug(
			"%s %s -> %s in %.3fs [%s]",
			request.method,
			request.url.path,
			response.status_code,
			process_time,
			request_id,
		)
		return response

import uvicorn
import time
import logging
from fastapi import FastAPI, Request
from starlette.middleware.base import BaseHTTPMiddleware

from app.api.templates import router as templates_router
from app.core.config import API_HOST, API_PORT, LOG_LEVEL
from app.utils.logging_config import setup_logging

setup_logging(level=LOG_LEVEL)
logger = logging.getLogger("main")

app = FastAPI(title="Issue Template Engine API")

# ---------------------------------------------------------------------------
# Request Log Middleware
# ---------------------------------------------------------------------------
def describe_request(request: Request) -> str:
    """'METHOD /path', plus the template name once a render route has resolved it."""
    label = f"{request.method} {request.url.path}"
    template = getattr(request.state, "template", None)
    if template:
        label += f" [template: {template}]"
    return label


class RequestLogMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):
        start_time = time.time()
        try:
            response = await call_next(request)
        except Exception as e:
            logger.error(f"Request failed: {describe_request(request)} - Error: {e}")
            raise

        elapsed_ms = (time.time() - start_time) * 1000
        level = logging.WARNING if response.status_code >= 400 else logging.INFO
        logger.log(
            level,
            f"{describe_request(request)} - Status: {response.status_code} - Time: {elapsed_ms:.2f}ms",
        )
        return response

app.add_middleware(RequestLogMiddleware)

# Health endpoint
@app.get("/health")
async def health_check():
    return {"status": "ok"}

app.include_router(templates_router)

if __name__ == "__main__":
    uvicorn.run("main:app", host=API_HOST, port=API_PORT, reload=True)

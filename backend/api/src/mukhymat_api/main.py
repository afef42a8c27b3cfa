"""FastAPI application for the Mukhymat refunds API.

Endpoints (all under /api):
- Refund and host penalty quotes
- Policy descriptions
- Guest refund requests and cancellations
- Host cancellations
"""

from datetime import UTC, datetime
from typing import Any

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from mangum import Mangum

from mukhymat.utils.logging import configure_logging, get_logger
from mukhymat_api.exceptions import register_exception_handlers
from mukhymat_api.middleware.correlation import CORRELATION_ID_HEADER, CorrelationIdMiddleware
from mukhymat_api.routes.bookings import router as bookings_router
from mukhymat_api.routes.refunds import router as refunds_router

configure_logging()
logger = get_logger(__name__)

app = FastAPI(
    title="Mukhymat Refunds API",
    description="Refund calculation and booking cancellation for Mukhymat camps",
    version="0.1.0",
)

# Configure CORS for local development
app.add_middleware(
    CORSMiddleware,
    allow_origins=["http://localhost:3000", "http://127.0.0.1:3000"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=[CORRELATION_ID_HEADER],
)
app.add_middleware(CorrelationIdMiddleware)

register_exception_handlers(app)

app.include_router(refunds_router, prefix="/api")
app.include_router(bookings_router, prefix="/api")


@app.get("/api/ping")
async def ping() -> dict[str, Any]:
    """Health check endpoint at /api/ping."""
    return {
        "status": "ok",
        "timestamp": datetime.now(UTC).isoformat(),
        "service": "mukhymat-refunds",
    }


# Lambda handler - Mangum wraps FastAPI for AWS Lambda + API Gateway
handler = Mangum(app, lifespan="off")


def run_server(host: str = "0.0.0.0", port: int = 8080, reload: bool = True) -> None:
    """Run the FastAPI server.

    Args:
        host: Host to bind to (default: 0.0.0.0)
        port: Port to listen on (default: 8080)
        reload: Enable hot reload for development (default: True)
    """
    import uvicorn

    if reload:
        uvicorn.run(
            "mukhymat_api.main:app",
            host=host,
            port=port,
            reload=True,
            reload_dirs=["api/src", "shared/src"],
        )
    else:
        uvicorn.run(app, host=host, port=port)


if __name__ == "__main__":
    run_server()

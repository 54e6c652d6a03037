"""FastAPI application for the booking and loyalty REST API.

Endpoints:
- Health check
- Availability queries
- Reservations (create, modify, cancel, reassign, stay points)
- Loyalty ledger (balance, history, earn, redeem, audit)

Handlers are plain ``def`` functions: the core uses blocking boto3 calls,
which FastAPI runs in its threadpool.
"""

import logging
from datetime import UTC, datetime
from typing import Any

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from mangum import Mangum

from stayledger import __version__
from stayledger.config import get_settings
from stayledger.utils.logging import configure_logging
from stayledger_api.exceptions import register_exception_handlers
from stayledger_api.middleware import CorrelationIdMiddleware
from stayledger_api.routes.availability import router as availability_router
from stayledger_api.routes.loyalty import router as loyalty_router
from stayledger_api.routes.reservations import router as reservations_router

logger = logging.getLogger(__name__)
configure_logging(get_settings().log_level)

app = FastAPI(
    title="Stayledger API",
    description="REST API for overlap-safe bookings and loyalty points",
    version=__version__,
)

# Configure CORS for local development
app.add_middleware(
    CORSMiddleware,
    allow_origins=["http://localhost:3000", "http://127.0.0.1:3000"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.add_middleware(CorrelationIdMiddleware)

register_exception_handlers(app)

# Include routers under /api prefix (API Gateway routes /api/*)
app.include_router(availability_router, prefix="/api")
app.include_router(reservations_router, prefix="/api")
app.include_router(loyalty_router, prefix="/api")


@app.get("/api/ping")
async def ping() -> dict[str, Any]:
    """Health check endpoint at /api/ping."""
    return {
        "status": "ok",
        "timestamp": datetime.now(UTC).isoformat(),
        "service": "stayledger-api",
        "environment": get_settings().environment,
    }


# Lambda handler - Mangum wraps FastAPI for AWS Lambda + API Gateway
handler = Mangum(app, lifespan="off")


def run_server(host: str = "0.0.0.0", port: int = 8080, reload: bool = False) -> None:
    """Run the FastAPI server.

    Args:
        host: Host to bind to (default: 0.0.0.0)
        port: Port to listen on (default: 8080)
        reload: Enable hot reload for development (default: False)
    """
    import uvicorn

    if reload:
        # Use string reference for reload mode (uvicorn requirement)
        uvicorn.run("stayledger_api.main:app", host=host, port=port, reload=True)
    else:
        uvicorn.run(app, host=host, port=port)


if __name__ == "__main__":
    run_server(reload=True)

"""Hours registry API: app wiring, error handler and uvicorn entry."""

import warnings
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from api.models.responses import ErrorCodes, ErrorResponse
from api.routes import health_router, hours_router
from core.api_client import is_schedule_api_configured
from core.config import API_DEBUG, API_VERSION, DB_PATH


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Warn at startup about missing upstream config or request log database."""
    if not is_schedule_api_configured():
        warnings.warn("SCHEDULE_API_URL or SCHEDULE_API_TOKEN not set; hours endpoints will return 503")
    if not DB_PATH.exists():
        warnings.warn(f"Request log database not found at {DB_PATH}; run scripts/init_db.py")

    yield


app = FastAPI(
    title="Hours Registry Export API",
    description="REST API for hours totals, payroll workbook exports and schedule save-back",
    version=API_VERSION,
    debug=API_DEBUG,
    lifespan=lifespan,
)

# Open CORS only in debug mode
if API_DEBUG:
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Anything the routes did not map becomes a 500 with the error body shape."""
    return JSONResponse(
        status_code=500,
        content=ErrorResponse(
            error="Internal server error",
            code=ErrorCodes.INTERNAL_ERROR,
            details=[],
        ).model_dump(),
    )


app.include_router(health_router)
app.include_router(hours_router)


if __name__ == "__main__":
    import uvicorn

    from core.config import API_HOST, API_PORT

    uvicorn.run(
        "api.main:app",
        host=API_HOST,
        port=API_PORT,
        reload=API_DEBUG,
    )

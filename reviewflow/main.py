import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from reviewflow.core.config import settings
from reviewflow.core.errors import ReviewFlowError, ValidationError
from reviewflow.api import campaigns, review_sessions

logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

app = FastAPI(title="ReviewFlow API", version="1.0.0")

ALLOWED_ORIGINS = settings.get_allowed_origins()

app.add_middleware(
    CORSMiddleware,
    allow_origins=ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=["*"],
)


@app.exception_handler(ReviewFlowError)
async def review_flow_exception_handler(request: Request, exc: ReviewFlowError):
    """Workflow errors keep the customer on the same step; the page shows the message"""
    content = {"detail": exc.message, "code": exc.code}
    if isinstance(exc, ValidationError) and exc.field:
        content["field"] = exc.field
    return JSONResponse(status_code=exc.status_code, content=content)


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Ensure CORS headers are included even on unhandled exceptions"""
    logger.exception("Unhandled exception on %s %s", request.method, request.url.path)

    response = JSONResponse(
        status_code=500,
        content={"detail": "Internal server error", "code": "internal_error"},
    )

    # Error responses bypass CORSMiddleware, so add the headers here
    origin = request.headers.get("origin")
    if origin and origin in ALLOWED_ORIGINS:
        response.headers["Access-Control-Allow-Origin"] = origin
        response.headers["Access-Control-Allow-Credentials"] = "true"
        response.headers["Access-Control-Allow-Methods"] = "*"
        response.headers["Access-Control-Allow-Headers"] = "*"

    return response


app.include_router(campaigns.router, prefix="/campaigns", tags=["campaigns"])
app.include_router(review_sessions.router, prefix="/review-sessions", tags=["review-sessions"])


@app.get("/")
async def root():
    return {"message": "ReviewFlow API", "version": "1.0.0"}


@app.get("/health")
async def health():
    return {"status": "healthy"}

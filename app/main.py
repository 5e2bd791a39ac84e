from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException
import logging

from app.core.config import get_settings
from app.core.lifespan import lifespan
from app.core.logging import configure_logging
from app.api.v1.routers.health import router as health_router
from app.api.v1.routers.recommendations import router as recommendations_router
from app.api.v1.schemas.reco import ErrorOut

settings = get_settings()
configure_logging(level=logging.DEBUG if settings.DEBUG else logging.INFO)

app = FastAPI(title=settings.APP_NAME, lifespan=lifespan)

# ------- CORS -------
# ALLOWED_ORIGINS is a CSV list, e.g. "https://shop.example.com,https://www.shop.example.com"
allowed_origins = [o.strip() for o in settings.ALLOWED_ORIGINS.split(",") if o.strip()]

app.add_middleware(
    CORSMiddleware,
    allow_origins=allowed_origins or ["http://localhost:3000"],
    allow_credentials=False,
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["content-type", "x-user-id"],
    max_age=86400,
)

# ------- Routes -------
app.include_router(health_router)
app.include_router(recommendations_router)   # streaming, related items, playground


# ------- Errors -------
# Non-streaming failures share one body shape: {"error": "<message>"}
@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    return JSONResponse(
        ErrorOut(error=str(exc.detail)).model_dump(),
        status_code=exc.status_code,
        headers=getattr(exc, "headers", None),
    )

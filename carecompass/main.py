"""
FastAPI app

- JSON API under /api, share landing pages under /share
- CORS configured for local front-end development
- Errors rendered as {"error": message}
- Static front-end served from STATIC_DIR when present
"""
import logging
from pathlib import Path

from dotenv import load_dotenv

# Load environment variables from .env before config is imported
project_root = Path(__file__).parent.parent
load_dotenv(dotenv_path=project_root / '.env')

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from starlette.exceptions import HTTPException as StarletteHTTPException

from carecompass.api import router, share_page_router
from carecompass.api.middleware import TimingMiddleware
from carecompass.core import config
from carecompass.core.errors import CareCompassError

logging.basicConfig(
    level=config.LOG_LEVEL,
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
logger = logging.getLogger("carecompass")

app = FastAPI(title="CareCompass API")

# Logs request duration for all requests
app.add_middleware(TimingMiddleware)

app.add_middleware(
    CORSMiddleware,
    allow_origins=config.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(CareCompassError)
async def care_compass_error_handler(request: Request, exc: CareCompassError):
    return JSONResponse(status_code=exc.status_code, content={"error": exc.message})


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException):
    return JSONResponse(status_code=exc.status_code, content={"error": str(exc.detail)})


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    problems = [
        f"{'.'.join(str(part) for part in error.get('loc', ()))}: {error.get('msg')}"
        for error in exc.errors()
    ]
    return JSONResponse(status_code=400, content={"error": "Invalid request", "details": problems})


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    logger.exception(f"Unhandled error on {request.method} {request.url.path}")
    return JSONResponse(status_code=500, content={"error": "Server error"})


app.include_router(router, prefix="/api")
app.include_router(share_page_router)


@app.get("/health")
async def health():
    """
    Basic health check
    """
    return {"status": "ok"}


# Mounted last so API routes win over same-named files
if Path(config.STATIC_DIR).is_dir():
    app.mount("/", StaticFiles(directory=config.STATIC_DIR, html=True), name="static")
else:
    @app.get("/")
    async def root():
        return {"status": "ok"}

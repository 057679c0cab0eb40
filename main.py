from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
import logging

from config.settings import settings

# ✅ logging: app level from settings
logging.basicConfig(level=settings.LOG_LEVEL, format="%(asctime)s %(levelname)s %(name)s: %(message)s")


# ✅ middleware imports
from middlewares.timing import TimingMiddleware
from middlewares.error_handler import add_error_handlers

# ✅ router imports
from routers import cgpa, results, subject_credits

app = FastAPI(
    title=settings.APP_TITLE,
    description=settings.APP_DESCRIPTION,
    version=settings.APP_VERSION,
)

# ✅ CORS (frontend portal)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# ✅ request latency (X-Latency-Ms response header, slow request log)
app.add_middleware(TimingMiddleware, slow_ms=settings.SLOW_REQUEST_MS)

# ✅ global error handlers (consistent JSON error body)
add_error_handlers(app)

# ✅ /v1 prefixed routers
app.include_router(results.router,         prefix="/v1")
app.include_router(cgpa.router,            prefix="/v1")
app.include_router(subject_credits.router, prefix="/v1")

# ✅ health check
@app.get("/health")
def health_check():
    return {"status": "ok", "message": "API is running"}

# ✅ root
@app.get("/")
def root():
    return {"message": f"{settings.APP_TITLE} - {settings.APP_DESCRIPTION}"}

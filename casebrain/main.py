import logging

from fastapi import FastAPI
from fastapi.middleware.gzip import GZipMiddleware

from .config import settings
from .logging_utils import configure_logging
from .routers.analysis import router as analysis_router

configure_logging(settings.LOG_LEVEL)
logger = logging.getLogger(__name__)

app = FastAPI(title="CaseBrain Analysis API", version="0.1.0")
app.add_middleware(GZipMiddleware, minimum_size=1000)

app.include_router(analysis_router)


@app.get("/health")
async def health_check():
    """Liveness probe"""
    return {"status": "healthy", "version": app.version}


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("casebrain.main:app", host="0.0.0.0", port=8000)

import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.logger import logger
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from src.api.common.utils.config import get_config
from src.api.routes import api_router
from src.api.scripts.init_db import init_db

config = get_config()

logging.basicConfig(
    level=config.log_level,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)


@asynccontextmanager
async def lifespan(app: FastAPI):
    init_db()
    yield


app = FastAPI(
    title="Invoicebook",
    description="Invoice bookkeeping service",
    version="1.0.0",
    lifespan=lifespan,
)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=config.cors_origins,
    allow_methods=["GET", "POST", "PUT"],
    allow_headers=["*"],
)


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    """Malformed bodies and query strings are client errors, reported as {"error": ...}"""
    reasons = "; ".join(
        f"{'.'.join(str(part) for part in error.get('loc', ()))}: {error.get('msg')}"
        for error in exc.errors()
    )
    logger.warning(f"Rejected {request.method} {request.url.path}: {reasons}")
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"error": reasons or "Invalid request"},
    )


app.include_router(api_router)

# this only runs if `$ python -m src.main` is executed
if __name__ == '__main__':
    import uvicorn
    uvicorn.run("src.main:app", host='0.0.0.0', port=config.port, reload=True)

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from pushbell.api import root_router
from pushbell.common.code import ErrCodeError
from pushbell.configs import configs
from pushbell.core.logger import LOGGING_CONFIG
from pushbell.core.notification import ensure_vapid_keys
from pushbell.core.partition import PartitionRouter

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    ensure_vapid_keys()

    partition_router = PartitionRouter()
    app.state.partition_router = partition_router

    # Put alarms persisted before the last shutdown back on the loop
    try:
        await partition_router.recover()
    except Exception as e:
        logger.error("Alarm recovery failed: %s", e)

    yield

    await partition_router.shutdown()


app = FastAPI(
    title="pushbell",
    description="Per-subscriber web-push notification scheduler",
    version="0.1.0",
    lifespan=lifespan,
    redirect_slashes=False,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(ErrCodeError)
async def handle_err_code_error(request: Request, exc: ErrCodeError) -> JSONResponse:
    logger.warning("%s %s failed: %s", request.method, request.url.path, exc)
    return JSONResponse(status_code=exc.code.http_status, content=exc.as_dict())


app.include_router(root_router)


if __name__ == "__main__":
    uvicorn.run(
        "pushbell.main:app",
        host=configs.Host,
        port=configs.Port,
        log_config=LOGGING_CONFIG,
        reload=configs.Debug,
        reload_excludes=["data", "tests"],
    )

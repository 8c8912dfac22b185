import asyncio
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from . import state
from .api import router as api_router
from .config import EVENT_FORWARD_INTERVAL, LOG_LEVEL, NODE_ID, PORT
from .errors import QuadraticVotingError
from .events import forward_loop
from .internal import router as internal_router
from .logging_cfg import setup_logging

logger = logging.getLogger(__name__)

if not logging.getLogger().hasHandlers():
    setup_logging(LOG_LEVEL)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup: event forwarding in background
    task = asyncio.create_task(forward_loop(state.forwarder, EVENT_FORWARD_INTERVAL))
    logger.info("node %s up, forwarding events to %d sinks", NODE_ID, len(state.forwarder.sinks))
    yield
    task.cancel()


app = FastAPI(
    title=f"Quadratic Voting Node ({NODE_ID})",
    lifespan=lifespan,
)

app.include_router(api_router)
app.include_router(internal_router)


@app.exception_handler(QuadraticVotingError)
async def voting_error_handler(request: Request, exc: QuadraticVotingError):
    logger.warning("%s %s rejected: %s (%s)", request.method, request.url.path, exc.code, exc)
    return JSONResponse(
        status_code=exc.status_code,
        content={"ok": False, "node": NODE_ID, "error": exc.code, "detail": exc.message},
    )


@app.get("/health")
def health():
    engine = state.get_engine()
    return {
        "ok": True,
        "node": NODE_ID,
        "clock": engine.clock.now(),
        "sessions": len(engine.sessions),
        "events": state.get_event_log().last_seq,
    }


if __name__ == "__main__":
    import uvicorn
    uvicorn.run("qvote.main:app", host="0.0.0.0", port=PORT, log_level=LOG_LEVEL.lower())

# Run from project root: uvicorn inventory_agent.main:app --reload

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from inventory_agent.agent.context import build_default_context
from inventory_agent.api.routes import router
from inventory_agent.core.config import CORS_ORIGINS, PORT

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    if getattr(app.state, "agent_context", None) is None:
        app.state.agent_context = build_default_context()
    logger.info("Agent context ready")
    yield


app = FastAPI(title="Inventory Agent Backend", lifespan=lifespan)
app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.include_router(router)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=PORT)

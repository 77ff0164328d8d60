import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from mangum import Mangum
from pymongo.database import Database
from pymongo.errors import PyMongoError

from config.database_config import db, ensure_indexes
from config.settings import Settings, configure_logging
from agent.chat_agent import ChatAgent
from routes import auth, chat, composer, prompt, ui
from routes import agent as agent_routes
from services.realtime import MessageHub
from services.session_store import SessionStore
from services.tabs import CompletionFactory, TabRegistry

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    try:
        ensure_indexes(app.state.store.db)
    except PyMongoError as e:
        logger.warning(f"Could not create indexes: {e}")

    yield

    app.state.tabs.close_all()


def create_app(database: Optional[Database] = None, agent: Optional[ChatAgent] = None,
               completion_factory: Optional[CompletionFactory] = None) -> FastAPI:
    """Build the API around ``database`` (the configured MongoDB database by default)."""
    app = FastAPI(title="Chat API", version="1.0.0", lifespan=lifespan)

    store = SessionStore(database if database is not None else db, MessageHub())
    app.state.store = store
    app.state.tabs = TabRegistry(store, completion_factory)
    app.state.agent = agent

    # Root route
    @app.get("/")
    def root():
        return {"message": "Chat API is running!"}

    @app.get("/health")
    def health():
        return {"status": "ok"}

    # Middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=Settings.allowed_origins(),
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Routes
    app.include_router(auth.router)
    app.include_router(chat.router)
    app.include_router(prompt.router)
    app.include_router(composer.router)
    app.include_router(ui.router)
    app.include_router(agent_routes.router)

    return app


configure_logging()
Settings.validate()

# Create FastAPI app
app = create_app()

# Expose handler for serverless deployments
handler = Mangum(app)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("main:app", host="127.0.0.1", port=8000, reload=True)

import logging
import os
from pathlib import Path

from dotenv import load_dotenv
from fastapi import FastAPI

from vn_director.llm import ChatLLM
from vn_director.routes import router
from vn_director.session import Session
from vn_director.storage import Storage

load_dotenv(Path(__file__).parent.parent / ".env")

DEFAULT_DATA_DIR = Path(__file__).parent.parent / "data"


def _default_llm_factory(config):
    return ChatLLM(os.getenv("VN_API_URL", "") or config.api_url, config.api_key)


def create_app(data_dir: Path | None = None, llm_factory=None) -> FastAPI:
    resolved = data_dir or Path(os.getenv("DATA_DIR", str(DEFAULT_DATA_DIR)))
    logging.basicConfig(level=os.getenv("LOG_LEVEL", "INFO"))

    storage = Storage(resolved)
    app = FastAPI(title="VN Director")
    app.state.storage = storage
    app.state.session = Session.from_cards(storage.get_cards())
    app.state.llm_factory = llm_factory or _default_llm_factory
    app.include_router(router, prefix="/api")
    return app


# Default app instance for uvicorn (uses DATA_DIR env var or default)
app = create_app()

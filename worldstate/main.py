import logging
from pathlib import Path

from dotenv import load_dotenv
from fastapi import FastAPI

from worldstate.api.routes import router
from worldstate.settings import get_settings

# Local runs pick up `<repo>/.env`; real environment variables win.
_project_root = Path(__file__).resolve().parent.parent
load_dotenv(dotenv_path=_project_root / ".env", override=False)

app = FastAPI(title="worldstate", version="0.1.0")
app.include_router(router)
# Configure logging
logging.basicConfig(level=get_settings().log_level)
logger = logging.getLogger(__name__)


@app.on_event("startup")
async def _startup() -> None:
    logger.info("[Init] Initializing...")


@app.get("/info")
async def info() -> dict[str, str]:
    return {"name": "worldstate", "version": "0.1.0"}

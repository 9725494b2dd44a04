import logging
import os
import subprocess
from datetime import datetime
from typing import List

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from ladder.database import engine, init_db
from ladder.db_schema_patch import detect_reason_columns, ensure_final_match_columns
from ladder.routes import finals

APP_NAME = "Ladder Finals API"
DEFAULT_CORS_ORIGINS = ["http://localhost:3000", "http://127.0.0.1:3000"]

logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


def get_build_info() -> str:
    """Short git commit hash, or a start timestamp outside a checkout"""
    try:
        result = subprocess.run(
            ["git", "rev-parse", "--short", "HEAD"],
            cwd=os.path.dirname(os.path.dirname(__file__)),
            capture_output=True,
            text=True,
            timeout=2,
        )
    except (OSError, subprocess.SubprocessError):
        result = None
    if result is not None and result.returncode == 0:
        return result.stdout.strip()
    return datetime.now().strftime("%Y%m%d-%H%M%S")


def cors_origins() -> List[str]:
    """Local dev origins plus any comma separated CORS_ORIGINS"""
    extra = [o.strip() for o in os.getenv("CORS_ORIGINS", "").split(",") if o.strip()]
    return DEFAULT_CORS_ORIGINS + extra


BUILD_HASH = get_build_info()

app = FastAPI(title=APP_NAME)
app.add_middleware(
    CORSMiddleware,
    allow_origins=cors_origins(),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.include_router(finals.router, prefix="/api", tags=["finals"])


@app.on_event("startup")
def on_startup():
    init_db()
    ensure_final_match_columns(engine)

    reason_columns = detect_reason_columns(engine)
    if reason_columns:
        logger.info("final_matches reason column(s): %s", ", ".join(reason_columns))
    else:
        logger.warning("final_matches has no end_reason/finish_reason column; results will be read as 'normal'")
    logger.info("%s started (build %s)", APP_NAME, BUILD_HASH)


@app.get("/api/health")
def health_check():
    """Diagnostic endpoint to verify which code is running"""
    return {"app_name": APP_NAME, "build_hash": BUILD_HASH, "status": "healthy"}

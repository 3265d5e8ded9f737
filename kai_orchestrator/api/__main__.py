"""Entry point for the kAI API service."""

from kai_orchestrator.api.main import app
import uvicorn
from shared.config.settings import settings

if __name__ == "__main__":
    uvicorn.run(
        app,
        host="0.0.0.0",
        port=8000,
        log_level=settings.log_level.lower()
    )

"""
Entrypoint.

    python -m mercury
"""

import uvicorn

from mercury.config import settings
from mercury.logconfig import build_log_config

if __name__ == "__main__":
    uvicorn.run(
        "mercury.main:app",
        host=settings.host,
        port=settings.port,
        log_config=build_log_config(settings.debug),
        log_level="debug" if settings.debug else "info",
        reload=False,
    )

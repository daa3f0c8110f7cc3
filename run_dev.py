# run_dev.py
"""
Local development launcher for FastAPI.
Equivalent to: `uvicorn src.app:app --reload --host 0.0.0.0 --port 8000`

The OpenRouter client posts to PROXY_BASE_URL, which defaults to this same
server's /api/proxy, so keep the port in sync with that setting.
"""

import uvicorn

from src.settings import settings

if __name__ == "__main__":
    uvicorn.run(
        "src.app:app",
        host="0.0.0.0",
        port=8000,
        reload=True,
        log_level=settings.LOG_LEVEL.lower(),
    )

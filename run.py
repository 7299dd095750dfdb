"""Development server runner."""

import uvicorn

from truthmeme.config import get_settings

if __name__ == "__main__":
    settings = get_settings()
    # Single worker: the connection registry lives in this process only.
    uvicorn.run(
        "truthmeme.app:app",
        host=settings.HOST,
        port=settings.PORT,
        reload=settings.DEBUG,
        log_level=settings.LOG_LEVEL.lower(),
    )

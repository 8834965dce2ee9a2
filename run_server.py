"""Run the server - development mode"""
import uvicorn

from locationdata.core.config import settings

if __name__ == "__main__":
    uvicorn.run(
        "locationdata.main:app",
        host="127.0.0.1",
        port=8000,
        reload=True,
        log_level=settings.LOG_LEVEL.lower()
    )

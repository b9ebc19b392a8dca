import uvicorn

from thecrew.config import settings


def run_backend():
    uvicorn.run(
        "thecrew.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.debug,
        log_config=None,
    )


if __name__ == "__main__":
    run_backend()

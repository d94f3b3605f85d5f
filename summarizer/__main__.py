"""
Entry point for module execution.
Allows running: python -m summarizer
"""
import uvicorn

from summarizer.core.config import get_settings


def main():
    settings = get_settings()
    uvicorn.run(
        "summarizer.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
        log_config=None,
    )


if __name__ == '__main__':
    main()

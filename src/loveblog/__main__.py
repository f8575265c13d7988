"""loveblog entrypoint.

Run with:
  python -m loveblog
"""

import uvicorn

from loveblog.config import load_settings


def main() -> None:
    settings = load_settings()
    uvicorn.run(
        "loveblog.app:create_app",
        factory=True,
        host=settings.host,
        port=settings.port,
        reload=settings.reload,
    )


if __name__ == "__main__":
    main()

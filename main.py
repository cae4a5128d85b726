"""
Review Fetch - Web Server Entry Point
=====================================

Run this to start the HTTP API:
    python main.py

Then open http://127.0.0.1:8000/docs in your browser.

For the command line:
    reviewfetch --help
"""

import uvicorn

from reviewfetch.infrastructure.config import get_settings


def main():
    """Start the web server."""
    settings = get_settings()

    print("\n" + "=" * 50)
    print("   Review Fetch - HTTP API")
    print("=" * 50)
    print(f"\n   Starting server at http://{settings.web.host}:{settings.web.port}")
    print("   Press Ctrl+C to stop\n")

    uvicorn.run(
        "reviewfetch.web.app:app",
        host=settings.web.host,
        port=settings.web.port,
        reload=False,
        log_level="info"
    )


if __name__ == "__main__":
    main()

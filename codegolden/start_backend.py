#!/usr/bin/env python3
"""
Backend startup wrapper.
"""
import uvicorn

from codegolden.core.config import settings


def main() -> None:
    print("[Backend] Starting CodeGoldenAI Backend")
    print(f"[Backend] Server running on port {settings.PORT}")
    uvicorn.run(
        "codegolden.main:app",
        host=settings.HOST,
        port=settings.PORT,
        reload=False,
        log_level="info",
    )


if __name__ == "__main__":
    main()

from __future__ import annotations
import os
import sys
from pathlib import Path
import uvicorn


def main():
    host = os.getenv("HOST", "0.0.0.0")
    port = int(os.getenv("PORT", "8000"))
    try:
        workers = int(os.getenv("WORKERS", "1"))
    except ValueError:
        workers = 1
    log_level = os.getenv("LOG_LEVEL", "info").lower()

    # Project root holds app.py and the gaitlab package
    root = Path(__file__).resolve().parents[1]
    if str(root) not in sys.path:
        sys.path.insert(0, str(root))

    # uvicorn needs an import string to spawn more than one worker
    uvicorn.run(
        "app:app",
        host=host,
        port=port,
        workers=workers,
        log_level=log_level,
        reload=False,
        proxy_headers=True,
        forwarded_allow_ips="*",
    )


if __name__ == "__main__":
    main()

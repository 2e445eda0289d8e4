from __future__ import annotations

import logging
import os
import sys
from pathlib import Path


def _bootstrap_src() -> None:
    root = Path(__file__).resolve().parent
    src = root / "src"
    if str(src) not in sys.path:
        sys.path.insert(0, str(src))


def main() -> int:
    _bootstrap_src()
    logging.basicConfig(
        level=os.environ.get("BURGERSIM_LOG_LEVEL", "INFO").upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    import uvicorn

    host = os.environ.get("BURGERSIM_HOST", "127.0.0.1")
    port = int(os.environ.get("BURGERSIM_PORT", "8000"))
    uvicorn.run("burgersim.webapp:app", host=host, port=port, reload=False)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())

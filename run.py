from __future__ import annotations

import argparse
import os
import sys
from pathlib import Path
from typing import List, Optional

ROOT = Path(__file__).resolve().parent


def _parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    ap = argparse.ArgumentParser(description="Play the burger supply chain simulation in the terminal.")
    ap.add_argument(
        "--data-dir",
        default=None,
        help="Where saves and history exports go (default: $BURGERSIM_DATA_DIR or ./data)",
    )
    return ap.parse_args(argv)


def main(argv: Optional[List[str]] = None) -> int:
    args = _parse_args(argv)
    if args.data_dir:
        os.environ["BURGERSIM_DATA_DIR"] = str(Path(args.data_dir).expanduser().resolve())

    src = str(ROOT / "src")
    if src not in sys.path:
        sys.path.insert(0, src)
    from burgersim.cli import main as play

    return play()


if __name__ == "__main__":
    raise SystemExit(main())

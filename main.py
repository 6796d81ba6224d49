"""VN Director launcher. Serves the API, or checks a figure table against a model."""

import argparse
import json
import os
import signal
import subprocess
import sys
from pathlib import Path

from dotenv import load_dotenv

ROOT = Path(__file__).parent
load_dotenv(ROOT / ".env")

HOST = os.getenv("HOST", "0.0.0.0")
PORT = os.getenv("PORT", "13013")


def check_figures(controls_path: Path, model_path: Path) -> int:
    from vn_director.figure_check import find_missing_features, format_report

    controls = json.loads(controls_path.read_text(encoding="utf-8"))
    model = json.loads(model_path.read_text(encoding="utf-8"))
    motions, expressions = find_missing_features(controls, model)
    print(format_report(motions, expressions))
    return 1 if motions or expressions else 0


def main():
    parser = argparse.ArgumentParser(description="VN Director launcher")
    parser.add_argument("--data-dir", type=Path, default=None,
                        help="Data storage directory (default: ./data)")
    parser.add_argument("--demo", action="store_true",
                        help="Write the demo cards into the data directory")
    parser.add_argument("--check-figures", nargs=2, type=Path, metavar=("CONTROLS", "MODEL"),
                        help="Report figure_table motions/expressions missing from a model.json")
    args = parser.parse_args()

    if args.check_figures:
        sys.exit(check_figures(*args.check_figures))

    if args.demo:
        from vn_director.demo import create_demo_cards
        from vn_director.storage import Storage
        create_demo_cards(Storage(args.data_dir or ROOT / "data"))

    # Build env for the server so it picks up the same data dir
    env = os.environ.copy()
    if args.data_dir:
        env["DATA_DIR"] = str(args.data_dir.resolve())

    print(f"Starting API on http://localhost:{PORT} ...")
    proc = subprocess.Popen(
        ["uv", "run", "uvicorn", "vn_director.app:app", "--reload", "--host", HOST, "--port", PORT],
        cwd=ROOT, env=env,
    )

    def shutdown(*_):
        print("\nShutting down...")
        proc.terminate()
        proc.wait()
        sys.exit(0)

    signal.signal(signal.SIGINT, shutdown)
    signal.signal(signal.SIGTERM, shutdown)
    proc.wait()


if __name__ == "__main__":
    main()

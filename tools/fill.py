"""Fill messenger fixtures by running the pytest suite, then optionally export vectors.

    python tools/fill.py                     # fixtures/ only
    python tools/fill.py --vectors           # fixtures/ and vectors/
    python tools/fill.py -k accept --output /tmp/fx
"""

from __future__ import annotations

import argparse
import os
import subprocess
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parent.parent


def _env() -> dict[str, str]:
    env = dict(os.environ)
    env["PYTHONPATH"] = os.pathsep.join([str(ROOT / "src"), str(ROOT)])
    return env


def _run(cmd: list[str]) -> int:
    print("Running:", " ".join(cmd))
    return subprocess.call(cmd, env=_env(), cwd=str(ROOT))


def main() -> int:
    parser = argparse.ArgumentParser(description="Generate messenger fixtures")
    parser.add_argument("--output", default=str(ROOT / "fixtures"))
    parser.add_argument("-k", dest="keyword", default=None, help="pytest -k expression")
    parser.add_argument(
        "--vectors",
        action="store_true",
        help="Convert the filled fixtures into YAML vectors afterwards",
    )
    args = parser.parse_args()

    cmd = [sys.executable, "-m", "pytest", str(ROOT / "tests"), "-q", "--output", args.output]
    if args.keyword:
        cmd += ["-k", args.keyword]
    rc = _run(cmd)
    if rc != 0 or not args.vectors:
        return rc

    return _run([
        sys.executable,
        str(ROOT / "tools" / "fixtures_to_vectors.py"),
        "--fixtures",
        args.output,
    ])


if __name__ == "__main__":
    raise SystemExit(main())

"""Stand-in for ``cargo build`` used by the pipeline tests.

Behaviour is driven by environment variables:
FAKE_CARGO_EXIT     exit status to return (default 0)
FAKE_CARGO_FLOOD    lines to write to each of stderr and stdout
FAKE_CARGO_SKIP     comma separated package names to leave unbuilt
FAKE_CARGO_SLEEP    seconds to sleep before exiting
FAKE_CARGO_CHILD    file to write the pid of a long-lived child process to
"""

from __future__ import annotations

import os
import subprocess
import sys
import time
from pathlib import Path


def main(argv: list[str]) -> int:
    if "CARGO_ENCODED_RUSTFLAGS" in os.environ:
        print("CARGO_ENCODED_RUSTFLAGS leaked into the build", file=sys.stderr)
        return 3
    if not argv or argv[0] != "build":
        print(f"unexpected arguments {argv}", file=sys.stderr)
        return 2
    packages = [arg[len("-p=") :] for arg in argv if arg.startswith("-p=")]
    options = dict(arg[2:].split("=", 1) for arg in argv if arg.startswith("--") and "=" in arg)
    target_dir = Path(os.environ["CARGO_TARGET_DIR"])
    out_dir = target_dir / options["target"] / options["profile"]
    skip = {item for item in os.environ.get("FAKE_CARGO_SKIP", "").split(",") if item}

    child_pidfile = os.environ.get("FAKE_CARGO_CHILD")
    if child_pidfile:
        child = subprocess.Popen([sys.executable, "-c", "import time; time.sleep(120)"])
        Path(child_pidfile).write_text(str(child.pid))

    flood = int(os.environ.get("FAKE_CARGO_FLOOD", "0"))
    for index in range(flood):
        sys.stderr.write(f"\x1b[1mwarning\x1b[0m: stderr line {index:06d} " + "x" * 60 + "\n")
    for index in range(flood):
        sys.stdout.write(f"stdout line {index:06d} " + "y" * 60 + "\n")

    sleep = float(os.environ.get("FAKE_CARGO_SLEEP", "0"))
    if sleep:
        time.sleep(sleep)

    code = int(os.environ.get("FAKE_CARGO_EXIT", "0"))
    if code:
        print("error: could not compile", file=sys.stderr)
        return code

    out_dir.mkdir(parents=True, exist_ok=True)
    for name in packages:
        print(f"   Compiling {name} v0.1.0", file=sys.stderr)
        if name in skip:
            continue
        (out_dir / f"{name.replace('-', '_')}.wasm").write_bytes(b"\x00asm\x01\x00\x00\x00" + name.encode())
    print("    Finished wasm target(s)", file=sys.stderr)
    return 0


if __name__ == "__main__":
    sys.exit(main(sys.argv[1:]))

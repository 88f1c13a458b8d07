"""Command that loads settings and serves the task API."""

from __future__ import annotations

import argparse
import os
import threading
from collections.abc import Sequence
from pathlib import Path

from dotenv import load_dotenv

from .handler import TaskApi, make_server
from .processor import Processor
from .repository import Repository


def load_port(env_file: str | os.PathLike[str] = ".env") -> str:
    """Load ``env_file`` into the environment and return ``PORT``.

    Variables already set are kept. Raises FileNotFoundError if the file is missing.
    """
    path = Path(env_file)
    if not path.is_file():
        raise FileNotFoundError(f"open {path}: no such file or directory")
    load_dotenv(path, override=False)
    return os.environ.get("PORT", "")


def main(argv: Sequence[str] | None = None) -> int:
    """Serve the task API on the port named in the environment file."""
    parser = argparse.ArgumentParser(prog="iotasks", description="Serve the task API.")
    parser.add_argument("--env-file", default=".env", help="settings file to load")
    args = parser.parse_args(argv)

    try:
        port = load_port(args.env_file)
    except OSError:
        return 0

    repository = Repository()
    processor = Processor()
    api = TaskApi(repository, processor)
    threading.Thread(target=processor.start, name="processor", daemon=True).start()

    print(f"App is listening on port {port}...", end="", flush=True)
    try:
        server = make_server("", int(port or 0), api)
    except (ValueError, OSError):
        processor.stop()
        return 0
    try:
        server.serve_forever()
    except KeyboardInterrupt:
        pass
    finally:
        server.server_close()
        processor.stop()
    return 0
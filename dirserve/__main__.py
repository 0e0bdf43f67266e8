"""Command-line launcher for dirserve."""

import argparse
import os
import sys

import uvicorn

from dirserve.config import get_settings

# Command-line flag -> settings environment variable
ENV_OVERRIDES = {
    "data_dir": "DIRSERVE_DATA_DIR",
    "host": "DIRSERVE_HOST",
    "port": "DIRSERVE_PORT",
    "base_url": "DIRSERVE_BASE_URL",
    "log_level": "DIRSERVE_LOG_LEVEL",
}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="dirserve",
        description="Serve a directory tree for browsing, downloads and streamed ZIP archives",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="Every option can also be set through the environment, e.g. DIRSERVE_DATA_DIR.",
    )
    parser.add_argument("data_dir", nargs="?", help="Directory to serve (default: current directory)")
    parser.add_argument("--host", help="Address to bind (default: 0.0.0.0)")
    parser.add_argument("--port", type=int, help="Port to listen on (default: 3779)")
    parser.add_argument("--base-url", dest="base_url", help="Public URL used in aria2 exports")
    parser.add_argument("--log-level", dest="log_level", choices=["DEBUG", "INFO", "WARNING", "ERROR"])
    return parser


def main(argv=None):
    args = build_parser().parse_args(argv)

    for attr, env_name in ENV_OVERRIDES.items():
        value = getattr(args, attr)
        if value is not None:
            os.environ[env_name] = str(value)
    get_settings.cache_clear()

    settings = get_settings()
    try:
        data_root = settings.get_data_root()
    except ValueError as e:
        print(f"ERROR: {e}", file=sys.stderr)
        sys.exit(1)

    print(f"Serving {data_root} on http://{settings.host}:{settings.port}")
    uvicorn.run(
        "dirserve.main:app",
        host=settings.host,
        port=settings.port,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    main()

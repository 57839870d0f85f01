"""Entry point for the Hodo backend, launched by the desktop shell.

Usage:
    python -m hodo [--host HOST] [--port PORT]

Configuration is read from the environment (DATABASE_URL, JWT_SECRET,
HODO_DATA_DIR, HODO_PRIVATE_KEY_PATH, HODO_LOG_DIR, HODO_TRIAL_DAYS).
"""

import argparse
import os

import uvicorn


def main():
    parser = argparse.ArgumentParser(description="Hodo backend server")
    parser.add_argument("--host", default=os.getenv("HODO_HOST", "127.0.0.1"), help="Bind address")
    parser.add_argument("--port", type=int, default=int(os.getenv("HODO_PORT", "3001")), help="Port")
    args = parser.parse_args()

    uvicorn.run("hodo.main:app", host=args.host, port=args.port, log_level="warning")


if __name__ == "__main__":
    main()

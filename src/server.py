"""HTTP server runner for Returnflow.

Command and event processing are synchronous, so there are no Engine
workers to start; this only serves the FastAPI app.

Usage:
    python src/server.py
    python src/server.py --port 9000 --reload
"""

import argparse

import uvicorn


def main():
    parser = argparse.ArgumentParser(description="Returnflow API server")
    parser.add_argument("--host", default="0.0.0.0", help="Interface to bind (default: 0.0.0.0)")
    parser.add_argument("--port", type=int, default=8000, help="Port to listen on (default: 8000)")
    parser.add_argument("--reload", action="store_true", help="Reload on code changes")
    args = parser.parse_args()

    uvicorn.run("app:app", host=args.host, port=args.port, reload=args.reload)


if __name__ == "__main__":
    main()

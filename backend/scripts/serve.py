"""Run the API gateway or one of the backend services with uvicorn."""

from __future__ import annotations

import logging
import sys
from typing import List, Optional

import uvicorn

from entain_core import EntainError
from entain_core.config import Settings, split_endpoint

TARGETS = ("api", "racing", "sports")


def main(argv: Optional[List[str]] = None) -> int:
    args = sys.argv[1:] if argv is None else argv
    if len(args) != 1 or args[0] not in TARGETS:
        print(f"usage: serve.py {{{'|'.join(TARGETS)}}}", file=sys.stderr)
        return 2

    try:
        settings = Settings.from_env()
    except ValueError as exc:
        print(f"ERROR: {exc}", file=sys.stderr)
        return 1

    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    target = args[0]
    try:
        if target == "api":
            from app.gateway import build_gateway

            app = build_gateway(settings)
            endpoint = settings.api_endpoint
        elif target == "racing":
            from app.racing import app, racing_service

            racing_service().races_repo.init()
            endpoint = settings.racing_endpoint
        else:
            from app.sports import app, sports_service

            sports_service().events_repo.init()
            endpoint = settings.sports_endpoint
        host, port = split_endpoint(endpoint)
    except (EntainError, ValueError) as exc:
        print(f"ERROR: failed running {target} server: {exc}", file=sys.stderr)
        return 1

    logging.getLogger(__name__).info("%s server listening on: %s", target, endpoint)
    uvicorn.run(app, host=host, port=port, log_level=settings.log_level.lower())
    return 0


if __name__ == "__main__":
    raise SystemExit(main())

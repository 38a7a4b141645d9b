from __future__ import annotations

import argparse

from guestbook.config import get_settings
from guestbook.main import serve


def main() -> None:
    parser = argparse.ArgumentParser(description="Guestbook web service")
    parser.add_argument("--host", default=None, help="Listen address (overrides HOST)")
    parser.add_argument("--port", type=int, default=None, help="Listen port (overrides PORT)")
    args = parser.parse_args()

    settings = get_settings()
    overrides = {k: v for k, v in {"host": args.host, "port": args.port}.items() if v is not None}
    if overrides:
        settings = settings.model_copy(update=overrides)
    serve(settings)


if __name__ == "__main__":
    main()

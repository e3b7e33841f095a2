# backend/app/cli/__main__.py
from __future__ import annotations

import argparse

from app.config import settings
from app.db import make_engine, make_session_factory
from app.cli.seed_demo import seed_demo


def main() -> None:
    p = argparse.ArgumentParser(prog="python -m app.cli", description="Seed demo data")
    p.add_argument("--host-email", default="host@demo.local")
    p.add_argument("--guest-email", default="guest@demo.local")
    p.add_argument("--password", default="DemoPass1!")
    p.add_argument("--no-sample-listing", action="store_true")
    args = p.parse_args()

    session_factory = make_session_factory(make_engine(settings.database_url))
    with session_factory() as db:
        out = seed_demo(
            db,
            host_email=args.host_email,
            guest_email=args.guest_email,
            password=args.password,
            cfg=settings,
            create_sample_listing=(not args.no_sample_listing),
        )
    print(
        {
            "ok": True,
            "host_email": out.host_email,
            "guest_email": out.guest_email,
            "sample_listing_id": out.listing_id,
        }
    )


if __name__ == "__main__":
    main()

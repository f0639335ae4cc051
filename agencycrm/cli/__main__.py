# agencycrm/cli/__main__.py
from __future__ import annotations

import argparse

from ..db import SessionLocal
from ..logging_config import configure_logging
from ..services.storage import purge_orphans
from .seed_demo import DEMO_AGENCY_CODE, DEMO_AGENCY_NAME, seed_demo


def _seed(args: argparse.Namespace) -> dict:
    out = seed_demo(
        agency_code=args.agency_code,
        agency_name=args.agency_name,
        admin_password=args.admin_password,
        agent_password=args.agent_password,
        create_sample_records=(not args.no_sample_records),
    )
    return {
        "ok": True,
        "agency_code": out.agency_code,
        "super_admin_email": out.super_admin_email,
        "admin_email": out.admin_email,
        "agent_emails": out.agent_emails,
        "sample_property_id": out.property_id,
    }


def _purge(args: argparse.Namespace) -> dict:
    db = SessionLocal()
    try:
        return {"ok": True, **purge_orphans(db, limit=args.limit)}
    finally:
        db.close()


def main(argv: list[str] | None = None) -> None:
    p = argparse.ArgumentParser(prog="agencycrm")
    sub = p.add_subparsers(dest="command", required=True)

    s = sub.add_parser("seed-demo", help="create the demo agency, its users and sample records")
    s.add_argument("--agency-code", default=DEMO_AGENCY_CODE)
    s.add_argument("--agency-name", default=DEMO_AGENCY_NAME)
    s.add_argument("--admin-password", default="admin123")
    s.add_argument("--agent-password", default="agent123")
    s.add_argument("--no-sample-records", action="store_true")
    s.set_defaults(func=_seed)

    o = sub.add_parser("purge-orphans", help="retry removal of files left behind by failed deletes")
    o.add_argument("--limit", type=int, default=500)
    o.set_defaults(func=_purge)

    args = p.parse_args(argv)
    configure_logging()
    print(args.func(args))


if __name__ == "__main__":
    main()

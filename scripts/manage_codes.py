"""
Admin CLI for referral codes and download products.

Examples:
  python scripts/manage_codes.py create-code FRIEND20 --type referral --discount 20 \
      --referrer-name "Asha" --referrer-email asha@example.com --max-usage 50
  python scripts/manage_codes.py deactivate-code FRIEND20
  python scripts/manage_codes.py list-codes --referrer-email asha@example.com
  python scripts/manage_codes.py add-product PREMIERE2025 "Premiere Pro presets" --url https://...
"""

from __future__ import annotations

import argparse
import asyncio
from datetime import datetime
from pathlib import Path
from typing import List, Optional

import sys

# Ensure project root is on sys.path when running as a script
_ROOT = Path(__file__).resolve().parent.parent
if str(_ROOT) not in sys.path:
    sys.path.insert(0, str(_ROOT))

from core.database import Database  # noqa: E402
from core.models import CodeType  # noqa: E402
from services.referral_service import ReferralService  # noqa: E402


def build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(description="Manage SkillRas referral codes and products")
    ap.add_argument("--db", default="", help="Database path (defaults to DATABASE_PATH)")
    sub = ap.add_subparsers(dest="command", required=True)

    create = sub.add_parser("create-code", help="Create a referral, coupon or affiliate code")
    create.add_argument("code")
    create.add_argument("--type", dest="code_type", choices=[t.value for t in CodeType], default="referral")
    create.add_argument("--discount", type=int, default=0, help="Discount percentage (0-100)")
    create.add_argument("--referrer-name", default=None)
    create.add_argument("--referrer-email", default=None)
    create.add_argument("--description", default=None)
    create.add_argument("--max-usage", type=int, default=None, help="0 or unset means unlimited")
    create.add_argument("--link", default=None, help="Starter / primary payment link")
    create.add_argument("--link2", default=None, help="Professional payment link")
    create.add_argument("--link3", default=None, help="Enterprise payment link")
    create.add_argument("--valid-until", default=None, help="ISO date or datetime, e.g. 2026-12-31 or 2026-12-31T00:00+05:30; stored as UTC")

    deactivate = sub.add_parser("deactivate-code", help="Mark a code inactive")
    deactivate.add_argument("code")

    listing = sub.add_parser("list-codes", help="List codes")
    listing.add_argument("--referrer-email", default=None)
    listing.add_argument("--limit", type=int, default=20)

    product = sub.add_parser("add-product", help="Register a downloadable product")
    product.add_argument("code")
    product.add_argument("name")
    product.add_argument("--url", default=None)
    return ap


async def run(args: argparse.Namespace) -> int:
    db = Database(args.db or None)
    await db.connect()
    try:
        referrals = ReferralService(db)
        if args.command == "create-code":
            valid_until = datetime.fromisoformat(args.valid_until) if args.valid_until else None
            record = await referrals.create_code(
                args.code,
                CodeType(args.code_type),
                args.discount,
                referrer_name=args.referrer_name,
                referrer_email=args.referrer_email,
                description=args.description,
                max_usage=args.max_usage,
                payment_link=args.link,
                payment_link2=args.link2,
                payment_link3=args.link3,
                valid_until=valid_until,
            )
            print(f"Created {record.code_type.value} code {record.code} ({record.discount_percentage}% off)")
        elif args.command == "deactivate-code":
            if not await referrals.deactivate_code(args.code):
                print(f"Code {args.code} not found")
                return 1
            print(f"Deactivated {args.code.upper()}")
        elif args.command == "list-codes":
            if args.referrer_email:
                codes = await referrals.list_codes_for_referrer(args.referrer_email)
            else:
                codes = await db.list_referral_codes(limit=args.limit)
            for c in codes:
                cap = c.max_usage or "∞"
                state = "active" if c.is_active else "inactive"
                print(f"{c.code:<16} {c.code_type.value:<10} {c.discount_percentage:>3}%  {c.current_usage}/{cap}  {state}")
            print(f"Codes: {len(codes)}")
        elif args.command == "add-product":
            product = await db.create_product(args.code, args.name, args.url)
            print(f"Added product {product.code}: {product.name}")
        return 0
    finally:
        await db.close()


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    return asyncio.run(run(args))


if __name__ == "__main__":
    raise SystemExit(main())

"""
Run the assignment auto-close scheduler once (automatic trigger).

Meant for cron:
    */10 * * * *  python run_scheduler.py
    python run_scheduler.py --dry-run --batch-size 20
"""

import argparse
import asyncio
import json
import logging
import sys

from assignment_ops.config import settings
from assignment_ops.db.session import engine, init_db
from assignment_ops.errors import AppError
from assignment_ops.services.auto_close import run_auto_close


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Close published assignments past their due date.")
    parser.add_argument("--dry-run", action="store_true", help="List candidates without closing them")
    parser.add_argument("--batch-size", type=int, default=settings.auto_close_batch_size)
    parser.add_argument("--force", action="store_true", help="Ignore the running flag")
    return parser.parse_args(argv)


async def main(argv=None) -> int:
    args = parse_args(argv)
    await init_db()
    try:
        result = await run_auto_close(dry_run=args.dry_run, batch_size=args.batch_size, force=args.force)
    except AppError as e:
        print(json.dumps({"ok": False, "error": e.to_dict()}), file=sys.stderr)
        return 1
    finally:
        await engine.dispose()
    print(json.dumps({"ok": True, "data": result.model_dump(mode="json", by_alias=True)}, indent=2))
    return 0


if __name__ == "__main__":
    logging.basicConfig(level=settings.log_level.upper())
    sys.exit(asyncio.run(main()))

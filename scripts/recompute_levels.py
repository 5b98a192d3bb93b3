"""
Repair script: re-derive every stored level from its total XP.

This script:
1. Loads all level_progress rows
2. Floors negative totals at 0
3. Rewrites `level` wherever it differs from level_from_xp(total_xp)

Run with --dry-run to only report drift.
"""
import sys
from datetime import datetime, timezone
from pathlib import Path

# Add project root to path
project_root = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(project_root))

from app.db.base import SessionLocal
from app.levels.curve import level_from_xp
from app.levels.models import LevelProgress


def recompute_levels(dry_run: bool = False) -> int:
    """Fix drifted rows. Returns how many rows needed a change."""
    db = SessionLocal()

    try:
        rows = db.query(LevelProgress).order_by(LevelProgress.user_id).all()
        print(f"Found {len(rows)} progression rows", flush=True)

        fixed = 0
        for row in rows:
            total = max(0, int(row.total_xp or 0))
            level = level_from_xp(total)
            if row.total_xp == total and row.level == level:
                continue

            print(f"  user={row.user_id} total_xp {row.total_xp} -> {total} level {row.level} -> {level}", flush=True)
            fixed += 1
            if not dry_run:
                row.total_xp = total
                row.level = level
                row.updated_at = datetime.now(timezone.utc)

        if not dry_run:
            db.commit()
        verb = "would be updated" if dry_run else "updated"
        print(f"\nDone: {fixed} row(s) {verb}", flush=True)
        return fixed

    except Exception as e:
        db.rollback()
        print(f"Error during recompute: {e}", flush=True)
        raise
    finally:
        db.close()


if __name__ == "__main__":
    recompute_levels(dry_run="--dry-run" in sys.argv[1:])

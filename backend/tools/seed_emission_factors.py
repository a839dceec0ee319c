"""Publish emission factor files into the factor store (for deploy/cron execution)."""

from __future__ import annotations

import argparse
import asyncio
import json
from datetime import UTC, datetime
from importlib import resources as importlib_resources
from pathlib import Path

from sqlalchemy.exc import IntegrityError

from ghg_engine.core.logging import configure_logging
from ghg_engine.db.session import close_db, get_background_session, init_db
from ghg_engine.modules.factors.loader import load_factor_file
from ghg_engine.modules.factors.store import FactorStore


def _bundled_seed() -> Path:
    pkg = importlib_resources.files("ghg_engine.modules.factors")
    return Path(str(pkg)) / "data" / "seed_epa_2024.yaml"


def _parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Publish emission factor YAML files.")
    parser.add_argument(
        "paths",
        nargs="*",
        type=Path,
        help="Factor files to publish. Defaults to the bundled EPA 2024 seed.",
    )
    parser.add_argument(
        "--skip-existing",
        action="store_true",
        help="Skip factor versions that are already published instead of failing.",
    )
    return parser.parse_args()


async def _publish_file(path: Path, *, skip_existing: bool) -> dict[str, object]:
    factors = load_factor_file(path)
    published = 0
    skipped = 0
    async with get_background_session() as session:
        store = FactorStore(session)
        for factor in factors:
            if not skip_existing:
                await store.publish(factor)
                published += 1
                continue
            try:
                async with session.begin_nested():
                    await store.publish(factor)
                published += 1
            except IntegrityError:
                skipped += 1
        await session.commit()
    return {"path": str(path), "published": published, "skipped": skipped}


async def _main() -> int:
    args = _parse_args()
    configure_logging()
    paths = args.paths or [_bundled_seed()]
    await init_db()
    try:
        summary: dict[str, object] = {
            "ran_at": datetime.now(UTC).isoformat(),
            "files": [],
            "errors": [],
        }
        for path in paths:
            try:
                summary["files"].append(
                    await _publish_file(path, skip_existing=args.skip_existing)
                )
            except Exception as exc:  # pragma: no cover - reported in summary
                summary["errors"].append({"path": str(path), "error": str(exc)})
        print(json.dumps(summary, indent=2))
        return 0 if not summary["errors"] else 1
    finally:
        await close_db()


if __name__ == "__main__":
    raise SystemExit(asyncio.run(_main()))

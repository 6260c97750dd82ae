"""Fetch a stored assessment from Supabase and write its PDF report."""
import argparse
import logging
import sys
from pathlib import Path

from db import get_store_uncached, load_settings
from drivecoach.report import Organization
from drivecoach.submission import render_assessment

logger = logging.getLogger(__name__)


def run_render(assessment_id: str, out_dir: Path) -> Path:
    settings = load_settings()
    store = get_store_uncached(settings)
    row = store.get_assessment(assessment_id)
    if not row:
        raise LookupError(f"Assessment not found: {assessment_id}")
    organization = settings.organization
    if settings.organization_id or row.get("organization_id"):
        org_row = store.get_organization(row.get("organization_id") or settings.organization_id)
        if org_row:
            organization = Organization(
                name=org_row.get("name") or organization.name,
                logo_url=org_row.get("logo_url") or organization.logo_url,
            )
    file_name, data = render_assessment(row, organization)
    out_dir.mkdir(parents=True, exist_ok=True)
    out_path = out_dir / file_name
    out_path.write_bytes(data)
    logger.info(f"Wrote {len(data)} bytes to {out_path}")
    return out_path


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO, format="%(levelname)s: %(message)s")
    parser = argparse.ArgumentParser(description="Render a saved mock test assessment to PDF.")
    parser.add_argument("assessment_id", help="Assessment row id (UUID)")
    parser.add_argument("--out", default=".", help="Output directory (default: current directory)")
    args = parser.parse_args()
    try:
        path = run_render(args.assessment_id, Path(args.out))
    except (LookupError, ValueError) as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)
    print(f"Report written: {path}")

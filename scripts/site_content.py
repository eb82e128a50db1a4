"""
CLI helper to export or import the site content document.
"""

from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from backend.content import ContentValidationError, SiteContentService
from backend.dependencies import get_content_service


def main(argv: list[str] | None = None, service: SiteContentService | None = None) -> int:
    parser = argparse.ArgumentParser(description="Site content import/export")
    subparsers = parser.add_subparsers(dest="command", required=True)

    export_parser = subparsers.add_parser("export", help="Write the document to a file")
    export_parser.add_argument("path", type=Path)
    export_parser.add_argument(
        "--with-defaults",
        action="store_true",
        help="Export the effective document (defaults filled in) instead of the raw one",
    )

    import_parser = subparsers.add_parser("import", help="Replace the document from a file")
    import_parser.add_argument("path", type=Path)

    args = parser.parse_args(argv)
    service = service or get_content_service()

    if args.command == "export":
        if args.with_defaults:
            text = json.dumps(service.get_content().to_document(), indent=2, ensure_ascii=False)
        else:
            text = service.get_raw()
        args.path.write_text(text, encoding="utf-8")
        print(f"Exported site content to {args.path}")
        return 0

    try:
        service.save(args.path.read_text(encoding="utf-8"))
    except ContentValidationError as exc:
        print(f"Import failed: {exc}", file=sys.stderr)
        return 1
    print(f"Imported site content from {args.path}")
    return 0


if __name__ == "__main__":
    sys.exit(main())

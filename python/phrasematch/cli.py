import argparse
import json
import sys
from pathlib import Path
from typing import Any, List

from phrasematch import __version__
from phrasematch.config import MatchSettings
from phrasematch.models import DocumentOutcome, DocumentPreview, ScanReport
from phrasematch.repository import JsonCorpusRepository, PhraseMatchError
from phrasematch.service import PhraseMatchService


def _open_service(args: argparse.Namespace) -> PhraseMatchService:
    settings = MatchSettings.from_env(context_chars=getattr(args, "context", None))
    try:
        repository = JsonCorpusRepository(args.corpus)
    except (OSError, ValueError, PhraseMatchError) as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)
    return PhraseMatchService(repository, settings=settings)


def _load_items(path: Path) -> List[Any]:
    if not path.exists():
        print(f"Error: Items file not found: {path}", file=sys.stderr)
        sys.exit(1)
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
    except json.JSONDecodeError as e:
        print(f"Error parsing JSON items: {e}", file=sys.stderr)
        sys.exit(1)
    if isinstance(data, dict):
        data = data.get("items", [])
    if not isinstance(data, list):
        print("Error: Items file must contain a JSON list.", file=sys.stderr)
        sys.exit(1)
    return data


def _print_report(report: ScanReport) -> None:
    print(f"Found {report.total} occurrence(s) of '{report.phrase}':", file=sys.stderr)
    for hit in report.hits:
        occ = hit.occurrence
        print(
            f"[{hit.document_id}] {hit.title} ({hit.doc_type}/{hit.status}) "
            f"{occ.field.value}@{occ.offset} #{occ.occurrence_index} [{occ.wrapping.value}]"
        )
        print(f"    {occ.snippet}")


def _print_outcomes(outcomes: List[DocumentOutcome]) -> None:
    for outcome in outcomes:
        mark = "✅" if outcome.success else "❌"
        line = f"{mark} [{outcome.document_id}] {outcome.title}: {outcome.message}"
        if outcome.revision_id is not None:
            line += f" (revision {outcome.revision_id})"
        print(line)


def _print_previews(previews: List[DocumentPreview]) -> None:
    for preview in previews:
        print(f"[{preview.document_id}] {preview.title}: {preview.removed} removed, {preview.replaced} replaced")
        for label, changes in (("title", preview.title_changes), ("content", preview.content_changes)):
            for change in changes:
                if change.removed:
                    print(f"  {label}@{change.offset} [-] {change.removed!r}")
                if change.inserted:
                    print(f"  {label}@{change.offset} [+] {change.inserted!r}")


def handle_scan(args):
    service = _open_service(args)
    report = service.scan(args.phrase, args.type or ["post", "page"], args.status or ["publish"])

    if args.json:
        print(json.dumps(report.model_dump(mode="json"), indent=2))
    else:
        _print_report(report)


def handle_apply(args):
    items = _load_items(args.items)
    if not args.phrase or not items:
        print("Error: Missing phrase or items to process.", file=sys.stderr)
        sys.exit(1)

    service = _open_service(args)

    if args.dry_run:
        print(f"Previewing {len(items)} item(s)...", file=sys.stderr)
        _print_previews(service.preview(args.phrase, items))
        return

    print(f"Applying {len(items)} item(s)...", file=sys.stderr)
    outcomes = service.remove(args.phrase, items)
    _print_outcomes(outcomes)

    failed = sum(1 for o in outcomes if not o.success)
    print(f"Stats: {len(outcomes) - failed} documents updated, {failed} failed.", file=sys.stderr)
    if failed > 0:
        sys.exit(1)


def handle_restore(args):
    service = _open_service(args)
    try:
        revision = service.repository.restore(args.document_id, args.revision_id)
    except PhraseMatchError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)
    print(f"✅ Restored document {args.document_id} (previous text kept as revision {revision.id})", file=sys.stderr)


def main():
    parser = argparse.ArgumentParser(prog="phrasematch", description="Find, remove or replace exact phrases")
    parser.add_argument("-v", "--version", action="version", version=f"%(prog)s {__version__}")
    subparsers = parser.add_subparsers(dest="command", required=True, help="Subcommands")

    p_scan = subparsers.add_parser("scan", help="List every occurrence of a phrase in a corpus")
    p_scan.add_argument("corpus", type=Path, help="JSON corpus file")
    p_scan.add_argument("phrase", type=str, help="Exact phrase (case-insensitive)")
    p_scan.add_argument("--type", action="append", help="Document type to include (repeatable, default: post, page)")
    p_scan.add_argument("--status", action="append", help="Status to include (repeatable, default: publish)")
    p_scan.add_argument("--context", type=int, help="Characters of context around each match")
    p_scan.add_argument("--json", action="store_true", help="Output the raw JSON report")
    p_scan.set_defaults(func=handle_scan)

    p_apply = subparsers.add_parser("apply", help="Remove or replace selected occurrences")
    p_apply.add_argument("corpus", type=Path, help="JSON corpus file")
    p_apply.add_argument("phrase", type=str, help="Exact phrase the items refer to")
    p_apply.add_argument("items", type=Path, help="JSON list of {document_id, offset, field, mode, replacement}")
    p_apply.add_argument("--dry-run", action="store_true", help="Show the changes without saving")
    p_apply.set_defaults(func=handle_apply)

    p_restore = subparsers.add_parser("restore", help="Roll a document back to a saved revision")
    p_restore.add_argument("corpus", type=Path, help="JSON corpus file")
    p_restore.add_argument("document_id", type=int, help="Document ID")
    p_restore.add_argument("revision_id", type=int, help="Revision ID to restore")
    p_restore.set_defaults(func=handle_restore)

    args = parser.parse_args()
    args.func(args)


if __name__ == "__main__":
    main()

"""nisync command line interface.

Example usage:
    # Download indicators from the configured store into a working folder
    nisync download Fjellrev Lirype --out work/

    # Check an edited folder against the downloaded one
    nisync validate original/ work/

    # Show the changes of one indicator
    nisync diff original/ work/ Fjellrev

    # Upload edited indicators (prompts unless --yes is given). Fails when
    # the stored indicator changed since the download into work/
    nisync push work/ Fjellrev
"""

import argparse
import json
import os
import sys

from nisync import config
from nisync.diff import changed_rows, diff_datasets, format_change_report
from nisync.exceptions import NISyncBaseError
from nisync.logging_config import create_logger
from nisync.schema_validator import validate_rows, validate_shape
from nisync.store.base import Credentials
from nisync.store.local import LocalRecordStore
from nisync.sync import SyncSession, summarize

logger = create_logger(__name__)

# Revision each indicator had when it was downloaded into a working folder
REVISIONS_FILE = "revisions.json"


def read_revisions(folder: str) -> dict:
    path = os.path.join(folder, REVISIONS_FILE)
    if not os.path.isfile(path):
        return {}
    with open(path, encoding="utf-8") as f:
        return json.load(f)


def write_revisions(folder: str, revisions: dict) -> None:
    merged = {**read_revisions(folder), **revisions}
    with open(os.path.join(folder, REVISIONS_FILE), "w", encoding="utf-8") as f:
        json.dump(merged, f, ensure_ascii=False, indent=2)


def download_command(args) -> int:
    store = config.get_store()
    target = LocalRecordStore(args.out)
    datasets = store.download(args.names, Credentials.from_env())
    for name, dataset in datasets.items():
        copy = dataset.copy()
        copy.revision = None
        target.upload(name, copy, None, confirmed=True)
        print(f"{name}: {len(dataset.values)} rows -> {args.out}")
    write_revisions(args.out, {name: dataset.revision for name, dataset in datasets.items()})
    return 0


def validate_command(args) -> int:
    reference_store = LocalRecordStore(args.reference)
    names = reference_store.list_indicators()
    reference = reference_store.download(names)
    candidate = LocalRecordStore(args.candidate).download(names)

    issues = validate_shape(reference, candidate)
    for name, dataset in candidate.items():
        issues.extend(validate_rows(name, dataset))

    print(summarize(issues))
    return 1 if issues else 0


def diff_command(args) -> int:
    reference = LocalRecordStore(args.reference).download([args.name])[args.name]
    candidate = LocalRecordStore(args.candidate).download([args.name])[args.name]

    if args.all:
        report = diff_datasets(reference, candidate)
        if not args.full:
            report = changed_rows(report)
        print(report.to_string(index=False))
    else:
        print(format_change_report(reference, candidate))
    return 0


def push_command(args) -> int:
    session = SyncSession(config.get_store(), Credentials.from_env())
    session.download(args.names)
    revisions = read_revisions(args.folder)
    missing = [name for name in args.names if name not in revisions]
    if missing:
        logger.warning(f"No downloaded revision recorded for {missing}; using the current one")
    session.stage(LocalRecordStore(args.folder).download(args.names), revisions)

    issues = session.validate()
    if issues:
        print(summarize(issues))
        return 1

    for name in args.names:
        print(session.report(name))

    confirmed = args.yes
    if not confirmed:
        answer = input("Overwrite the stored datasets with these changes? [y/N] ")
        confirmed = answer.strip().lower() in ("y", "yes")
    if not confirmed:
        print("Upload cancelled")
        return 1

    backup = LocalRecordStore(args.backup) if args.backup else None
    results = session.push(confirmed=True, backup_store=backup)
    for name, uploaded in results.items():
        print(f"{name}: {'uploaded' if uploaded else 'unchanged'}")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Prepare and synchronize Nature Index indicator datasets",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )
    subparsers = parser.add_subparsers(dest="command", help="Command to execute")
    subparsers.required = True

    download_parser = subparsers.add_parser("download", help="Download indicators to a folder")
    download_parser.add_argument("names", nargs="+", help="Indicator names")
    download_parser.add_argument("--out", required=True, help="Target folder")
    download_parser.set_defaults(func=download_command)

    validate_parser = subparsers.add_parser("validate", help="Compare the shape of two folders")
    validate_parser.add_argument("reference", help="Folder with the downloaded snapshot")
    validate_parser.add_argument("candidate", help="Folder with the edited snapshot")
    validate_parser.set_defaults(func=validate_command)

    diff_parser = subparsers.add_parser("diff", help="Show changes of one indicator")
    diff_parser.add_argument("reference", help="Folder with the downloaded snapshot")
    diff_parser.add_argument("candidate", help="Folder with the edited snapshot")
    diff_parser.add_argument("name", help="Indicator name")
    diff_parser.add_argument("--all", action="store_true", help="Print the per-column flag table")
    diff_parser.add_argument("--full", action="store_true", help="With --all, include unchanged rows")
    diff_parser.set_defaults(func=diff_command)

    push_parser = subparsers.add_parser("push", help="Upload edited indicators")
    push_parser.add_argument("folder", help="Folder with the edited snapshot")
    push_parser.add_argument("names", nargs="+", help="Indicator names")
    push_parser.add_argument("--yes", action="store_true", help="Skip confirmation")
    push_parser.add_argument("--backup", help="Folder receiving the pre-upload snapshot")
    push_parser.set_defaults(func=push_command)

    return parser


def main(argv=None) -> int:
    """Main CLI entry point."""
    args = build_parser().parse_args(argv)
    try:
        return args.func(args)
    except NISyncBaseError as e:
        logger.error(f"{type(e).__name__}: {e}")
        return 1


if __name__ == "__main__":
    sys.exit(main())

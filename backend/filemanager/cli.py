#!/usr/bin/env python3
"""
Command-line file manager for the bucket behind the file manager API.

Usage:
    filemanager list
    filemanager upload report.pdf notes.txt
    filemanager upload photo.jpg --name holiday.jpg
    filemanager rename holiday.jpg holiday-2024.jpg
    filemanager delete holiday-2024.jpg

    # Against another server:
    FILEMANAGER_API_URL=https://files.example.com filemanager list
"""
import argparse
import asyncio
import os
import sys
from typing import List, Optional, Sequence

from filemanager.client.api import FileManagerClient, FileManagerClientError, LocalFile, UploadedFile
from filemanager.client.orchestrator import UploadOrchestrator, UploaderState, UploadStatus
from filemanager.utils.logging import configure_logging

DEFAULT_API_URL = "http://localhost:8000"


def format_listing(files: Sequence[UploadedFile]) -> str:
    """Render the listing as one line per file."""
    if not files:
        return "No files in bucket."
    lines = []
    for f in files:
        size_kb = (f.size or 0) / 1024
        lines.append(f"  - {f.name} ({size_kb:.2f} KB, modified {f.last_modified or 'unknown'})  {f.url}")
    return "\n".join(lines)


def _print_progress(state: UploaderState) -> None:
    for item in state.pending:
        if item.status == UploadStatus.UPLOADING:
            print(f"  Uploading {item.name} ...")


async def run_list(orchestrator: UploadOrchestrator) -> int:
    files = await orchestrator.refresh()
    print(f"Files ({len(files)}):")
    print(format_listing(files))
    return 0


async def run_upload(orchestrator: UploadOrchestrator, paths: List[str], names: Optional[List[str]]) -> int:
    if names and len(names) != len(paths):
        print("ERROR: --name must be given once per file or not at all")
        return 1

    try:
        local_files = [LocalFile.from_path(path) for path in paths]
    except OSError as e:
        print(f"ERROR: cannot read {e.filename}: {e.strerror}")
        return 1

    orchestrator.select_files(local_files)
    for index, name in enumerate(names or []):
        orchestrator.rename_pending(index, name)

    print(f"Uploading {len(local_files)} file(s)...")
    results = await orchestrator.upload_all()

    failed = [name for name, status in results.items() if status == UploadStatus.ERROR]
    for name, status in results.items():
        print(f"  {name}: {status.value}")

    print(f"\n{'='*50}")
    print("SUMMARY:")
    print(f"  Uploaded: {len(results) - len(failed)}")
    print(f"  Failed: {len(failed)}")
    print(f"{'='*50}")
    print(format_listing(orchestrator.state.uploaded))
    return 1 if failed else 0


async def run_delete(orchestrator: UploadOrchestrator, name: str) -> int:
    await orchestrator.delete(name)
    print(f"Deleted {name}")
    return 0


async def run_rename(orchestrator: UploadOrchestrator, old_name: str, new_name: str) -> int:
    try:
        await orchestrator.rename(old_name, new_name)
    except FileManagerClientError:
        # The bucket may hold either name, or both
        print("Rename failed; current listing:")
        await run_list(orchestrator)
        raise
    print(f"Renamed {old_name} -> {new_name}")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description='Manage files in the object-storage bucket')
    parser.add_argument('--api-url', default=os.environ.get('FILEMANAGER_API_URL', DEFAULT_API_URL),
                        help='Base URL of the file manager API')
    parser.add_argument('--timeout', type=float, default=None,
                        help='HTTP timeout in seconds (default: httpx default)')
    parser.add_argument('--log-level', default=os.environ.get('LOG_LEVEL', 'WARNING'))

    commands = parser.add_subparsers(dest='command', required=True)
    commands.add_parser('list', help='List files in the bucket')

    upload = commands.add_parser('upload', help='Upload local files')
    upload.add_argument('paths', nargs='+', help='Files to upload')
    upload.add_argument('--name', action='append', dest='names',
                        help='Object name for the matching path (repeat per file)')

    delete = commands.add_parser('delete', help='Delete a file')
    delete.add_argument('name')

    rename = commands.add_parser('rename', help='Rename a file')
    rename.add_argument('old_name')
    rename.add_argument('new_name')
    return parser


async def run(args: argparse.Namespace) -> int:
    async with FileManagerClient(args.api_url, timeout=args.timeout) as client:
        on_change = _print_progress if args.command == 'upload' else None
        orchestrator = UploadOrchestrator(client, on_change=on_change)

        if args.command == 'list':
            return await run_list(orchestrator)
        if args.command == 'upload':
            return await run_upload(orchestrator, args.paths, args.names)
        if args.command == 'delete':
            return await run_delete(orchestrator, args.name)
        return await run_rename(orchestrator, args.old_name, args.new_name)


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    configure_logging('filemanager-cli', args.log_level)

    try:
        return asyncio.run(run(args))
    except FileManagerClientError as e:
        print(f"ERROR: {e}")
        return 1


if __name__ == '__main__':
    sys.exit(main())

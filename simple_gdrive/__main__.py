"""
simple-gdrive - Main Entry Point

Command line access to a Google Drive account through slash-delimited paths.
"""

import argparse
import logging
import sys

from .config import load_config
from .errors import DriveError, ResourceAlreadyExistsError
from .logger import setup_logging
from .mime import MimeType
from .query import QueryBuilder
from .service import GoogleDriveService

logger = logging.getLogger(__name__)


def parse_args(argv=None):
    """Parse command-line arguments."""
    parser = argparse.ArgumentParser(
        description="simple-gdrive - Google Drive by path",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  simple-gdrive ls Reports --deep --files-only
  simple-gdrive mkdir Reports/2024
  simple-gdrive upload ./q1.pdf Reports/2024/q1.pdf
  simple-gdrive export "Reports/Budget" budget.xlsx
  simple-gdrive --config config.ini info Reports
        """,
    )
    parser.add_argument("--config", help="Path to configuration file")
    parser.add_argument("--token-file", help="Path to the saved Google token JSON")
    parser.add_argument("--root-folder", help="Resolve paths under this folder id instead of My Drive")
    parser.add_argument("--cache-file", help="Persist the path cache to this file")
    parser.add_argument("--verbose", action="store_true", help="Enable debug logging")

    subparsers = parser.add_subparsers(dest="command", help="Command to run")

    ls_parser = subparsers.add_parser("ls", help="List a folder")
    ls_parser.add_argument("path", help="Remote folder path")
    ls_parser.add_argument("--deep", action="store_true", help="Include all subfolders")
    ls_parser.add_argument("--files-only", action="store_true", help="Hide folders")

    info_parser = subparsers.add_parser("info", help="Show resource metadata")
    info_parser.add_argument("path", help="Remote path")

    mkdir_parser = subparsers.add_parser("mkdir", help="Create a folder and its parents")
    mkdir_parser.add_argument("path", help="Remote folder path")

    rm_parser = subparsers.add_parser("rm", help="Permanently delete a resource")
    rm_parser.add_argument("path", help="Remote path")

    upload_parser = subparsers.add_parser("upload", help="Upload a local file")
    upload_parser.add_argument("local", help="Local file")
    upload_parser.add_argument("remote", help="Remote destination path")

    download_parser = subparsers.add_parser("download", help="Download a file")
    download_parser.add_argument("remote", help="Remote path")
    download_parser.add_argument("local", help="Local destination")

    export_parser = subparsers.add_parser("export", help="Export a Google Workspace document")
    export_parser.add_argument("remote", help="Remote path")
    export_parser.add_argument("local", help="Local destination")
    export_parser.add_argument("--mime-type", help="Target MIME type (default: office format)")

    return parser.parse_args(argv)


def _open_service(args) -> GoogleDriveService:
    config = load_config(
        args.config,
        token_file=args.token_file,
        root_folder=args.root_folder,
        cache_file=args.cache_file,
        debug=args.verbose,
    )
    setup_logging(config.logging)
    service = GoogleDriveService.from_config(config)
    service.connect()
    return service


def cmd_ls(service, args):
    folder = service.find_folder(args.path)
    if folder is None:
        print(f"[ERROR] Folder not found: {args.path}")
        return 1

    parameters = QueryBuilder().is_not_type(MimeType.FOLDER) if args.files_only else None
    for resource in folder.get_inner_resources(parameters, deep_search=args.deep):
        if args.deep:
            name = resource.get_full_name()
        else:
            name = resource.name
        suffix = "/" if resource.is_folder else ""
        print(f"{resource.id}  {name}{suffix}")
    return 0


def cmd_info(service, args):
    resource = service.find_resource(args.path)
    if resource is None:
        print(f"[ERROR] Not found: {args.path}")
        return 1

    print(f"Name:      {resource.name}")
    print(f"Id:        {resource.id}")
    print(f"Type:      {resource.mime_type}")
    print(f"Full name: {resource.get_full_name()}")
    if resource.size is not None:
        print(f"Size:      {resource.size}")
    if resource.properties:
        print("Properties:")
        for key, value in sorted(resource.properties.items()):
            print(f"  {key} = {value}")
    return 0


def cmd_mkdir(service, args):
    try:
        folder = service.create_folder(args.path)
    except ResourceAlreadyExistsError as e:
        print(f"[ERROR] {e}")
        return 1
    print(f"[OK] Created {args.path} ({folder.id})")
    return 0


def cmd_rm(service, args):
    if not service.delete_path(args.path):
        print(f"[ERROR] Not found: {args.path}")
        return 1
    print(f"[OK] Deleted {args.path}")
    return 0


def cmd_upload(service, args):
    resource = service.upload_file(args.local, args.remote)
    if resource is None:
        print(f"[ERROR] Local file not found: {args.local}")
        return 1
    print(f"[OK] Uploaded {args.local} -> {args.remote} ({resource.id})")
    return 0


def cmd_download(service, args):
    if not service.download_path(args.remote, args.local):
        print(f"[ERROR] Not found: {args.remote}")
        return 1
    print(f"[OK] Downloaded {args.remote} -> {args.local}")
    return 0


def cmd_export(service, args):
    resource = service.find_file(args.remote)
    if resource is None:
        print(f"[ERROR] Not found: {args.remote}")
        return 1
    resource.export(args.local, args.mime_type)
    print(f"[OK] Exported {args.remote} -> {args.local}")
    return 0


COMMANDS = {
    "ls": cmd_ls,
    "info": cmd_info,
    "mkdir": cmd_mkdir,
    "rm": cmd_rm,
    "upload": cmd_upload,
    "download": cmd_download,
    "export": cmd_export,
}


def main(argv=None):
    """Main entry point."""
    args = parse_args(argv)

    command = COMMANDS.get(args.command)
    if command is None:
        print("Usage: simple-gdrive [options] <command> [args]")
        print()
        print("Commands:")
        print("  ls        List a folder")
        print("  info      Show resource metadata")
        print("  mkdir     Create a folder")
        print("  rm        Delete a resource")
        print("  upload    Upload a local file")
        print("  download  Download a file")
        print("  export    Export a Google Workspace document")
        print()
        print("Run 'simple-gdrive <command> --help' for more information.")
        return 1

    try:
        service = _open_service(args)
    except (ValueError, FileNotFoundError) as e:
        print(f"[ERROR] Configuration error: {e}")
        return 1
    except DriveError as e:
        print(f"[ERROR] {e}")
        return 1
    except ConnectionError as e:
        print(f"[ERROR] Could not connect to Google Drive: {e}")
        return 1

    try:
        with service:
            return command(service, args)
    except PermissionError as e:
        print(f"[ERROR] Access denied: {e}")
        return 1
    except (DriveError, ValueError) as e:
        logger.debug("Command %s failed", args.command, exc_info=True)
        print(f"[ERROR] {e}")
        return 1


if __name__ == "__main__":
    sys.exit(main() or 0)

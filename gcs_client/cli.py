from __future__ import annotations
"""Command line interface for the Cloud Storage client."""
import argparse
import logging
import os
import sys
from typing import Optional, Sequence, TextIO

from googleapiclient.errors import HttpError

from .controller import GcsController, NotConnectedError
from .errors import GcsError
from .formatting import format_object_line, load_package_info
from .paths import resolve
from .services import GcsService

LOGGER = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    info = load_package_info()
    parser = argparse.ArgumentParser(prog="pygcs", description=info.summary)
    parser.add_argument("--version", action="version", version=f"%(prog)s {info.version}".strip())
    parser.add_argument("--profile", help="saved connection profile to use")
    parser.add_argument("-v", "--verbose", action="store_true", help="enable debug logging")
    commands = parser.add_subparsers(dest="command", required=True)

    commands.add_parser("profiles", help="list saved connection profiles")

    buckets = commands.add_parser("buckets", help="list buckets of a project")
    buckets.add_argument("project", nargs="?")

    mb = commands.add_parser("mb", help="create a bucket")
    mb.add_argument("name")
    mb.add_argument("--project")
    mb.add_argument("--location")
    mb.add_argument("--storage-class", default="STANDARD")

    rb = commands.add_parser("rb", help="delete a bucket")
    rb.add_argument("name")

    ls = commands.add_parser("ls", help="list objects under a gs:// prefix")
    ls.add_argument("url")
    ls.add_argument("-r", "--recursive", action="store_true")

    glob = commands.add_parser("glob", help="list objects matching a shell-style pattern")
    glob.add_argument("pattern")

    cat = commands.add_parser("cat", help="print the head of an object")
    cat.add_argument("url")
    cat.add_argument("--limit", type=int)
    cat.add_argument("--trim", help="cut the output after the last occurrence of this delimiter")
    cat.add_argument("--stream", action="store_true", help="stream the whole object")

    cp = commands.add_parser("cp", help="copy an object or a tree")
    cp.add_argument("src")
    cp.add_argument("dest")
    cp.add_argument("-r", "--recursive", action="store_true")

    rm = commands.add_parser("rm", help="delete an object or a tree")
    rm.add_argument("url")
    rm.add_argument("-r", "--recursive", action="store_true")

    compose = commands.add_parser("compose", help="compose objects matching patterns into one")
    compose.add_argument("dest")
    compose.add_argument("patterns", nargs="+")
    compose.add_argument("--content-type")
    compose.add_argument("--content-encoding")

    put = commands.add_parser("put", help="upload a local file")
    put.add_argument("source")
    put.add_argument("url")
    put.add_argument("--content-type")
    put.add_argument("--content-encoding")

    get = commands.add_parser("get", help="download an object to a local file")
    get.add_argument("url")
    get.add_argument("destination")

    resumable = commands.add_parser("resumable", help="open a resumable upload session")
    resumable.add_argument("url")
    resumable.add_argument("--content-type", default="application/octet-stream")
    resumable.add_argument("--origin")

    return parser


def _connect(controller: GcsController, profile: str | None) -> GcsService:
    if profile:
        return controller.connect_with_profile(profile)
    last_profile = controller.settings.last_profile
    if last_profile and any(p.name == last_profile for p in controller.list_profiles()):
        return controller.connect_with_profile(last_profile)
    return controller.connect_default()


def run(args: argparse.Namespace, controller: GcsController, out: TextIO) -> int:
    if args.command == "profiles":
        for profile in controller.list_profiles():
            kind = "service-account" if profile.uses_service_account else "default"
            out.write(f"{profile.name}\t{profile.project_id or '-'}\t{kind}\n")
        return 0

    service = _connect(controller, args.profile)
    settings = controller.settings

    if args.command == "buckets":
        for bucket in service.list_buckets(controller.project_id(args.project)):
            out.write(f"{bucket['name']}\n")
    elif args.command == "mb":
        created = service.insert_bucket(
            controller.project_id(args.project),
            args.name,
            storage_class=args.storage_class,
            location=args.location,
        )
        out.write(f"Created gs://{created['name']}\n")
    elif args.command == "rb":
        service.delete_bucket(args.name)
    elif args.command == "ls":
        bucket, prefix = _split(args.url)
        if args.recursive:
            for item in service.iter_objects(bucket, prefix=prefix):
                out.write(format_object_line(item) + "\n")
        else:
            for page in service.iter_pages(bucket, prefix=prefix, delimiter="/"):
                for name in page.prefixes:
                    out.write(f"{'DIR':>10}  {'':<23}  {name}\n")
                for item in page.items:
                    out.write(format_object_line(item) + "\n")
    elif args.command == "glob":
        for item in service.glob(args.pattern):
            out.write(f"gs://{_split(args.pattern)[0]}/{item.name}\n")
    elif args.command == "cat":
        return _cat(service, args, settings.read_limit, out)
    elif args.command == "cp":
        if args.recursive:
            copied = service.copy_tree(args.src, args.dest)
            LOGGER.info("Copied %d objects", copied)
        else:
            service.copy_object(args.src, args.dest)
    elif args.command == "rm":
        if args.recursive:
            removed = service.remove_tree(args.url)
            if removed is None:
                LOGGER.info("Bucket for %s does not exist", args.url)
            else:
                LOGGER.info("Removed %d objects", removed)
        else:
            service.delete_object(args.url)
    elif args.command == "compose":
        composed = service.compose_object(
            args.patterns,
            args.dest,
            content_type=args.content_type,
            content_encoding=args.content_encoding,
        )
        out.write(f"Composed gs://{composed.get('bucket')}/{composed.get('name')}\n")
    elif args.command == "put":
        bucket, name = _split(args.url)
        if not name or name.endswith("/"):
            name += os.path.basename(args.source)
        service.insert_object(
            bucket,
            name,
            args.source,
            content_type=args.content_type,
            content_encoding=args.content_encoding,
        )
    elif args.command == "get":
        if service.get_object(args.url, download_dest=args.destination) is None:
            out.write(f"{args.url}: not found\n")
            return 1
    elif args.command == "resumable":
        session_uri = service.initiate_resumable_upload(
            args.url,
            content_type=args.content_type,
            origin_domain=args.origin,
        )
        out.write(f"{session_uri}\n")
    return 0


def _split(url: str) -> tuple[str, str]:
    bucket, object = resolve(url)
    return bucket, object or ""


def _unescape(value: str) -> bytes:
    # allow "\\n" on the command line
    return value.encode("latin-1", "backslashreplace").decode("unicode_escape").encode("utf-8")


def _cat(service: GcsService, args: argparse.Namespace, default_limit: int, out: TextIO) -> int:
    binary = getattr(out, "buffer", None)

    def _write(chunk: bytes) -> None:
        if binary is not None:
            binary.write(chunk)
        else:
            out.write(chunk.decode("utf-8", errors="replace"))

    if args.stream:
        result = service.read_partial(args.url, sink=_write)
    else:
        result = service.read_partial(
            args.url,
            limit=args.limit or default_limit,
            trim_after_last_delimiter=_unescape(args.trim) if args.trim else None,
        )
        if result is not None:
            _write(result)
    if result is None:
        sys.stderr.write(f"{args.url}: not found\n")
        return 1
    return 0


def main(
    argv: Optional[Sequence[str]] = None,
    *,
    controller: GcsController | None = None,
    out: TextIO | None = None,
) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    try:
        return run(args, controller or GcsController(), out or sys.stdout)
    except (GcsError, HttpError, NotConnectedError, ValueError) as exc:
        LOGGER.debug("Command failed", exc_info=True)
        sys.stderr.write(f"pygcs: {exc}\n")
        return 1


if __name__ == "__main__":
    sys.exit(main())

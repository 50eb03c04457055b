import argparse
import logging
from itertools import islice
from pathlib import Path
from typing import Optional

import colorlog
import yaml

from dwca_tools import __version__ as _PACKAGE_VERSION
from dwca_tools.core.errors import (
    DwcaError,
    UnknownCharsetError,
    UnknownDelimitersError,
    UnsupportedArchiveError,
)
from dwca_tools.core.schemas import Archive, FileSchema
from dwca_tools.core.terms import TermRegistry
from dwca_tools.ingestion.dialect import detect_dialect
from dwca_tools.ingestion.loader import open_archive
from dwca_tools.records.iterators import open_star_records
from dwca_tools.writing.archive_writer import ArchiveWriter

# Failures caused by the input rather than by the tool
INPUT_ERRORS = (FileNotFoundError, UnsupportedArchiveError, UnknownCharsetError, UnknownDelimitersError)


def setup_logging(
    verbose: bool = False, warnings_only: bool = False, errors_only: bool = False
) -> None:
    logger = logging.getLogger()
    for h in list(logger.handlers):
        logger.removeHandler(h)
    log_format = "%(asctime)s:%(levelname)s:%(name)s:%(lineno)d: %(message)s"
    log_colors = {
        "DEBUG": "cyan",
        "INFO": "green",
        "WARNING": "yellow",
        "ERROR": "red",
        "CRITICAL": "bold_red",
    }
    stream_handler = colorlog.StreamHandler()
    formatter = colorlog.ColoredFormatter(f"%(log_color)s{log_format}", log_colors=log_colors)
    stream_handler.setFormatter(formatter)
    logger.addHandler(stream_handler)
    if errors_only:
        logger.setLevel(logging.ERROR)
    elif warnings_only:
        logger.setLevel(logging.WARNING)
    else:
        logger.setLevel(logging.DEBUG if verbose else logging.INFO)


def _load_registry(args: argparse.Namespace) -> TermRegistry:
    registry = TermRegistry.default()
    terms_path = getattr(args, "terms", None)
    if terms_path:
        registry = TermRegistry.from_yaml(Path(terms_path), base=registry)
        logging.debug("Loaded %d terms including %s", len(registry), terms_path)
    return registry


def _open(args: argparse.Namespace) -> Archive:
    return open_archive(Path(args.path), registry=_load_registry(args))


def _describe_schema(label: str, schema: FileSchema) -> None:
    row_type = schema.row_type.prefixed_name if schema.row_type is not None else "-"
    print(f"{label}: {row_type}")
    print(f"  location:   {', '.join(schema.locations)}")
    print(
        f"  dialect:    encoding={schema.encoding} delimiter={schema.field_delimiter!r} "
        f"quote={schema.quote_char!r} header_lines={schema.header_line_count}"
    )
    id_index = schema.id_field.index if schema.id_field is not None else None
    print(f"  id column:  {id_index if id_index is not None else '-'}")
    for f in schema.fields_sorted():
        idx = "-" if f.index is None else str(f.index)
        extra = f" default={f.default_value!r}" if f.default_value is not None else ""
        print(f"  {idx:>4}  {f.term.prefixed_name}{extra}")


def cmd_inspect(args: argparse.Namespace) -> int:
    """Print the schema of an archive."""
    try:
        archive = _open(args)
    except INPUT_ERRORS as e:
        logging.error("Cannot open %s: %s", args.path, e)
        return 2
    except (ValueError, yaml.YAMLError) as e:
        logging.error("Invalid terms file: %s", e)
        return 2

    print(f"archive:  {archive.base_directory} ({archive.layout.name.lower()})")
    print(f"metadata: {archive.metadata_location or '-'}")
    for dataset_id, path in archive.constituent_metadata().items():
        print(f"  constituent {dataset_id}: {path.name}")
    if archive.core is None:
        return 0
    _describe_schema("core", archive.core)
    for ext in archive.extensions.values():
        _describe_schema("extension", ext)
    return 0


def cmd_detect(args: argparse.Namespace) -> int:
    """Detect the dialect of a delimited file."""
    try:
        dialect = detect_dialect(Path(args.file), header_rows=int(args.header_rows or 0))
    except (OSError, UnknownCharsetError, UnknownDelimitersError) as e:
        logging.error("Cannot detect dialect of %s: %s", args.file, e)
        return 2
    print(f"encoding:  {dialect.encoding}")
    print(f"delimiter: {dialect.delimiter!r}")
    print(f"quote:     {dialect.quote!r}")
    return 0


def cmd_dump(args: argparse.Namespace) -> int:
    """Print star records of an archive."""
    try:
        archive = _open(args)
        if archive.core is None:
            logging.error("%s holds no core data file", args.path)
            return 2
        with open_star_records(archive, sort=not args.no_sort, show_progress=bool(args.verbose)) as it:
            errors = 0
            for res in islice(it.results(), args.limit):
                if res.error is not None:
                    logging.error("Line %d: %s", res.error.line_number, res.error.message)
                    errors += 1
                if res.value is None:
                    break
                star = res.value
                values = "\t".join(
                    f"{t.simple_name}={v}" for t, v in star.core.values().items() if v is not None
                )
                print(f"{star.id}\t{values}")
                for rt in star.row_types():
                    recs = star.extension(rt)
                    if recs:
                        print(f"  {rt.simple_name}: {len(recs)}")
            for rt, n in it.orphans().items():
                if n:
                    logging.warning("%d orphaned %s rows", n, rt.simple_name)
    except INPUT_ERRORS as e:
        logging.error("Cannot read %s: %s", args.path, e)
        return 2
    except (ValueError, yaml.YAMLError) as e:
        logging.error("Invalid terms file: %s", e)
        return 2
    return 1 if errors else 0


def cmd_copy(args: argparse.Namespace) -> int:
    """Rewrite an archive through the archive writer."""
    try:
        registry = _load_registry(args)
        archive = open_archive(Path(args.path), registry=registry)
        if archive.core is None or archive.core.row_type is None:
            logging.error("%s holds no core data file with a row type", args.path)
            return 2
        dest = Path(args.dest)
        with ArchiveWriter(archive.core.row_type, dest, use_headers=args.headers, registry=registry) as writer:
            metadata = archive.metadata_path()
            if metadata is not None and metadata.is_file():
                writer.set_metadata(metadata.read_text(encoding="utf-8"))
            for dataset_id, path in archive.constituent_metadata().items():
                writer.add_constituent(dataset_id, path.read_text(encoding="utf-8"))
            with open_star_records(archive, show_progress=bool(args.verbose)) as it:
                for star in it:
                    writer.start_core_record(star.id)
                    for term, value in star.core.values().items():
                        writer.set_core_value(term, value)
                    for ext in star:
                        writer.add_extension_record(ext.row_type, ext.values())
        logging.info("Copied %d records to %s", writer.records_written, dest)
    except INPUT_ERRORS as e:
        logging.error("Cannot copy %s: %s", args.path, e)
        return 2
    except (ValueError, yaml.YAMLError) as e:
        logging.error("Invalid terms file: %s", e)
        return 2
    except (DwcaError, OSError) as e:
        logging.error("Copy failed: %s", e)
        return 1
    return 0


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="dwca-tools",
        description=f"Star-schema text archive tools (v{_PACKAGE_VERSION})",
    )
    p.add_argument("--verbose", action="store_true", help="Enable verbose logging")
    p.add_argument(
        "--warnings-only",
        action="store_true",
        help="Show only warnings and errors (overrides --verbose)",
    )
    p.add_argument(
        "--errors-only",
        action="store_true",
        help="Show only errors (overrides --warnings-only and --verbose)",
    )
    p.add_argument(
        "--terms",
        default=None,
        help="YAML vocabulary with additional terms, layered over the built-in one",
    )

    sub = p.add_subparsers(dest="command", required=True)

    p_inspect = sub.add_parser("inspect", help="Show the schema of an archive")
    p_inspect.add_argument("path", help="Archive directory or single data file")
    p_inspect.set_defaults(func=cmd_inspect)

    p_detect = sub.add_parser("detect", help="Detect encoding, delimiter and quote of a delimited file")
    p_detect.add_argument("file", help="Delimited text file")
    p_detect.add_argument(
        "--header-rows",
        type=int,
        default=0,
        help="Leading lines excluded from scoring (default 0)",
    )
    p_detect.set_defaults(func=cmd_detect)

    p_dump = sub.add_parser("dump", help="Print core records with their extension counts")
    p_dump.add_argument("path", help="Archive directory or single data file")
    p_dump.add_argument("--limit", type=int, default=None, help="Maximum number of records to print")
    p_dump.add_argument(
        "--no-sort",
        action="store_true",
        help="Join files as they are, without sorting them by id first",
    )
    p_dump.set_defaults(func=cmd_dump)

    p_copy = sub.add_parser("copy", help="Rewrite an archive as tab delimited files with a generated meta.xml")
    p_copy.add_argument("path", help="Archive directory or single data file")
    p_copy.add_argument("dest", help="Output directory")
    p_copy.add_argument("--headers", action="store_true", help="Write a header row into every data file")
    p_copy.set_defaults(func=cmd_copy)

    return p


def main(argv: Optional[list] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    setup_logging(
        verbose=bool(args.verbose),
        warnings_only=bool(getattr(args, "warnings_only", False)),
        errors_only=bool(getattr(args, "errors_only", False)),
    )
    return args.func(args)


if __name__ == "__main__":
    raise SystemExit(main())

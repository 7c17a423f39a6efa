import sys
import argparse
import logging
from pathlib import Path

from kobo_highlights.core.importer import NoHighlightsError, resolve_db_path, run_import
from kobo_highlights.core.settings import load_settings
from kobo_highlights.integrations.kobo import KoboDatabaseError, count_bookmarks, open_database
from kobo_highlights.utils.paths import get_settings_path, load_environment


def start_server(host: str, port: int):
    import uvicorn
    from kobo_highlights.web.app import app

    print(f"Starting server at http://{host}:{port}")
    uvicorn.run(app, host=host, port=port)


def import_command(args) -> int:
    settings = load_settings(Path(args.settings) if args.settings else get_settings_path())
    updates = {}
    if args.folder:
        updates["output_folder"] = args.folder
    if args.overwrite:
        updates["append_to_existing"] = False
    if args.sideloaded_only:
        updates["include_store_bought"] = False
    settings = settings.model_copy(update=updates)

    result = run_import(
        settings,
        db_path=Path(args.db) if args.db else None,
        vault_dir=Path(args.vault) if args.vault else None,
    )

    print(f"Books processed:  {result.books_processed}")
    print(f"New books:        {result.new_books}")
    print(f"New highlights:   {result.new_highlights}")
    print(f"Already imported: {result.skipped_highlights}")
    if result.new_highlights == 0:
        print("All highlights are already imported. No changes made.")
    return 0


def counts_command(args) -> int:
    settings = load_settings(get_settings_path())
    conn = open_database(resolve_db_path(settings, Path(args.db) if args.db else None))
    try:
        counts = count_bookmarks(conn)
    finally:
        conn.close()
    print(f"Total:      {counts.total}")
    print(f"Sideloaded: {counts.sideloaded}")
    print(f"Official:   {counts.official}")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Kobo Highlights Importer")
    subparsers = parser.add_subparsers(dest="command")

    import_parser = subparsers.add_parser("import", help="Import highlights into the vault")
    import_parser.add_argument("--db", help="Path to KoboReader.sqlite")
    import_parser.add_argument("--vault", help="Obsidian vault directory")
    import_parser.add_argument("--folder", help="Output folder inside the vault")
    import_parser.add_argument("--overwrite", action="store_true", help="Rewrite existing notes instead of appending")
    import_parser.add_argument("--sideloaded-only", action="store_true", help="Skip store-bought books")
    import_parser.add_argument("--settings", help="Settings JSON file")

    counts_parser = subparsers.add_parser("counts", help="Count highlights on the device")
    counts_parser.add_argument("--db", help="Path to KoboReader.sqlite")

    serve_parser = subparsers.add_parser("serve", help="Start Server")
    serve_parser.add_argument("--host", default="127.0.0.1")
    serve_parser.add_argument("--port", type=int, default=8123)

    return parser


def main(argv=None) -> int:
    logging.basicConfig(level=logging.INFO)
    load_environment()

    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        if args.command == "import":
            return import_command(args)
        elif args.command == "counts":
            return counts_command(args)
        elif args.command == "serve":
            start_server(args.host, args.port)
            return 0
    except (KoboDatabaseError, NoHighlightsError, OSError) as e:
        print(f"Error: {e}")
        return 1

    parser.print_help()
    return 0


if __name__ == "__main__":
    sys.exit(main())

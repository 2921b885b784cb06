#!/usr/bin/env python3
"""
jforg - Media Library Organizer

A CLI tool that moves movies, TV episodes and music into the folder
layout a home media server expects, using TMDB, MusicBrainz and an
optional LLM to identify each file.
"""
import argparse
import logging
import sys
from pathlib import Path

from .config import Settings
from .detection import MovieResolver, ShowResolver
from .llm import LLMCorrector
from .models import MoveResult
from .music import MusicResolver
from .musicbrainz import MusicBrainzClient
from .organize import Choice, Organizer, RunSummary, find_media_files
from .segmenter import WordSegmenter
from .tmdb import TMDBClient

CATEGORIES = ("movies", "shows", "music")


def setup_logging(verbose: bool, debug: bool) -> None:
    """Route library logging to stderr at the requested level."""
    level = logging.WARNING
    if verbose:
        level = logging.INFO
    if debug:
        level = logging.DEBUG
    logging.basicConfig(level=level, format="  [%(levelname)s] %(name)s: %(message)s")
    # requests/urllib3 and musicbrainzngs are chatty at DEBUG
    for noisy in ("urllib3", "musicbrainzngs"):
        logging.getLogger(noisy).setLevel(max(level, logging.INFO))


def print_move(result: MoveResult, root: Path, dry_run: bool) -> None:
    """Print the move line for one file."""
    source = result.provenance.value if result.provenance else "?"
    verb = "Would move" if dry_run else "Moved"
    print(f"{verb} [{source}]:")
    print(f"  {result.original_path.name}")
    print(f"  -> {result.new_path.relative_to(root) if result.new_path else '?'}")


def print_skip(old_name: str, reason: str) -> None:
    """Print skip message."""
    print(f"  [SKIP] {old_name}")
    print(f"         Reason: {reason}")


def print_error(old_name: str, error: str) -> None:
    """Print error message."""
    print(f"  [ERROR] {old_name}")
    print(f"          {error}")


def report_result(result: MoveResult, root: Path, dry_run: bool) -> None:
    if result.error:
        print_error(result.original_path.name, result.error)
    elif result.skipped:
        print_skip(result.original_path.name, result.skip_reason or "Unknown")
    elif result.already_organized:
        print(f"  [OK] {result.original_path.name} (already organized)")
    elif result.moved:
        print_move(result, root, dry_run)


def prompt_choice(source: Path, target: Path) -> Choice:
    """
    Ask whether to move *source* to *target*.

    Returns:
        The chosen action
    """
    valid = {choice.value: choice for choice in Choice}
    while True:
        response = input(
            f"  Move {source.name} -> {target}? "
            "(y=yes, n=no, a=all, s=skip all, q=quit): "
        ).strip().lower()
        if response in valid:
            return valid[response]
        if response == "yes":
            return Choice.YES
        if response == "no":
            return Choice.NO
        print("Please enter y, n, a, s or q.")


def print_summary(summary: RunSummary, dry_run: bool) -> None:
    print()
    print("-" * 50)
    moved_label = "Would move" if dry_run else "Moved"
    print(
        f"{moved_label}: {summary.moved} | Already organized: {summary.already_organized} | "
        f"Skipped: {len(summary.skipped)} | Errors: {len(summary.problematic)}"
    )
    if summary.skipped:
        print("\nSkipped files:")
        for path, reason in summary.skipped:
            print(f"  {path}: {reason}")
    if summary.problematic:
        print("\nProblematic files:")
        for path, error in summary.problematic:
            print(f"  {path}: {error}")
    if summary.quit_early:
        print("\nStopped early at user request.")


def build_resolver(category: str, settings: Settings, use_llm: bool):
    """Wire providers for *category* from *settings*."""
    llm = None
    if use_llm and settings.has_llm:
        llm = LLMCorrector(settings.llm_api_key, settings.llm_model, settings.llm_base_url)

    if category == "music":
        return MusicResolver(MusicBrainzClient(settings.musicbrainz_contact), llm)

    tmdb = TMDBClient(settings.tmdb_api_key, language=settings.tmdb_language) if settings.has_tmdb else None
    segmenter = WordSegmenter(path=settings.wordlist_path)
    if category == "shows":
        return ShowResolver(tmdb, llm, segmenter)
    return MovieResolver(tmdb, llm, segmenter)


def main(args: list[str] | None = None) -> int:
    """Main entry point."""
    parser = argparse.ArgumentParser(
        prog="jforg",
        description="Organize movies, TV shows or music into a media-server library layout."
    )

    parser.add_argument(
        "path",
        type=Path,
        help="Library directory to organize"
    )
    parser.add_argument(
        "category",
        type=str.lower,
        choices=CATEGORIES,
        help="Kind of media in the directory"
    )
    mode = parser.add_mutually_exclusive_group()
    mode.add_argument(
        "--dry-run",
        action="store_true",
        help="Show what would be moved without touching any file"
    )
    mode.add_argument(
        "--interactive", "-i",
        action="store_true",
        help="Ask before each move (y/n/a/s/q)"
    )
    parser.add_argument(
        "--no-llm",
        action="store_true",
        help="Never call the LLM, even when a key is configured"
    )
    parser.add_argument(
        "--wordlist",
        type=Path,
        default=None,
        metavar="PATH",
        help="Wordlist used to split glued words in filenames"
    )
    parser.add_argument(
        "--limit",
        type=int,
        default=None,
        metavar="N",
        help="Limit number of files to process"
    )
    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Show what each lookup found"
    )
    parser.add_argument(
        "--debug",
        action="store_true",
        help="Show debug output including stack traces"
    )

    parsed_args = parser.parse_args(args)
    setup_logging(parsed_args.verbose, parsed_args.debug)

    root = parsed_args.path.resolve()
    if not root.is_dir():
        print(f"Error: Not a directory: {parsed_args.path}")
        return 1

    settings = Settings.from_env()
    if parsed_args.wordlist:
        settings.wordlist_path = parsed_args.wordlist

    resolver = build_resolver(parsed_args.category, settings, use_llm=not parsed_args.no_llm)
    if parsed_args.category != "music" and not settings.has_tmdb:
        print("TMDB_API_KEY not set -- names come from filenames and embedded tags only.")

    files = find_media_files(root, parsed_args.category)
    if not files:
        print("No media files found.")
        return 0

    # Apply limit if specified
    if parsed_args.limit and parsed_args.limit > 0:
        files = files[:parsed_args.limit]

    print(f"Found {len(files)} {parsed_args.category} file(s) in {root}")
    if parsed_args.dry_run:
        print("[DRY RUN - no files will be moved]")
    print()

    organizer = Organizer(
        root,
        resolver,
        dry_run=parsed_args.dry_run,
        confirm=prompt_choice if parsed_args.interactive else None,
        report=lambda result: report_result(result, root, parsed_args.dry_run),
    )
    summary = organizer.run(files)
    print_summary(summary, parsed_args.dry_run)

    return 0 if summary.ok else 1


if __name__ == "__main__":
    sys.exit(main())

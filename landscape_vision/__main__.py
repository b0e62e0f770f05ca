"""CLI entry point for landscape-vision.

Inspects and manages saved designs and the local draft, and runs one-off
generations from the command line.
"""

import argparse
import asyncio
import json
import sys
from pathlib import Path

from dotenv import load_dotenv

from .artifact import ImageValidationError, load_image_file
from .config import (
    EnvVar,
    get_environment,
    get_environment_info,
    get_max_upload_bytes,
    list_environment_variables,
)
from .core import get_logger, setup_logging
from .draft import DraftManager
from .generation import GeminiImageBackend, GenerationError
from .history import Lineage
from .history.storage import (
    create_artifact_store,
    create_metadata_store,
    create_snapshot_store,
)
from .sync import SyncService

# Load environment variables from .env file
load_dotenv()

logger = get_logger("cli")

SECRET_VARS = {EnvVar.GEMINI_API_KEY, EnvVar.VISION_ARTIFACT_TOKEN}


def _summarize(lineage: Lineage) -> dict:
    return {
        "id": lineage.id,
        "timestamp": lineage.timestamp.isoformat(),
        "prompt": lineage.prompt,
        "iterations": len(lineage.iterations),
    }


# =============================================================================
# Designs Command
# =============================================================================


async def _list_designs(sync: SyncService, owner_id: str) -> list[Lineage]:
    try:
        return await sync.load_all(owner_id)
    finally:
        await sync.artifacts.aclose()


def cmd_designs_list(args: argparse.Namespace) -> int:
    """Handle the designs list command."""
    store = create_metadata_store(args.data_dir)
    try:
        sync = SyncService(create_artifact_store(args.data_dir), store)
        designs = asyncio.run(_list_designs(sync, args.owner))
    finally:
        store.close()

    if args.json:
        print(json.dumps([_summarize(d) for d in designs], indent=2))
        return 0

    logger.info(f"{len(designs)} saved design(s) for {args.owner}")
    for design in designs:
        summary = _summarize(design)
        print(
            f"{summary['id']}  {summary['timestamp']}  "
            f"[{summary['iterations']} step(s)]  {summary['prompt']}"
        )
    return 0


def cmd_designs_show(args: argparse.Namespace) -> int:
    """Handle the designs show command."""
    store = create_metadata_store(args.data_dir)
    try:
        lineage = asyncio.run(store.get_one(args.id))
    finally:
        store.close()

    if lineage is None:
        logger.error(f"Design not found: {args.id}")
        return 1

    print(lineage.model_dump_json(by_alias=True, indent=2))
    return 0


async def _delete_design(sync: SyncService, lineage_id: str, owner_id: str) -> bool:
    try:
        if await sync.metadata.get_one(lineage_id) is None:
            return False
        remaining = await sync.delete(lineage_id, owner_id)
    finally:
        await sync.artifacts.aclose()
    logger.info(f"Deleted {lineage_id}; {len(remaining)} design(s) remain")
    return True


def cmd_designs_delete(args: argparse.Namespace) -> int:
    """Handle the designs delete command."""
    store = create_metadata_store(args.data_dir)
    try:
        sync = SyncService(create_artifact_store(args.data_dir), store)
        deleted = asyncio.run(_delete_design(sync, args.id, args.owner))
    finally:
        store.close()

    if not deleted:
        logger.error(f"Design not found: {args.id}")
        return 1
    return 0


def handle_designs_command(argv: list[str]) -> int:
    """Handle designs-specific commands."""
    parser = argparse.ArgumentParser(
        prog="landscape-vision designs",
        description="Manage saved designs",
    )
    parser.add_argument(
        "--data-dir",
        "-d",
        type=Path,
        default=None,
        help="Data directory (default: VISION_DATA_DIR or ./data)",
    )
    subparsers = parser.add_subparsers(dest="command", help="Command to run")

    # list command
    list_parser = subparsers.add_parser("list", help="List saved designs")
    list_parser.add_argument(
        "--owner",
        "-u",
        type=str,
        required=True,
        help="Owner ID",
    )
    list_parser.add_argument(
        "--json",
        action="store_true",
        help="Print JSON instead of a table",
    )
    list_parser.set_defaults(func=cmd_designs_list)

    # show command
    show_parser = subparsers.add_parser("show", help="Print a design record")
    show_parser.add_argument("id", type=str, help="Design ID")
    show_parser.set_defaults(func=cmd_designs_show)

    # delete command
    delete_parser = subparsers.add_parser(
        "delete",
        help="Delete a design and its stored images",
    )
    delete_parser.add_argument("id", type=str, help="Design ID")
    delete_parser.add_argument(
        "--owner",
        "-u",
        type=str,
        required=True,
        help="Owner ID",
    )
    delete_parser.set_defaults(func=cmd_designs_delete)

    if not argv:
        parser.print_help()
        return 1

    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return 1

    return args.func(args)


# =============================================================================
# Draft Command
# =============================================================================


def cmd_draft_show(args: argparse.Namespace) -> int:
    """Handle the draft show command."""
    store = create_snapshot_store(args.data_dir)
    try:
        snapshot = asyncio.run(DraftManager(store).load())
    finally:
        store.close()

    if snapshot is None:
        logger.info("No draft stored")
        return 0

    print(
        json.dumps(
            {
                "timestamp": snapshot.timestamp.isoformat(),
                "sessionState": snapshot.session_state.value,
                "prompt": snapshot.prompt,
                "hasInput": snapshot.working_image is not None,
                "hasResult": snapshot.last_result is not None,
                "pastIterations": len(snapshot.past_iterations),
            },
            indent=2,
        )
    )
    return 0


def cmd_draft_clear(args: argparse.Namespace) -> int:
    """Handle the draft clear command."""
    store = create_snapshot_store(args.data_dir)
    try:
        asyncio.run(DraftManager(store).clear())
    finally:
        store.close()
    logger.info("Draft cleared")
    return 0


def handle_draft_command(argv: list[str]) -> int:
    """Handle draft-specific commands."""
    parser = argparse.ArgumentParser(
        prog="landscape-vision draft",
        description="Inspect or clear the local draft",
    )
    parser.add_argument(
        "--data-dir",
        "-d",
        type=Path,
        default=None,
        help="Data directory (default: VISION_DATA_DIR or ./data)",
    )
    subparsers = parser.add_subparsers(dest="command", help="Command to run")

    show_parser = subparsers.add_parser("show", help="Summarize the stored draft")
    show_parser.set_defaults(func=cmd_draft_show)

    clear_parser = subparsers.add_parser("clear", help="Delete the stored draft")
    clear_parser.set_defaults(func=cmd_draft_clear)

    if not argv:
        parser.print_help()
        return 1

    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return 1

    return args.func(args)


# =============================================================================
# Generate Command
# =============================================================================


async def _generate_once(args: argparse.Namespace) -> bytes:
    image = load_image_file(args.image, get_max_upload_bytes())
    backend = GeminiImageBackend(api_key=args.api_key, model=args.model)
    try:
        result = await backend.generate(image, args.prompt)
    finally:
        await backend.aclose()
    return result.data


def cmd_generate(args: argparse.Namespace) -> int:
    """Handle the generate command."""
    try:
        data = asyncio.run(_generate_once(args))
    except (ImageValidationError, GenerationError) as e:
        logger.error(f"Error: {e}")
        return 1

    args.output.parent.mkdir(parents=True, exist_ok=True)
    args.output.write_bytes(data)
    logger.info(f"Visualization saved to {args.output}")
    return 0


def handle_generate_command(argv: list[str]) -> int:
    """Handle the generate command."""
    parser = argparse.ArgumentParser(
        prog="landscape-vision generate",
        description="Generate one landscape visualization from a photo",
    )
    parser.add_argument(
        "--image",
        "-i",
        type=Path,
        required=True,
        help="Input photo (JPG, PNG)",
    )
    parser.add_argument(
        "--prompt",
        "-p",
        type=str,
        required=True,
        help="Landscaping changes to visualize",
    )
    parser.add_argument(
        "--output",
        "-o",
        type=Path,
        default=Path("visualization.png"),
        help="Output PNG path (default: visualization.png)",
    )
    parser.add_argument(
        "--model",
        "-m",
        type=str,
        default=None,
        help="Model name (default: VISION_GENERATION_MODEL)",
    )
    parser.add_argument(
        "--api-key",
        "-k",
        type=str,
        default=None,
        help="API key (uses GEMINI_API_KEY if not provided)",
    )

    args = parser.parse_args(argv)

    if not args.prompt.strip():
        logger.error("Prompt must not be empty")
        return 1

    return cmd_generate(args)


# =============================================================================
# Config Command
# =============================================================================


def handle_config_command(argv: list[str]) -> int:
    """Show configuration variables and their effective values."""
    parser = argparse.ArgumentParser(
        prog="landscape-vision config",
        description="Show configuration",
    )
    parser.add_argument(
        "--category",
        "-c",
        type=str,
        default=None,
        choices=["storage", "session", "generation"],
        help="Only show one category",
    )
    args = parser.parse_args(argv)

    for var in list_environment_variables(args.category):
        info = get_environment_info(var)
        value = get_environment(var)
        if var in SECRET_VARS and value:
            value = "********"
        print(f"{info.name}={value}  # {info.description}")
    return 0


# =============================================================================
# Entry Point
# =============================================================================


def show_help() -> None:
    """Display CLI help message."""
    print("Usage: landscape-vision {command} [args]")
    print("\nCommands:")
    print("  designs    List, show and delete saved designs")
    print("  draft      Inspect or clear the local draft")
    print("  generate   Generate a visualization from a photo")
    print("  config     Show configuration variables")
    print("\nExamples:")
    print("  landscape-vision designs list --owner user-1")
    print("  landscape-vision designs delete <id> --owner user-1")
    print("  landscape-vision draft show")
    print("  landscape-vision generate -i yard.jpg -p 'add a pergola' -o out.png")


def main(argv: list[str] | None = None) -> int:
    """Main entry point for the CLI."""
    argv = sys.argv[1:] if argv is None else argv
    if not argv:
        show_help()
        return 1

    command = argv[0]
    rest_args = argv[1:]

    if command in ("-h", "--help"):
        show_help()
        return 0

    commands = {
        "designs": lambda: handle_designs_command(rest_args),
        "draft": lambda: handle_draft_command(rest_args),
        "generate": lambda: handle_generate_command(rest_args),
        "config": lambda: handle_config_command(rest_args),
    }

    if command in commands:
        setup_logging()
        return commands[command]()

    logger.error(f"Unknown command: {command}")
    show_help()
    return 1


if __name__ == "__main__":
    sys.exit(main())

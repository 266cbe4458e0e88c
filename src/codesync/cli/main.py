"""CLI entry point for codesync."""
import argparse
from dotenv import load_dotenv
import json
import logging
import sys
import traceback
from pathlib import Path

from pydantic import TypeAdapter, ValidationError

from codesync.agents.exceptions import AgentError
from codesync.config import PipelineConfig
from codesync.models import ChatMessage, CommandStatus, CommandType, PipelineResult
from codesync.orchestrator.exceptions import OrchestratorError
from codesync.sync.path_guard import is_secret_path, validate_file_path

load_dotenv()

logger = logging.getLogger(__name__)

# Exit codes
EXIT_SUCCESS = 0
EXIT_INVALID_INPUT = 1
EXIT_AGENT_ERROR = 2
EXIT_ORCHESTRATOR_ERROR = 3
EXIT_PIPELINE_FAILURE = 4
EXIT_UNEXPECTED = 5
EXIT_KEYBOARD_INTERRUPT = 130

SKIPPED_DIRS = frozenset({"node_modules", ".git", "dist", ".cache"})
MAX_FILE_BYTES = 512 * 1024

_HISTORY_ADAPTER = TypeAdapter(list[ChatMessage])

# Safe keys allowed in config output (no secrets)
_SAFE_CONFIG_KEYS = frozenset({
    "request", "project_dir", "stream", "apply", "output_json", "verbose",
    "architect_model", "code_model", "validate_model", "llm_provider",
    "llm_fallback_provider", "chunk_size", "history_limit", "tree_conflict_policy",
    "timeout_seconds", "history_messages", "file_count",
})


def build_parser() -> argparse.ArgumentParser:
    """Build and return the argument parser."""
    parser = argparse.ArgumentParser(
        prog="codesync",
        description="Run the architect/code/validate pipeline against a project directory",
    )
    parser.add_argument("request", type=str, help="What to build or change")
    parser.add_argument("project_dir", type=str, help="Path to the project root")
    parser.add_argument(
        "--stream", action="store_true", help="Print progress events as NDJSON"
    )
    parser.add_argument(
        "--apply", action="store_true", help="Write changed files back to the project"
    )
    parser.add_argument(
        "--output-json", action="store_true", help="Output the batch result as JSON"
    )
    parser.add_argument(
        "--dry-run", action="store_true", help="Print config and exit without running"
    )
    parser.add_argument("--verbose", action="store_true", help="Enable debug logging")
    parser.add_argument("--architect-model", type=str, default=None, help="Model for the architect phase")
    parser.add_argument("--code-model", type=str, default=None, help="Model for the code phase")
    parser.add_argument("--validate-model", type=str, default=None, help="Model for the AI review")
    parser.add_argument(
        "--llm-provider",
        type=str,
        default=None,
        choices=("auto", "anthropic", "openai"),
        help="LLM provider: auto (default), anthropic, or openai",
    )
    parser.add_argument(
        "--llm-fallback-provider",
        type=str,
        default=None,
        choices=("", "anthropic", "openai"),
        help="Provider to try once when the primary provider fails",
    )
    parser.add_argument(
        "--history",
        type=str,
        default=None,
        help="JSON file with prior messages: [{\"role\": ..., \"content\": ...}]",
    )
    return parser


def validate_project_dir(raw_path: str) -> Path:
    """Resolve the project directory.

    Raises:
        SystemExit: If path is not a valid directory.
    """
    resolved = Path(raw_path).resolve()
    if not resolved.is_dir():
        print(f"Error: '{raw_path}' is not a valid directory.", file=sys.stderr)
        raise SystemExit(EXIT_INVALID_INPUT)
    return resolved


def load_project_files(root: Path) -> dict[str, str]:
    """Read the text files under ``root`` as ``{relative_posix_path: content}``.

    Dependency, build, and VCS directories are skipped, as are dotenv files
    and files that are too large or not valid UTF-8.
    """
    files: dict[str, str] = {}
    for path in sorted(root.rglob("*")):
        relative = path.relative_to(root)
        if any(part in SKIPPED_DIRS for part in relative.parts):
            continue
        if is_secret_path(relative.as_posix()):
            logger.debug("Skipping secret file %s", relative)
            continue
        if not path.is_file() or path.stat().st_size > MAX_FILE_BYTES:
            continue
        try:
            files[relative.as_posix()] = path.read_text(encoding="utf-8")
        except UnicodeDecodeError:
            logger.debug("Skipping non-text file %s", relative)
    return files


def load_history(raw_path: str | None) -> list[ChatMessage]:
    """Load conversation history from a JSON file.

    Raises:
        SystemExit: If the file cannot be read or is not a message list.
    """
    if not raw_path:
        return []
    try:
        return _HISTORY_ADAPTER.validate_json(Path(raw_path).read_text(encoding="utf-8"))
    except (OSError, ValidationError) as exc:
        print(f"Error: invalid history file '{raw_path}': {exc}", file=sys.stderr)
        raise SystemExit(EXIT_INVALID_INPUT)


def build_config(args: argparse.Namespace) -> PipelineConfig:
    return PipelineConfig.from_env(
        architect_model=args.architect_model,
        code_model=args.code_model,
        validate_model=args.validate_model,
        llm_provider=args.llm_provider,
        llm_fallback_provider=args.llm_fallback_provider,
    )


def create_pipeline(config: PipelineConfig):
    """Create the pipeline for ``config``."""
    from codesync.orchestrator.pipeline import Pipeline

    return Pipeline(config=config)


def write_changes(root: Path, changes: dict[str, str | None]) -> list[str]:
    """Write ``{path: content}`` under ``root``; ``None`` content deletes.

    Every path is re-checked with the protected-path validator and must
    resolve inside ``root``. Returns the paths actually written or removed.
    """
    written = []
    resolved_root = root.resolve()
    for relative, content in sorted(changes.items()):
        check = validate_file_path(relative)
        target = (resolved_root / relative).resolve()
        if not check.valid or not target.is_relative_to(resolved_root):
            logger.warning("Refusing to write %s: %s", relative, check.error or "outside project")
            continue
        if content is None:
            if target.is_file():
                target.unlink()
                written.append(relative)
            continue
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(content, encoding="utf-8")
        written.append(relative)
    return written


def changes_from_result(result: PipelineResult) -> dict[str, str | None]:
    changes: dict[str, str | None] = {f.path: f.content for f in result.files}
    for outcome in result.outcomes:
        if outcome.status == CommandStatus.APPLIED and outcome.command == CommandType.DELETE_FILE:
            if outcome.path not in changes:
                changes[outcome.path] = None
    return changes


def changes_from_events(events: list) -> dict[str, str | None]:
    """Rebuild final file contents from a replayed event stream.

    File events open a file, chunk events append to it in order, delete
    commands map to None, and repairs from the validate stage win last.
    """
    changes: dict[str, str | None] = {}
    for event in events:
        if event.type == "file":
            changes[event.path] = None if event.command == CommandType.DELETE_FILE else ""
        elif event.type == "chunk":
            changes[event.path] = (changes.get(event.path) or "") + event.chunk
        elif event.type == "stage" and event.stage == "validate" and event.status == "complete":
            for repair in (event.data or {}).get("repairs", []):
                changes[repair["path"]] = repair["content"]
    return changes


def format_result_json(result: PipelineResult) -> str:
    return json.dumps(result.model_dump(mode="json"), indent=2)


def print_result_human(result: PipelineResult) -> None:
    """Print results in human-readable format."""
    print(f"\n{'='*60}")
    print("codesync results")
    print(f"{'='*60}")
    print(f"\nStatus: {'success' if result.success else 'failed'}")
    if result.message:
        print(f"\n{result.message}")

    print(f"\nPhases ({len(result.phases)}):")
    for phase in result.phases:
        mark = "ok" if phase.success else "FAILED"
        print(f"  {phase.phase:<10} {mark:<7} {phase.duration_ms}ms  {phase.summary}")

    if result.outcomes:
        print(f"\nCommands ({len(result.outcomes)}):")
        for outcome in result.outcomes:
            line = f"  {outcome.status.value:<12} {outcome.command.value:<12} {outcome.path}"
            if outcome.error:
                line += f"  ({outcome.error})"
            print(line)

    for label, items in (
        ("Errors", result.validation.errors),
        ("Warnings", result.validation.warnings),
        ("Suggestions", result.suggestions),
    ):
        if items:
            print(f"\n{label} ({len(items)}):")
            for item in items:
                print(f"  - {item}")

    print(f"\n{'='*60}")


def determine_exit_code(result: PipelineResult) -> int:
    return EXIT_SUCCESS if result.success else EXIT_PIPELINE_FAILURE


def print_config_human(config: dict) -> None:
    """Print configuration in human-readable format.

    Only prints keys in the safe allowlist to prevent secret leakage.
    """
    print("\nConfiguration:")
    print(f"{'='*40}")
    for key, value in config.items():
        if key in _SAFE_CONFIG_KEYS:
            print(f"  {key}: {value}")
    print(f"{'='*40}")


def _handle_error(label: str, exc: BaseException, verbose: bool, exit_code: int) -> int:
    """Print error message to stderr and return the exit code."""
    print(f"{label}: {exc}", file=sys.stderr)
    if verbose:
        traceback.print_exc(file=sys.stderr)
    return exit_code


def _run_stream(pipeline, args, history, files, root: Path) -> int:
    from codesync.orchestrator.pipeline import encode_stream

    events = []

    def recorded():
        for event in pipeline.stream(args.request, history, files):
            events.append(event)
            yield event

    for line in encode_stream(recorded()):
        sys.stdout.write(line)
        sys.stdout.flush()

    terminal = events[-1] if events else None
    if terminal is None or terminal.type != "complete":
        return EXIT_PIPELINE_FAILURE
    if not terminal.validation_passed:
        return EXIT_PIPELINE_FAILURE
    if args.apply:
        written = write_changes(root, changes_from_events(events))
        logger.info("Applied %d file change(s)", len(written))
    return EXIT_SUCCESS


def main(argv: list[str] | None = None) -> int:
    """Main CLI entry point.

    Args:
        argv: Command-line arguments (defaults to sys.argv[1:]).

    Returns:
        Exit code integer.
    """
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )

    try:
        root = validate_project_dir(args.project_dir)
        history = load_history(args.history)
    except SystemExit as exc:
        return exc.code

    try:
        config = build_config(args)
    except ValidationError as exc:
        return _handle_error("Invalid configuration", exc, args.verbose, EXIT_INVALID_INPUT)

    files = load_project_files(root)

    if args.dry_run:
        summary = {
            "request": args.request,
            "project_dir": str(root),
            "stream": args.stream,
            "apply": args.apply,
            "output_json": args.output_json,
            "verbose": args.verbose,
            "history_messages": len(history),
            "file_count": len(files),
            **config.model_dump(exclude={"protected_patterns"}),
        }
        if args.output_json:
            print(json.dumps(summary, indent=2))
        else:
            print_config_human(summary)
        return EXIT_SUCCESS

    try:
        pipeline = create_pipeline(config)

        if args.stream:
            return _run_stream(pipeline, args, history, files, root)

        result = pipeline.run(args.request, history, files)

        if args.output_json:
            print(format_result_json(result))
        else:
            print_result_human(result)

        if args.apply and result.success:
            written = write_changes(root, changes_from_result(result))
            if args.verbose:
                print(f"Applied {len(written)} file change(s)")

        return determine_exit_code(result)

    except AgentError as exc:
        return _handle_error("Agent error", exc, args.verbose, EXIT_AGENT_ERROR)

    except OrchestratorError as exc:
        return _handle_error("Orchestrator error", exc, args.verbose, EXIT_ORCHESTRATOR_ERROR)

    except KeyboardInterrupt:
        print("\nInterrupted.", file=sys.stderr)
        return EXIT_KEYBOARD_INTERRUPT

    except Exception as exc:
        return _handle_error("Unexpected error", exc, args.verbose, EXIT_UNEXPECTED)

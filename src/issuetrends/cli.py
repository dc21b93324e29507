"""CLI entrypoint for issue trend synthesis."""

from __future__ import annotations

import argparse
import logging
from pathlib import Path

from rich.logging import RichHandler

from .config import load_settings
from .io_utils import load_papers, write_result_json
from .pipeline import create_issue_summary_service
from .progress import RichProgressTracker, TqdmProgressAdapter
from .prompts import load_prompt_template


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Extract per-paper methodology records and synthesize issue trends"
    )
    parser.add_argument(
        "input",
        type=Path,
        help="JSON file with [{id, title, text}] or a directory of .md/.txt papers",
    )
    parser.add_argument("--journal", required=True, help="Journal name")
    parser.add_argument("--issue", required=True, help="Issue label, e.g. 'Vol. 12 No. 3 (2025)'")
    parser.add_argument("--dotenv", type=Path, default=None, help="Path to .env file")
    parser.add_argument(
        "--prompt-template",
        type=Path,
        default=None,
        help="Custom synthesis prompt; supports {{journal_name}}, {{issue_info}}, {{paper_count}}",
    )
    parser.add_argument(
        "--field-context", type=str, default=None, help="Override FIELD_CONTEXT"
    )
    parser.add_argument(
        "--output", type=Path, default=None, help="Write the full result as JSON"
    )
    parser.add_argument(
        "--max-files", type=int, default=None, help="Process only the first N papers"
    )
    parser.add_argument(
        "--batch-size", type=int, default=None, help="Override EXTRACTION_BATCH_SIZE"
    )
    parser.add_argument(
        "--no-rich",
        action="store_true",
        default=False,
        help="Disable Rich progress display, use simple tqdm instead",
    )
    return parser.parse_args()


def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(rich_tracebacks=True, show_path=False)],
    )


def main() -> None:
    args = parse_args()

    settings = load_settings(dotenv_path=args.dotenv)
    configure_logging(settings.log_level)

    if not args.input.exists():
        raise FileNotFoundError(f"Input path does not exist: {args.input}")

    papers = load_papers(args.input, max_files=args.max_files)
    if not papers:
        raise ValueError(f"No papers found in {args.input}")

    custom_prompt = load_prompt_template(
        args.prompt_template or settings.synthesis_prompt_path
    )
    field_context = args.field_context or settings.field_context

    service = create_issue_summary_service(settings, batch_size=args.batch_size)

    title = f"{args.journal} {args.issue}"
    progress = TqdmProgressAdapter(title) if args.no_rich else RichProgressTracker(title)
    progress.start()
    try:
        result = service.generate_issue_summary_sync(
            papers,
            journal_name=args.journal,
            issue_info=args.issue,
            custom_prompt=custom_prompt,
            field_context=field_context,
            on_progress=progress,
        )
    except Exception as exc:
        progress.fail(exc)
        raise
    else:
        progress.finish(result)
    finally:
        progress.stop()

    print(result.summary)
    print()
    print(
        f"Finished. papers={result.paper_count} extracted={len(result.extractions)} "
        f"failed={len(result.failed_papers)} tokens={result.tokens_extraction}+{result.tokens_synthesis} "
        f"cost=${result.cost_estimate:.4f} model={result.model_used}"
    )
    if result.failed_papers:
        print("Failed papers:")
        for paper_id in result.failed_papers:
            print(f"- {paper_id}")

    if args.output:
        path = write_result_json(result, args.output)
        print(f"Result written to {path}")


if __name__ == "__main__":
    main()

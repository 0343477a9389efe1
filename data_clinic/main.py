"""CLI entry point for Data Clinic."""

from __future__ import annotations

import argparse
import logging
import os
import sys

from data_clinic.config import settings

LOG_FORMAT = "%(asctime)s | %(name)-30s | %(levelname)-7s | %(message)s"


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command-line arguments.

    Args:
        argv: Argument list (defaults to sys.argv[1:] when None).

    Returns:
        Parsed namespace with file, provider, model, output_dir, commands,
        apply, export and log_level.
    """
    parser = argparse.ArgumentParser(
        description="Data Clinic: preprocess a CSV/Excel/JSON dataset, suggest "
        "cleaning and analysis steps, build charts and write a Markdown report.",
    )
    parser.add_argument(
        "file",
        help="Path to the dataset (.csv, .xlsx, .xls or .json).",
    )
    parser.add_argument(
        "--provider",
        default=settings.LLM_PROVIDER,
        choices=["none", "openai", "anthropic", "groq", "bedrock"],
        help=f"Chat assistant provider (default: {settings.LLM_PROVIDER}).",
    )
    parser.add_argument(
        "--model",
        default=settings.LLM_MODEL,
        help="Model name override (uses provider default when omitted).",
    )
    parser.add_argument(
        "--output-dir",
        default=settings.OUTPUT_DIR,
        help=f"Output directory for report and figures (default: {settings.OUTPUT_DIR}).",
    )
    parser.add_argument(
        "--command",
        dest="commands",
        action="append",
        default=[],
        metavar="TEXT",
        help="Free-text command to run after processing, e.g. 'histogram of Age'. "
        "May be given several times.",
    )
    parser.add_argument(
        "--apply",
        action="append",
        default=[],
        metavar="SUGGESTION_ID",
        help="Suggestion to execute after processing, e.g. 'scatter_plot'. "
        "May be given several times; runs before any --command.",
    )
    parser.add_argument(
        "--export",
        default=None,
        metavar="PATH",
        help="Write the cleaned dataset as CSV to PATH.",
    )
    parser.add_argument(
        "--log-level",
        default=settings.LOG_LEVEL,
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        type=str.upper,
        help=f"Diagnostic log level (default: {settings.LOG_LEVEL}).",
    )
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> None:
    """Run the Data Clinic workflow and any requested commands.

    Args:
        argv: Optional argument list for testing; uses sys.argv when None.
    """
    args = parse_args(argv)
    logging.basicConfig(level=getattr(logging, args.log_level), format=LOG_FORMAT)

    # Validate that the file exists early, before heavy imports.
    if not os.path.isfile(args.file):
        print(f"Error: file not found: {args.file}", file=sys.stderr)
        sys.exit(1)

    try:
        from data_clinic.dataset_io import export_csv
        from data_clinic.graph import build_graph, initial_state, report_node
        from data_clinic.llm_config import get_llm
        from data_clinic.session import (
            execute_suggestion,
            handle_command,
            render_current_charts,
        )

        # 1. Create the chat model (None when the assistant is disabled)
        llm = get_llm(provider=args.provider, model=args.model)

        # 2. Run the upload workflow
        graph = build_graph()
        state = graph.invoke(initial_state(args.file, args.output_dir))

        # 3. Suggestions, then free-text commands. New charts are saved as figures.
        for suggestion_id in args.apply:
            shown = state.get("charts")
            print(execute_suggestion(state, suggestion_id))
            if state.get("charts") is not shown:
                render_current_charts(state)

        for command in args.commands:
            shown = state.get("charts")
            for reply in handle_command(state, command, llm=llm):
                print(reply)
            if state.get("charts") is not shown:
                render_current_charts(state)

        # 4. Export
        if args.export and state.get("df") is not None:
            export_csv(state["df"], args.export)
            print(f"Cleaned data saved to: {args.export}")

        # 5. Refresh the report when the session changed
        if (args.commands or args.apply) and state.get("report_path"):
            state = report_node(state)

        # 6. Print the report path
        report_path = state.get("report_path")
        if report_path:
            print(f"Report saved to: {report_path}")
        else:
            print("Warning: report was not generated.", file=sys.stderr)
            if state.get("errors"):
                for err in state["errors"]:
                    print(f"  - {err}", file=sys.stderr)
            sys.exit(1)

    except KeyboardInterrupt:
        print("\nAborted.", file=sys.stderr)
        sys.exit(130)
    except Exception as exc:
        print(f"Error: {exc}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()

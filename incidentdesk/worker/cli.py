"""Entry points for the report analysis worker."""

from __future__ import annotations

import argparse
import asyncio
import sys
from typing import Any

import structlog

from incidentdesk.config.logging import setup_logging
from incidentdesk.config.settings import get_settings
from incidentdesk.exceptions import ValidationError
from incidentdesk.worker.analyze import ReportAnalyzer

logger = structlog.get_logger(__name__)


def handler(event: dict[str, Any], context: Any = None) -> dict[str, Any]:
    """Function-runtime handler: ``{"reportId": ...}`` in, outcome out.

    Errors propagate so the runtime records the invocation as failed.
    """
    report_id = event.get("reportId")
    if not report_id:
        raise ValidationError("reportId is required")

    settings = get_settings()
    setup_logging(log_level=settings.log_level, json_output=True)
    outcome = asyncio.run(ReportAnalyzer.from_settings(settings).run(report_id))
    return outcome.model_dump(exclude={"analysis"})


def main(argv: list[str] | None = None) -> int:
    """Analyze a single report from the command line."""
    parser = argparse.ArgumentParser(description="Run AI photo analysis for an incident report")
    parser.add_argument("report_id")
    args = parser.parse_args(argv)

    try:
        outcome = handler({"reportId": args.report_id})
    except Exception as exc:
        print(f"Analysis failed: {exc}", file=sys.stderr)
        return 1
    print(outcome["message"])
    return 0


if __name__ == "__main__":
    sys.exit(main())

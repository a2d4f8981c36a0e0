#!/usr/bin/env python
"""Scan a menu or product photo from the terminal."""

from __future__ import annotations

import argparse
import asyncio
import json
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from travel_pilot.clients import GeminiClient  # noqa: E402
from travel_pilot.core.config import get_settings  # noqa: E402
from travel_pilot.core.logging import configure_logging  # noqa: E402
from travel_pilot.schemas import MenuResult  # noqa: E402
from travel_pilot.services import (  # noqa: E402
    AnalysisOrchestrator,
    AnalysisState,
    AnalysisStatus,
    ImageAcquisition,
    ImageAcquisitionError,
)

EXIT_OK = 0
EXIT_SCAN_FAILED = 1
EXIT_BAD_IMAGE = 2


def render_state(state: AnalysisState) -> str:
    """Format a finished scan as a plain-text card."""
    if state.status is AnalysisStatus.ERROR:
        return f"Scan failed ({state.error_kind}): {state.error}"
    output = state.output
    if output is None:
        return f"No result ({state.status.value})."

    lines: list[str] = []
    if isinstance(output, MenuResult):
        lines.append(output.title)
        for section in output.sections:
            lines.append("")
            lines.append(f"● {section.category}")
            for item in section.items:
                lines.append(f"  {item.name}  {item.price}")
        return "\n".join(lines)

    lines.append(output.name if not output.brand else f"{output.brand} {output.name}")
    if output.price_range:
        lines.append(f"Price: {output.price_range}")
    lines.append(f"「{output.market_review}」")
    lines.extend(f"+ {pro}" for pro in output.user_feedback.pros)
    lines.extend(f"- {con}" for con in output.user_feedback.cons)
    return "\n".join(lines)


async def scan(path: Path, orchestrator: AnalysisOrchestrator, acquisition: ImageAcquisition) -> AnalysisState:
    image = acquisition.from_path(path)
    return await orchestrator.submit(image.payload, preview_uri=image.preview_uri)


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(
        description="Translate a menu or review a product from a photo."
    )
    parser.add_argument("image", type=Path, help="Path to the photo to scan.")
    parser.add_argument(
        "--json",
        dest="as_json",
        action="store_true",
        help="Print the raw structured result instead of a card.",
    )
    parser.add_argument(
        "--model",
        default=None,
        help="Optional override for the Gemini model name.",
    )
    parser.add_argument(
        "--language",
        default=None,
        help="Language menus are translated into.",
    )
    args = parser.parse_args(argv)

    settings = get_settings()
    configure_logging(settings.log_level)
    overrides = {
        key: value
        for key, value in (("model_name", args.model), ("target_language", args.language))
        if value
    }
    gemini_settings = settings.gemini.model_copy(update=overrides)
    orchestrator = AnalysisOrchestrator(
        GeminiClient(gemini_settings, settings.retry.to_policy())
    )
    acquisition = ImageAcquisition(max_bytes=settings.max_image_bytes)

    try:
        state = asyncio.run(scan(args.image, orchestrator, acquisition))
    except ImageAcquisitionError as exc:
        print(str(exc), file=sys.stderr)
        return EXIT_BAD_IMAGE

    if args.as_json and state.output is not None:
        print(json.dumps(state.output.model_dump(by_alias=True), ensure_ascii=False, indent=2))
    else:
        print(render_state(state))
    return EXIT_OK if state.status is AnalysisStatus.RESULT else EXIT_SCAN_FAILED


if __name__ == "__main__":  # pragma: no cover - CLI entry point
    sys.exit(main())

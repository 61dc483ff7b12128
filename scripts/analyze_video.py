"""
Run a full credibility analysis on a local video file.

Usage: python scripts/analyze_video.py VIDEO [--duration SECONDS] [--types ai-detection,manipulation]
"""

import argparse
import asyncio
import json
import logging
import mimetypes
import sys
from pathlib import Path

from dotenv import load_dotenv

ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(ROOT / "src"))

from videotrust.errors import AllAnalyzersFailed  # noqa: E402
from videotrust.inference import GeminiProvider  # noqa: E402
from videotrust.models import AnalysisProgress, AnalyzerKind  # noqa: E402
from videotrust.orchestrator import AnalysisOrchestrator  # noqa: E402

logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
)
logger = logging.getLogger("analyze_video")


def print_progress(update: AnalysisProgress) -> None:
    print(f"  [{update.progress:3d}%] {update.stage}: {update.message}")


async def analyze(path: Path, duration: float | None, kinds: list[AnalyzerKind] | None) -> int:
    media = path.read_bytes()
    mime_type = mimetypes.guess_type(path.name)[0] or "video/mp4"

    orchestrator = AnalysisOrchestrator(GeminiProvider())
    health = orchestrator.check_service_health()
    if not health["healthy"]:
        logger.error("Service not ready: %s", "; ".join(health["errors"]))
        return 2

    print(f"Analyzing {path.name} ({len(media) / 1024 / 1024:.1f}MB)...")
    print("=" * 50)
    try:
        result = await orchestrator.run_analysis(
            media,
            duration,
            kinds,
            on_progress=print_progress,
            mime_type=mime_type,
        )
    except AllAnalyzersFailed as exc:
        print(f"Failed: {exc}")
        return 1

    print("=" * 50)
    print(json.dumps(result.to_payload(), indent=2, ensure_ascii=False))
    return 0


def main() -> int:
    load_dotenv()
    parser = argparse.ArgumentParser(description="Video credibility analysis")
    parser.add_argument("video", type=Path)
    parser.add_argument("--duration", type=float, default=None, help="video length in seconds")
    parser.add_argument("--types", default="", help="comma separated analysis types")
    args = parser.parse_args()

    kinds = [AnalyzerKind(value.strip()) for value in args.types.split(",") if value.strip()] or None
    return asyncio.run(analyze(args.video, args.duration, kinds))


if __name__ == "__main__":
    sys.exit(main())

"""DeepResearch - iterative deep research from the command line."""

import argparse
import asyncio
import sys

from deepresearch.agents.orchestrator import DeepResearchOrchestrator
from deepresearch.config import settings


async def run_research(
    topic: str,
    max_depth: int,
    create_artifact: bool = False,
    model: str | None = None,
) -> bool:
    """Run research on the given topic, printing progress as it streams."""
    print(f"Research topic: {topic}")
    print("-" * 50)

    orchestrator = DeepResearchOrchestrator(model=model)
    success = False

    async for event in orchestrator.stream(topic, max_depth, create_artifact):
        event_type = event.event.value
        data = event.data

        if event_type == "progress-init":
            print(f"[*] Max depth {data.get('maxDepth')}, {data.get('totalSteps')} expected steps")

        elif event_type == "activity-delta":
            marker = {"pending": "~", "complete": "+", "error": "!"}.get(data.get("status"), "?")
            print(
                f"  [{marker}] ({data.get('completedSteps')}/{data.get('totalSteps')}) "
                f"{data.get('type')}: {data.get('message')}"
            )

        elif event_type == "source-delta":
            print(f"      - {data.get('title', '')[:80]} <{data.get('url')}>")

        elif event_type == "finish":
            print(f"\n{'='*50}")
            print("REPORT:")
            print(f"{'='*50}")
            print(data.get("text", ""))

        elif event_type == "result":
            success = bool(data.get("success"))
            if not success:
                print(f"\n[!] Error: {data.get('error', 'Unknown error')}")

        elif event_type == "error":
            print(f"\n[!] Error: {data.get('message', 'Unknown error')}")

    return success


def main():
    parser = argparse.ArgumentParser(description="DeepResearch iterative research tool")
    parser.add_argument("--topic", "-t", required=True, help="Research topic")
    parser.add_argument(
        "--max-depth",
        "-d",
        type=int,
        default=settings.research_default_max_depth,
        help="Maximum research depth (default: from config)",
    )
    parser.add_argument(
        "--create-artifact",
        action="store_true",
        help="Mark the report for saving as a document",
    )
    parser.add_argument("--model", "-m", help="Model to use (default: from config)")

    args = parser.parse_args()
    if args.max_depth < 1:
        parser.error("--max-depth must be at least 1")

    ok = asyncio.run(run_research(args.topic, args.max_depth, args.create_artifact, args.model))
    sys.exit(0 if ok else 1)


if __name__ == "__main__":
    main()

"""
generate_demos.py — Generate / refresh demo decks using the pipeline.

Reads demo_config.json, runs each demo through the full pipeline, writes
every resulting bundle as JSON into demo_decks/output/, and records a
demo_status.json with metadata (timestamps, file paths, etc.).

Can be run directly:  python demo_decks/generate_demos.py [--force]
"""

from __future__ import annotations

import asyncio
import json
import sys
import traceback
from datetime import datetime, timedelta
from pathlib import Path

# Ensure project root is on the path
ROOT_DIR = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(ROOT_DIR))

DEMO_DIR = ROOT_DIR / "demo_decks"
DEMO_OUTPUT_DIR = DEMO_DIR / "output"
DEMO_CONFIG_PATH = DEMO_DIR / "demo_config.json"
DEMO_STATUS_PATH = DEMO_DIR / "demo_status.json"


def _load_config(path: Path = DEMO_CONFIG_PATH) -> dict:
    """Load the demo configuration."""
    with open(path, "r", encoding="utf-8") as f:
        return json.load(f)


def _load_status(path: Path = DEMO_STATUS_PATH) -> dict:
    """Load the generation status (or create default)."""
    if path.exists():
        with open(path, "r", encoding="utf-8") as f:
            return json.load(f)
    return {"demos": {}, "last_full_run": None}


def _save_status(status: dict, path: Path = DEMO_STATUS_PATH) -> None:
    """Persist generation status."""
    with open(path, "w", encoding="utf-8") as f:
        json.dump(status, f, indent=4, default=str)


def needs_regeneration(status: dict, force: bool = False) -> bool:
    """Check if demos need regeneration (weekly cadence)."""
    if force:
        return True
    last_run = status.get("last_full_run")
    if not last_run:
        return True
    try:
        last_dt = datetime.fromisoformat(last_run)
        return (datetime.now() - last_dt) > timedelta(days=7)
    except (ValueError, TypeError):
        return True


async def generate_single_demo(orchestrator, demo_cfg: dict, output_dir: Path = DEMO_OUTPUT_DIR) -> dict:
    """Run one demo topic through the pipeline and write its bundle.

    Returns metadata dict for the demo.
    """
    demo_id = demo_cfg["id"]
    topic = demo_cfg["topic"]
    slide_count = demo_cfg.get("slide_count", 10)

    print(f"\n{'='*60}")
    print(f"  Generating: {demo_cfg['title']}")
    print(f"  Topic:      {topic[:80]}")
    print(f"{'='*60}")

    filename = f"demo_{demo_id}.json"
    output_path = output_dir / filename
    meta = {
        "id": demo_id,
        "title": demo_cfg["title"],
        "description": demo_cfg.get("description", ""),
        "topic": topic,
        "slide_count": slide_count,
        "filename": filename,
        "file_path": str(output_path),
        "generated_at": datetime.now().isoformat(),
    }

    try:
        bundle = await orchestrator.run_pipeline(topic, slide_count)
        output_dir.mkdir(parents=True, exist_ok=True)
        output_path.write_text(bundle.model_dump_json(indent=2), encoding="utf-8")

        meta.update({
            "angle": bundle.chosen_angle.angle_id,
            "file_size_kb": round(output_path.stat().st_size / 1024, 1),
            "status": "success",
            "error": None,
        })
        print(f"  ✅ Done: {output_path.name} ({meta['file_size_kb']} KB)")
        return meta

    except Exception as e:
        print(f"  ❌ Failed: {e}")
        traceback.print_exc()
        meta.update({"status": "error", "error": str(e)})
        return meta


async def generate_all_demos(force: bool = False) -> None:
    """Generate all demo decks if needed."""
    from orchestrator import PipelineOrchestrator

    config = _load_config()
    status = _load_status()

    if not needs_regeneration(status, force=force):
        print("✅ Demos are up to date (generated within the last 7 days).")
        return

    print("\n" + "=" * 60)
    print("  Deck Pipeline — Demo Generation")
    print(f"  Time: {datetime.now().strftime('%Y-%m-%d %H:%M:%S')}")
    print("=" * 60)

    orchestrator = PipelineOrchestrator()
    for demo_cfg in config["demo_decks"]:
        meta = await generate_single_demo(orchestrator, demo_cfg)
        status["demos"][meta["id"]] = meta

    status["last_full_run"] = datetime.now().isoformat()
    _save_status(status)

    success = sum(1 for d in status["demos"].values() if d.get("status") == "success")
    total = len(config["demo_decks"])
    print(f"\n{'='*60}")
    print(f"  Generation Complete: {success}/{total} successful")
    print(f"{'='*60}\n")


if __name__ == "__main__":
    force = "--force" in sys.argv
    asyncio.run(generate_all_demos(force=force))

# scripts/smoke.py
"""
Smoke Test Script for the trace collection pipeline.

Drives a real Chromium page through Playwright, records a short traced
session, and prints what landed in the data directory.

Usage
-----
1. Record against the default page:
    $ uv run python scripts/smoke.py

2. Record against another site, clicking a link by its visible text:
    $ uv run python scripts/smoke.py --url https://example.org --click "More information"

Dependencies
------------
Playwright browsers must be installed once:
    $ uv run playwright install chromium

There is no AI engine here: the actor below only understands
"Click <visible text>" and "Extract ..." directives, which is enough to
exercise recording, session close, SFT synthesis and stats.
"""

import argparse
import asyncio
import logging
import sys
import traceback
from pathlib import Path
from typing import Any

from dotenv import load_dotenv
from playwright.async_api import Page, async_playwright

from browsertrace.agent import TracedAgent
from browsertrace.capture.playwright_page import PlaywrightPage
from browsertrace.collector import TraceCollector
from browsertrace.core.storage import TraceStore

env_path = Path(".env")
if env_path.exists():
    load_dotenv(env_path)
    print("✅ Loaded .env file")

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    handlers=[logging.StreamHandler(sys.stdout)],
)

DEFAULT_URL = "https://example.com"


async def simple_actor(page: Page, instruction: str) -> Any:
    """Tiny stand-in for the AI action engine."""
    if instruction.startswith("Click "):
        await page.get_by_text(instruction.removeprefix("Click ")).first.click(timeout=5000)
        return None
    if instruction.startswith("Extract"):
        return {"headings": await page.locator("h1, h2").all_inner_texts()}
    raise ValueError(f"Unsupported directive: {instruction!r}")


async def run(url: str, click: str | None, data_dir: Path | None) -> None:
    store = TraceStore(data_dir)
    collector = TraceCollector(store)

    async with async_playwright() as pw:
        browser = await pw.chromium.launch(headless=True)
        page = await browser.new_page()
        agent = TracedAgent(PlaywrightPage(page, actor=simple_actor), collector)

        try:
            await agent.init(f"Smoke test on {url}", url)
            headings = await agent.extract("Extract the page headings")
            print(f"\n📄 Headings: {headings}")
            if click:
                await agent.act(f"Click {click}")
            session = await agent.end_session(True, human_rating=5, human_feedback="smoke run")
        except Exception as exc:
            print(f"\n❌ Run failed: {exc}")
            traceback.print_exc()
            if collector.is_open:
                session = await agent.end_session(False, human_rating=1, human_feedback=str(exc))
            else:
                return
        finally:
            await browser.close()

    print("\n" + "=" * 60)
    print(f"✅ Session {session.id} closed (success={session.success})")
    print("=" * 60)
    for i, action in enumerate(session.actions):
        mark = "✓" if action.success else "✗"
        print(f"  {i}. {mark} {action.kind.value}: {action.instruction} ({action.elapsed_ms} ms)")

    stats = store.stats()
    print("\n📊 Stats:")
    print(f"  - Session traces:   {stats.traces}")
    print(f"  - SFT examples:     {stats.sft_examples}")
    print(f"  - Preference pairs: {stats.preference_pairs}")
    print(f"\n💾 Data location: {store.base_dir}")


def main() -> None:
    """Execute the smoke test workflow."""
    parser = argparse.ArgumentParser(description="Run browsertrace Smoke Test")
    parser.add_argument("--url", "-u", default=DEFAULT_URL, help="Start URL")
    parser.add_argument("--click", "-c", help="Visible text of a link to click")
    parser.add_argument("--data-dir", "-d", type=Path, help="Override the data directory")
    args = parser.parse_args()

    asyncio.run(run(args.url, args.click, args.data_dir))


if __name__ == "__main__":
    main()

"""Live Subtitle Bridge — terminal viewer entry point."""

import argparse
import asyncio
import logging

from client.viewer import SubtitleRenderer, SubtitleViewer


def main():
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s [%(name)s] %(levelname)s: %(message)s",
        datefmt="%H:%M:%S",
    )

    parser = argparse.ArgumentParser(description="Live Subtitle Bridge Viewer")
    parser.add_argument("--url", type=str, default="ws://localhost:3000/ws/subs", help="Subtitle bus URL")
    parser.add_argument("--no-color", action="store_true", help="Disable ANSI styling")
    args = parser.parse_args()

    viewer = SubtitleViewer(args.url, renderer=SubtitleRenderer(color=not args.no_color))
    try:
        asyncio.run(viewer.run())
    except KeyboardInterrupt:
        print("\nGoodbye.")


if __name__ == "__main__":
    main()

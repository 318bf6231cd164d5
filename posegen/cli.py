#!/usr/bin/env python3
"""
Pose Generator CLI
Runs one generation from the command line and writes the zip archive.

Usage:
    posegen portrait.jpg --theme "posing in a futuristic city"
    posegen portrait.png --poses 3 --aspect-ratio 9:16 --output poses.zip
"""

import argparse
import asyncio
import logging
import sys
from pathlib import Path
from typing import List, Optional

from pydantic import ValidationError

from posegen.core.config import settings
from posegen.core.exceptions import ConfigurationError, GenerationFailure, InvalidUploadError, PackagingFailure
from posegen.core.logging import configure_logging
from posegen.schemas.generate import AspectRatio, GeneratedImage, GenerationRequest
from posegen.services.archive import ArchiveService, default_entries
from posegen.services.uploads import capture_upload
from posegen.workers.base import CallbackObserver
from posegen.workers.orchestrator import GenerationOrchestrator

logger = logging.getLogger("posegen.cli")


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Generate AI pose variations from a portrait")
    parser.add_argument("image", type=Path, help="Source portrait (PNG, JPEG, WEBP or GIF)")
    parser.add_argument("--theme", default=settings.DEFAULT_THEME, help="Theme or scene description")
    parser.add_argument(
        "--aspect-ratio",
        default=settings.DEFAULT_ASPECT_RATIO,
        choices=[r.value for r in AspectRatio] + ["square", "portrait", "landscape"],
    )
    parser.add_argument("--poses", type=int, default=settings.DEFAULT_POSE_COUNT, help="Number of poses")
    parser.add_argument("--output", type=Path, default=Path(settings.ARCHIVE_FILENAME), help="Zip file to write")
    parser.add_argument("--log-level", default=None)
    return parser.parse_args(argv)


async def generate(args: argparse.Namespace, orchestrator: Optional[GenerationOrchestrator] = None) -> int:
    """Run one generation; return the number of images written."""
    orchestrator = orchestrator or GenerationOrchestrator()
    
    uploaded = capture_upload(args.image.name, None, args.image.read_bytes())
    request = GenerationRequest(
        source=uploaded.to_source_image(),
        theme=args.theme,
        aspect_ratio=args.aspect_ratio,
        num_poses=args.poses,
    )
    
    images: List[GeneratedImage] = []
    observer = CallbackObserver(on_message=print, on_image=images.append)
    await orchestrator.run(request, observer)
    
    if not images:
        print("No images were generated.")
        return 0
    
    content = await ArchiveService().build_archive(default_entries([image.data for image in images]))
    args.output.write_bytes(content)
    print(f"Saved {len(images)} poses to {args.output}")
    return len(images)


def main(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)
    configure_logging(args.log_level)
    
    if args.poses < 1 or args.poses > settings.MAX_POSE_COUNT:
        print(f"Error: --poses must be between 1 and {settings.MAX_POSE_COUNT}", file=sys.stderr)
        return 2
    
    if not args.theme.strip():
        print("Error: Please enter a prompt describing the scene or theme.", file=sys.stderr)
        return 2
    
    try:
        asyncio.run(generate(args))
    except ConfigurationError as e:
        print(f"Error: {e.message}", file=sys.stderr)
        return 1
    except (GenerationFailure, PackagingFailure, InvalidUploadError) as e:
        logger.debug(f"Failure details: {e.details}")
        print(f"Error: {e.message}", file=sys.stderr)
        return 1
    except ValidationError as e:
        logger.debug(f"Rejected request: {e.errors()}")
        print("Error: Invalid generation request. Please check the arguments and try again.", file=sys.stderr)
        return 1
    except (OSError, ValueError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())

"""
Command-line adapter for the pose generator.

Architectural role:
- Drives one generate action from local image files.
- Writes every generated image to disk (the download action of the UI).
- Delegates all state handling to `PoseStudioController`.

Request lifecycle:
1. Parse arguments and configure logging.
2. Select character, pose reference and additional references.
3. Apply prompt, image count and quality.
4. Run `controller.generate()` once.
5. Write `generated-pose-<n>.<ext>` files and print captions, or print the
   error and exit with status 1.

Input validation behavior:
- `--count` outside 1..4 is rejected before any file is read.
- Unreadable images surface as the controller's encode error.

Side effects:
- Creates the output directory if needed.
- Writes one file per generated image.
"""

from dotenv import load_dotenv

load_dotenv()

import argparse
import asyncio
import base64
import logging
import mimetypes
import os
import sys

from posegen.core.controller import PoseStudioController
from posegen.core.errors import ValidationError
from posegen.core.types import GeneratedItem, ImageResource, Quality


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="posegen",
        description="Generate images of a character in a new pose.",
    )
    parser.add_argument("--character", required=True, help="Character image (PNG, JPG, WEBP).")
    parser.add_argument("--pose", help="Optional pose reference image.")
    parser.add_argument(
        "--reference",
        action="append",
        default=[],
        help="Additional reference image; repeat to add more.",
    )
    parser.add_argument("--prompt", default="", help="Description of the new pose.")
    parser.add_argument("--count", type=int, default=1, help="Number of images (1-4).")
    parser.add_argument(
        "--quality",
        default=Quality.HIGH.value,
        choices=[quality.value for quality in Quality],
        help="Image quality.",
    )
    parser.add_argument("--output-dir", default=".", help="Directory for generated images.")
    parser.add_argument("--verbose", action="store_true", help="Log progress to stderr.")
    return parser


def write_generated_item(item: GeneratedItem, output_dir: str, position: int) -> str:
    """Decode a generated data URI and write it as `generated-pose-<position>`.

    Returns:
        Path of the written file.
    """
    header, encoded = item.image.split(",", 1)
    mime_type = header[len("data:"):].split(";", 1)[0]
    ext = mimetypes.guess_extension(mime_type) or ".png"

    path = os.path.join(output_dir, f"generated-pose-{position}{ext}")
    with open(path, "wb") as f:
        f.write(base64.b64decode(encoded))
    return path


def main(argv=None, controller: PoseStudioController | None = None) -> int:
    """
    Run one generation from command-line arguments.

    Returns:
        Process exit status: 0 on success, 1 on any surfaced error.
    """
    args = build_parser().parse_args(argv)

    logging.basicConfig(
        level=logging.INFO if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    controller = controller if controller is not None else PoseStudioController()

    with controller:
        try:
            controller.select_character_image(ImageResource.from_path(args.character))
            if args.pose:
                controller.select_pose_reference_image(ImageResource.from_path(args.pose))
            for reference in args.reference:
                controller.add_reference_image(ImageResource.from_path(reference))

            controller.set_prompt(args.prompt)
            controller.set_image_count(args.count)
            controller.set_quality(args.quality)
        except ValidationError as err:
            print(f"Error: {err}", file=sys.stderr)
            return 1

        state = asyncio.run(controller.generate())

    if state.error is not None:
        print(f"Error: {state.error}", file=sys.stderr)
        return 1

    os.makedirs(args.output_dir, exist_ok=True)

    for position, item in enumerate(state.results, start=1):
        path = write_generated_item(item, args.output_dir, position)
        print(path)
        if item.caption:
            print(f'  "{item.caption}"')

    return 0


if __name__ == "__main__":
    sys.exit(main())

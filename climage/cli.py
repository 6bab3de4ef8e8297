"""
Command Line Interface
======================

Generate images or videos from a prompt.

Usage:
    climage "make image of kitten"
    climage "A cat in a tree" --provider xai -n 4
    climage "ocean waves at dusk" --video --duration 6 --aspect-ratio 16:9
"""

import argparse
import asyncio
import json
import logging
import sys
from typing import List, Optional

from .api.factory import AUTO, list_providers
from .core.config import Config
from .core.exceptions import ClimageError
from .core.types import GenerateOptions, MediaKind, OutputFormat
from .utils.storage import to_json_result
from .workflow.generator import MediaGenerator

logger = logging.getLogger("climage")


def build_parser() -> argparse.ArgumentParser:
    providers = [AUTO] + [p.id for p in list_providers()]

    parser = argparse.ArgumentParser(
        prog="climage",
        description="Generate images and videos with AI providers",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Env:
  XAI_API_KEY (or XAI_TOKEN, GROK_API_KEY)
  FAL_API_KEY (or FAL_KEY)
  GEMINI_API_KEY (or GOOGLE_API_KEY, GOOGLE_GENAI_API_KEY)
  OPENAI_API_KEY (or OPENAI_KEY)
  AI_GATEWAY_API_KEY

Examples:
  %(prog)s "make image of kitten"
  %(prog)s "A cat in a tree" --provider xai -n 4
  %(prog)s "the cat starts to run" --video --start-frame cat.png
        """,
    )

    parser.add_argument("prompt", nargs="+", help="Text prompt")

    # Provider settings
    parser.add_argument(
        "--provider",
        choices=providers,
        help="Provider (default: auto)",
    )
    parser.add_argument("--model", help="Model id (provider-specific)")

    # Generation settings
    parser.add_argument(
        "-n", "--n",
        type=float,
        dest="n",
        help="Number of items, 1-10 (default: 1)",
    )
    parser.add_argument(
        "--kind",
        choices=[k.value for k in MediaKind],
        help="Media kind (default: image)",
    )
    parser.add_argument(
        "--video",
        action="store_const",
        const=MediaKind.VIDEO.value,
        dest="kind",
        help="Shorthand for --kind video",
    )
    parser.add_argument(
        "--format",
        choices=[f.value for f in OutputFormat],
        help="Output format (default: png for images, mp4 for videos)",
    )
    parser.add_argument("--aspect-ratio", help="Aspect ratio, e.g. 16:9")
    parser.add_argument(
        "--duration",
        type=float,
        help="Video duration in seconds",
    )

    # Image inputs
    parser.add_argument(
        "--input",
        action="append",
        dest="input_images",
        default=[],
        help="Input image path or URL (can be specified multiple times)",
    )
    parser.add_argument("--start-frame", help="First frame for image-to-video")
    parser.add_argument("--end-frame", help="Last frame for interpolation")

    # Output
    parser.add_argument("--out", help="Output file path (only when n=1)")
    parser.add_argument(
        "--out-dir", "--outDir",
        dest="out_dir",
        help="Output directory (default: .)",
    )
    parser.add_argument("--name", help="Base file name (slugified); default: prompt")
    parser.add_argument("--json", action="store_true", help="Print machine-readable JSON")

    # Config
    parser.add_argument("--config", help="Path to config file")
    parser.add_argument("--verbose", action="store_true", help="Verbose logging")

    return parser


def options_from_args(args: argparse.Namespace) -> GenerateOptions:
    return GenerateOptions(
        provider=args.provider,
        model=args.model,
        n=args.n,
        aspect_ratio=args.aspect_ratio,
        kind=MediaKind(args.kind) if args.kind else None,
        format=OutputFormat(args.format) if args.format else None,
        out=args.out,
        out_dir=args.out_dir,
        name=args.name,
        input_images=tuple(args.input_images),
        start_frame=args.start_frame,
        end_frame=args.end_frame,
        duration=args.duration,
        verbose=args.verbose,
    )


async def run(args: argparse.Namespace) -> int:
    config = Config.load(args.config)
    prompt = " ".join(args.prompt).strip()

    results = await MediaGenerator(config).generate(prompt, options_from_args(args))

    if args.json:
        print(json.dumps(to_json_result(results), indent=2))
    else:
        for item in results:
            print(item.file_path)
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    """Main CLI entry point."""
    args = build_parser().parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        stream=sys.stderr,
    )

    if not " ".join(args.prompt).strip():
        print("climage: Missing prompt", file=sys.stderr)
        print("Run: climage --help", file=sys.stderr)
        return 1

    try:
        return asyncio.run(run(args))
    except ClimageError as e:
        logger.debug(f"{type(e).__name__}: {e.to_dict()}")
        print(f"climage: {e.message}", file=sys.stderr)
        print("Run: climage --help", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())

"""
Command line entry point for Ink Mapper.

Usage:
    python ink_mapper.py palette photo.png -k 8
    python ink_mapper.py map photo.png out.png --inks #000000 #FFFFFF --dither
    python ink_mapper.py suggest photo.png --inks #FF0000 #0000FF #FFFFFF
    python ink_mapper.py mix --target #800080 --inks #FF0000 #0000FF
"""

import argparse
import logging
import sys
from pathlib import Path
from typing import List, Optional, Sequence

from INK_Libs.ColorLib.ink_models import Ink, palette_from_hex
from INK_Libs.ColorLib.mix_solver import MixProposal, suggest_mixes_for_image
from INK_Libs.ColorLib.palette_clusterer import clamp_cluster_count, cluster_palette, sample_for_clustering
from INK_Libs.ColorLib.color_space import color_to_hex, hex_to_color
from INK_Libs.MappingLib.image_buffers import load_image, to_pil_image
from INK_Libs.MappingLib.ink_report import build_ink_report
from INK_Libs.MappingLib.snapshot import MapperOptions
from INK_Libs.ProjStoreLib.ink_project import InkProject, regenerate
from INK_Libs.constants import (
    BACKGROUND_FORCE_OPAQUE,
    BACKGROUND_KEEP,
    DEFAULT_CLUSTER_COUNT,
    DEFAULT_CLUSTER_ITERATIONS,
    DEFAULT_OUTPUT_FORMAT,
)

logger = logging.getLogger("ink_mapper")


def _parse_inks(values: Sequence[str]) -> List[str]:
    invalid = [v for v in values if hex_to_color(v) is None]
    if invalid:
        raise argparse.ArgumentTypeError(f"Invalid ink colors: {', '.join(invalid)}")
    return list(values)


def cmd_palette(args: argparse.Namespace) -> int:
    image = load_image(args.image)
    k = clamp_cluster_count(args.k)
    samples = sample_for_clustering(image)
    centers = cluster_palette(samples, k, args.iterations)
    for r, g, b in centers:
        print(color_to_hex(r, g, b))
    return 0


def cmd_map(args: argparse.Namespace) -> int:
    image = load_image(args.image)
    project = InkProject(
        options=MapperOptions(
            weight_light=args.weight_light,
            weight_chroma=args.weight_chroma,
            dither=args.dither,
            background_mode=BACKGROUND_FORCE_OPAQUE if args.force_opaque else BACKGROUND_KEEP,
            allow_white_ink=not args.no_white,
            seed=args.seed,
        ),
        sharpen_edges=args.sharpen,
    )
    project.set_palette_from_hex(_parse_inks(args.inks))

    mapped = regenerate(project, image)
    output = Path(args.output)
    fmt = None if output.suffix else DEFAULT_OUTPUT_FORMAT
    to_pil_image(mapped).save(output, format=fmt)
    logger.info(f"Wrote {output}")

    print(build_ink_report(project.palette, project.restricted, project.mix_rules))
    return 0


def _describe_proposal(proposal: MixProposal, palette: Sequence[Ink]) -> str:
    parts = [
        f"{palette[e.ink_index].color.hex} x{e.weight:.2f} {e.pattern.kind}"
        for e in proposal.rule.entries
    ]
    return f"{proposal.target.hex} -> ink {proposal.target_index}: {' + '.join(parts)} (error {proposal.error:.1f})"


def cmd_suggest(args: argparse.Namespace) -> int:
    image = load_image(args.image)
    palette = palette_from_hex(_parse_inks(args.inks))
    proposals = suggest_mixes_for_image(
        image, palette, range(len(palette)), args.weight_light, args.weight_chroma
    )
    if not proposals:
        print("No mix suggestions")
        return 0

    for proposal in proposals:
        print(_describe_proposal(proposal, palette))
    return 0


def cmd_mix(args: argparse.Namespace) -> int:
    target = hex_to_color(args.target)
    if target is None:
        raise argparse.ArgumentTypeError(f"Invalid target color: {args.target}")

    project = InkProject(
        options=MapperOptions(weight_light=args.weight_light, weight_chroma=args.weight_chroma),
    )
    project.set_palette_from_hex(_parse_inks(args.inks))
    proposal = project.smart_mix(target)
    if proposal is None:
        print("No mix found")
        return 1
    print(_describe_proposal(proposal, project.palette))

    if args.apply:
        image_path, output_path = args.apply
        mapped = regenerate(project, load_image(image_path))
        output = Path(output_path)
        fmt = None if output.suffix else DEFAULT_OUTPUT_FORMAT
        to_pil_image(mapped).save(output, format=fmt)
        logger.info(f"Wrote {output}")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="ink_mapper", description="Map images onto a restricted ink palette.")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    sub = parser.add_subparsers(dest="command", required=True)

    palette = sub.add_parser("palette", help="Cluster an image into a palette")
    palette.add_argument("image")
    palette.add_argument("-k", type=int, default=DEFAULT_CLUSTER_COUNT, help="Number of colors (2-16)")
    palette.add_argument("--iterations", type=int, default=DEFAULT_CLUSTER_ITERATIONS)
    palette.set_defaults(func=cmd_palette)

    weights = argparse.ArgumentParser(add_help=False)
    weights.add_argument("--inks", nargs="+", required=True, metavar="HEX")
    weights.add_argument("--weight-light", type=float, default=1.0)
    weights.add_argument("--weight-chroma", type=float, default=1.0)

    mapper = sub.add_parser("map", parents=[weights], help="Map an image onto inks")
    mapper.add_argument("image")
    mapper.add_argument("output")
    mapper.add_argument("--dither", action="store_true", help="Floyd-Steinberg error diffusion")
    mapper.add_argument("--force-opaque", action="store_true", help="Set output alpha to 255")
    mapper.add_argument("--no-white", action="store_true", help="Never choose pure white inks")
    mapper.add_argument("--sharpen", action="store_true", help="Sharpen the mapped output")
    mapper.add_argument("--seed", type=int, default=None, help="Seed for stipple patterns")
    mapper.set_defaults(func=cmd_map)

    suggest = sub.add_parser("suggest", parents=[weights], help="Propose mix rules for an image")
    suggest.add_argument("image")
    suggest.set_defaults(func=cmd_suggest)

    mix = sub.add_parser("mix", parents=[weights], help="Solve a mix rule for one target color")
    mix.add_argument("--target", required=True, metavar="HEX")
    mix.add_argument("--apply", nargs=2, metavar=("IMAGE", "OUTPUT"), help="Map an image with the mix rule")
    mix.set_defaults(func=cmd_mix)
    return parser


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    try:
        return args.func(args)
    except argparse.ArgumentTypeError as e:
        parser.error(str(e))
    except ValueError as e:
        logger.error(str(e))
        return 1


if __name__ == "__main__":
    sys.exit(main())

"""Command line entry point: inspect option trees, preview curves, convert profiles."""
from __future__ import annotations

import argparse
import json
import logging
import math
import sys
from pathlib import Path
from typing import Dict, List, Optional, Sequence

from controls_editor import __version__
from controls_editor.actionmaps import (
    ActionmapsError,
    actionmaps_to_flat_groups,
    controls_to_actionmaps,
    generate_options_xml,
    parse_actionmaps_options,
)
from controls_editor.config import EditorConfig, is_dev_build, load_editor_config
from controls_editor.controls_file import ControlsFile, ControlsFileError
from controls_editor.curve_math import CURVE_PRESETS, curve_preset, sample_curve, sample_exponent
from controls_editor.hierarchy_builder import default_option_trees, load_option_trees_from_xml
from controls_editor.labels import display_label
from controls_editor.models import CurvePoint, DeviceClass, OptionNode
from controls_editor.session import EditorSession

LOGGER_NAME = "SCControls"
LOG_TAG = "SCControls"


def _configure_logger(level: str = "INFO") -> logging.Logger:
    logger = logging.getLogger(LOGGER_NAME)
    if not any(getattr(handler, "_sc_controls_handler", False) for handler in logger.handlers):
        handler = logging.StreamHandler(sys.stderr)
        handler._sc_controls_handler = True  # type: ignore[attr-defined]
        handler.setFormatter(logging.Formatter(f"[%(asctime)s] [{LOG_TAG}] %(message)s", "%H:%M:%S"))
        logger.addHandler(handler)
    logger.setLevel(logging.DEBUG if is_dev_build() else getattr(logging, level, logging.INFO))
    logger.propagate = False
    return logger


def _load_trees(options_xml: Optional[str], config: EditorConfig) -> Dict[DeviceClass, OptionNode]:
    if not options_xml:
        return default_option_trees()
    text = Path(options_xml).read_text(encoding="utf-8")
    return load_option_trees_from_xml(text, config.sensitivity_range)


def _render_tree(node: OptionNode, depth: int = 0) -> List[str]:
    flags = []
    if node.disabled:
        flags.append("disabled")
    if node.invert:
        flags.append("inverted")
    if node.exponent is not None:
        flags.append(f"exponent={node.exponent:g}")
    if node.curve is not None and node.curve.has_points:
        flags.append(f"curve={len(node.curve.points)}pt")
    suffix = f" [{', '.join(flags)}]" if flags else ""
    lines = [f"{'  ' * depth}{display_label(node)} ({node.path}){suffix}"]
    for child in node.children:
        lines.extend(_render_tree(child, depth + 1))
    return lines


def _unit_interval(raw: str) -> float:
    value = float(raw)
    if not math.isfinite(value) or not 0.0 <= value <= 1.0:
        raise ValueError(f"Curve point values must be within [0, 1], got {raw.strip()!r}")
    return value


def _parse_points(raw: str) -> List[CurvePoint]:
    points = []
    for pair in raw.split(","):
        if not pair.strip():
            continue
        value_in, _, value_out = pair.partition(":")
        points.append(CurvePoint(_unit_interval(value_in), _unit_interval(value_out)))
    return points


def _check_exponent(exponent: float) -> float:
    if not math.isfinite(exponent) or exponent <= 0.0:
        raise ValueError(f"Exponent must be a positive finite number, got {exponent!r}")
    return exponent


def _cmd_tree(args: argparse.Namespace, config: EditorConfig) -> int:
    trees = _load_trees(args.options_xml, config)
    tree = trees[DeviceClass.coerce(args.device)]
    if args.json:
        print(json.dumps(tree.to_payload(), indent=2))
        return 0
    print("\n".join(_render_tree(tree)))
    return 0


def _cmd_evaluate(args: argparse.Namespace, config: EditorConfig) -> int:
    if args.preset:
        samples = sample_curve(curve_preset(args.preset).points, args.samples)
    elif args.points:
        samples = sample_curve(_parse_points(args.points), args.samples)
    else:
        samples = sample_exponent(_check_exponent(args.exponent), args.samples)
    if args.json:
        print(json.dumps([{"in": x, "out": y} for x, y in samples], indent=2))
        return 0
    for x, y in samples:
        print(f"{x:.3f} -> {y:.4f}")
    return 0


def _cmd_import_actionmaps(args: argparse.Namespace, config: EditorConfig) -> int:
    trees = _load_trees(args.options_xml, config)
    groups = actionmaps_to_flat_groups(parse_actionmaps_options(Path(args.actionmaps).read_text(encoding="utf-8")))
    session = EditorSession(trees, config=config)
    loaded = session.load_control_options(groups)
    controls = session.save_profile(args.profile_name)
    logging.getLogger(LOGGER_NAME).info("Imported %d option(s) from %s", loaded, args.actionmaps)
    if args.output:
        controls.write(Path(args.output))
    else:
        print(controls.to_json())
    return 0


def _cmd_export_options(args: argparse.Namespace, config: EditorConfig) -> int:
    controls = ControlsFile.read(Path(args.profile))
    blocks = controls_to_actionmaps(controls)
    if not blocks:
        logging.getLogger(LOGGER_NAME).info("Profile %s has no invert settings to export", controls.profile_name)
        return 0
    sys.stdout.write("".join(generate_options_xml(block) for block in blocks))
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="sc-controls", description="Star Citizen control options toolkit.")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument("--config", help="Path to a JSON editor config file.")
    subparsers = parser.add_subparsers(dest="command", required=True)

    tree = subparsers.add_parser("tree", help="Print the display hierarchy for a device class.")
    tree.add_argument("--options-xml", help="XML document containing <optiontree> elements.")
    tree.add_argument("--device", default="joystick", choices=[device.value for device in DeviceClass])
    tree.add_argument("--json", action="store_true", help="Emit JSON output instead of plain text.")
    tree.set_defaults(handler=_cmd_tree)

    evaluate = subparsers.add_parser("evaluate", help="Sample an exponent or curve response.")
    source = evaluate.add_mutually_exclusive_group()
    source.add_argument("--exponent", type=float, default=1.0)
    source.add_argument("--points", help="Curve points as in:out pairs, e.g. 0.2:0.1,0.6:0.5")
    source.add_argument("--preset", choices=sorted(CURVE_PRESETS))
    evaluate.add_argument("--samples", type=int, default=11)
    evaluate.add_argument("--json", action="store_true", help="Emit JSON output instead of plain text.")
    evaluate.set_defaults(handler=_cmd_evaluate)

    importer = subparsers.add_parser("import-actionmaps", help="Convert actionmaps <options> into a .sccontrols profile.")
    importer.add_argument("actionmaps", help="Path to actionmaps.xml.")
    importer.add_argument("--options-xml", help="XML document containing <optiontree> elements.")
    importer.add_argument("--profile-name", default="Imported")
    importer.add_argument("--output", help="Write the profile here instead of stdout.")
    importer.set_defaults(handler=_cmd_import_actionmaps)

    exporter = subparsers.add_parser("export-options", help="Render <options> blocks (invert only) for a profile.")
    exporter.add_argument("profile", help="Path to a .sccontrols file.")
    exporter.set_defaults(handler=_cmd_export_options)
    return parser


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    config = load_editor_config(Path(args.config) if args.config else None)
    logger = _configure_logger(config.log_level)
    try:
        return int(args.handler(args, config))
    except (ActionmapsError, ControlsFileError, OSError, ValueError) as exc:
        logger.error("%s failed: %s", args.command, exc)
        return 1


if __name__ == "__main__":
    raise SystemExit(main())

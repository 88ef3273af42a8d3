"""Command-line interface for ZAFForge using argparse."""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional

import numpy as np

from zafforge.core.chemistry import Composition, XRayTransition, XRayTransitionSet
from zafforge.core.errors import ZAFError
from zafforge.core.properties import ProbeProperties
from zafforge.core.strategy import AlgorithmFamily, Strategy, compiled_defaults, implementations, lookup
from zafforge.corrections import ALGORITHMS, PhiRhoZAlgorithm, algorithm_class, parse_shape

logger = logging.getLogger(__name__)

# Fallbacks for options given neither on the command line nor in --config
_DEFAULTS: Dict[str, Any] = {
    "take_off": 40.0,
    "tilt": 0.0,
    "algorithm": "pap",
    "override": [],
    "points": 100,
}


def _load_json(path: Path):
    return json.loads(path.read_text())


def _merge_config(args: argparse.Namespace) -> argparse.Namespace:
    """Fill options left unset on the command line from --config, then from the fallbacks."""
    config = _load_json(args.config) if args.config else {}
    for key, value in config.items():
        attr = key.replace("-", "_")
        if getattr(args, attr, None) is None:
            setattr(args, attr, value)
    for attr, value in _DEFAULTS.items():
        if getattr(args, attr, None) is None:
            setattr(args, attr, value)
    return args


def _require(args: argparse.Namespace, *names: str) -> None:
    missing = [n for n in names if getattr(args, n, None) is None]
    if missing:
        raise ZAFError("Missing required option(s): " + ", ".join("--" + n.replace("_", "-") for n in missing))


def _overrides(items: List[str]) -> Strategy:
    strategy = Strategy()
    for item in items:
        key, sep, name = item.partition("=")
        if not sep:
            raise ZAFError(f"Override must look like family=name, got {item!r}")
        strategy = strategy.with_algorithm(lookup(AlgorithmFamily.from_key(key), name))
    return strategy


def _target(args: argparse.Namespace):
    if args.line:
        return XRayTransition.parse(args.line)
    if args.family:
        symbol, _, family = args.family.partition(":")
        return XRayTransitionSet.family(symbol, family.upper())
    raise ZAFError("Specify the measured line with --line (e.g. Fe:KA1) or --family (e.g. Fe:K)")


def _properties(args: argparse.Namespace) -> ProbeProperties:
    _require(args, "beam_energy")
    shape = parse_shape(args.shape) if args.shape else None
    return ProbeProperties(
        beam_energy_kev=float(args.beam_energy),
        take_off_deg=float(args.take_off),
        tilt_deg=float(args.tilt),
        sample_shape=shape,
        density_g_cc=None if args.density is None else float(args.density),
    )


def _algorithm(args: argparse.Namespace):
    cls = algorithm_class(args.algorithm)
    return cls(strategy=_overrides(args.override))


def _emit(data: Dict[str, Any], output: Optional[Path]) -> None:
    text = json.dumps(data, indent=2)
    if output:
        Path(output).write_text(text)
        print(f"Wrote {output}")
    else:
        print(text)


def cmd_kratio(args: argparse.Namespace) -> None:
    _require(args, "unknown")
    unknown = Composition.parse(args.unknown)
    target = _target(args)
    standard = Composition.parse(args.standard) if args.standard else Composition.pure(target.element)
    algorithm = _algorithm(args)
    k = algorithm.k_ratio(unknown, standard, target, _properties(args))
    _emit({
        "algorithm": algorithm.name,
        "unknown": str(unknown),
        "standard": str(standard),
        "target": str(target),
        "k_ratio": k,
    }, args.output)


def cmd_zaf(args: argparse.Namespace) -> None:
    _require(args, "unknown")
    unknown = Composition.parse(args.unknown)
    target = _target(args)
    standard = Composition.parse(args.standard) if args.standard else None
    algorithm = _algorithm(args)
    factors = algorithm.relative_zaf(unknown, target, _properties(args), standard)
    _emit({"algorithm": algorithm.name, "target": str(target), **factors.to_dict()}, args.output)


def cmd_curve(args: argparse.Namespace) -> None:
    _require(args, "unknown")
    unknown = Composition.parse(args.unknown)
    if not args.line:
        raise ZAFError("The curve command needs a single --line")
    xrt = XRayTransition.parse(args.line)
    algorithm = _algorithm(args)
    if not isinstance(algorithm, PhiRhoZAlgorithm):
        raise ZAFError(f"{algorithm.name} does not define a phi(rho z) curve")
    algorithm.initialize(unknown, xrt.shell, _properties(args))
    depths = np.linspace(0.0, algorithm.max_depth(), int(args.points))
    _emit({
        "algorithm": algorithm.name,
        "line": str(xrt),
        "rho_z_kg_m2": depths.tolist(),
        "phi": np.asarray(algorithm.compute_curve(depths)).tolist(),
        "absorbed": np.asarray(algorithm.compute_absorbed_curve(xrt, depths)).tolist(),
    }, args.output)


def cmd_algorithms(args: argparse.Namespace) -> None:
    defaults = compiled_defaults()
    catalogue = {
        family.value: {
            "default": defaults.get(family).name if defaults.get(family) is not None else None,
            "available": sorted(implementations()[family]),
        }
        for family in AlgorithmFamily
    }
    _emit({"corrections": {k: cls.name for k, cls in ALGORITHMS.items()}, "families": catalogue}, args.output)


def _add_common(parser: argparse.ArgumentParser, curve: bool = False) -> None:
    parser.add_argument("--config", type=Path, help="JSON file supplying any of these options")
    parser.add_argument("--unknown", help='Composition such as "Fe=0.5,Ni=0.5"')
    if not curve:
        parser.add_argument("--standard", help="Standard composition (default: pure element)")
    parser.add_argument("--line", help="Transition such as Fe:KA1")
    if not curve:
        parser.add_argument("--family", help="Line family such as Fe:K")
    parser.add_argument("--beam-energy", type=float, help="Beam energy (keV)")
    parser.add_argument("--take-off", type=float, help="Take-off angle (degrees, default 40)")
    parser.add_argument("--tilt", type=float, help="Beam tilt from the surface normal (degrees)")
    parser.add_argument("--shape", help='Specimen shape such as "sphere:diameter_m=2e-6"')
    parser.add_argument("--density", type=float, help="Specimen density (g/cm^3)")
    parser.add_argument("--algorithm", choices=sorted(ALGORITHMS), help="Correction algorithm (default pap)")
    parser.add_argument("--override", action="append", metavar="FAMILY=NAME",
                        help="Replace a sub-model, e.g. mac=Heinrich86MAC (repeatable)")
    parser.add_argument("--output", type=Path, help="Write JSON here instead of stdout")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Electron-probe microanalysis matrix corrections")
    parser.add_argument("-v", "--verbose", action="count", default=0, help="-v for INFO, -vv for DEBUG")
    subparsers = parser.add_subparsers(dest="command", required=True)

    kratio = subparsers.add_parser("kratio", help="Predict the k-ratio of an unknown against a standard")
    _add_common(kratio)
    kratio.set_defaults(func=cmd_kratio)

    zaf = subparsers.add_parser("zaf", help="Decompose the correction into Z, A and F")
    _add_common(zaf)
    zaf.set_defaults(func=cmd_zaf)

    curve = subparsers.add_parser("curve", help="Tabulate phi(rho z) and the absorbed curve")
    _add_common(curve, curve=True)
    curve.add_argument("--points", type=int, help="Number of depths (default 100)")
    curve.set_defaults(func=cmd_curve, standard=None, family=None)

    algorithms = subparsers.add_parser("algorithms", help="List correction algorithms and sub-models")
    algorithms.add_argument("--output", type=Path)
    algorithms.set_defaults(func=cmd_algorithms, config=None)
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    level = logging.WARNING if args.verbose == 0 else logging.INFO if args.verbose == 1 else logging.DEBUG
    logging.basicConfig(level=level, format="%(levelname)s %(name)s: %(message)s")
    try:
        args.func(_merge_config(args))
    except ZAFError as exc:
        logger.debug("Command failed", exc_info=True)
        print(f"error: {exc}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())

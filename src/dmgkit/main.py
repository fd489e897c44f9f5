from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

from .bundle import BundleError, dmg_filename, load_bundle, unique_destination
from .config import AppConfig
from .icns import MalformedContainerError
from .signing import (
    SigningError,
    find_identities,
    select_identity,
    sign_image,
    signing_authority,
)
from .volume_icon import probe_capability, produce_icon


def _configure_logging(log_path: str | None, verbose: bool) -> None:
    handlers = [logging.StreamHandler(sys.stderr)]
    if log_path:
        log_file = Path(log_path).expanduser()
        try:
            log_file.parent.mkdir(parents=True, exist_ok=True)
            handlers.append(logging.FileHandler(log_file))
        except OSError as exc:  # pragma: no cover - filesystem permissions
            print(f"Warning: failed to open log file {log_file}: {exc}", file=sys.stderr)
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        handlers=handlers,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        force=True,
    )


def parse_args(argv: list[str]) -> argparse.Namespace:
    common = argparse.ArgumentParser(add_help=False)
    common.add_argument("--log-file", dest="log_file", help="Write detailed logs to this file.")
    common.add_argument(
        "--verbose", dest="verbose", action="store_true", help="Enable verbose logging."
    )
    common.add_argument("--template", dest="template", help="Drive icon template (.icns) to composite onto.")
    common.add_argument(
        "--workers", dest="workers", type=int, help="Maximum number of icon sizes composited in parallel."
    )
    common.add_argument(
        "--no-compose",
        dest="compose",
        action="store_const",
        const=False,
        default=None,
        help="Skip composition and use the plain drive icon.",
    )

    parser = argparse.ArgumentParser(
        description="Prepare the volume icon, file name and signature of a macOS disk image."
    )
    commands = parser.add_subparsers(dest="command", required=True)

    icon = commands.add_parser("icon", parents=[common], help="Compose the disk image volume icon.")
    icon.add_argument("source", help="Path to an .app bundle or an .icns file.")
    icon.add_argument("-o", "--output", dest="output", help="Where to write the composed .icns file.")

    info = commands.add_parser("info", parents=[common], help="Show bundle metadata and the disk image name.")
    info.add_argument("app", help="Path to the .app bundle.")
    info.add_argument(
        "destination",
        nargs="?",
        default=".",
        help="Directory the disk image will be written to (default: current directory).",
    )
    info.add_argument(
        "--no-version-in-filename",
        dest="include_version",
        action="store_false",
        help="Leave the version out of the disk image file name.",
    )

    sign = commands.add_parser("sign", parents=[common], help="Code sign a disk image.")
    sign.add_argument("image", help="Path to the disk image.")
    sign.add_argument("--identity", dest="identity", help="Signing identity name or SHA-1 to use.")

    return parser.parse_args(argv)


def _app_icon_path(source: Path) -> Path | None:
    if source.suffix.lower() == ".app" or source.is_dir():
        bundle = load_bundle(source)
        if bundle.icon_path is None:
            logging.warning("%s has no icon; the plain drive icon will be used.", bundle.name)
        return bundle.icon_path
    if not source.is_file():
        raise FileNotFoundError(f"Input file does not exist: {source}")
    return source


def _run_icon(args: argparse.Namespace, config: AppConfig) -> int:
    try:
        icon_path = _app_icon_path(Path(args.source).expanduser())
    except (BundleError, FileNotFoundError) as exc:
        logging.error("%s", exc)
        return 2

    if icon_path is None:
        print(config.template_path)
        return 0

    capability = probe_capability(config.compose)
    output = Path(args.output).expanduser() if args.output else None
    try:
        result = produce_icon(
            icon_path,
            capability,
            template_path=config.template_path,
            output_path=output,
            workers=config.workers,
        )
    except MalformedContainerError as exc:
        logging.error("Icon container is invalid: %s", exc)
        return 3
    except OSError as exc:
        logging.error("Failed to read or write icon: %s", exc)
        return 2

    print(result)
    return 0


def _run_info(args: argparse.Namespace) -> int:
    try:
        bundle = load_bundle(Path(args.app))
    except BundleError as exc:
        logging.error("%s", exc)
        return 2

    print(f"Name: {bundle.name}")
    print(f"Version: {bundle.version or 'unknown'}")
    print(f"Icon: {bundle.icon_path or 'none'}")
    filename = dmg_filename(bundle, include_version=args.include_version)
    print(f"Disk image: {unique_destination(Path(args.destination).expanduser(), filename)}")
    return 0


def _run_sign(args: argparse.Namespace, config: AppConfig) -> int:
    image = Path(args.image).expanduser()
    if not image.is_file():
        logging.error("Input file does not exist: %s", image)
        return 2

    try:
        identity = select_identity(find_identities(), config.identity)
        sign_image(image, identity)
        authority = signing_authority(image)
    except SigningError as exc:
        logging.error("Code signing failed. The disk image is fine, just not code signed. %s", exc)
        return 4

    logging.info("Code signing identity: %s", authority)
    print(authority)
    return 0


def main(argv: list[str] | None = None) -> int:
    args = parse_args(sys.argv[1:] if argv is None else argv)

    try:
        config = AppConfig.from_env(
            template_path=args.template,
            workers=args.workers,
            compose=args.compose,
            identity=getattr(args, "identity", None),
            log_path=args.log_file,
        )
    except ValueError as exc:
        print(f"Configuration error: {exc}", file=sys.stderr)
        return 2

    _configure_logging(config.log_path, args.verbose)

    if args.command == "icon":
        return _run_icon(args, config)
    if args.command == "info":
        return _run_info(args)
    return _run_sign(args, config)


if __name__ == "__main__":  # pragma: no cover
    sys.exit(main())

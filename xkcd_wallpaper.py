#!/usr/bin/env python3
"""Download xkcd comics and turn them into centered, recoloured desktop wallpapers."""

from __future__ import annotations

import argparse
import dataclasses
import enum
import io
import logging
import re
import sys
from pathlib import Path
from typing import Optional, Sequence, Tuple

import numpy as np
import requests
from PIL import Image, ImageChops, UnidentifiedImageError

__version__ = "0.1.0"

Color = Tuple[int, int, int, int]

LATEST_METADATA_URL = "https://xkcd.com/info.0.json"
COMIC_METADATA_URL = "https://xkcd.com/{number}/info.0.json"
IMAGE_EXTENSION = ".png"
SCALED_IMAGE_SUFFIX = "_2x"
DEFAULT_BACKGROUND = "#1F241F"
DEFAULT_FOREGROUND = "light"
DEFAULT_OUTPUT_PATTERN = "./%y-%m-%d_%t.png"
DEFAULT_TIMEOUT = 30.0
JPEG_EXTENSIONS = {".jpg", ".jpeg"}
LOG_FORMAT = "%(asctime)s - %(levelname)s - %(message)s"
HEX_COLOR_PATTERN = re.compile(r"[0-9A-Fa-f]{6}")

log = logging.getLogger(__name__)


class WallpaperError(Exception):
    """Base class for failures that end a wallpaper run."""


class NetworkError(WallpaperError):
    pass


class ParseError(WallpaperError):
    pass


class DecodeError(WallpaperError):
    pass


class OutputError(WallpaperError):
    pass


class ForegroundMode(enum.Enum):
    LIGHT = "light"
    DARK = "dark"


# Colour the comic's own background has after prepare_comic().
COMIC_BACKGROUND_SENTINELS = {
    ForegroundMode.LIGHT: (0, 0, 0, 255),
    ForegroundMode.DARK: (255, 255, 255, 255),
}


@dataclasses.dataclass(frozen=True)
class ComicMetadata:
    number: int
    title: str
    image_url: str
    year: str
    month: str
    day: str


@dataclasses.dataclass
class Comic:
    image: Image.Image
    metadata: ComicMetadata


@dataclasses.dataclass(frozen=True)
class CanvasSpec:
    width: int
    height: int
    background: Color

    def __post_init__(self) -> None:
        if self.width <= 0 or self.height <= 0:
            raise ValueError(f"Canvas dimensions must be positive, got {self.width}x{self.height}")

    @property
    def size(self) -> Tuple[int, int]:
        return (self.width, self.height)


def _date_part(value: object, width: int) -> str:
    text = str(value).strip()
    if not text.isdigit():
        raise ValueError(f"not a decimal date field: {value!r}")
    return text.zfill(width)


def parse_metadata(payload: object) -> ComicMetadata:
    """Build a ComicMetadata record from the xkcd ``info.0.json`` document."""
    if not isinstance(payload, dict):
        raise ParseError(f"Expected a JSON object, got {type(payload).__name__}")
    try:
        number = payload["num"]
        title = payload["safe_title"]
        image_url = payload["img"]
        if isinstance(number, bool) or not isinstance(number, int):
            raise ValueError(f"comic number is not an integer: {number!r}")
        if not isinstance(title, str) or not isinstance(image_url, str):
            raise ValueError("title and image URL must be strings")
        return ComicMetadata(
            number=number,
            title=title,
            image_url=image_url,
            year=_date_part(payload["year"], 4),
            month=_date_part(payload["month"], 2),
            day=_date_part(payload["day"], 2),
        )
    except KeyError as exc:
        raise ParseError(f"Comic metadata is missing field {exc.args[0]!r}") from exc
    except ValueError as exc:
        raise ParseError(f"Malformed comic metadata: {exc}") from exc


def metadata_url(number: Optional[int] = None) -> str:
    if number is None:
        return LATEST_METADATA_URL
    return COMIC_METADATA_URL.format(number=number)


def _get(url: str, session: Optional[requests.Session], timeout: float) -> requests.Response:
    http = session if session is not None else requests
    try:
        response = http.get(url, timeout=timeout)
        response.raise_for_status()
    except requests.RequestException as exc:
        raise NetworkError(f"Request to {url} failed: {exc}") from exc
    return response


def fetch_metadata(
    number: Optional[int] = None,
    session: Optional[requests.Session] = None,
    timeout: float = DEFAULT_TIMEOUT,
) -> ComicMetadata:
    """
    Fetch metadata for comic ``number``, or for the latest comic when it is None.
    Raises NetworkError when the API cannot be reached and ParseError when the
    response does not look like xkcd metadata.
    """
    url = metadata_url(number)
    log.info("downloading metadata from url %s", url)
    response = _get(url, session, timeout)
    try:
        payload = response.json()
    except ValueError as exc:
        raise ParseError(f"Response from {url} is not valid JSON") from exc
    metadata = parse_metadata(payload)
    log.info("metadata downloaded successfully for comic %d", metadata.number)
    return metadata


def scaled_image_url(url: str) -> str:
    return url.replace(IMAGE_EXTENSION, SCALED_IMAGE_SUFFIX + IMAGE_EXTENSION)


def decode_image(data: bytes) -> Image.Image:
    try:
        with Image.open(io.BytesIO(data)) as img:
            return img.convert("RGBA")
    except (UnidentifiedImageError, Image.DecompressionBombError, OSError) as exc:
        raise DecodeError(f"Downloaded data is not a readable image: {exc}") from exc


def fetch_image(
    url: str,
    session: Optional[requests.Session] = None,
    timeout: float = DEFAULT_TIMEOUT,
) -> Image.Image:
    """
    Download and decode a comic image, preferring the double resolution variant.
    Only a failed request for the scaled variant falls back to ``url``; decoding
    errors are not retried.
    """
    scaled_url = scaled_image_url(url)
    response: Optional[requests.Response] = None
    if scaled_url != url:
        log.info("downloading img %s", scaled_url)
        try:
            response = _get(scaled_url, session, timeout)
        except NetworkError as exc:
            log.warning("cannot get image with 2x resolution, falling back to regular res. %s (%s)", url, exc)
    if response is None:
        log.info("downloading img %s", url)
        response = _get(url, session, timeout)
    return decode_image(response.content)


def download_comic(
    number: Optional[int] = None,
    session: Optional[requests.Session] = None,
    timeout: float = DEFAULT_TIMEOUT,
) -> Comic:
    metadata = fetch_metadata(number, session=session, timeout=timeout)
    image = fetch_image(metadata.image_url, session=session, timeout=timeout)
    return Comic(image=image, metadata=metadata)


def invert_colors(image: Image.Image) -> Image.Image:
    """Invert the colour channels of an RGBA image, leaving alpha as is."""
    red, green, blue, alpha = image.convert("RGBA").split()
    return Image.merge(
        "RGBA",
        (ImageChops.invert(red), ImageChops.invert(green), ImageChops.invert(blue), alpha),
    )


def prepare_comic(image: Image.Image, mode: ForegroundMode) -> Tuple[Image.Image, Color]:
    """
    Return the comic ready for recolouring together with the colour that marks
    its background. Light drawings are produced by inverting the original dark
    on white artwork, which turns its white background black.
    """
    if mode is ForegroundMode.LIGHT:
        log.info("inverting image colors")
        processed = invert_colors(image)
    else:
        processed = image.convert("RGBA")
    return processed, COMIC_BACKGROUND_SENTINELS[mode]


def replace_color(image: Image.Image, target: Color, replacement: Color) -> Image.Image:
    """Swap every pixel exactly equal to ``target`` for ``replacement``."""
    pixels = np.array(image.convert("RGBA"), dtype=np.uint8)
    mask = np.all(pixels == np.array(target, dtype=np.uint8), axis=-1)
    pixels[mask] = replacement
    return Image.fromarray(pixels)


def center_offset(canvas_size: Tuple[int, int], image_size: Tuple[int, int]) -> Tuple[int, int]:
    canvas_width, canvas_height = canvas_size
    image_width, image_height = image_size
    return (canvas_width // 2 - image_width // 2, canvas_height // 2 - image_height // 2)


def composite_clipped(canvas: Image.Image, image: Image.Image, position: Tuple[int, int]) -> None:
    """
    Alpha-composite ``image`` onto ``canvas`` in place at ``position``.
    The position may be negative; whatever falls outside the canvas is dropped.
    """
    x, y = position
    left = max(0, -x)
    top = max(0, -y)
    right = min(image.width, canvas.width - x)
    bottom = min(image.height, canvas.height - y)
    if right <= left or bottom <= top:
        return
    canvas.alpha_composite(image, dest=(x + left, y + top), source=(left, top, right, bottom))


def compose_wallpaper(image: Image.Image, mode: ForegroundMode, canvas: CanvasSpec) -> Image.Image:
    comic, sentinel = prepare_comic(image, mode)

    log.info("replacing background pixels with background colors")
    comic = replace_color(comic, sentinel, canvas.background)

    log.info("placing comic in center of the background")
    wallpaper = Image.new("RGBA", canvas.size, canvas.background)
    composite_clipped(wallpaper, comic, center_offset(canvas.size, comic.size))
    return wallpaper


FILENAME_PLACEHOLDERS = {
    "%y": "year",
    "%m": "month",
    "%d": "day",
    "%n": "number",
    "%t": "title",
}
PLACEHOLDER_PATTERN = re.compile("|".join(re.escape(token) for token in FILENAME_PLACEHOLDERS))


def format_filename(pattern: str, metadata: ComicMetadata) -> str:
    """
    Substitute metadata into ``pattern`` (see EPILOG for the placeholders).
    Every token is replaced in a single pass, so text coming from the metadata
    is never expanded again. There is no escape for a literal ``%y``.
    """
    filename = PLACEHOLDER_PATTERN.sub(
        lambda match: str(getattr(metadata, FILENAME_PLACEHOLDERS[match.group(0)])), pattern
    )
    log.info("converted filename from %s to %s", pattern, filename)
    return filename


def save_wallpaper(image: Image.Image, output_path: Path) -> Path:
    if output_path.suffix.lower() in JPEG_EXTENSIONS:
        image = image.convert("RGB")
    try:
        output_path.parent.mkdir(parents=True, exist_ok=True)
        image.save(output_path)
    except (OSError, ValueError) as exc:
        raise OutputError(f"Could not write wallpaper to {output_path}: {exc}") from exc
    return output_path


def make_wallpaper(
    canvas: CanvasSpec,
    mode: ForegroundMode,
    output_pattern: str,
    number: Optional[int] = None,
    session: Optional[requests.Session] = None,
    timeout: float = DEFAULT_TIMEOUT,
) -> Path:
    """Run the whole pipeline for one comic and return the written path."""
    comic = download_comic(number, session=session, timeout=timeout)
    log.info("converting xkcd image into wallpaper")
    wallpaper = compose_wallpaper(comic.image, mode, canvas)
    output_path = Path(format_filename(output_pattern, comic.metadata))
    return save_wallpaper(wallpaper, output_path)


def parse_hex_color(value: str) -> Color:
    """Parse ``#RRGGBB`` (leading ``#`` optional) into an opaque RGBA tuple."""
    digits = value.strip().lstrip("#")
    if not HEX_COLOR_PATTERN.fullmatch(digits):
        raise argparse.ArgumentTypeError(f"Hex colour must be 6 hex digits (e.g. #1e90ff), got {value!r}")
    channels = [int(digits[i:i + 2], 16) for i in range(0, 6, 2)]
    return (channels[0], channels[1], channels[2], 255)


def positive_int(value: str) -> int:
    try:
        number = int(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"{value!r} is not an integer") from None
    if number <= 0:
        raise argparse.ArgumentTypeError(f"{value!r} must be a positive integer")
    return number


EPILOG = """\
examples:
  Generate a 2560x1440 wallpaper from comic number 3084 with a dark green
  background and white drawings:

    xkcd-wallpaper --width 2560 --height 1440 --bg "#1F241F" --fg light --comic 3084

  Generate a 1920x1080 wallpaper from the latest comic into ./output using
  a Year-Month-Day-Title name, e.g. 2025-06-20-SomeTitle.png:

    xkcd-wallpaper --width 1920 --height 1080 --output ./output/%y-%m-%d-%t.png

filename placeholders:
  %y   Four-digit year (e.g. 2025)
  %m   Two-digit month (e.g. 06)
  %d   Two-digit day (e.g. 22)
  %n   Comic number
  %t   Title
"""


def build_arg_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="xkcd-wallpaper",
        description="Download an xkcd comic and turn it into a desktop wallpaper.",
        epilog=EPILOG,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument("--width", type=positive_int, required=True, help="Width of the output wallpaper in pixels.")
    parser.add_argument("--height", type=positive_int, required=True, help="Height of the output wallpaper in pixels.")
    parser.add_argument(
        "--bg",
        type=parse_hex_color,
        default=DEFAULT_BACKGROUND,
        help=f"Background colour in hex format (default: {DEFAULT_BACKGROUND}).",
    )
    parser.add_argument(
        "--fg",
        choices=[mode.value for mode in ForegroundMode],
        default=DEFAULT_FOREGROUND,
        help=f"Foreground colour of the drawing (default: {DEFAULT_FOREGROUND}).",
    )
    parser.add_argument("--comic", type=positive_int, help="Comic number; the latest comic is used when omitted.")
    parser.add_argument(
        "-o",
        "--output",
        default=DEFAULT_OUTPUT_PATTERN,
        help=f"Output filename pattern, see placeholders below (default: {DEFAULT_OUTPUT_PATTERN}).",
    )
    parser.add_argument(
        "--timeout",
        type=float,
        default=DEFAULT_TIMEOUT,
        help=f"Network timeout in seconds for each request (default: {DEFAULT_TIMEOUT:g}).",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Log progress information.")
    parser.add_argument("--debug", action="store_true", help="Log debugging information.")
    return parser


def configure_logging(verbose: bool = False, debug: bool = False) -> None:
    level = logging.WARNING
    if debug:
        level = logging.DEBUG
    elif verbose:
        level = logging.INFO
    logging.basicConfig(level=level, format=LOG_FORMAT)


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = build_arg_parser()
    args = parser.parse_args(argv)
    configure_logging(args.verbose, args.debug)

    canvas = CanvasSpec(args.width, args.height, args.bg)
    mode = ForegroundMode(args.fg)

    try:
        with requests.Session() as session:
            output_path = make_wallpaper(
                canvas, mode, args.output, number=args.comic, session=session, timeout=args.timeout
            )
    except WallpaperError as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 1

    print(f"Wallpaper written to {output_path}")
    return 0


if __name__ == "__main__":
    sys.exit(main())

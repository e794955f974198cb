"""Conversion of svg markup to inline png images using an external command."""

import base64
import io
import logging
import subprocess
import tempfile
from pathlib import Path
from typing import Optional

from PIL import Image, UnidentifiedImageError

from ..config import AppConfig
from ..models.svg_request import SVGFragment

logger = logging.getLogger(__name__)

SVG_NAMESPACE = 'xmlns="http://www.w3.org/2000/svg"'

# Placeholders replaced in the configured command
SVG_PLACEHOLDER = "{svg}"
PNG_PLACEHOLDER = "{png}"


class PNGConversionError(Exception):
    """Raised when an svg could not be converted to png."""


class PNGConverter:
    """Runs an external tool (e.g. rsvg-convert) to rasterise svg images.

    The command is a list of arguments in which ``{svg}`` and ``{png}`` are
    replaced with the paths of a temporary input and output file, e.g.
    ``["rsvg-convert", "-o", "{png}", "{svg}"]``. Each conversion is bounded by
    ``timeout`` seconds.
    """

    def __init__(self, command: list[str], timeout: float = 10.0):
        if not command:
            raise ValueError("PNG conversion command must not be empty")
        self.command = list(command)
        self.timeout = timeout

    @classmethod
    def from_config(cls, config: AppConfig) -> Optional["PNGConverter"]:
        """Create a converter from configuration, or None if png output is disabled."""
        if not config.png_command:
            return None
        return cls(config.png_command, timeout=config.png_timeout_seconds)

    def convert(self, svg: str) -> bytes:
        """Convert a complete svg document to png bytes.

        Raises:
            PNGConversionError: If the command is missing, fails, times out,
                or does not produce a valid png.
        """
        if SVG_NAMESPACE not in svg:
            svg = svg.replace("<svg ", f"<svg {SVG_NAMESPACE} ", 1)

        with tempfile.TemporaryDirectory(prefix="maprender-") as tmp:
            svg_path = Path(tmp) / "image.svg"
            png_path = Path(tmp) / "image.png"
            svg_path.write_text(svg, encoding="utf-8")

            args = [
                a.replace(SVG_PLACEHOLDER, str(svg_path)).replace(PNG_PLACEHOLDER, str(png_path))
                for a in self.command
            ]
            try:
                subprocess.run(args, check=True, capture_output=True, timeout=self.timeout)
            except subprocess.TimeoutExpired as e:
                raise PNGConversionError(f"png conversion timed out after {self.timeout}s") from e
            except subprocess.CalledProcessError as e:
                stderr = e.stderr.decode("utf-8", errors="replace").strip() if e.stderr else ""
                raise PNGConversionError(f"png conversion failed with exit code {e.returncode}: {stderr}") from e
            except OSError as e:
                raise PNGConversionError(f"unable to run png conversion command: {e}") from e

            if not png_path.exists():
                raise PNGConversionError("png conversion command did not produce an output file")
            data = png_path.read_bytes()

        try:
            with Image.open(io.BytesIO(data)) as image:
                image.verify()
                if image.format != "PNG":
                    raise PNGConversionError(f"conversion produced {image.format}, not PNG")
        except (UnidentifiedImageError, OSError, SyntaxError) as e:
            raise PNGConversionError(f"conversion produced an invalid image: {e}") from e
        return data

    def _img_tag(self, fragment: SVGFragment) -> str:
        data = base64.b64encode(self.convert(fragment.to_svg())).decode("ascii")
        return (
            f'<img src="data:image/png;base64,{data}" '
            f'width="{fragment.width:.0f}" height="{fragment.height:.0f}" alt="" />'
        )

    def render_png_image(self, fragment: SVGFragment) -> str:
        """Replace the svg with an inline png ``<img>``."""
        return self._img_tag(fragment)

    def include_fallback_image(self, fragment: SVGFragment) -> str:
        """Return the svg with an inline png for browsers that cannot show svg."""
        img = self._img_tag(fragment)
        return (
            f"<svg {fragment.attributes}><switch><g>{fragment.content}</g>"
            f'<foreignObject width="{fragment.width:.0f}" height="{fragment.height:.0f}">'
            f"{img}</foreignObject></switch></svg>"
        )

"""
Screenshot export for rendered pixel buffers.

This module encodes RGBA buffers as PNG files with the render state embedded
as metadata, and builds the location-based screenshot filenames.
"""

import json
import time
import logging
from dataclasses import dataclass, asdict
from datetime import datetime
from pathlib import Path
from typing import Dict, Any, Optional, Union, Tuple

import numpy as np
from PIL import Image, PngImagePlugin

from .. import __version__
from ..core.fractal_types import RenderState
from .buffer import PixelBuffer

logger = logging.getLogger(__name__)

METADATA_KEY = "FractalMetadata"


@dataclass
class RenderMetadata:
    """Metadata for saved renders."""

    state: Dict[str, Any]
    resolution: Tuple[int, int]  # width, height
    scale: int = 1
    render_time_seconds: Optional[float] = None

    # Generation info
    timestamp: str = ""
    software_version: str = __version__

    def __post_init__(self):
        """Set default timestamp if not provided."""
        if not self.timestamp:
            self.timestamp = datetime.now().isoformat()
        self.resolution = tuple(self.resolution)

    @classmethod
    def for_render(cls, state: RenderState, buffer: PixelBuffer, scale: int = 1,
                   render_time_seconds: Optional[float] = None) -> 'RenderMetadata':
        return cls(
            state=state.to_dict(),
            resolution=(buffer.width, buffer.height),
            scale=scale,
            render_time_seconds=render_time_seconds,
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert metadata to dictionary."""
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'RenderMetadata':
        """Create metadata from dictionary."""
        return cls(**data)

    def to_json(self, indent: int = 2) -> str:
        """Convert to JSON string."""
        return json.dumps(self.to_dict(), indent=indent)

    @classmethod
    def from_json(cls, json_str: str) -> 'RenderMetadata':
        """Create metadata from JSON string."""
        return cls.from_dict(json.loads(json_str))

    @property
    def render_state(self) -> RenderState:
        return RenderState.from_dict(self.state)


def screenshot_filename(state: RenderState, hires_size: Optional[Tuple[int, int]] = None,
                        timestamp: Optional[int] = None) -> str:
    """
    Filename encoding the mode, view center and zoom of a screenshot.

    Args:
        state: State the image was rendered from
        hires_size: (width, height) for high-resolution screenshots
        timestamp: Unix time to embed (defaults to now)
    """
    if timestamp is None:
        timestamp = int(time.time())

    mode = "julia" if state.julia else "mandelbrot"
    name = f"fractal_{mode}_{state.center_x:.6f}_{state.center_y:.6f}_zoom_{state.zoom:.2f}"
    if hires_size is not None:
        name += f"_hires_{hires_size[0]}x{hires_size[1]}"
    return f"{name}_{timestamp}.png"


class ImageExporter:
    """PNG export with metadata support."""

    def save_image(self, buffer: Union[PixelBuffer, np.ndarray], filepath: Union[str, Path],
                   metadata: Optional[RenderMetadata] = None, compress_level: int = 6) -> Path:
        """
        Save an RGBA buffer to a PNG file.

        Args:
            buffer: PixelBuffer or (height, width, 4) uint8 array
            filepath: Output file path (.png)
            metadata: Render metadata to embed
            compress_level: zlib level, 0 (none) to 9 (max)

        Returns:
            Path written
        """
        filepath = Path(filepath)
        if filepath.suffix.lower() != '.png':
            raise ValueError(f"Unsupported format '{filepath.suffix}'. Supported: .png")

        pixels = buffer.pixels if isinstance(buffer, PixelBuffer) else np.asarray(buffer)
        if pixels.ndim != 3 or pixels.shape[2] != 4 or pixels.dtype != np.uint8:
            raise ValueError(f"Expected uint8 RGBA array (H, W, 4), got {pixels.dtype} {pixels.shape}")

        pil_image = Image.fromarray(np.ascontiguousarray(pixels))

        pnginfo = PngImagePlugin.PngInfo()
        if metadata:
            mode = "Julia" if metadata.state.get('julia') else "Mandelbrot"
            pnginfo.add_text("Title", f"Fractal: {mode}")
            pnginfo.add_text("Software", f"FractalExplorer v{metadata.software_version}")
            pnginfo.add_text("Creation Time", metadata.timestamp)
            pnginfo.add_text(METADATA_KEY, metadata.to_json())

        filepath.parent.mkdir(parents=True, exist_ok=True)
        pil_image.save(filepath, "PNG", pnginfo=pnginfo, compress_level=compress_level)

        logger.info(f"Saved image: {filepath} ({pil_image.size[0]}x{pil_image.size[1]})")
        return filepath

    def extract_metadata_from_image(self, filepath: Union[str, Path]) -> Optional[RenderMetadata]:
        """
        Extract render metadata from a saved PNG.

        Returns:
            Extracted metadata or None if the image carries none
        """
        with Image.open(filepath) as img:
            text = getattr(img, 'text', {})
            if METADATA_KEY in text:
                return RenderMetadata.from_json(text[METADATA_KEY])
        return None

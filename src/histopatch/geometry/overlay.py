"""Visual overlays for histopatch.

Two renderings help users judge a run:

- The segmentation preview (test mode): the colourised label map with
  evenly spaced axis guides labelled in coarse rows/columns, so the
  sampling window width (``number_of_lines``) and the border/corner
  choice can be tuned by eye.
- The tile-crossed overview: a slide thumbnail with an X drawn over every
  selected patch.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass
from typing import TYPE_CHECKING

from PIL import Image, ImageDraw, ImageFont

from histopatch.geometry.transforms import project_to_image

if TYPE_CHECKING:
    from histopatch.core.selector import Patch
    from histopatch.vision.labels import LabelMask

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class OverlayStyle:
    """Configuration for overlay styling.

    Attributes:
        line_color: RGBA color for grid lines.
        line_width: Width of grid lines in pixels.
        label_color: RGBA color for coordinate labels.
        font_size: Font size for coordinate labels.
        label_padding: Padding from edge for labels in pixels.
        num_guides: Number of guide lines per axis.
        marker_color: RGBA color of the patch crosses.
        marker_width: Line width of the patch crosses.
    """

    line_color: tuple[int, int, int, int] = (255, 0, 0, 180)
    line_width: int = 2
    label_color: tuple[int, int, int, int] = (255, 255, 255, 255)
    font_size: int = 12
    label_padding: int = 5
    num_guides: int = 8
    marker_color: tuple[int, int, int, int] = (0, 200, 0, 220)
    marker_width: int = 1


class AxisGuideGenerator:
    """Transparent overlays with labelled grid lines.

    Labels are expressed in the units of ``extent``: pass the label mask
    size to read rows/columns of the segmentation, or Level-0 dimensions
    to read slide coordinates.
    """

    def __init__(self, style: OverlayStyle | None = None) -> None:
        self.style = style or OverlayStyle()

    def generate(
        self,
        image_size: tuple[int, int],
        extent: tuple[int, int],
    ) -> Image.Image:
        """Generate an RGBA overlay for an image of ``image_size``.

        Args:
            image_size: (width, height) of the image being annotated.
            extent: (width, height) of the coordinate system shown in labels.

        Returns:
            RGBA PIL Image with the guides.

        Raises:
            ValueError: If a size contains non-positive values.
        """
        if min(image_size) <= 0:
            raise ValueError(f"image_size must be positive, got {image_size}")
        if min(extent) <= 0:
            raise ValueError(f"extent must be positive, got {extent}")

        img_w, img_h = image_size
        scale_x = extent[0] / img_w
        scale_y = extent[1] / img_h

        overlay = Image.new("RGBA", image_size, (0, 0, 0, 0))
        draw = ImageDraw.Draw(overlay)
        font = self._get_font()

        step_x = img_w / (self.style.num_guides + 1)
        step_y = img_h / (self.style.num_guides + 1)

        for i in range(1, self.style.num_guides + 1):
            x = int(step_x * i)
            draw.line(
                [(x, 0), (x, img_h)],
                fill=self.style.line_color,
                width=self.style.line_width,
            )
            self._draw_label(
                draw, str(int(x * scale_x)), (x, self.style.label_padding), font, "mt"
            )

        for i in range(1, self.style.num_guides + 1):
            y = int(step_y * i)
            draw.line(
                [(0, y), (img_w, y)],
                fill=self.style.line_color,
                width=self.style.line_width,
            )
            self._draw_label(
                draw, str(int(y * scale_y)), (self.style.label_padding, y), font, "lm"
            )

        return overlay

    def _get_font(self) -> ImageFont.FreeTypeFont | ImageFont.ImageFont:
        try:
            return ImageFont.truetype("DejaVuSans.ttf", self.style.font_size)
        except OSError:
            logger.warning(
                "DejaVuSans.ttf not available, using low-resolution default font"
            )
            return ImageFont.load_default()

    def _draw_label(
        self,
        draw: ImageDraw.ImageDraw,
        text: str,
        position: tuple[int, int],
        font: ImageFont.FreeTypeFont | ImageFont.ImageFont,
        anchor: str,
    ) -> None:
        """Draw a label with a dark outline for visibility."""
        x, y = position
        for dx, dy in [(1, 1), (-1, -1), (1, -1), (-1, 1)]:
            draw.text((x + dx, y + dy), text, fill=(0, 0, 0, 200), font=font, anchor=anchor)
        draw.text(position, text, fill=self.style.label_color, font=font, anchor=anchor)


def render_segmentation_preview(
    mask: LabelMask,
    generator: AxisGuideGenerator | None = None,
    seed: int = 0,
) -> Image.Image:
    """Render the label map with row/column scales (test mode output).

    Returns:
        RGB image the size of the mask.
    """
    generator = generator or AxisGuideGenerator()
    segmented = Image.fromarray(mask.to_rgb(seed=seed)).convert("RGBA")
    guides = generator.generate(
        image_size=segmented.size,
        extent=(mask.width, mask.height),
    )
    return Image.alpha_composite(segmented, guides).convert("RGB")


def draw_patch_markers(
    thumbnail: Image.Image,
    patches: Iterable[Patch],
    full_size: tuple[int, int],
    style: OverlayStyle | None = None,
) -> Image.Image:
    """Cross out each patch on a copy of the thumbnail.

    Args:
        thumbnail: Overview image of the slide.
        patches: Patches to mark (typically the selected ones).
        full_size: (width, height) of Level-0.
        style: Marker styling.

    Returns:
        New RGB image; the input thumbnail is left untouched.
    """
    style = style or OverlayStyle()
    base = thumbnail.convert("RGBA")
    overlay = Image.new("RGBA", base.size, (0, 0, 0, 0))
    draw = ImageDraw.Draw(overlay)

    count = 0
    for patch in patches:
        left, top, right, bottom = project_to_image(patch.region, full_size, base.size)
        draw.line(
            [(left, top), (right, bottom)], fill=style.marker_color, width=style.marker_width
        )
        draw.line(
            [(left, bottom), (right, top)], fill=style.marker_color, width=style.marker_width
        )
        count += 1

    logger.debug("Drew %d patch markers on %s thumbnail", count, base.size)
    return Image.alpha_composite(base, overlay).convert("RGB")

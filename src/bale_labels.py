"""
Bale tag labels for thermal printers.

After weighing, the bale gets a tag with a Code-128 barcode of its mill tag
("<lot>-<number>"), the lot/number in large type and the recorded weight.

Label geometry defaults to 65 x 35 mm at 203 dpi, the common roll size and
resolution of entry-level thermal printers.
"""
import io
from pathlib import Path

import barcode
from barcode.writer import ImageWriter
from PIL import Image, ImageDraw, ImageFont

from bale_models import BaleRecord
from exceptions import ValidationError
from logger import get_logger

logger = get_logger(__name__)

MM_PER_INCH = 25.4

# Two text lines below the barcode at 32pt
TEXT_AREA_HEIGHT = 80


def mm_to_px(mm: float, dpi: int) -> int:
    return int((mm / MM_PER_INCH) * dpi)


def barcode_content(bale: BaleRecord) -> str:
    """Code-128 safe content: letters, digits, '-' and '_' only."""
    return "".join(c for c in bale.mill_tag if c.isalnum() or c in '-_')


def _load_fonts(font_size: int):
    try:
        return ImageFont.truetype("arial.ttf", font_size), ImageFont.truetype("arialbd.ttf", font_size)
    except IOError:
        logger.warning("Arial fonts not found, falling back to default font")
        font = ImageFont.load_default()
        return font, font


def render_label(bale: BaleRecord, dpi: int = 203, width_mm: float = 65,
                 height_mm: float = 35, font_size: int = 32) -> Image.Image:
    """
    Render the tag image for a completed bale.

    Raises:
        ValidationError: If the bale is not completed yet
    """
    if not bale.is_completed:
        raise ValidationError(f"Bale '{bale.id}' has not been weighed yet; no tag to print.")

    content = barcode_content(bale)
    if not content:
        raise ValidationError(f"Bale '{bale.id}' has no printable mill tag.")

    label_width = mm_to_px(width_mm, dpi)
    label_height = mm_to_px(height_mm, dpi)
    barcode_height = max(label_height - TEXT_AREA_HEIGHT, 1)

    code128 = barcode.get_barcode_class('code128')
    buffer = io.BytesIO()
    code128(content, writer=ImageWriter()).write(buffer, {
        'module_height': 15.0,
        'write_text': False,
        'quiet_zone': 2,
    })
    buffer.seek(0)
    barcode_img = Image.open(buffer)

    aspect_ratio = barcode_img.width / barcode_img.height
    new_w = min(int(barcode_height * aspect_ratio), label_width)
    barcode_img = barcode_img.resize((new_w, barcode_height), Image.LANCZOS)

    label_img = Image.new('RGB', (label_width, label_height), 'white')
    label_img.paste(barcode_img, ((label_width - new_w) // 2, 0))

    font, font_bold = _load_fonts(font_size)
    draw = ImageDraw.Draw(label_img)

    tag_text = bale.mill_tag
    weight_text = f"{bale.weight:g}" if bale.weight is not None else ""

    tag_bbox = draw.textbbox((0, 0), tag_text, font=font_bold)
    tag_y = barcode_height + 5
    draw.text(((label_width - (tag_bbox[2] - tag_bbox[0])) / 2, tag_y), tag_text, font=font_bold, fill='black')

    if weight_text:
        weight_bbox = draw.textbbox((0, 0), weight_text, font=font)
        weight_y = tag_y + (tag_bbox[3] - tag_bbox[1]) + 5
        draw.text(((label_width - (weight_bbox[2] - weight_bbox[0])) / 2, weight_y), weight_text, font=font, fill='black')

    return label_img


def save_label(bale: BaleRecord, output_dir, settings=None) -> Path:
    """
    Render and save the tag as "<mill tag>.png".

    Args:
        bale: Completed bale
        output_dir: Directory for the PNG
        settings: Optional AppSettings providing label geometry

    Returns:
        Path of the written PNG
    """
    geometry = {}
    if settings is not None:
        geometry = {
            'dpi': settings.label_dpi,
            'width_mm': settings.label_width_mm,
            'height_mm': settings.label_height_mm,
            'font_size': settings.label_font_size,
        }

    image = render_label(bale, **geometry)
    output_path = Path(output_dir) / f"{barcode_content(bale)}.png"
    image.save(output_path)
    logger.info(f"Bale tag saved: {output_path}")
    return output_path

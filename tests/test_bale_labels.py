"""Tests for bale tag label rendering."""

import pytest
from PIL import Image

from app_config import AppSettings
from bale_labels import mm_to_px, barcode_content, render_label, save_label
from bale_models import BaleRecord, STATUS_COMPLETED
from exceptions import ValidationError


def _completed(lot="L9", number=5, weight=482.5):
    return BaleRecord(id="X", original_id="X", mill_lot=lot, mill_bale_number=number,
                      weight=weight, status=STATUS_COMPLETED)


def test_mm_to_px():
    assert mm_to_px(25.4, 203) == 203
    assert mm_to_px(65, 203) == 519


def test_barcode_content_strips_unsafe_characters():
    assert barcode_content(_completed(lot="L 9/a")) == "L9a-5"


def test_render_label_size():
    image = render_label(_completed(), dpi=203, width_mm=65, height_mm=35)
    assert isinstance(image, Image.Image)
    assert image.size == (mm_to_px(65, 203), mm_to_px(35, 203))


def test_pending_bale_has_no_label():
    with pytest.raises(ValidationError):
        render_label(BaleRecord(id="X", original_id="X"))


def test_save_label_uses_settings(test_dir):
    settings = AppSettings(label_dpi=300, label_width_mm=50, label_height_mm=30, label_font_size=20)

    path = save_label(_completed(), test_dir, settings)

    assert path.name == "L9-5.png"
    with Image.open(path) as saved:
        assert saved.size == (mm_to_px(50, 300), mm_to_px(30, 300))

from dataclasses import dataclass
from typing import Iterable, List, Tuple

from PIL import Image
from reportlab.lib.units import mm
from reportlab.lib.utils import ImageReader
from reportlab.pdfgen import canvas

from .lookup import PartRecord


@dataclass
class LabelAssets:
    part: PartRecord
    qr_image: Image.Image


@dataclass
class SheetGeometry:
    label_width_mm: float = 70.0
    label_height_mm: float = 30.0
    page_width_mm: float = 210.0
    page_height_mm: float = 297.0
    margin_mm: float = 8.0

    def grid(self) -> Tuple[int, int]:
        usable_w = self.page_width_mm - 2 * self.margin_mm
        usable_h = self.page_height_mm - 2 * self.margin_mm
        cols = int(usable_w // self.label_width_mm)
        rows = int(usable_h // self.label_height_mm)
        if cols <= 0 or rows <= 0:
            raise ValueError("Label size too large for the page size")
        return cols, rows

    def origin(self, slot: int) -> Tuple[float, float]:
        """Bottom-left corner (mm) of a slot on the page, filled row by row from the top."""
        cols, rows = self.grid()
        row, col = divmod(slot, cols)
        offset_x = (self.page_width_mm - cols * self.label_width_mm) / 2.0
        offset_y = (self.page_height_mm - rows * self.label_height_mm) / 2.0
        x = offset_x + col * self.label_width_mm
        y = self.page_height_mm - offset_y - (row + 1) * self.label_height_mm
        return x, y


def _draw_image_fit(
    c, image: Image.Image, x: float, y: float, w: float, h: float
) -> None:
    img_w, img_h = image.size
    if img_w == 0 or img_h == 0:
        return
    scale = min(w / img_w, h / img_h)
    draw_w = img_w * scale
    draw_h = img_h * scale
    draw_x = x + (w - draw_w) / 2
    draw_y = y + (h - draw_h) / 2
    c.drawImage(ImageReader(image), draw_x, draw_y, draw_w, draw_h, mask="auto")


def _truncate_text(c, text: str, max_width: float) -> str:
    if not text:
        return ""
    if c.stringWidth(text) <= max_width:
        return text
    ellipsis = "..."
    if c.stringWidth(ellipsis) > max_width:
        return ""
    max_width -= c.stringWidth(ellipsis)
    trimmed = text
    while trimmed and c.stringWidth(trimmed) > max_width:
        trimmed = trimmed[:-1]
    return (trimmed.rstrip() + ellipsis) if trimmed else ellipsis


def wrap_text_lines(c, text: str, max_lines: int, max_width: float) -> List[str]:
    words = text.split()
    if not words or max_lines <= 0 or max_width <= 0:
        return []
    lines: List[str] = []
    current = ""
    for index, word in enumerate(words):
        candidate = word if not current else f"{current} {word}"
        if c.stringWidth(candidate) <= max_width:
            current = candidate
            continue
        if current:
            lines.append(_truncate_text(c, current, max_width))
        current = word
        if len(lines) == max_lines:
            rest = " ".join(words[index:])
            lines[-1] = _truncate_text(c, f"{lines[-1]} {rest}", max_width)
            return lines
    if current:
        if len(lines) == max_lines:
            lines[-1] = _truncate_text(c, f"{lines[-1]} {current}", max_width)
        else:
            lines.append(_truncate_text(c, current, max_width))
    return lines


def _draw_label(c, label: LabelAssets, x: float, y: float, w: float, h: float) -> None:
    pad = 2.5 * mm
    qr_size = max(0.0, h - 2 * pad)
    _draw_image_fit(c, label.qr_image, x + pad, y + pad, qr_size, qr_size)

    text_x = x + 2 * pad + qr_size
    text_w = max(0.0, x + w - pad - text_x)
    top = y + h - pad

    part = label.part
    c.setFillColorRGB(0, 0, 0)
    c.setFont("Helvetica-Bold", 11)
    line_y = top - 11
    c.drawString(text_x, line_y, _truncate_text(c, part.id, text_w))

    c.setFont("Helvetica", 8)
    line_height = 8 * 1.25
    for line in wrap_text_lines(c, part.name, 2, text_w):
        line_y -= line_height
        c.drawString(text_x, line_y, line)
    line_y -= line_height
    c.drawString(text_x, line_y, _truncate_text(c, f"Pos: {part.position}", text_w))


def render_labels_to_pdf(
    labels: Iterable[LabelAssets],
    output_path: str,
    geometry: SheetGeometry = SheetGeometry(),
) -> int:
    """Write labels to a PDF, returning the number of pages."""
    cols, rows = geometry.grid()
    per_page = cols * rows
    c = canvas.Canvas(
        output_path,
        pagesize=(geometry.page_width_mm * mm, geometry.page_height_mm * mm),
    )
    w = geometry.label_width_mm * mm
    h = geometry.label_height_mm * mm

    pages = 1
    for index, label in enumerate(labels):
        if index > 0 and index % per_page == 0:
            c.showPage()
            pages += 1
        x_mm, y_mm = geometry.origin(index % per_page)
        x, y = x_mm * mm, y_mm * mm
        _draw_label(c, label, x, y, w, h)

        c.saveState()
        c.setLineWidth(0.3)
        c.setDash(2, 2)
        c.setStrokeColorRGB(0.6, 0.6, 0.6)
        c.rect(x, y, w, h, stroke=1, fill=0)
        c.restoreState()

    c.save()
    return pages

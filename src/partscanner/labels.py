"""Print QR labels for the parts sheet; each QR code encodes the part id."""

import argparse
import logging
from typing import Iterable, List, Optional, Sequence

import qrcode
from PIL import Image
from tqdm import tqdm

from .config import load_settings, sheets_client_from
from .errors import PartLookupError
from .label_layout import LabelAssets, SheetGeometry, render_labels_to_pdf
from .lookup import PartRecord, iter_records, normalize_id

logger = logging.getLogger(__name__)


def make_qr_image(text: str) -> Image.Image:
    qr = qrcode.QRCode(border=1, box_size=10)
    qr.add_data(text)
    qr.make(fit=True)
    img = qr.make_image(fill_color="black", back_color="white")
    return img.convert("RGB")


def select_parts(
    records: Iterable[PartRecord], ids: Optional[Sequence[str]] = None
) -> List[PartRecord]:
    """Keep records whose id is in ids (case/trim-insensitive), in sheet order."""
    records = list(records)
    if not ids:
        return records
    wanted = {normalize_id(i) for i in ids}
    return [r for r in records if normalize_id(r.id) in wanted]


def build_labels(records: Iterable[PartRecord]) -> List[LabelAssets]:
    labels: List[LabelAssets] = []
    progress = tqdm(list(records), desc="Building labels")
    for part in progress:
        progress.set_postfix_str(part.id)
        labels.append(LabelAssets(part=part, qr_image=make_qr_image(part.id)))
    return labels


def main() -> int:
    parser = argparse.ArgumentParser(description="Generate QR part labels as PDF")
    parser.add_argument("--config", default="config.toml", help="Path to config TOML")
    parser.add_argument("--output", help="Output PDF path (overrides config)")
    parser.add_argument(
        "--id", action="append", dest="ids", help="Only print this part id (repeatable)"
    )
    parser.add_argument("--log-level", default="INFO", help="Logging level")
    args = parser.parse_args()

    logging.basicConfig(
        level=args.log_level.upper(),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    config, env = load_settings(args.config)
    labels_cfg = config.get("labels", {})
    sheets = sheets_client_from(config, env)

    try:
        parts = select_parts(iter_records(sheets.fetch_table()), args.ids)
    except PartLookupError as exc:
        logger.error("%s", exc.message)
        return 1
    if not parts:
        logger.error("No parts to print")
        return 1

    geometry = SheetGeometry(
        label_width_mm=labels_cfg.get("label_width_mm", 70.0),
        label_height_mm=labels_cfg.get("label_height_mm", 30.0),
        page_width_mm=labels_cfg.get("page_width_mm", 210.0),
        page_height_mm=labels_cfg.get("page_height_mm", 297.0),
        margin_mm=labels_cfg.get("margin_mm", 8.0),
    )
    output_pdf = args.output or labels_cfg.get("output_pdf", "part-labels.pdf")
    pages = render_labels_to_pdf(build_labels(parts), output_pdf, geometry)
    logger.info("Wrote %d labels on %d pages to %s", len(parts), pages, output_pdf)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())

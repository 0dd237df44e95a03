# =============================================================================
# report.py
# CSV metrics export and a PDF comparison report using ReportLab.
# =============================================================================

import io
import csv
import datetime
from xml.sax.saxutils import escape
from pathlib import Path
from typing import List, Optional, Sequence

from constants import IMAGE_RESULT_COLS
from models import AnalysisResult, image_to_dict

DEFAULT_NAMES = ("Image 1", "Image 2")


def result_rows(result: AnalysisResult,
                names: Optional[Sequence[str]] = None) -> List[dict]:
    """One flat row per image, pair-level fields repeated on each row."""
    names = names or DEFAULT_NAMES
    rows  = []
    for slot, (name, img) in enumerate(zip(names, (result.image1, result.image2)), start=1):
        row = {"slot": slot, "filename": name}
        row.update(image_to_dict(img))
        row["similarity_score"] = result.similarity_score
        row["phash_distance"]   = result.phash_distance
        rows.append(row)
    return rows


def write_result_csv(result: AnalysisResult, out_csv: str,
                     names: Optional[Sequence[str]] = None) -> Path:
    out_path = Path(out_csv).expanduser().resolve()
    out_path.parent.mkdir(parents=True, exist_ok=True)
    fieldnames = [c[0] for c in IMAGE_RESULT_COLS] + ["similarity_score", "phash_distance"]
    with out_path.open("w", newline="", encoding="utf-8") as f:
        writer = csv.DictWriter(f, fieldnames=fieldnames)
        writer.writeheader()
        writer.writerows(result_rows(result, names))
    return out_path


def generate_pdf_report(out_path: str, result: AnalysisResult,
                        names: Optional[Sequence[str]] = None) -> str:
    """
    Build and save a comparison PDF: title, score table, summary narrative,
    per-image metrics, and grayscale/edge previews.
    Returns out_path on success.
    """
    from reportlab.lib.pagesizes import letter
    from reportlab.lib import colors
    from reportlab.lib.styles import ParagraphStyle, getSampleStyleSheet
    from reportlab.lib.units import inch
    from reportlab.platypus import (SimpleDocTemplate, Paragraph, Spacer,
                                    Table, TableStyle, HRFlowable, Image as RLImage)

    names = names or DEFAULT_NAMES
    esc   = [escape(n) for n in names]

    NAVY  = colors.HexColor("#0D2B4E")
    AMBER = colors.HexColor("#9A6B00")
    RULE  = colors.HexColor("#CCCCCC")

    base    = getSampleStyleSheet()
    title_s = ParagraphStyle("title", parent=base["Title"], textColor=NAVY, spaceAfter=2)
    meta_s  = ParagraphStyle("meta", parent=base["Normal"], fontSize=9,
                             textColor=colors.grey, alignment=1)
    h2_s    = ParagraphStyle("h2", parent=base["Heading2"], textColor=NAVY,
                             spaceBefore=10, spaceAfter=4)
    body_s  = ParagraphStyle("body", parent=base["BodyText"], fontSize=9, leading=14)
    warn_s  = ParagraphStyle("warn", parent=body_s, fontSize=8, textColor=AMBER,
                             fontName="Helvetica-Oblique")
    small_s = ParagraphStyle("small", parent=base["Normal"], fontSize=7,
                             textColor=colors.grey, alignment=1)

    def grid(header: bool) -> TableStyle:
        cmds = [
            ("GRID",          (0, 0), (-1, -1), 0.4, RULE),
            ("FONTSIZE",      (0, 0), (-1, -1), 8),
            ("VALIGN",        (0, 0), (-1, -1), "MIDDLE"),
            ("TOPPADDING",    (0, 0), (-1, -1), 3),
            ("BOTTOMPADDING", (0, 0), (-1, -1), 3),
        ]
        if header:
            cmds += [("BACKGROUND", (0, 0), (-1, 0), NAVY),
                     ("TEXTCOLOR",  (0, 0), (-1, 0), colors.white),
                     ("FONTNAME",   (0, 0), (-1, 0), "Helvetica-Bold")]
        return TableStyle(cmds)

    doc   = SimpleDocTemplate(out_path, pagesize=letter,
                              leftMargin=0.65*inch, rightMargin=0.65*inch,
                              topMargin=0.65*inch,  bottomMargin=0.65*inch)
    W     = letter[0] - 1.3*inch
    ts    = datetime.datetime.now().strftime("%B %d, %Y  %H:%M:%S")
    story = [
        Paragraph("Image Pair Comparison", title_s),
        Paragraph(f"{esc[0]} vs {esc[1]}  |  generated {ts}", meta_s),
        HRFlowable(width=W, thickness=2, color=NAVY, spaceBefore=8, spaceAfter=6),
    ]

    # -- Comparison -----------------------------------------------------------
    story.append(Paragraph("Comparison", h2_s))
    stat_rows = [
        ["Similarity score (histogram)", f"{result.similarity_score}%"],
        ["Perceptual hash distance",     str(result.phash_distance)],
        [f"{esc[0]} classification",     str(result.image1.classification)],
        [f"{esc[1]} classification",     str(result.image2.classification)],
    ]
    tbl = Table([[Paragraph(k, body_s), Paragraph(v, body_s)] for k, v in stat_rows],
                colWidths=[2.2*inch, W - 2.2*inch])
    tbl.setStyle(grid(header=False))
    story.append(tbl)

    # -- Summary narrative ----------------------------------------------------
    story.append(Paragraph("Summary", h2_s))
    for block in result.summary.split("\n\n"):
        block = block.strip()
        if block:
            story.append(Paragraph(escape(block).replace("\n", "<br/>"), body_s))

    # -- Per-image metrics ----------------------------------------------------
    story.append(Paragraph("Image Metrics", h2_s))
    col_w = [c[2] for c in IMAGE_RESULT_COLS]
    scale = W / sum(col_w)
    rows_data = [[c[1] for c in IMAGE_RESULT_COLS]] + [
        [str(r[c[0]])[:30] for c in IMAGE_RESULT_COLS] for r in result_rows(result, names)
    ]
    tbl2 = Table(rows_data, colWidths=[w * scale for w in col_w], repeatRows=1)
    tbl2.setStyle(grid(header=True))
    story.append(tbl2)
    for name, img in zip(esc, (result.image1, result.image2)):
        if img.metrics.is_low_contrast:
            story.append(Paragraph(
                f"{name}: low contrast detected. This may affect analysis accuracy.", warn_s))

    # -- Previews -------------------------------------------------------------
    story.append(Paragraph("Previews (grayscale / edges)", h2_s))
    cell = (W - 0.3*inch) / 4

    def _flowable(png: bytes, img):
        ratio = img.height / img.width
        w = cell if ratio <= 1 else cell / ratio
        return RLImage(io.BytesIO(png), width=w, height=w * ratio)

    previews = Table(
        [[_flowable(result.image1.grayscale_png, result.image1),
          _flowable(result.image1.edges_png,     result.image1),
          _flowable(result.image2.grayscale_png, result.image2),
          _flowable(result.image2.edges_png,     result.image2)],
         [Paragraph(f"{esc[0]} grayscale", small_s),
          Paragraph(f"{esc[0]} edges",     small_s),
          Paragraph(f"{esc[1]} grayscale", small_s),
          Paragraph(f"{esc[1]} edges",     small_s)]],
        colWidths=[cell + 0.075*inch] * 4
    )
    previews.setStyle(TableStyle([
        ("ALIGN",  (0, 0), (-1, -1), "CENTER"),
        ("VALIGN", (0, 0), (-1, -1), "MIDDLE"),
    ]))
    story.append(previews)
    story.append(Spacer(1, 0.15*inch))

    # -- Footer ---------------------------------------------------------------
    story.append(HRFlowable(width=W, thickness=1, color=RULE, spaceAfter=4))
    story.append(Paragraph(
        "All analysis performed locally from pixel data. No data transmitted externally. "
        "Original files were not modified.",
        small_s
    ))

    doc.build(story)
    return out_path

# =============================================================================
# summary.py
# Template-based comparison summary and the plain-text console report.
# =============================================================================

from typing import Optional, Sequence

from constants import SCORE_NEAR_IDENTICAL, SCORE_STRONG
from models import ClassificationLabel, AnalysisResult, AnalyzedImage

LOW_CONTRAST_WARNING = (
    "[ANALYZABILITY WARNING] One or both images have very low contrast, which "
    "can make feature extraction difficult and may affect the accuracy of the "
    "similarity score."
)


def build_summary(label1: ClassificationLabel, label2: ClassificationLabel,
                  score: int, low_contrast1: bool, low_contrast2: bool) -> str:
    """
    Deterministic natural-language comparison. Paragraphs are separated by a
    blank line; the low-contrast warning, when present, always comes first.
    """
    paragraphs = []
    if low_contrast1 or low_contrast2:
        paragraphs.append(LOW_CONTRAST_WARNING)

    if label1 == label2:
        paragraphs.append(f"Both images appear to be of the same category: '{label1}'.")
        if score > SCORE_NEAR_IDENTICAL:
            paragraphs.append(
                f"Their exceptionally high similarity score of {score}% suggests they "
                f"depict the very same subject or nearly identical scenes. For example, "
                f"if they are 'Man-made Objects', they are likely the same type of "
                f"object (e.g., both scissors or both cars)."
            )
        elif score > SCORE_STRONG:
            paragraphs.append(
                f"The strong similarity score of {score}% indicates they share many "
                f"visual characteristics, such as color palette and structure, as "
                f"expected for two '{label1}' images."
            )
        else:
            paragraphs.append(
                f"Despite being in the same category, the lower similarity score of "
                f"{score}% suggests significant differences in lighting, angle, or "
                f"specific subject matter."
            )
    else:
        paragraphs.append(
            f"The images depict different subjects. Image 1 is classified as a "
            f"'{label1}', while Image 2 is categorized as a '{label2}'."
        )
        paragraphs.append(
            f"This fundamental difference in subject matter is the primary reason "
            f"for their moderate-to-low similarity score of {score}%."
        )

    return "\n\n".join(paragraphs)


def _image_lines(title: str, img: AnalyzedImage) -> list:
    m = img.metrics
    lines = [
        title,
        f"   Size: {img.width}x{img.height}  |  Class: {img.classification}",
        f"   Brightness: {m.brightness}  |  Contrast: {m.contrast}  |  "
        f"Edge density: {m.edge_density}%",
        f"   Skin tone: {img.skin_tone_percent:.2f}%  |  Color variety: {img.color_variety}",
    ]
    if m.is_low_contrast:
        lines.append("   Low contrast detected. This may affect analysis accuracy.")
    return lines


def format_text_report(result: AnalysisResult,
                       names: Optional[Sequence[str]] = None) -> str:
    names = names or ("Image 1", "Image 2")
    lines = []
    lines += _image_lines(f"{names[0]}:", result.image1)
    lines += _image_lines(f"{names[1]}:", result.image2)
    lines.append("")
    lines.append(f"Similarity score (histogram): {result.similarity_score}%")
    lines.append(f"Perceptual hash distance:     {result.phash_distance}")
    lines.append("")
    lines.append(result.summary)
    return "\n".join(lines)

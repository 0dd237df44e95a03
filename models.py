# =============================================================================
# models.py
# Dataclasses for per-image analysis results and the pairwise comparison.
# =============================================================================

import math
from dataclasses import dataclass, field
from enum import Enum

import numpy as np


def round_half_up(value: float, digits: int = 0) -> float:
    """Rounds ties upward: round_half_up(0.125, 2) == 0.13."""
    scale = 10 ** digits
    return math.floor(value * scale + 0.5) / scale


class ClassificationLabel(Enum):
    HUMAN_PORTRAIT           = "Human Portrait"
    MAN_MADE_OBJECT          = "Man-made Object"
    ANIMAL                   = "Animal"
    LANDSCAPE_SCENERY        = "Landscape / Scenery"
    GENERAL_SUBJECT_ABSTRACT = "General Subject / Abstract"

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class Metrics:
    brightness: float         # mean grayscale intensity, 0-255
    contrast: float           # population std-dev of grayscale intensity
    edge_density: float       # % of all pixels above the Sobel threshold
    is_low_contrast: bool


@dataclass(frozen=True)
class EdgeMap:
    """Sobel gradient magnitudes plus the edge count derived from them."""
    magnitude: np.ndarray = field(repr=False, compare=False)
    edge_count: int
    edge_density: float


@dataclass(frozen=True)
class ColorProfile:
    histogram: np.ndarray = field(repr=False, compare=False)   # 4096 RGB bins
    skin_tone_percent: float
    color_variety: int
    pixel_count: int


@dataclass(frozen=True)
class AnalyzedImage:
    width: int
    height: int
    grayscale_png: bytes = field(repr=False)
    edges_png: bytes = field(repr=False)
    metrics: Metrics
    classification: ClassificationLabel
    skin_tone_percent: float
    color_variety: int
    histogram: np.ndarray = field(repr=False, compare=False)   # internal only


@dataclass(frozen=True)
class AnalysisResult:
    image1: AnalyzedImage
    image2: AnalyzedImage
    similarity_score: int     # histogram intersection, 0-100
    summary: str
    phash_distance: int = 0   # informational; does not feed the score


def image_to_dict(img: AnalyzedImage) -> dict:
    """Flat, JSON-safe view of one image (previews and histogram excluded)."""
    return {
        "width":             img.width,
        "height":            img.height,
        "brightness":        img.metrics.brightness,
        "contrast":          img.metrics.contrast,
        "edge_density":      img.metrics.edge_density,
        "is_low_contrast":   img.metrics.is_low_contrast,
        "skin_tone_percent": round_half_up(img.skin_tone_percent, 2),
        "color_variety":     img.color_variety,
        "classification":    str(img.classification),
    }


def result_to_dict(result: AnalysisResult) -> dict:
    return {
        "image1":           image_to_dict(result.image1),
        "image2":           image_to_dict(result.image2),
        "similarity_score": result.similarity_score,
        "phash_distance":   result.phash_distance,
        "summary":          result.summary,
    }

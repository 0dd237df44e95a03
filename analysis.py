# =============================================================================
# analysis.py
# Local image-pair analysis: decode/normalize, grayscale, pixel statistics,
# Sobel edges, color profiling, rule-based classification, histogram
# similarity, preview rendering, and the top-level analyze() entry point.
# =============================================================================

import io
import logging
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import Tuple, Union

import numpy as np
import cv2
from PIL import Image, ImageOps, UnidentifiedImageError
import imagehash

from constants import (MAX_DIMENSION, LOW_CONTRAST_THRESHOLD, EDGE_THRESHOLD,
                       SOBEL_KERNEL_X, SOBEL_KERNEL_Y, HIST_BINS, VARIETY_BINS,
                       SKIN_MIN_R, SKIN_MIN_G, SKIN_MIN_B, SKIN_MIN_SPREAD,
                       SKIN_MIN_RG_GAP, PORTRAIT_SKIN_PERCENT,
                       MANMADE_MIN_EDGE, MANMADE_MIN_CONTRAST, MANMADE_MAX_VARIETY,
                       ANIMAL_MIN_EDGE, ANIMAL_MIN_CONTRAST, ANIMAL_MIN_VARIETY,
                       LANDSCAPE_MAX_EDGE, LANDSCAPE_MIN_VARIETY)
from models import (ClassificationLabel, Metrics, EdgeMap, ColorProfile,
                    AnalyzedImage, AnalysisResult, round_half_up)
from summary import build_summary

logger = logging.getLogger(__name__)

ImageSource = Union[bytes, bytearray, memoryview, Image.Image]

_KERNEL_X = np.array(SOBEL_KERNEL_X, dtype=np.float64)
_KERNEL_Y = np.array(SOBEL_KERNEL_Y, dtype=np.float64)

# Pillow modes wider than 8 bits per sample; convert("RGBA") would clip them.
_WIDE_MODES = ("I", "I;16", "I;16L", "I;16B", "I;16N", "F")


class DecodeError(ValueError):
    """Raised when an input cannot be interpreted as a supported raster image."""


# =============================================================================
# DECODE / NORMALIZE
# =============================================================================

def _open_image(source: ImageSource) -> Image.Image:
    if isinstance(source, Image.Image):
        return source
    if not isinstance(source, (bytes, bytearray, memoryview)):
        raise DecodeError(f"Unsupported image source: {type(source).__name__}")

    data = bytes(source)
    if not data:
        raise DecodeError("Image data is empty.")
    try:
        im = Image.open(io.BytesIO(data))
        im.load()
    except (UnidentifiedImageError, Image.DecompressionBombError,
            OSError, EOFError, SyntaxError, ValueError) as exc:
        raise DecodeError(f"Could not decode image: {exc}") from exc
    return im


def _to_8bit(im: Image.Image) -> Image.Image:
    """Scale 16-bit and float single-channel images down to 8-bit grayscale."""
    if im.mode not in _WIDE_MODES:
        return im
    values = np.asarray(im, dtype=np.float64)
    scaled = np.clip(np.rint(values / 257), 0, 255).astype(np.uint8)
    return Image.fromarray(scaled)


def normalized_size(width: int, height: int,
                    max_dim: int = MAX_DIMENSION) -> Tuple[int, int]:
    """Target size after downscaling so the longer side fits in max_dim. Never upsizes."""
    longest = max(width, height)
    if longest <= max_dim:
        return width, height
    return max(1, width * max_dim // longest), max(1, height * max_dim // longest)


def decode_image(source: ImageSource) -> np.ndarray:
    """
    Decode bytes (or take a PIL image) and return a read-only RGBA uint8
    buffer of shape (h, w, 4), downscaled to fit MAX_DIMENSION.
    """
    im = _open_image(source)
    try:
        im = ImageOps.exif_transpose(im)
        rgba = _to_8bit(im).convert("RGBA")
    except (OSError, ValueError) as exc:
        raise DecodeError(f"Could not convert image to RGBA: {exc}") from exc

    w, h = rgba.size
    if w == 0 or h == 0:
        raise DecodeError("Image has no pixels.")

    new_w, new_h = normalized_size(w, h)
    if (new_w, new_h) != (w, h):
        rgba = rgba.resize((new_w, new_h), Image.LANCZOS)
        logger.debug("Resized %dx%d -> %dx%d", w, h, new_w, new_h)

    pixels = np.array(rgba, dtype=np.uint8)
    pixels.flags.writeable = False
    return pixels


# =============================================================================
# GRAYSCALE / PIXEL STATISTICS
# =============================================================================

def to_grayscale(pixels: np.ndarray) -> np.ndarray:
    """Truncated mean of R, G, B per pixel. Alpha is ignored."""
    # Floor division; the edge preview rounds its float magnitudes to nearest instead.
    total = pixels[..., :3].astype(np.uint16).sum(axis=2)
    gray  = (total // 3).astype(np.uint8)
    gray.flags.writeable = False
    return gray


def compute_pixel_stats(gray: np.ndarray) -> Tuple[float, float]:
    """Returns unrounded (mean, population std-dev) of the grayscale buffer."""
    values = gray.astype(np.float64)
    return float(values.mean()), float(values.std())


def is_low_contrast(contrast: float) -> bool:
    return contrast < LOW_CONTRAST_THRESHOLD


# =============================================================================
# EDGE DETECTION
# =============================================================================

def detect_edges(gray: np.ndarray) -> EdgeMap:
    """
    3x3 Sobel gradient magnitude over interior pixels. Border rows/cols stay 0
    and never count as edges. Density is relative to the full pixel count.
    """
    h, w      = gray.shape
    magnitude = np.zeros((h, w), dtype=np.float64)

    if h >= 3 and w >= 3:
        src = gray.astype(np.float64)
        gx  = cv2.filter2D(src, cv2.CV_64F, _KERNEL_X, borderType=cv2.BORDER_REPLICATE)
        gy  = cv2.filter2D(src, cv2.CV_64F, _KERNEL_Y, borderType=cv2.BORDER_REPLICATE)
        magnitude[1:-1, 1:-1] = np.sqrt(gx[1:-1, 1:-1] ** 2 + gy[1:-1, 1:-1] ** 2)

    magnitude.flags.writeable = False
    edge_count   = int(np.count_nonzero(magnitude > EDGE_THRESHOLD))
    edge_density = round_half_up(edge_count / (w * h) * 100, 2)
    return EdgeMap(magnitude=magnitude, edge_count=edge_count, edge_density=edge_density)


# =============================================================================
# COLOR PROFILING
# =============================================================================

def profile_colors(pixels: np.ndarray) -> ColorProfile:
    """
    One pass over the RGBA buffer producing the 16^3 similarity histogram,
    the skin-tone percentage, and the 8^3 color-variety count.
    """
    rgb = pixels[..., :3].reshape(-1, 3).astype(np.int32)
    r, g, b     = rgb[:, 0], rgb[:, 1], rgb[:, 2]
    pixel_count = rgb.shape[0]

    step      = 256 // HIST_BINS
    bin_index = (r // step) * HIST_BINS * HIST_BINS + (g // step) * HIST_BINS + (b // step)
    histogram = np.bincount(bin_index, minlength=HIST_BINS ** 3).astype(np.int64)
    histogram.flags.writeable = False

    spread = rgb.max(axis=1) - rgb.min(axis=1)
    skin = ((r > SKIN_MIN_R) & (g > SKIN_MIN_G) & (b > SKIN_MIN_B) &
            (r > g) & (r > b) &
            (spread > SKIN_MIN_SPREAD) &
            (np.abs(r - g) > SKIN_MIN_RG_GAP))
    skin_count = int(np.count_nonzero(skin))

    vstep  = 256 // VARIETY_BINS
    coarse = (r // vstep) * VARIETY_BINS * VARIETY_BINS + (g // vstep) * VARIETY_BINS + (b // vstep)

    return ColorProfile(
        histogram=histogram,
        skin_tone_percent=(skin_count / pixel_count * 100) if pixel_count else 0.0,
        color_variety=int(np.unique(coarse).size),
        pixel_count=pixel_count,
    )


# =============================================================================
# CLASSIFICATION / SIMILARITY
# =============================================================================

def classify(edge_density: float, contrast: float,
             skin_tone_percent: float, color_variety: int) -> ClassificationLabel:
    """Ordered rules; the first match wins."""
    if skin_tone_percent > PORTRAIT_SKIN_PERCENT:
        return ClassificationLabel.HUMAN_PORTRAIT
    if (edge_density > MANMADE_MIN_EDGE and contrast > MANMADE_MIN_CONTRAST
            and color_variety < MANMADE_MAX_VARIETY):
        return ClassificationLabel.MAN_MADE_OBJECT
    if (edge_density > ANIMAL_MIN_EDGE and contrast > ANIMAL_MIN_CONTRAST
            and color_variety > ANIMAL_MIN_VARIETY):
        return ClassificationLabel.ANIMAL
    if edge_density < LANDSCAPE_MAX_EDGE and color_variety > LANDSCAPE_MIN_VARIETY:
        return ClassificationLabel.LANDSCAPE_SCENERY
    return ClassificationLabel.GENERAL_SUBJECT_ABSTRACT


def compare_histograms(hist1, hist2) -> int:
    """
    Histogram intersection normalized by the smaller total, as an integer
    percentage rounded half-up. 0 when either histogram is empty.
    """
    h1 = np.asarray(hist1, dtype=np.int64)
    h2 = np.asarray(hist2, dtype=np.int64)
    if h1.shape != h2.shape:
        raise ValueError(f"Histogram layouts differ: {h1.shape} vs {h2.shape}")

    total1, total2 = int(h1.sum()), int(h2.sum())
    if total1 == 0 or total2 == 0:
        return 0
    intersection = int(np.minimum(h1, h2).sum())
    return int(round_half_up(intersection / min(total1, total2) * 100))


# =============================================================================
# PREVIEWS
# =============================================================================

def _encode_png(rgba: np.ndarray) -> bytes:
    buf = io.BytesIO()
    Image.fromarray(np.ascontiguousarray(rgba)).save(buf, format="PNG")
    return buf.getvalue()


def _opaque_gray(channel: np.ndarray) -> np.ndarray:
    alpha = np.full(channel.shape, 255, dtype=np.uint8)
    return np.dstack([channel, channel, channel, alpha])


def render_grayscale(gray: np.ndarray) -> bytes:
    return _encode_png(_opaque_gray(gray))


def render_edges(edge_map: EdgeMap) -> bytes:
    """Magnitude clamped to 0-255 in every color channel; border pixels are black."""
    clamped = np.clip(np.rint(edge_map.magnitude), 0, 255).astype(np.uint8)
    return _encode_png(_opaque_gray(clamped))


# =============================================================================
# PIPELINE
# =============================================================================

def _run_pipeline(source: ImageSource) -> Tuple[AnalyzedImage, imagehash.ImageHash]:
    pixels  = decode_image(source)
    gray    = to_grayscale(pixels)
    mean, std = compute_pixel_stats(gray)
    edges   = detect_edges(gray)
    profile = profile_colors(pixels)
    label   = classify(edges.edge_density, std,
                       profile.skin_tone_percent, profile.color_variety)

    h, w = gray.shape
    logger.debug("%dx%d  brightness=%.2f contrast=%.2f edges=%.2f%% skin=%.2f%% "
                 "variety=%d -> %s", w, h, mean, std, edges.edge_density,
                 profile.skin_tone_percent, profile.color_variety, label)

    analyzed = AnalyzedImage(
        width=w,
        height=h,
        grayscale_png=render_grayscale(gray),
        edges_png=render_edges(edges),
        metrics=Metrics(
            brightness=round_half_up(mean, 2),
            contrast=round_half_up(std, 2),
            edge_density=edges.edge_density,
            is_low_contrast=is_low_contrast(std),
        ),
        classification=label,
        skin_tone_percent=profile.skin_tone_percent,
        color_variety=profile.color_variety,
        histogram=profile.histogram,
    )
    phash = imagehash.phash(Image.fromarray(np.ascontiguousarray(pixels[..., :3])))
    return analyzed, phash


def analyze_image(source: ImageSource) -> AnalyzedImage:
    """Run one image through decode -> grayscale -> stats -> edges -> color -> classify."""
    analyzed, _ = _run_pipeline(source)
    return analyzed


def analyze(image1: ImageSource, image2: ImageSource,
            parallel: bool = True) -> AnalysisResult:
    """
    Analyze both images independently, then compare them. A DecodeError from
    either side aborts the whole comparison (image 1 reported first).
    """
    if parallel:
        with ThreadPoolExecutor(max_workers=2) as pool:
            fut1 = pool.submit(_run_pipeline, image1)
            fut2 = pool.submit(_run_pipeline, image2)
            a1, hash1 = fut1.result()
            a2, hash2 = fut2.result()
    else:
        a1, hash1 = _run_pipeline(image1)
        a2, hash2 = _run_pipeline(image2)

    score   = compare_histograms(a1.histogram, a2.histogram)
    summary = build_summary(a1.classification, a2.classification, score,
                            a1.metrics.is_low_contrast, a2.metrics.is_low_contrast)
    logger.info("Compared %s vs %s -> similarity %d%%",
                a1.classification, a2.classification, score)

    return AnalysisResult(
        image1=a1,
        image2=a2,
        similarity_score=score,
        summary=summary,
        phash_distance=int(hash1 - hash2),
    )


def analyze_paths(path1: Union[str, Path], path2: Union[str, Path],
                  parallel: bool = True) -> AnalysisResult:
    """Read two image files from disk and compare them."""
    p1 = Path(path1).expanduser()
    p2 = Path(path2).expanduser()
    logger.info("Analyzing %s vs %s", p1.name, p2.name)
    return analyze(p1.read_bytes(), p2.read_bytes(), parallel=parallel)

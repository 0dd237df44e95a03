# =============================================================================
# constants.py
# Fixed analysis thresholds, bin layouts, file extensions, and export columns.
# =============================================================================

# -- Normalization ------------------------------------------------------------
# Longest side of the working buffer. Larger images are downscaled, smaller
# ones pass through untouched.
MAX_DIMENSION = 400

# -- Pixel statistics ---------------------------------------------------------
LOW_CONTRAST_THRESHOLD = 10.0   # population std-dev of grayscale intensity

# -- Edge detection -----------------------------------------------------------
EDGE_THRESHOLD = 80             # Sobel magnitude strictly above this is an edge
SOBEL_KERNEL_X = ((-1, 0, 1),
                  (-2, 0, 2),
                  (-1, 0, 1))
SOBEL_KERNEL_Y = ((-1, -2, -1),
                  ( 0,  0,  0),
                  ( 1,  2,  1))

# -- Color profiling ----------------------------------------------------------
HIST_BINS    = 16               # per channel -> 16^3 = 4096 histogram bins
VARIETY_BINS = 8                # per channel -> at most 512 variety buckets

SKIN_MIN_R      = 95
SKIN_MIN_G      = 40
SKIN_MIN_B      = 20
SKIN_MIN_SPREAD = 15            # max(R,G,B) - min(R,G,B)
SKIN_MIN_RG_GAP = 15            # |R - G|

# -- Classifier cut-offs ------------------------------------------------------
PORTRAIT_SKIN_PERCENT = 10

MANMADE_MIN_EDGE      = 15
MANMADE_MIN_CONTRAST  = 50
MANMADE_MAX_VARIETY   = 100

ANIMAL_MIN_EDGE       = 8
ANIMAL_MIN_CONTRAST   = 30
ANIMAL_MIN_VARIETY    = 150

LANDSCAPE_MAX_EDGE    = 10
LANDSCAPE_MIN_VARIETY = 200

# -- Summary score bands ------------------------------------------------------
SCORE_NEAR_IDENTICAL = 85
SCORE_STRONG         = 60

# -- User-facing messages -----------------------------------------------------
ANALYSIS_FAILED_MSG = ("An error occurred during the local image analysis. "
                       "The image might be corrupted or in an unsupported format.")

# -- File extensions ----------------------------------------------------------
IMG_EXTS = frozenset({".jpg", ".jpeg", ".png", ".gif", ".bmp", ".webp", ".tiff", ".tif"})

# -- Per-image export columns: (field_name, header_label, width_px) -----------
IMAGE_RESULT_COLS = [
    ("slot",              "Image",        50),
    ("filename",          "Filename",    160),
    ("width",             "W",            50),
    ("height",            "H",            50),
    ("brightness",        "Bright.",      65),
    ("contrast",          "Contrast",     65),
    ("edge_density",      "Edges %",      65),
    ("is_low_contrast",   "Low Contr.",   70),
    ("skin_tone_percent", "Skin %",       60),
    ("color_variety",     "Variety",      60),
    ("classification",    "Class",       170),
]

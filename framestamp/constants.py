STANDARD_EXTENSIONS = {".jpg", ".jpeg", ".png", ".tif", ".tiff", ".bmp"}
HEIF_EXTENSIONS = {".heic", ".heif", ".hif"}
RAW_EXTENSIONS = {
    ".arw",
    ".cr2",
    ".cr3",
    ".nef",
    ".raf",
    ".rw2",
    ".orf",
    ".dng",
    ".3fr",
    ".fff",
}
SUPPORTED_EXTENSIONS = STANDARD_EXTENSIONS | HEIF_EXTENSIONS | RAW_EXTENSIONS

BACKGROUND_COLOR = "#FFFFFF"

# Resolution adaptation
ADAPTATION_FACTOR_MIN = 0.1
ADAPTATION_FACTOR_MAX = 10.0

# Sizes relative to the border canvas
BRAND_TEXT_HEIGHT_RATIO = 0.02
LOGO_HEIGHT_RATIO = 0.025
EXIF_FONT_RATIO = 0.018
TWO_LINE_FONT_RATIO = 0.025
TWO_LINE_SUB_FONT_SCALE = 0.75
TWO_LINE_GAP_RATIO = 0.005
TWO_LINE_BOTTOM_RATIO = 0.3
BRAND_BOTTOM_COEF_PORTRAIT = 1.6
BRAND_BOTTOM_COEF_LANDSCAPE = 1.3

# Geometric floors
FLOOR_TOP_LOGO_MULTIPLIER = 2.0
FLOOR_BOTTOM_FONT_MULTIPLIER = 2.5
FLOOR_SIDE_FONT_MULTIPLIER = 2.0

# Photo shadow
SHADOW_COLOR = "#000000"
SHADOW_DIRECTION_DEG = 315.0
SHADOW_OPACITY = 0.4

# Text colours
BRAND_TEXT_COLOR = "#000000"
EXIF_TEXT_COLOR = "#323232"
CAPTION_TEXT_COLOR = "#1E1E1E"
CAPTION_SUBTEXT_COLOR = "#505050"
CAPTION_LIGHT_TEXT_COLOR = "#FFFFFF"
CAPTION_LIGHT_SUBTEXT_COLOR = "#DCDCDC"
WATERMARK_LIGHT_COLOR = "#FFFFFF"
WATERMARK_DARK_COLOR = "#000000"

# Smart adaptation
SCENE_SAMPLE_STRIDE = 4
SCENE_BAND_FRACTION = 0.15
SCENE_FALLBACK = (0.5, 0.0)
DARK_LUMA_THRESHOLD = 0.5
BRIGHT_LUMA_THRESHOLD = 0.7
VARIANCE_THRESHOLD = 2000.0
COMPACT_MARGIN_THRESHOLD = 100.0

# Legibility panel behind the two caption lines
PANEL_OPACITY = 0.3
PANEL_CORNER_RADIUS = 10.0
PANEL_BLUR_RADIUS = 20.0
PANEL_PADDING_X = 20.0
PANEL_PADDING_Y = 10.0
GLOW_BLUR_PRIMARY = 10.0
GLOW_BLUR_SECONDARY = 8.0
GLOW_OPACITY = 1.0

FALLBACK_BRAND_TEXT = "CAMERA"

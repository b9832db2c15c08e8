"""
Constants and configuration values for Spool Colorizer.

This module centralizes all constant values, magic numbers, and
configuration settings used throughout the rendering pipeline.
"""

# Luminance weights (ITU-R BT.601)
LUMA_RED = 0.299
LUMA_GREEN = 0.587
LUMA_BLUE = 0.114

# Tint boost
TINT_DARK_LUMINANCE_THRESHOLD = 128
TINT_DARK_BOOST = 1.3
TINT_LIGHT_BOOST = 1.1
TINT_BLEND_SPLIT = 0.5

# Adjustments
HUE_DEGREES_PER_UNIT = 360.0
CONTRAST_MIDPOINT = 128.0
SHARPEN_BLUR_RADIUS = 1.0
SHARPEN_GAIN = 2.0

# Background modes
BACKGROUND_WHITE = "white"
BACKGROUND_TRANSPARENT = "transparent"
BACKGROUND_MODES = (BACKGROUND_WHITE, BACKGROUND_TRANSPARENT)
WHITE_FILL = (255, 255, 255, 255)
TRANSPARENT_FILL = (0, 0, 0, 0)

# Encoding
DEFAULT_MAX_BYTES = 150 * 1024
DEFAULT_TARGET_SIZE = 1080
DEFAULT_STARTING_QUALITY = 90
LOSSLESS_QUALITY = 100
MIN_QUALITY = 1
ENCODER_TIMEOUT_SECONDS = 30.0
CWEBP_BINARY_NAME = "cwebp"
WEBP_FORMAT = "WEBP"
WEBP_EXTENSION = "webp"
BASE_BUFFER_FORMAT = "PNG"

# Output formats
OUTPUT_FORMAT_WEBP = "webp"
OUTPUT_FORMAT_JPEG = "jpeg"
OUTPUT_FORMATS = (OUTPUT_FORMAT_WEBP, OUTPUT_FORMAT_JPEG)
JPEG_FORMAT = "JPEG"
JPEG_EXTENSION = "jpg"
JPEG_STARTING_QUALITY = 95
JPEG_QUALITY_STEP = 5
JPEG_MIN_QUALITY = 10

# Template variants and asset names
VARIANT_BASE = "base"
VARIANT_ZOOM = "zoom"
VARIANT_FRONT = "front"
TEMPLATE_VARIANTS = (VARIANT_BASE, VARIANT_ZOOM, VARIANT_FRONT)
TEMPLATE_ASSET_PREFIX = "template"
OVERLAY_ASSET_PREFIX = "overlay"
DEFAULT_ASSET_FILES = {
    "template_base": "Neutral grey SILK.png",
    "overlay_base": "Carton.png",
    "template_zoom": "Neutral grey SILK zoom.png",
    "overlay_zoom": "Carton zoom.png",
    "template_front": "Neutral grey SILK front.png",
    "overlay_front": "Carton front.png",
}

# Generations
MAX_GENERATIONS = 3

# Render graph node ids
TINT_NODE_ID = "tint"
ADJUST_NODE_ID = "adjust"
COMPOSITE_NODE_PREFIX = "composite"
ENCODE_NODE_PREFIX = "encode"
OUTPUT_NODE_PREFIX = "output"

# File naming
DEFAULT_FILENAME_PATTERN = "{PRODUCT}-{VARIANT}-{BRAND}.{EXT}"
DUAL_EXPORT_FILENAME_PATTERN = "{HEX}_{BACKGROUND}.{EXT}"
DEFAULT_PRODUCT_NAME = "spool"
SAFE_FILENAME_CHARS = "-_."
FILENAME_REPLACEMENT_CHAR = "_"

# Node types
NODE_TYPE_TINT = "Color Tint"
NODE_TYPE_ADJUST = "Adjustments"
NODE_TYPE_COMPOSITE = "Layer Compositor"
NODE_TYPE_ENCODE = "Size-Constrained Encoder"
NODE_TYPE_OUTPUT = "Output"

# Node/Connection field names
FIELD_NODE_ID = "id"
FIELD_NODE_TYPE = "type"
FIELD_FROM_NODE = "from_node"
FIELD_TO_NODE = "to_node"

# Batch item status values
STATUS_PENDING = "pending"
STATUS_EXTRACTING_COLOR = "extracting_color"
STATUS_COLORIZING = "colorizing"
STATUS_COMPLETED = "completed"
STATUS_ERROR = "error"
STATUS_CANCELLED = "cancelled"

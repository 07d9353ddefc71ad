"""Application-wide constants."""

APP_NAME = "LayerLab"
APP_VERSION = "0.1.0"
ORG_NAME = "LayerLab"
ORG_DOMAIN = "layerlab.org"

# Selection sentinel for the base image (never a member of Document.layers)
BASE_SELECTION = "base"
DEFAULT_BASE_NAME = "Background"

# Canvas used before a base image exists
DEFAULT_CANVAS_WIDTH = 1280
DEFAULT_CANVAS_HEIGHT = 720

# Selection handles (canvas pixels, independent of zoom)
HANDLE_SIZE = 12
HANDLE_COLOR = (0, 150, 255, 204)
OUTLINE_WIDTH = 2

# Crop preview
CROP_TINT_COLOR = (0, 0, 0, 102)
CROP_BOX_FILL_COLOR = (0, 150, 255, 51)
# Both sides of a crop rectangle must exceed this to be applied on toggle-off
CROP_MIN_SIZE = 5

# Layers narrower than this cannot be produced by handle scaling
MIN_LAYER_WIDTH = 10.0

# New layers are fitted into the canvas at this fraction of the fit scale
ADD_LAYER_FIT_FACTOR = 0.8

# Undo history limit (0 = unbounded)
UNDO_LIMIT = 0

# Style slider ranges: (minimum, maximum, identity)
BLUR_RANGE = (0, 50, 0)
BRIGHTNESS_RANGE = (0, 200, 100)
CONTRAST_RANGE = (0, 200, 100)
SATURATION_RANGE = (0, 200, 100)
HUE_RANGE = (-180, 180, 0)
FEATHER_RANGE = (0, 100, 0)
CORNER_RADIUS_RANGE = (0, 500, 0)

# AI edit feather default (percent of the returned width, divided by 10)
AI_FEATHER_PERCENT_DEFAULT = 5
AI_FEATHER_PERCENT_MAX = 50
AI_FEATHER_START_FACTOR = 2.5

# Remote image-edit endpoint
AI_EDIT_MODEL = "gemini-2.5-flash-image-preview"
AI_EDIT_URL = (
    "https://generativelanguage.googleapis.com/v1beta/models/{model}:generateContent"
)
AI_EDIT_TIMEOUT = 120

# Files
EXPORT_EXTENSION = ".png"
COMPOSITION_FILENAME = "composition.png"
IMAGE_FILE_FILTER = "Images (*.png *.jpg *.jpeg *.bmp *.gif *.webp *.heic *.heif *.tif *.tiff)"
HEIC_SUFFIXES = {".heic", ".heif"}

# Canvas widget
PASTEBOARD_COLOR = "#2b2b2b"
CHECKERBOARD_CELL_SIZE = 8
CHECKERBOARD_COLOR_A = "#FFFFFF"
CHECKERBOARD_COLOR_B = "#CCCCCC"
EMPTY_CANVAS_TEXT = "Drag an image here or use File > Open Image to set the base image"
EMPTY_CANVAS_TEXT_COLOR = "#AAAAAA"
EMPTY_CANVAS_FONT_SIZE = 18

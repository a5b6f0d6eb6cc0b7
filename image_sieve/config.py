"""
Configuration constants for the image sieve.
"""

# --- Concurrency ---
# Upper bound on tasks in flight at once (each holds at most one open file)
DEFAULT_CAPACITY = 256

# --- Size Units ---
# All multipliers are powers of 1024; an empty suffix means plain bytes.
SIZE_UNITS = {
    '': 1,
    'b': 1,
    'k': 1 << 10, 'kb': 1 << 10, 'kib': 1 << 10,
    'm': 1 << 20, 'mb': 1 << 20, 'mib': 1 << 20,
    'g': 1 << 30, 'gb': 1 << 30, 'gib': 1 << 30,
}

# --- Format Keywords ---
# Keyword -> extensions that count as that format
FORMAT_EXTS = {
    'png': {'.png'},
    'jpg': {'.jpg', '.jpeg', '.jpe'},
    'gif': {'.gif'},
    'bmp': {'.bmp'},
    'webp': {'.webp'},
    'tiff': {'.tif', '.tiff'},
}
FORMAT_ALIASES = {'jpeg': 'jpg', 'tif': 'tiff'}

# --- Channel Layouts ---
# Keyword -> Pillow image mode
CHANNEL_MODES = {
    'rgb': 'RGB',
    'rgba': 'RGBA',
    'gray': 'L',
    'graya': 'LA',
}
CHANNEL_ALIASES = {'grey': 'gray', 'greya': 'graya'}

VALIDITY_KEYWORDS = {'valid': True, 'invalid': False}

DIMENSION_FIELDS = ('width', 'height', 'long', 'short')
SIZE_FIELDS = ('filesize', 'size')

# --- Logging ---
ERROR_LOG_NAME = "image-sieve.log"
FAILURE_LOGGER = "image_sieve.failures"

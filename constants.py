# constants.py - Define constants used throughout the application

# --- API Endpoints ---
CDX_API_URL = "https://web.archive.org/cdx/search/cdx"
WAYBACK_BASE_URL = "https://web.archive.org/web/"

# --- File/Directory Names ---
DEFAULT_OUTPUT_DIR = "wayback"
DEFAULT_CONFIG_FILE = "config.json"
INDEX_FILENAME = "index.html" # Leaf name for URL paths ending in '/'
DEBUG_FILENAME = "debug.json" # JSON-lines capture metadata, per timestamp dir
VERCEL_CONFIG_FILENAME = "vercel.json"

# --- Concurrency ---
DEFAULT_CONCURRENCY = 10
MIN_ASSET_CONCURRENCY = 2
MAX_ASSET_CONCURRENCY = 10

# --- Request Defaults ---
DEFAULT_USER_AGENT = "wayback-mirror/1.0 (+https://github.com/wayback-mirror/wayback-mirror)"
DEFAULT_MAX_ATTEMPTS = 3 # Total attempts per replay fetch (not retries)
DEFAULT_BACKOFF_SECONDS = 1.0 # Linear backoff: attempt * this
DEFAULT_TIMEOUT = 60 # Per-request socket timeout in seconds
STREAM_CHUNK_SIZE = 64 * 1024

# --- CDX Parameters ---
CDX_FIELDS = "timestamp,original,mimetype"
CDX_FILTER_STATUS = "statuscode:200"
CDX_MATCH_TYPE = "exact"
CDX_COLLAPSE = "digest"

# --- Wayback Replay Modifiers ---
MODIFIER_IDENTITY = "id_"
MODIFIER_IMAGE = "im_"
MODIFIER_CSS = "cs_"
MODIFIER_JS = "js_"
IMAGE_EXTENSIONS = ("png", "jpg", "jpeg", "gif", "webp", "svg", "ico", "bmp", "tif", "tiff")

# --- Vercel ---
VERCEL_COMMAND = "vercel"
VERCEL_DEFAULT_CONFIG = {"version": 2, "cleanUrls": True, "trailingSlash": False}

"""Application constants."""

# Event names
EVENT_CRAWL_PROGRESS = "crawl:progress"
EVENT_CRAWL_COMPLETED = "crawl:completed"
EVENT_CRAWL_ERROR = "crawl:error"
EVENT_FILE_COMPLETED = "file:completed"
EVENT_FILE_ERROR = "file:error"

# Mime types
MIME_PDF = "application/pdf"
MIME_CSV = ("text/csv", "application/csv")
MIME_TEXT = ("text/plain", "text/txt")
MIME_DOC = (
    "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
    "application/msword",
)

EXTENSION_MIME_TYPES = {
    ".pdf": MIME_PDF,
    ".csv": "text/csv",
    ".txt": "text/plain",
    ".docx": "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
    ".doc": "application/msword",
}

# Link-following exclusions (static and binary assets)
STATIC_EXTENSIONS = frozenset(
    {
        # images
        "jpg", "jpeg", "png", "gif", "webp", "svg", "ico", "bmp", "tif", "tiff", "avif",
        # styles and scripts
        "css", "js", "mjs", "map", "json",
        # fonts
        "woff", "woff2", "ttf", "otf", "eot",
        # archives
        "zip", "tar", "gz", "tgz", "bz2", "rar", "7z",
        # media
        "mp3", "mp4", "avi", "mov", "webm", "wav", "ogg",
        # documents
        "pdf",
    }
)

# Page extraction
BOILERPLATE_SELECTORS = (
    "script, style, noscript, template, nav, footer, aside, "
    ".ads, .ad, .advert, .advertisement, .sidebar, .menu, [role=navigation]"
)
MAIN_CONTENT_SELECTORS = ("main", "article", "[role=main]", ".content", ".post", ".entry")

FETCH_ACCEPT_HEADERS = {
    "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
    "Accept-Language": "nl,en;q=0.5",
    "Cache-Control": "no-cache",
}

SITEMAP_PATH = "/sitemap.xml"

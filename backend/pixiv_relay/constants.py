"""
Upstream endpoints and fixed values shared by the relay components.
"""

PIXIV_ORIGIN = "https://www.pixiv.net"
PIXIV_REFERER = f"{PIXIV_ORIGIN}/"

# Metadata endpoints
ILLUST_API_URL = PIXIV_ORIGIN + "/ajax/illust/{illust_id}?lang=en"
ARTWORK_PAGE_URL = PIXIV_ORIGIN + "/en/artworks/{illust_id}"

# id of the <meta> element carrying the preload JSON on artwork pages
PRELOAD_META_ID = "meta-preload-data"

# Downstream caching of relayed images (one year)
CACHE_MAX_AGE_SECONDS = 365 * 24 * 60 * 60
CACHE_CONTROL = f"public, max-age={CACHE_MAX_AGE_SECONDS}"

# Every cached file is stored with this extension regardless of the request
STORE_EXTENSION = ".jpg"

DEFAULT_CONFIG_FILE = "pixiv-relay.config"

# Cache module
from cotton_cloud.cache.image_cache import ImageCache, CacheEntry

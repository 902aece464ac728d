from filesphere.config import settings

class ThumbnailConfig:
    """
    Read defaults from Pydantic Settings (backed by .env), not os.getenv.
    """

    @staticmethod
    def size() -> int:
        # .env key: THUMB_SIZE
        val = getattr(settings, "thumb_size", None)
        try:
            return max(16, int(val)) if val is not None else 256
        except Exception:
            return 256

    @staticmethod
    def quality() -> int:
        # .env key: THUMB_QUALITY (JPEG quality, 1-95)
        val = getattr(settings, "thumb_quality", None)
        try:
            return max(1, min(int(val), 95)) if val is not None else 85
        except Exception:
            return 85

    @staticmethod
    def background() -> tuple:
        return (40, 40, 40)

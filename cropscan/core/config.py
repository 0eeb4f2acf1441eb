import os
from functools import lru_cache
from typing import Optional
from dotenv import load_dotenv

load_dotenv(override=True)

_DEFAULT_KB_ROOT = os.path.join(os.path.dirname(os.path.dirname(__file__)), "data", "kb")


def _optional_int(value: Optional[str]) -> Optional[int]:
    if value is None or value.strip() == "":
        return None
    return int(value)


class Settings:
    def __init__(self) -> None:
        self.KB_ROOT = os.getenv("CROPSCAN_KB_ROOT", os.getenv("KB_ROOT", _DEFAULT_KB_ROOT))

        # Simulated stage latency, seconds
        self.IDENTIFY_DELAY = float(os.getenv("CROPSCAN_IDENTIFY_DELAY", "2.5"))
        self.DETECT_DELAY = float(os.getenv("CROPSCAN_DETECT_DELAY", "2.0"))

        self.RANDOM_SEED = _optional_int(os.getenv("CROPSCAN_RANDOM_SEED"))
        self.STRICT_IDENTIFICATION = os.getenv("CROPSCAN_STRICT_IDENTIFICATION", "false").lower() == "true"

        # Upload validation
        self.MAX_IMAGE_MB = int(os.getenv("CROPSCAN_MAX_IMAGE_MB", os.getenv("MAX_IMAGE_MB", "5")))
        self.ALLOWED_MIME = (
            os.getenv(
                "CROPSCAN_ALLOWED_MIME",
                os.getenv("ALLOWED_MIME", "image/jpeg,image/png,image/webp"),
            )
            .strip()
            .split(",")
        )

        self.LOG_LEVEL = os.getenv("CROPSCAN_LOG_LEVEL", "INFO").upper()


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()


settings = get_settings()

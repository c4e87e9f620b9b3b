# ==================================================================================================
# config.py — runtime settings for the biological-age backend
# --------------------------------------------------------------------------------------------------
# Every value can be overridden from the environment (or a local .env file).
# ==================================================================================================

import os
from pathlib import Path

from dotenv import load_dotenv

load_dotenv()


def _get_float(name: str, default: float) -> float:
    return float(os.getenv(name, str(default)))


def _get_int(name: str, default: int) -> int:
    return int(os.getenv(name, str(default)))


# ===================================================================================
# 🔹 Result weighting
#    lifestyle 0.3 / face 0.7, biological age anchored on the predicted age
# ===================================================================================
LIFESTYLE_WEIGHT = _get_float("LIFESTYLE_WEIGHT", 0.3)
FACE_WEIGHT = _get_float("FACE_WEIGHT", 0.7)

if abs(LIFESTYLE_WEIGHT + FACE_WEIGHT - 1.0) > 1e-9:
    raise ValueError(
        f"LIFESTYLE_WEIGHT + FACE_WEIGHT must equal 1 (got {LIFESTYLE_WEIGHT} + {FACE_WEIGHT})"
    )

# max lifestyle correction applied to the predicted age, in years
LIFESTYLE_CORRECTION_YEARS = _get_float("LIFESTYLE_CORRECTION_YEARS", 3.0)

BIO_AGE_MIN = _get_int("BIO_AGE_MIN", 18)
BIO_AGE_MAX = _get_int("BIO_AGE_MAX", 120)

# score used when no face could be analysed (same score as "looks exactly your age")
FALLBACK_FACE_SCORE = _get_int("FALLBACK_FACE_SCORE", 70)

# ===================================================================================
# 🔹 Face models
# ===================================================================================
MODEL_DIR = Path(os.getenv("MODEL_DIR", "weights"))
DETECTION_MIN_CONFIDENCE = _get_float("DETECTION_MIN_CONFIDENCE", 0.5)
ANALYSIS_TIMEOUT_SECONDS = _get_float("ANALYSIS_TIMEOUT_SECONDS", 10.0)

# ===================================================================================
# 🔹 Camera / server
# ===================================================================================
CAMERA_INDEX = _get_int("CAMERA_INDEX", 0)

CORS_ORIGINS = [
    origin.strip()
    for origin in os.getenv("CORS_ORIGINS", "http://localhost:5173,http://localhost:3000").split(",")
    if origin.strip()
]

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

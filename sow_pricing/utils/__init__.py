from .logger import setup_logging, log_warnings
from .hashing import sha256_hash, row_id

__all__ = ["setup_logging", "log_warnings", "sha256_hash", "row_id"]

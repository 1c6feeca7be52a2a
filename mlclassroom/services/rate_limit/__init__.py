from mlclassroom.services.rate_limit.detector import (
    RateLimitDetector,
    RateLimitInfo,
    RateLimitScope,
    detect_rate_limit,
)

__all__ = ["RateLimitDetector", "RateLimitInfo", "RateLimitScope", "detect_rate_limit"]

from pairing_api.middleware.correlation import CorrelationIdMiddleware
from pairing_api.middleware.rate_limit import RateLimitMiddleware

__all__ = ["CorrelationIdMiddleware", "RateLimitMiddleware"]

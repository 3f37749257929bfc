from .tip_service import TipService, summarize, validate_amount

__all__ = ["TipService", "summarize", "validate_amount"]

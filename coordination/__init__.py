from .models import Confirmation, ServiceTransaction, TransactionPage, parse_model
from .service import CoordinationServiceClient

__all__ = [
    "Confirmation",
    "CoordinationServiceClient",
    "ServiceTransaction",
    "TransactionPage",
    "parse_model",
]

from .auth import User, RefreshSession
from .security import SecurityEvent
from .catalog import Product
from .orders import Order, Payment
from .analytics import Metric
from .chat import ChatSession

__all__ = [
    'User', 'RefreshSession', 'SecurityEvent',
    'Product', 'Order', 'Payment',
    'Metric', 'ChatSession',
]
